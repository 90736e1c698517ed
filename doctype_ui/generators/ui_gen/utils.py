"""Utility functions for UI generation."""
import re


def to_kebab_case(name: str) -> str:
    """Convert PascalCase, camelCase or spaced names to kebab-case."""
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1-\2', name)
    s2 = re.sub('([a-z0-9])([A-Z])', r'\1-\2', s1)
    s3 = re.sub('[^A-Za-z0-9]+', '-', s2)
    return s3.strip('-').lower()


def to_pascal_case(name: str) -> str:
    """Convert 'Sales Order' / 'sales_order' / 'sales-order' to SalesOrder."""
    parts = [p for p in re.split('[^A-Za-z0-9]+', name) if p]
    result = "".join(p[0].upper() + p[1:] for p in parts)
    if not result or result[0].isdigit():
        result = "E" + result
    return result


def to_camel_case(name: str) -> str:
    """Convert entity or field name to camelCase."""
    pascal = to_pascal_case(name)
    return pascal[0].lower() + pascal[1:]


def entity_to_slug(entity_name: str) -> str:
    """Convert entity name to the slug used in paths and routes."""
    return to_kebab_case(entity_name)


def realtime_topic(entity_name: str) -> str:
    """Canonical change-notification topic for an entity."""
    return f"doctype:{entity_to_slug(entity_name)}"


def field_label(fieldname: str) -> str:
    """Derive a label from a snake_case field name."""
    words = [w for w in fieldname.replace("-", "_").split("_") if w]
    return " ".join(w[0].upper() + w[1:] for w in words)
