"""Pull interface the contract builder consumes, plus a dict-backed source."""
from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from doctype_ui.core.errors import MetadataFetchError


class MetadataSource:
    """Supplies raw schema metadata for a named entity.

    Every method raises ``MetadataFetchError`` when the source is unreachable
    or the entity is unknown. Returned structures are fresh copies that the
    caller may keep.
    """

    def fetch_field_list(self, entity_name: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def fetch_overrides(self, entity_name: str) -> List[Dict[str, Any]]:
        """Partial field patches: ``{"fieldname": ..., <attribute>: <value>, ...}``."""
        raise NotImplementedError

    def fetch_client_behavior(self, entity_name: str) -> List[Dict[str, Any]]:
        """Client script references: ``{"name", "view", "script", "enabled"}``."""
        raise NotImplementedError

    def fetch_workflow(self, entity_name: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def fetch_permissions(self, entity_name: str) -> Dict[str, List[Dict[str, Any]]]:
        """Permission rules grouped by role, in declaration order."""
        raise NotImplementedError


def group_permissions(rules: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for rule in rules or []:
        role = rule.get("role")
        if not role:
            continue
        grouped.setdefault(role, []).append(dict(rule))
    return grouped


class InMemoryMetadataSource(MetadataSource):
    """Metadata held in a dict keyed by entity name.

    Each schema uses the desk export shape::

        {
            "fields": [...],
            "overrides": [{"fieldname": "status", "reqd": 1}],
            "client_scripts": [{"name": ..., "view": "Form", "script": ...}],
            "workflow": {"states": [...], "transitions": [...]},
            "permissions": [{"role": "System Manager", "read": 1, ...}],
        }
    """

    def __init__(self, schemas: Optional[Dict[str, Dict[str, Any]]] = None):
        self.schemas = schemas or {}

    def _schema(self, entity_name: str) -> Dict[str, Any]:
        schema = self.schemas.get(entity_name)
        if schema is None:
            raise MetadataFetchError(f"Unknown entity '{entity_name}'", entity=entity_name)
        return schema

    def fetch_field_list(self, entity_name: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._schema(entity_name).get("fields") or [])

    def fetch_overrides(self, entity_name: str) -> List[Dict[str, Any]]:
        schema = self._schema(entity_name)
        return copy.deepcopy(schema.get("overrides") or schema.get("property_setters") or [])

    def fetch_client_behavior(self, entity_name: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._schema(entity_name).get("client_scripts") or [])

    def fetch_workflow(self, entity_name: str) -> Optional[Dict[str, Any]]:
        workflow = self._schema(entity_name).get("workflow")
        return copy.deepcopy(workflow) if workflow else None

    def fetch_permissions(self, entity_name: str) -> Dict[str, List[Dict[str, Any]]]:
        return group_permissions(copy.deepcopy(self._schema(entity_name).get("permissions") or []))
