"""Metadata source backed by the Frappe/ERPNext REST API."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from doctype_ui.core.config import settings
from doctype_ui.core.errors import MetadataFetchError
from doctype_ui.metadata.base import MetadataSource, group_permissions
from doctype_ui.metadata.files import FileMetadataSource

log = logging.getLogger(__name__)

PERMISSION_FLAGS = ("read", "write", "create", "delete", "submit", "cancel", "amend")

# Property Setter values arrive as strings; coerce by declared property_type
_INT_PROPERTY_TYPES = {"Check", "Int"}
_FLOAT_PROPERTY_TYPES = {"Float", "Currency", "Percent"}


def _coerce_property(value: Any, property_type: Optional[str]) -> Any:
    if value is None:
        return None
    try:
        if property_type in _INT_PROPERTY_TYPES:
            return int(value)
        if property_type in _FLOAT_PROPERTY_TYPES:
            return float(value)
    except (TypeError, ValueError):
        return value
    return value


def property_setters_to_patches(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Fold field-level Property Setter rows into one patch per field."""
    patches: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        fieldname = row.get("field_name")
        prop = row.get("property")
        if not fieldname or not prop:
            continue
        patch = patches.setdefault(fieldname, {"fieldname": fieldname})
        patch[prop] = _coerce_property(row.get("value"), row.get("property_type"))
    return list(patches.values())


def merge_custom_fields(fields: List[Dict[str, Any]], custom_fields: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Insert Custom Field rows after their ``insert_after`` anchor (or append)."""
    merged = list(fields)
    for custom in custom_fields:
        anchor = custom.get("insert_after")
        position = len(merged)
        if anchor:
            for i, f in enumerate(merged):
                if f.get("fieldname") == anchor:
                    position = i + 1
                    break
        merged.insert(position, custom)
    return merged


def normalize_docperm(row: Dict[str, Any]) -> Dict[str, Any]:
    """Keep granted flags only; an unticked desk checkbox is not a deny."""
    rule: Dict[str, Any] = {
        "role": row.get("role"),
        "permlevel": int(row.get("permlevel") or 0),
    }
    if row.get("if_owner"):
        rule["if_owner"] = 1
    for flag in PERMISSION_FLAGS:
        if row.get(flag):
            rule[flag] = 1
    return rule


@dataclass
class FrappeMetadataClient(MetadataSource):
    base_url: str
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    timeout: float = settings.metadata_timeout
    transport: Optional[httpx.BaseTransport] = field(default=None, repr=False)

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key and self.api_secret:
            headers["Authorization"] = f"token {self.api_key}:{self.api_secret}"
        return headers

    def _get(self, entity_name: str, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url.rstrip('/')}{path}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.get(url, headers=self._headers(), params=params)
                r.raise_for_status()
                payload = r.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise MetadataFetchError(f"Unknown entity '{entity_name}'", entity=entity_name) from e
            raise MetadataFetchError(
                f"Metadata request {path} failed with HTTP {e.response.status_code}",
                entity=entity_name,
            ) from e
        except httpx.RequestError as e:
            raise MetadataFetchError(f"Metadata source unreachable: {e}", entity=entity_name) from e
        except ValueError as e:
            raise MetadataFetchError(f"Invalid JSON from {path}: {e}", entity=entity_name) from e
        if not isinstance(payload, dict):
            raise MetadataFetchError(
                f"Unexpected response from {path}: expected a JSON object, got {type(payload).__name__}",
                entity=entity_name,
            )
        return payload.get("data")

    def _list(self, entity_name: str, doctype: str, filters: list, fields: List[str]) -> List[Dict[str, Any]]:
        params = {
            "filters": json.dumps(filters),
            "fields": json.dumps(fields),
            "limit_page_length": 0,
        }
        rows = self._get(entity_name, f"/api/resource/{quote(doctype)}", params) or []
        if not isinstance(rows, list):
            raise MetadataFetchError(f"Unexpected {doctype} listing: expected a JSON list", entity=entity_name)
        return rows

    def _doctype_meta(self, entity_name: str) -> Dict[str, Any]:
        meta = self._get(entity_name, f"/api/resource/DocType/{quote(entity_name)}")
        if not isinstance(meta, dict):
            raise MetadataFetchError(f"Unknown entity '{entity_name}'", entity=entity_name)
        return meta

    def fetch_field_list(self, entity_name: str) -> List[Dict[str, Any]]:
        meta = self._doctype_meta(entity_name)
        custom_fields = self._list(entity_name, "Custom Field", [["dt", "=", entity_name]], ["*"])
        log.info(
            "Fetched %d fields and %d custom fields",
            len(meta.get("fields") or []), len(custom_fields),
            extra={"entity": entity_name},
        )
        return merge_custom_fields(meta.get("fields") or [], custom_fields)

    def fetch_overrides(self, entity_name: str) -> List[Dict[str, Any]]:
        rows = self._list(
            entity_name,
            "Property Setter",
            [["doc_type", "=", entity_name], ["doctype_or_field", "=", "DocField"]],
            ["field_name", "property", "value", "property_type"],
        )
        return property_setters_to_patches(rows)

    def fetch_client_behavior(self, entity_name: str) -> List[Dict[str, Any]]:
        return self._list(
            entity_name,
            "Client Script",
            [["dt", "=", entity_name], ["enabled", "=", 1]],
            ["name", "view", "script", "enabled"],
        )

    def fetch_workflow(self, entity_name: str) -> Optional[Dict[str, Any]]:
        rows = self._list(
            entity_name,
            "Workflow",
            [["document_type", "=", entity_name], ["is_active", "=", 1]],
            ["name"],
        )
        if not rows:
            return None
        return self._get(entity_name, f"/api/resource/Workflow/{quote(rows[0]['name'])}")

    def fetch_permissions(self, entity_name: str) -> Dict[str, List[Dict[str, Any]]]:
        # Custom DocPerm rows replace the DocType's own rules when present
        rows = self._list(entity_name, "Custom DocPerm", [["parent", "=", entity_name]], ["*"])
        if not rows:
            rows = self._doctype_meta(entity_name).get("permissions") or []
        return group_permissions([normalize_docperm(row) for row in rows])


def metadata_source_from_settings() -> MetadataSource:
    """Pick the metadata source configured in settings."""
    if settings.metadata_dir:
        return FileMetadataSource(Path(settings.metadata_dir))
    if settings.frappe_url:
        return FrappeMetadataClient(
            base_url=settings.frappe_url,
            api_key=settings.frappe_api_key,
            api_secret=settings.frappe_api_secret,
        )
    raise MetadataFetchError("No metadata source configured (set METADATA_DIR or FRAPPE_URL)")
