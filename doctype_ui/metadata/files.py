"""Metadata read from JSON or YAML schema dumps on disk."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from doctype_ui.core.errors import MetadataFetchError
from doctype_ui.generators.ui_gen.utils import entity_to_slug
from doctype_ui.metadata.base import InMemoryMetadataSource, MetadataSource

log = logging.getLogger(__name__)

SCHEMA_SUFFIXES = (".json", ".yaml", ".yml")


class FileMetadataSource(MetadataSource):
    """Looks up ``<slug>.json|.yaml|.yml`` (or the exact entity name) in a directory.

    The file is re-read on every fetch so a build always sees the current dump.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _candidates(self, entity_name: str) -> List[Path]:
        stems = [entity_to_slug(entity_name), entity_name, entity_name.replace(" ", "_").lower()]
        paths = []
        for stem in stems:
            for suffix in SCHEMA_SUFFIXES:
                path = self.directory / f"{stem}{suffix}"
                if path not in paths:
                    paths.append(path)
        return paths

    def _load(self, entity_name: str) -> Dict[str, Any]:
        if not entity_name:
            raise MetadataFetchError("Entity name is required")
        if not self.directory.is_dir():
            raise MetadataFetchError(f"Metadata directory not found: {self.directory}", entity=entity_name)

        for path in self._candidates(entity_name):
            if not path.is_file():
                continue
            try:
                text = path.read_text(encoding="utf-8")
                if path.suffix == ".json":
                    data = json.loads(text)
                else:
                    data = yaml.safe_load(text)
            except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
                raise MetadataFetchError(f"Failed to read {path.name}: {e}", entity=entity_name) from e
            if not isinstance(data, dict):
                raise MetadataFetchError(f"{path.name} does not hold a schema object", entity=entity_name)
            log.debug("Loaded schema from %s", path, extra={"entity": entity_name})
            return data

        raise MetadataFetchError(f"Unknown entity '{entity_name}'", entity=entity_name)

    def _source(self, entity_name: str) -> InMemoryMetadataSource:
        return InMemoryMetadataSource({entity_name: self._load(entity_name)})

    def fetch_field_list(self, entity_name: str) -> List[Dict[str, Any]]:
        return self._source(entity_name).fetch_field_list(entity_name)

    def fetch_overrides(self, entity_name: str) -> List[Dict[str, Any]]:
        return self._source(entity_name).fetch_overrides(entity_name)

    def fetch_client_behavior(self, entity_name: str) -> List[Dict[str, Any]]:
        return self._source(entity_name).fetch_client_behavior(entity_name)

    def fetch_workflow(self, entity_name: str) -> Optional[Dict[str, Any]]:
        return self._source(entity_name).fetch_workflow(entity_name)

    def fetch_permissions(self, entity_name: str) -> Dict[str, List[Dict[str, Any]]]:
        return self._source(entity_name).fetch_permissions(entity_name)
