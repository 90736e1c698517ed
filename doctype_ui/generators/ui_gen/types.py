"""Dataclasses for UI generation."""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class GenerationWarning:
    """Non-fatal rendering issue, attached to the artifact it concerns."""
    path: str
    message: str
    region: Optional[str] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "message": self.message, "region": self.region, "field": self.field}


@dataclass(frozen=True)
class GeneratedFile:
    """Represents a generated file."""
    path: str  # Relative path from the destination root
    content: str  # File contents
    owned_regions: Tuple[str, ...] = ()  # Region names delimited by markers in content
    warnings: Tuple[GenerationWarning, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "content": self.content,
            "ownedRegions": list(self.owned_regions),
            "warnings": [w.to_dict() for w in self.warnings],
        }
