"""Error taxonomy shared by the compiler pipeline."""
from __future__ import annotations

from typing import Optional


class UICompilerError(Exception):
    code = "UI_COMPILER_ERROR"

    def __init__(self, message: str, entity: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.entity = entity

    def __str__(self) -> str:
        base = f"{self.code}: {self.message}"
        return f"{base} (entity={self.entity})" if self.entity else base


class MetadataFetchError(UICompilerError):
    """Metadata source unreachable or entity unknown. Aborts contract building."""
    code = "METADATA_FETCH_ERROR"


class ContractValidationError(UICompilerError):
    """Structurally unusable contract, e.g. an entity with no fields."""
    code = "CONTRACT_VALIDATION_ERROR"


class ExpressionParseError(UICompilerError):
    code = "EXPRESSION_PARSE_ERROR"

    def __init__(self, message: str, expression: str = "", position: int = 0) -> None:
        super().__init__(message)
        self.expression = expression
        self.position = position

    def __str__(self) -> str:
        return f"{self.code}: {self.message} at position {self.position} in {self.expression!r}"


class MergeConflictError(UICompilerError):
    """Corrupted, duplicated or missing region markers in a destination file."""
    code = "MERGE_CONFLICT"

    def __init__(self, message: str, path: str, region: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path
        self.region = region

    def __str__(self) -> str:
        where = f"{self.path}#{self.region}" if self.region else self.path
        return f"{self.code}: {self.message} ({where})"


class FileSystemError(UICompilerError):
    code = "FILE_SYSTEM_ERROR"

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return f"{self.code}: {self.message} ({self.path})"
