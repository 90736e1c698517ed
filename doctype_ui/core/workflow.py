from dataclasses import dataclass
from enum import Enum

class Stage(str, Enum):
    FETCH_METADATA = "FETCH_METADATA"
    BUILD_CONTRACT = "BUILD_CONTRACT"
    RENDER = "RENDER"
    PACK = "PACK"
    SYNC = "SYNC"
    DONE = "DONE"

class SyncStrategy(str, Enum):
    RESPECT_MANUAL = "respect-manual"
    OVERWRITE_AUTO = "overwrite-auto"

class OutputMode(str, Enum):
    INLINE = "inline"
    ARCHIVE = "archive"

class MergeStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"

@dataclass(frozen=True)
class StageResult:
    stage: Stage
    ok: bool
    message: str
