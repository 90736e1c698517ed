from pydantic import BaseModel, Field
from typing import Literal, Optional, Dict, Any, List
from doctype_ui.core.workflow import MergeStatus, Stage

StylePresetName = Literal["plain", "dense", "spacious"]
LanguageName = Literal["js", "ts"]


class GenerateRequest(BaseModel):
    entity_name: str = Field(..., min_length=1, examples=["Sales Order"])
    style_preset: StylePresetName = "plain"
    output_mode: Literal["inline", "archive"] = "inline"
    language: Optional[LanguageName] = None


class SyncRequest(BaseModel):
    entity_name: str = Field(..., min_length=1, examples=["Sales Order"])
    destination_root: str = Field(..., examples=["/srv/frontend/src"])
    style_preset: StylePresetName = "plain"
    strategy: Literal["respect-manual", "overwrite-auto"] = "respect-manual"
    dry_run: bool = False
    language: Optional[LanguageName] = None


class GenerationWarningModel(BaseModel):
    path: str
    message: str
    region: Optional[str] = None
    field: Optional[str] = None


class ArtifactModel(BaseModel):
    path: str
    content: str
    owned_regions: List[str] = []
    warnings: List[GenerationWarningModel] = []


class ArchiveModel(BaseModel):
    format: Literal["zip"] = "zip"
    encoding: Literal["base64"] = "base64"
    filename: str
    data: str


class StageResultModel(BaseModel):
    stage: Stage
    ok: bool
    message: str


class GenerateResponse(BaseModel):
    entity_name: str
    contract: Dict[str, Any]
    artifacts: List[ArtifactModel] = []
    archive: Optional[ArchiveModel] = None
    stages: List[StageResultModel] = []


class MergeResultModel(BaseModel):
    path: str
    status: MergeStatus
    reason: Optional[str] = None
    regions_changed: List[str] = []
    warnings: List[str] = []


class SyncResponse(BaseModel):
    entity_name: str
    contract: Dict[str, Any]
    artifacts: List[ArtifactModel] = []
    dry_run: bool
    results: List[MergeResultModel]
    stages: List[StageResultModel] = []
