from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from doctype_ui.core.engine import CompilerEngine
from doctype_ui.core.errors import ContractValidationError, MetadataFetchError, UICompilerError
from doctype_ui.generators.ui_gen.types import GeneratedFile
from doctype_ui.metadata import MetadataSource, metadata_source_from_settings
from doctype_ui.schemas.contracts import (
    ArchiveModel,
    ArtifactModel,
    GenerateRequest,
    GenerateResponse,
    GenerationWarningModel,
    MergeResultModel,
    StageResultModel,
    StylePresetName,
    SyncRequest,
    SyncResponse,
)

router = APIRouter()


def _http_error(e: UICompilerError) -> HTTPException:
    if isinstance(e, MetadataFetchError):
        status_code = 404
    elif isinstance(e, ContractValidationError):
        status_code = 422
    else:
        status_code = 400
    return HTTPException(
        status_code=status_code,
        detail={"code": e.code, "message": e.message, "entity": e.entity},
    )


def get_metadata_source() -> MetadataSource:
    try:
        return metadata_source_from_settings()
    except UICompilerError as e:
        raise _http_error(e)


def _artifacts(files: List[GeneratedFile]) -> List[ArtifactModel]:
    return [
        ArtifactModel(
            path=f.path,
            content=f.content,
            owned_regions=list(f.owned_regions),
            warnings=[GenerationWarningModel(**w.to_dict()) for w in f.warnings],
        )
        for f in files
    ]


def _stages(stages) -> List[StageResultModel]:
    return [StageResultModel(stage=s.stage, ok=s.ok, message=s.message) for s in stages]


@router.get("/contracts/{entity_name}")
def get_contract(
    entity_name: str,
    style_preset: StylePresetName = Query("plain"),
    source: MetadataSource = Depends(get_metadata_source),
):
    try:
        contract = CompilerEngine(source).get_contract(entity_name, style_preset)
    except UICompilerError as e:
        raise _http_error(e)
    return contract.to_dict()


@router.post("/generate", response_model=GenerateResponse)
def generate(req: GenerateRequest, source: MetadataSource = Depends(get_metadata_source)):
    engine = CompilerEngine(source, language=req.language)
    try:
        outcome = engine.generate(req.entity_name, req.style_preset, req.output_mode)
    except UICompilerError as e:
        raise _http_error(e)
    return GenerateResponse(
        entity_name=outcome.contract.entity_name,
        contract=outcome.contract.to_dict(),
        artifacts=_artifacts(outcome.artifacts),
        archive=ArchiveModel(**outcome.archive) if outcome.archive else None,
        stages=_stages(outcome.stages),
    )


@router.post("/sync", response_model=SyncResponse)
def sync(req: SyncRequest, source: MetadataSource = Depends(get_metadata_source)):
    engine = CompilerEngine(source, language=req.language)
    try:
        outcome = engine.sync(
            req.entity_name, req.style_preset, req.destination_root, req.strategy, dry_run=req.dry_run
        )
    except UICompilerError as e:
        raise _http_error(e)
    return SyncResponse(
        entity_name=outcome.contract.entity_name,
        contract=outcome.contract.to_dict(),
        artifacts=_artifacts(outcome.artifacts),
        dry_run=req.dry_run,
        results=[
            MergeResultModel(
                path=r.path,
                status=r.status,
                reason=r.reason,
                regions_changed=list(r.regions_changed),
                warnings=list(r.warnings),
            )
            for r in outcome.merge_results
        ],
        stages=_stages(outcome.stages),
    )
