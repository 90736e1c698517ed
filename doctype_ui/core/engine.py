from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from doctype_ui.archive.exporter import pack
from doctype_ui.core.config import settings
from doctype_ui.core.errors import UICompilerError
from doctype_ui.core.workflow import OutputMode, Stage, StageResult, SyncStrategy
from doctype_ui.generators.contract.builder import build_contract, resolve_preset
from doctype_ui.generators.contract.types import UIContract
from doctype_ui.generators.ui_gen.generator import render
from doctype_ui.generators.ui_gen.types import GeneratedFile
from doctype_ui.generators.ui_gen.utils import entity_to_slug
from doctype_ui.metadata.base import MetadataSource
from doctype_ui.sync.engine import MergeResult, sync

log = logging.getLogger(__name__)


@dataclass
class GenerationOutcome:
    contract: UIContract
    artifacts: List[GeneratedFile]
    archive: Optional[Dict[str, Any]] = None
    stages: List[StageResult] = field(default_factory=list)


@dataclass
class SyncOutcome:
    contract: UIContract
    artifacts: List[GeneratedFile]
    merge_results: List[MergeResult]
    stages: List[StageResult] = field(default_factory=list)


class CompilerEngine:
    """Runs the fetch, build, render and pack/sync stages for one entity at a time."""

    def __init__(self, source: MetadataSource, language: Optional[str] = None):
        self.source = source
        self.language = language or settings.target_language

    def _run(self, stages: List[StageResult], stage: Stage, entity_name: str, fn, *args, **kwargs):
        log.info("Running stage", extra={"entity": entity_name, "stage": stage.value})
        try:
            value = fn(*args, **kwargs)
        except UICompilerError as e:
            log.error("Stage failed: %s", e, extra={"entity": entity_name, "stage": stage.value})
            stages.append(StageResult(stage=stage, ok=False, message=str(e)))
            raise
        stages.append(StageResult(stage=stage, ok=True, message="ok"))
        return value

    def _preset(self, style_preset: Optional[str]) -> str:
        preset, _ = resolve_preset(style_preset or settings.default_style_preset)
        return preset

    def get_contract(self, entity_name: str, style_preset: Optional[str] = None) -> UIContract:
        return build_contract(entity_name, self._preset(style_preset), self.source)

    def _contract_and_artifacts(self, entity_name: str, style_preset: Optional[str], stages: List[StageResult]):
        preset = self._preset(style_preset)
        contract = self._run(stages, Stage.BUILD_CONTRACT, entity_name, build_contract, entity_name, preset, self.source)
        artifacts = self._run(stages, Stage.RENDER, entity_name, render, contract, preset, self.language)
        return contract, artifacts

    def generate(
        self,
        entity_name: str,
        style_preset: Optional[str] = None,
        output_mode: Union[str, OutputMode] = OutputMode.INLINE,
    ) -> GenerationOutcome:
        output_mode = OutputMode(output_mode)
        stages: List[StageResult] = []
        contract, artifacts = self._contract_and_artifacts(entity_name, style_preset, stages)

        archive = None
        if output_mode == OutputMode.ARCHIVE:
            filename = f"{entity_to_slug(contract.entity_name)}-ui.zip"
            archive = self._run(stages, Stage.PACK, entity_name, pack, artifacts, filename)

        stages.append(StageResult(stage=Stage.DONE, ok=True, message=f"{len(artifacts)} artifacts"))
        log.info("Generation finished", extra={"entity": entity_name, "stage": Stage.DONE.value})
        return GenerationOutcome(contract=contract, artifacts=artifacts, archive=archive, stages=stages)

    def sync(
        self,
        entity_name: str,
        style_preset: Optional[str],
        destination_root: Union[str, Path],
        strategy: Union[str, SyncStrategy, None] = None,
        dry_run: bool = False,
    ) -> SyncOutcome:
        stages: List[StageResult] = []
        contract, artifacts = self._contract_and_artifacts(entity_name, style_preset, stages)
        results = self._run(
            stages, Stage.SYNC, entity_name, sync,
            artifacts, destination_root, strategy or settings.default_sync_strategy, dry_run,
        )
        stages.append(StageResult(stage=Stage.DONE, ok=True, message=f"{len(results)} files synced"))
        return SyncOutcome(contract=contract, artifacts=artifacts, merge_results=results, stages=stages)
