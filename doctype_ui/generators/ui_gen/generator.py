"""Orchestrator for UI code generation."""
import logging
from typing import Iterable, List

from doctype_ui.core.workflow import Stage
from doctype_ui.generators.contract.builder import resolve_preset
from doctype_ui.generators.contract.types import UIContract
from doctype_ui.generators.ui_gen.markers import region_names
from doctype_ui.generators.ui_gen.render import SUPPORTED_LANGUAGES, render_shared_libraries
from doctype_ui.generators.ui_gen.render_entity import (
    EntityNames,
    render_actions,
    render_behavior,
    render_depends,
    render_realtime_hook,
    render_resource,
    render_router,
)
from doctype_ui.generators.ui_gen.render_pages import render_form, render_list
from doctype_ui.generators.ui_gen.types import GeneratedFile

log = logging.getLogger(__name__)


def _artifact(path: str, content: str, warnings=()) -> GeneratedFile:
    return GeneratedFile(
        path=path,
        content=content,
        owned_regions=tuple(region_names(content)),
        warnings=tuple(warnings),
    )


def _check_language(language: str) -> None:
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language!r}")


def render_entity(contract: UIContract, style_preset: str, language: str = "js") -> List[GeneratedFile]:
    """
    Render the per-entity artifacts of one contract.

    Args:
        contract: Contract to render
        style_preset: Layout preset name; overrides the contract's own preset
        language: "js" or "ts"

    Returns:
        List of GeneratedFile objects, in a fixed order
    """
    _check_language(language)
    _, layout = resolve_preset(style_preset)
    names = EntityNames.for_contract(contract, language)
    slug = names.slug

    list_content, list_warnings = render_list(names, contract, layout)
    form_content, form_warnings = render_form(names, contract, layout)

    files = [
        _artifact(names.path(f"pages/{slug}/List"), list_content, list_warnings),
        _artifact(names.path(f"pages/{slug}/Form"), form_content, form_warnings),
        _artifact(names.path(f"pages/{slug}/resource"), render_resource(names, contract)),
        _artifact(names.path(f"pages/{slug}/behavior"), render_behavior(names, contract)),
        _artifact(names.path(f"pages/{slug}/depends"), render_depends(names, contract)),
        _artifact(names.path(f"pages/{slug}/realtime"), render_realtime_hook(names, contract)),
        _artifact(names.path(f"actions/{slug}"), render_actions(names, contract)),
        _artifact(names.path(f"router/{slug}"), render_router(names, contract)),
    ]

    for f in files:
        for w in f.warnings:
            log.warning(
                "%s (region=%s field=%s)", w.message, w.region, w.field,
                extra={"entity": contract.entity_name, "stage": Stage.RENDER.value, "path": w.path},
            )
    return files


def render(
    contract: UIContract,
    style_preset: str,
    language: str = "js",
    include_shared: bool = True,
) -> List[GeneratedFile]:
    """Render one contract into its artifact set, shared runtime files first."""
    _check_language(language)
    files = render_shared_libraries(language) if include_shared else []
    files.extend(render_entity(contract, style_preset, language))
    log.info(
        "Rendered %d artifacts", len(files),
        extra={"entity": contract.entity_name, "stage": Stage.RENDER.value},
    )
    return files


def render_many(contracts: Iterable[UIContract], style_preset: str, language: str = "js") -> List[GeneratedFile]:
    """Render several contracts into one tree; shared runtime files are emitted once."""
    files = render_shared_libraries(language)
    for contract in contracts:
        files.extend(render_entity(contract, style_preset, language))
    return files
