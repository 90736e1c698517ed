"""Marker-based sync of generated artifacts into a destination tree.

Only the inner content of generator-owned regions is replaced. Every byte
outside those regions, line endings included, is left as found.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from doctype_ui.core.errors import FileSystemError, MergeConflictError
from doctype_ui.core.workflow import MergeStatus, Stage, SyncStrategy
from doctype_ui.generators.ui_gen.markers import Region, region_names, scan_regions
from doctype_ui.generators.ui_gen.types import GeneratedFile

log = logging.getLogger(__name__)

_EXTRA = {"stage": Stage.SYNC.value}


@dataclass(frozen=True)
class MergeResult:
    path: str
    status: MergeStatus
    reason: Optional[str] = None
    regions_changed: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status.value,
            "reason": self.reason,
            "regionsChanged": list(self.regions_changed),
            "warnings": list(self.warnings),
        }


def resolve_destination(root: Path, relative: str) -> Path:
    """Absolute target path for an artifact; refuses paths outside root."""
    base = root.resolve()
    target = (base / relative).resolve()
    if target != base and base not in target.parents:
        raise FileSystemError("Artifact path escapes the destination root", relative)
    if target == base:
        raise FileSystemError("Artifact path points at the destination root", relative)
    return target


def _read(path: Path, relative: str) -> str:
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileSystemError(f"Cannot read destination file: {e}", relative) from e


def _write(path: Path, relative: str, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
    except OSError as e:
        raise FileSystemError(f"Cannot write destination file: {e}", relative) from e


def _line_ending(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def merge_content(
    existing: str,
    fresh: str,
    owned: Iterable[str],
    path: str,
    strategy: SyncStrategy = SyncStrategy.RESPECT_MANUAL,
) -> Tuple[str, List[str], List[str]]:
    """
    Splice the owned regions of fresh content into existing content.

    Args:
        existing: Current destination text
        fresh: Newly generated text
        owned: Region names the artifact owns
        path: Artifact path, used in errors and warnings
        strategy: What to do with regions the artifact no longer produces

    Returns:
        (merged, regions_changed, warnings)

    Raises:
        MergeConflictError: a region is malformed or missing from existing
    """
    eol = _line_ending(existing)
    if eol != "\n":
        fresh = fresh.replace("\r\n", "\n").replace("\n", eol)

    current, problems = scan_regions(existing)
    generated, _ = scan_regions(fresh)
    owned = list(owned)

    for name in owned:
        if name in problems:
            raise MergeConflictError(f"Region '{name}': {problems[name]}", path, name)
        if name not in current:
            raise MergeConflictError(f"Missing markers for region '{name}'", path, name)
        if name not in generated:
            raise MergeConflictError(f"Generated content lacks region '{name}'", path, name)

    warnings: List[str] = []
    removed: List[Region] = []
    orphans = sorted((set(current) | set(problems)) - set(owned))
    for name in orphans:
        if strategy == SyncStrategy.OVERWRITE_AUTO:
            if name in problems:
                raise MergeConflictError(f"Orphan region '{name}': {problems[name]}", path, name)
            removed.append(current[name])
        else:
            warnings.append(f"Orphan region '{name}' left untouched in {path}")

    changed: List[str] = []
    edits: List[Tuple[Region, str]] = []
    for name in owned:
        old = current[name]
        new_inner = fresh[generated[name].inner_start:generated[name].inner_end]
        if existing[old.inner_start:old.inner_end] != new_inner:
            changed.append(name)
            edits.append((old, new_inner))
    for reg in removed:
        changed.append(reg.name)

    merged = existing
    splices = [(reg.inner_start, reg.inner_end, text) for reg, text in edits]
    splices += [(reg.start, reg.end, "") for reg in removed]
    for start, end, text in sorted(splices, key=lambda s: s[0], reverse=True):
        merged = merged[:start] + text + merged[end:]

    return merged, changed, warnings


def sync_file(
    artifact: GeneratedFile,
    root: Path,
    strategy: SyncStrategy = SyncStrategy.RESPECT_MANUAL,
    dry_run: bool = False,
) -> MergeResult:
    """Sync one artifact. Raises FileSystemError on path or I/O failures."""
    target = resolve_destination(root, artifact.path)
    owned = artifact.owned_regions or tuple(region_names(artifact.content))

    if not target.exists():
        if not dry_run:
            _write(target, artifact.path, artifact.content)
        return MergeResult(artifact.path, MergeStatus.CREATED, regions_changed=tuple(owned))
    if not target.is_file():
        raise FileSystemError("Destination exists and is not a regular file", artifact.path)

    existing = _read(target, artifact.path)
    try:
        merged, changed, warnings = merge_content(existing, artifact.content, owned, artifact.path, strategy)
    except MergeConflictError as e:
        log.warning("Conflict: %s", e.message, extra={**_EXTRA, "path": artifact.path})
        return MergeResult(artifact.path, MergeStatus.CONFLICT, reason=e.message)

    for w in warnings:
        log.warning("%s", w, extra={**_EXTRA, "path": artifact.path})
    if merged == existing:
        return MergeResult(artifact.path, MergeStatus.UNCHANGED, warnings=tuple(warnings))
    if not dry_run:
        _write(target, artifact.path, merged)
    return MergeResult(
        artifact.path, MergeStatus.UPDATED, regions_changed=tuple(changed), warnings=tuple(warnings)
    )


def sync(
    artifacts: Iterable[GeneratedFile],
    destination_root: Union[str, Path],
    strategy: Union[str, SyncStrategy] = SyncStrategy.RESPECT_MANUAL,
    dry_run: bool = False,
    stop_on_error: bool = False,
) -> List[MergeResult]:
    """
    Apply artifacts to a destination tree, one file at a time.

    Args:
        artifacts: Generated files to apply
        destination_root: Directory the artifact paths are relative to
        strategy: "respect-manual" keeps orphan regions, "overwrite-auto" removes them
        dry_run: Compute results without writing anything
        stop_on_error: Propagate FileSystemError instead of recording a conflict

    Returns:
        One MergeResult per distinct artifact path, in input order
    """
    strategy = SyncStrategy(strategy)
    root = Path(destination_root)
    results: List[MergeResult] = []
    seen: Dict[str, str] = {}

    for artifact in artifacts:
        if artifact.path in seen:
            if seen[artifact.path] != artifact.content:
                results.append(MergeResult(
                    artifact.path,
                    MergeStatus.CONFLICT,
                    reason="Duplicate artifact path with different content",
                ))
            continue
        seen[artifact.path] = artifact.content

        try:
            result = sync_file(artifact, root, strategy, dry_run)
        except FileSystemError as e:
            if stop_on_error:
                raise
            log.error("Sync failed: %s", e.message, extra={**_EXTRA, "path": artifact.path})
            result = MergeResult(artifact.path, MergeStatus.CONFLICT, reason=e.message)
        results.append(result)

    counts: Dict[str, int] = {}
    for r in results:
        counts[r.status.value] = counts.get(r.status.value, 0) + 1
    log.info(
        "Synced %d artifacts into %s%s: %s",
        len(results), os.fspath(root), " (dry run)" if dry_run else "", counts,
        extra=_EXTRA,
    )
    return results
