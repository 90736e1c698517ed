"""Packs generated artifacts into a single base64-encoded zip archive."""
import base64
import binascii
import io
import logging
import posixpath
import zipfile
from typing import Any, Dict, Iterable, Optional

from doctype_ui.core.errors import FileSystemError, MergeConflictError, UICompilerError
from doctype_ui.core.workflow import Stage
from doctype_ui.generators.ui_gen.types import GeneratedFile

log = logging.getLogger(__name__)

DEFAULT_FILENAME = "doctype-ui.zip"
# Fixed entry timestamp keeps archives byte-identical across runs
ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)
ENTRY_MODE = 0o644 << 16


def _entry_name(path: str) -> str:
    name = posixpath.normpath(path.replace("\\", "/"))
    if name.startswith("/") or name == "." or name.split("/")[0] == "..":
        raise FileSystemError("Artifact path is not relative to the archive root", path)
    return name


def pack(artifacts: Iterable[GeneratedFile], filename: Optional[str] = None) -> Dict[str, Any]:
    """
    Pack artifacts into a zip archive, entries in artifact order.

    Args:
        artifacts: Files to pack
        filename: Archive file name; defaults to doctype-ui.zip

    Returns:
        {"format": "zip", "encoding": "base64", "filename": ..., "data": ...}
    """
    seen: Dict[str, str] = {}
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for artifact in artifacts:
            name = _entry_name(artifact.path)
            if name in seen:
                if seen[name] != artifact.content:
                    raise MergeConflictError("Duplicate artifact path with different content", artifact.path)
                continue
            seen[name] = artifact.content
            info = zipfile.ZipInfo(name, date_time=ENTRY_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = ENTRY_MODE
            zf.writestr(info, artifact.content.encode("utf-8"))

    data = base64.b64encode(buffer.getvalue()).decode("ascii")
    archive = {
        "format": "zip",
        "encoding": "base64",
        "filename": filename or DEFAULT_FILENAME,
        "data": data,
    }
    log.info("Packed %d files into %s", len(seen), archive["filename"], extra={"stage": Stage.PACK.value})
    return archive


def unpack(archive: Dict[str, Any]) -> Dict[str, str]:
    """Decode an archive produced by pack back into {path: content}."""
    if archive.get("format") != "zip" or archive.get("encoding") != "base64":
        raise UICompilerError(
            f"Unsupported archive format {archive.get('format')!r}/{archive.get('encoding')!r}"
        )
    try:
        raw = base64.b64decode(archive["data"], validate=True)
        files: Dict[str, str] = {}
        with zipfile.ZipFile(io.BytesIO(raw)) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                files[info.filename] = zf.read(info).decode("utf-8")
    except (KeyError, binascii.Error, zipfile.BadZipFile, UnicodeDecodeError) as e:
        raise UICompilerError(f"Archive is corrupt: {e}") from e
    return files
