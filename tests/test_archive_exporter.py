"""Tests for the archive exporter."""
import base64
import io
import zipfile
import pytest
from doctype_ui.archive import pack, unpack
from doctype_ui.core.errors import FileSystemError, MergeConflictError, UICompilerError
from doctype_ui.generators.contract import build_contract
from doctype_ui.generators.ui_gen.generator import render
from doctype_ui.generators.ui_gen.types import GeneratedFile


def test_unpack_matches_artifacts(source):
    artifacts = render(build_contract("Sales Order", "plain", source), "plain", "ts")
    archive = pack(artifacts)
    assert archive["format"] == "zip"
    assert archive["encoding"] == "base64"
    assert archive["filename"] == "doctype-ui.zip"
    assert unpack(archive) == {f.path: f.content for f in artifacts}


def test_pack_is_deterministic(source):
    artifacts = render(build_contract("Task", "dense", source), "dense")
    assert pack(artifacts, "task-ui.zip") == pack(list(artifacts), "task-ui.zip")


def test_entries_keep_artifact_order():
    artifacts = [
        GeneratedFile(path="z.js", content="z"),
        GeneratedFile(path="a/b.js", content="ünïcode"),
    ]
    raw = base64.b64decode(pack(artifacts)["data"])
    with zipfile.ZipFile(io.BytesIO(raw)) as zf:
        assert zf.namelist() == ["z.js", "a/b.js"]
        assert zf.getinfo("z.js").date_time == (1980, 1, 1, 0, 0, 0)


def test_duplicate_paths():
    same = GeneratedFile(path="a.js", content="x")
    assert unpack(pack([same, same])) == {"a.js": "x"}
    with pytest.raises(MergeConflictError):
        pack([same, GeneratedFile(path="a.js", content="y")])


def test_rejects_escaping_paths():
    with pytest.raises(FileSystemError):
        pack([GeneratedFile(path="../evil.js", content="x")])


def test_unpack_rejects_garbage():
    with pytest.raises(UICompilerError):
        unpack({"format": "zip", "encoding": "base64", "filename": "x.zip", "data": "bm90IGEgemlw"})
    with pytest.raises(UICompilerError):
        unpack({"format": "tar", "encoding": "base64", "data": ""})
