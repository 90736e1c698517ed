"""Tests for the compiler engine and the HTTP routes."""
import logging
import tempfile
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from doctype_ui.api.routes_contracts import get_metadata_source
from doctype_ui.archive import unpack
from doctype_ui.core.engine import CompilerEngine
from doctype_ui.core.errors import ContractValidationError, MetadataFetchError
from doctype_ui.core.logging import LOG_FORMAT, ContextFormatter
from doctype_ui.core.workflow import MergeStatus, Stage
from doctype_ui.main import app


def test_generate_inline(source):
    outcome = CompilerEngine(source, language="js").generate("Sales Order", "plain", "inline")
    assert outcome.archive is None
    assert outcome.contract.entity_name == "Sales Order"
    assert any(f.path == "pages/sales-order/List.js" for f in outcome.artifacts)
    assert [s.stage for s in outcome.stages] == [Stage.BUILD_CONTRACT, Stage.RENDER, Stage.DONE]


def test_generate_archive(source):
    outcome = CompilerEngine(source, language="ts").generate("Task", "dense", "archive")
    assert outcome.archive["filename"] == "task-ui.zip"
    assert unpack(outcome.archive) == {f.path: f.content for f in outcome.artifacts}


def test_missing_entity_produces_no_artifacts(source):
    with pytest.raises(MetadataFetchError):
        CompilerEngine(source).generate("NoSuchEntity", "plain")


def test_engine_sync(source):
    engine = CompilerEngine(source, language="js")
    with tempfile.TemporaryDirectory() as temp_dir:
        first = engine.sync("Task", "plain", temp_dir, "respect-manual")
        assert {r.status for r in first.merge_results} == {MergeStatus.CREATED}
        assert (Path(temp_dir) / "pages/task/Form.js").is_file()

        second = engine.sync("Task", "plain", temp_dir, "respect-manual")
        assert {r.status for r in second.merge_results} == {MergeStatus.UNCHANGED}


def test_get_contract_rejects_unknown_preset(source):
    with pytest.raises(ContractValidationError):
        CompilerEngine(source).get_contract("Task", "huge")


@pytest.fixture
def client(source):
    app.dependency_overrides[get_metadata_source] = lambda: source
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_log_records_carry_compiler_context():
    formatter = ContextFormatter(LOG_FORMAT)
    record = logging.LogRecord("doctype_ui.sync.engine", logging.WARNING, __file__, 1, "Conflict: %s", ("x",), None)
    assert "[entity=- stage=- path=-] - Conflict: x" in formatter.format(record)

    record.entity = "Sales Order"
    record.stage = Stage.SYNC.value
    record.path = "pages/sales-order/Form.js"
    assert "[entity=Sales Order stage=SYNC path=pages/sales-order/Form.js]" in formatter.format(record)


class TestRoutes:
    def test_health(self, client):
        response = client.get("/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_get_contract(self, client):
        response = client.get("/v1/contracts/Task", params={"style_preset": "spacious"})
        assert response.status_code == 200
        body = response.json()
        assert [c["fieldName"] for c in body["listSection"]] == ["title", "status"]
        assert body["layout"]["columns"] == 1

    def test_unknown_entity_is_404(self, client):
        response = client.get("/v1/contracts/NoSuchEntity")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "METADATA_FETCH_ERROR"

    def test_empty_entity_is_422(self, schemas, client):
        schemas["Empty"] = {"fields": [{"fieldname": "sb", "fieldtype": "Section Break"}]}
        response = client.post("/v1/generate", json={"entity_name": "Empty"})
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "CONTRACT_VALIDATION_ERROR"

    def test_generate_inline(self, client):
        response = client.post("/v1/generate", json={"entity_name": "Sales Order", "language": "ts"})
        assert response.status_code == 200
        body = response.json()
        assert body["archive"] is None
        paths = [a["path"] for a in body["artifacts"]]
        assert "pages/sales-order/Form.ts" in paths
        form = [a for a in body["artifacts"] if a["path"] == "pages/sales-order/Form.ts"][0]
        assert form["warnings"][0]["field"] == "signature_blob"

    def test_generate_archive(self, client):
        response = client.post("/v1/generate", json={"entity_name": "Task", "output_mode": "archive"})
        assert response.status_code == 200
        body = response.json()
        files = unpack(body["archive"])
        assert "pages/task/List.js" in files
        assert {a["path"]: a["content"] for a in body["artifacts"]} == files

    def test_sync_dry_run(self, client, tmp_path):
        response = client.post("/v1/sync", json={
            "entity_name": "Task",
            "destination_root": str(tmp_path),
            "dry_run": True,
        })
        assert response.status_code == 200
        body = response.json()
        assert {r["status"] for r in body["results"]} == {"created"}
        assert body["contract"]["entityName"] == "Task"
        assert {a["path"] for a in body["artifacts"]} == {r["path"] for r in body["results"]}
        assert list(tmp_path.iterdir()) == []

    def test_invalid_strategy_rejected(self, client, tmp_path):
        response = client.post("/v1/sync", json={
            "entity_name": "Task",
            "destination_root": str(tmp_path),
            "strategy": "yolo",
        })
        assert response.status_code == 422
