"""Tests for building UI contracts from metadata."""
import json
import pytest
from unittest.mock import MagicMock
from doctype_ui.core.errors import ContractValidationError, MetadataFetchError
from doctype_ui.generators.contract import build_contract
from doctype_ui.generators.contract.builder import build_form_sections, extract_handlers
from doctype_ui.generators.contract.permissions import merge_role_rules
from doctype_ui.generators.contract.types import STYLE_PRESETS, PermissionFlags
from doctype_ui.metadata.base import InMemoryMetadataSource


def test_task_list_section_order(source):
    contract = build_contract("Task", "plain", source)
    assert [c.fieldname for c in contract.list_section] == ["title", "status"]
    assert contract.realtime_topic == "doctype:task"
    assert contract.layout == STYLE_PRESETS["plain"]


def test_list_section_sorted_by_index(source):
    contract = build_contract("Sales Order", "dense", source)
    assert [c.fieldname for c in contract.list_section] == ["transaction_date", "customer"]
    assert contract.list_section[0].label == "Order Date"
    assert contract.style_preset == "dense"


def test_list_filters_from_standard_filter_flag(source):
    contract = build_contract("Task", "plain", source)
    assert [f.fieldname for f in contract.list_filters] == ["status"]
    assert contract.list_filters[0].default == "Open"


def test_missing_entity_raises(source):
    with pytest.raises(MetadataFetchError):
        build_contract("NoSuchEntity", "plain", source)


def test_empty_entity_name_raises(source):
    with pytest.raises(ContractValidationError):
        build_contract("  ", "plain", source)


def test_unknown_preset_raises(source):
    with pytest.raises(ContractValidationError):
        build_contract("Task", "fancy", source)


def test_entity_without_fields_raises():
    source = InMemoryMetadataSource({"Empty": {"fields": [
        {"fieldname": "sb", "fieldtype": "Section Break"},
        {"fieldname": "cb", "fieldtype": "Column Break"},
    ]}})
    with pytest.raises(ContractValidationError, match="has no fields"):
        build_contract("Empty", "plain", source)


def test_source_failure_is_wrapped():
    source = MagicMock()
    source.fetch_field_list.side_effect = RuntimeError("connection reset")
    with pytest.raises(MetadataFetchError, match="connection reset"):
        build_contract("Task", "plain", source)


def test_override_precedence(source):
    contract = build_contract("Sales Order", "plain", source)
    field = contract.get_field("transaction_date")
    assert field.label == "Order Date"
    assert field.required is True
    # Attributes the patch does not name are inherited
    assert field.fieldtype == "Date"
    codes = [(w.code, w.field) for w in contract.warnings]
    assert ("unknown_override_field", "ghost_field") in codes


def test_form_sections_tabs_and_columns(source):
    contract = build_contract("Sales Order", "plain", source)
    sections = contract.form_sections
    assert [s.label for s in sections] == [None, "Items", None]
    assert [s.tab for s in sections] == [None, None, "Notes"]
    first = {f.fieldname: f.column for f in sections[0].fields}
    assert first == {"customer": 0, "transaction_date": 0, "priority": 1, "delivery_date": 1}
    assert [f.fieldname for f in sections[2].fields] == ["notes", "signature_blob"]


def test_leading_empty_section_dropped():
    sections = build_form_sections([
        {"fieldname": "details", "fieldtype": "Section Break", "label": "Details"},
        {"fieldname": "title", "fieldtype": "Data"},
    ], [])
    assert len(sections) == 1
    assert sections[0].label == "Details"


def test_section_condition_reported():
    warnings = []
    sections = build_form_sections([
        {"fieldname": "title", "fieldtype": "Data"},
        {"fieldname": "billing", "fieldtype": "Section Break", "label": "Billing", "depends_on": "eval:doc.paid"},
        {"fieldname": "amount", "fieldtype": "Currency"},
        {"fieldname": "extra_tab", "fieldtype": "Tab Break", "depends_on": "doc.advanced"},
        {"fieldname": "notes", "fieldtype": "Text"},
    ], warnings)
    assert [s.label for s in sections] == [None, "Billing", None]
    assert [(w.code, w.field) for w in warnings] == [
        ("layout_condition_ignored", "billing"),
        ("layout_condition_ignored", "extra_tab"),
    ]
    assert "Billing" in warnings[0].message


def test_dependencies_validated(source):
    contract = build_contract("Sales Order", "plain", source)
    delivery = contract.get_field("delivery_date")
    assert delivery.depends_on == "eval:doc.priority in ['High', 'Urgent']"
    assert delivery.mandatory_depends_on == "eval:doc.priority == 'Urgent'"

    notes = contract.get_field("notes")
    assert notes is not None
    assert notes.read_only_depends_on is None
    parse_warnings = [w for w in contract.warnings if w.code == "expression_parse_error"]
    assert [w.field for w in parse_warnings] == ["notes"]


def test_child_table_is_shallow(source):
    contract = build_contract("Sales Order", "plain", source)
    fragment = contract.child_tables["items"]
    assert fragment.entity_name == "Sales Order Item"
    assert fragment.resolved is True
    assert [f.fieldname for f in fragment.fields] == ["item_code", "qty", "rate", "parent_orders"]
    # The back reference stays a plain descriptor naming its entity
    back_ref = fragment.fields[3]
    assert back_ref.fieldtype == "Table"
    assert back_ref.options == "Sales Order"
    assert set(contract.child_tables) == {"items"}


def test_child_table_fetched_once_per_build(schemas):
    schemas["Sales Order"]["fields"].append(
        {"fieldname": "more_items", "fieldtype": "Table", "options": "Sales Order Item"}
    )
    source = InMemoryMetadataSource(schemas)
    calls = []
    original = source.fetch_field_list

    def counting(name):
        calls.append(name)
        return original(name)

    source.fetch_field_list = counting
    contract = build_contract("Sales Order", "plain", source)
    assert calls.count("Sales Order Item") == 1
    assert contract.child_tables["more_items"].fields == contract.child_tables["items"].fields

    build_contract("Sales Order", "plain", source)
    assert calls.count("Sales Order Item") == 2


def test_unresolved_child_table_warns(schemas):
    del schemas["Sales Order Item"]
    contract = build_contract("Sales Order", "plain", InMemoryMetadataSource(schemas))
    fragment = contract.child_tables["items"]
    assert fragment.resolved is False
    assert fragment.fields == ()
    assert any(w.code == "child_table_unresolved" and w.field == "items" for w in contract.warnings)


def test_workflow_and_behaviors(source):
    contract = build_contract("Sales Order", "plain", source)
    assert contract.workflow.state_field == "workflow_state"
    assert [(a.from_state, a.action, a.to_state) for a in contract.workflow_actions] == [
        ("Draft", "Approve", "Approved"),
        ("Draft", "Reject", "Rejected"),
    ]
    behavior = contract.client_behaviors[0]
    assert behavior.form_events == ("refresh",)
    assert behavior.field_events == ("customer",)


def test_inactive_workflow_ignored(schemas):
    schemas["Sales Order"]["workflow"]["is_active"] = 0
    contract = build_contract("Sales Order", "plain", InMemoryMetadataSource(schemas))
    assert contract.workflow is None
    assert contract.workflow_actions == ()


def test_contract_is_fresh_each_call(schemas):
    source = InMemoryMetadataSource(schemas)
    first = build_contract("Task", "plain", source)
    schemas["Task"]["fields"][2]["in_list_view"] = 1
    second = build_contract("Task", "plain", source)
    assert [c.fieldname for c in first.list_section] == ["title", "status"]
    assert [c.fieldname for c in second.list_section] == ["title", "status", "description"]


def test_contract_to_dict_is_json(source):
    data = build_contract("Sales Order", "spacious", source).to_dict()
    assert json.loads(json.dumps(data)) == data
    assert data["entityName"] == "Sales Order"
    assert data["layout"]["columns"] == 1
    assert data["permissions"]["Sales User"]["delete"] is False
    assert list(data["permissions"]) == ["Sales Manager", "Sales User"]


class TestPermissionMerging:
    def test_union_across_rules(self):
        flags = merge_role_rules([
            {"permlevel": 0, "read": 1},
            {"permlevel": 1, "write": 1},
        ])
        assert flags == PermissionFlags(read=True, write=True)

    def test_later_rule_overrides_same_level(self):
        flags = merge_role_rules([
            {"permlevel": 0, "read": 1, "write": 1},
            {"permlevel": 0, "write": 0},
        ])
        assert flags.read is True
        assert flags.write is False

    def test_higher_level_deny_wins(self):
        flags = merge_role_rules([
            {"permlevel": 0, "read": 1, "delete": 1},
            {"permlevel": 1, "delete": 0},
        ])
        assert flags.read is True
        assert flags.delete is False

    def test_lower_level_deny_does_not_override(self):
        flags = merge_role_rules([
            {"permlevel": 0, "delete": 0},
            {"permlevel": 1, "delete": 1},
        ])
        assert flags.delete is True

    def test_absent_flag_is_not_a_deny(self):
        flags = merge_role_rules([
            {"permlevel": 0, "create": 1},
            {"permlevel": 2, "read": 1},
        ])
        assert flags.create is True


def test_extract_handlers():
    script = """
frappe.ui.form.on('Task', {
    onload: function(frm) {},
    validate(frm) { if (frm.doc.x) {} },
    status(frm, cdt, cdn) {}
});
"""
    assert extract_handlers(script) == ["onload", "validate", "status"]
