"""Builds a UI contract from aggregated entity metadata."""
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from doctype_ui.core.errors import ContractValidationError, MetadataFetchError
from doctype_ui.core.workflow import Stage
from doctype_ui.expressions import validate as validate_expression
from doctype_ui.generators.contract.permissions import merge_permissions, to_flag
from doctype_ui.generators.contract.types import (
    COLUMN_BREAK,
    DEPENDENCY_PROPERTIES,
    LAYOUT_FIELD_TYPES,
    SECTION_BREAK,
    STYLE_PRESETS,
    TAB_BREAK,
    TABLE_FIELD_TYPES,
    ChildTableFragment,
    ClientBehavior,
    ContractWarning,
    FieldDescriptor,
    FormSection,
    LayoutHints,
    ListColumn,
    ListFilter,
    UIContract,
    WorkflowAction,
    WorkflowInfo,
    WorkflowState,
)
from doctype_ui.generators.ui_gen.utils import field_label, realtime_topic
from doctype_ui.metadata.base import MetadataSource

log = logging.getLogger(__name__)

# Desk form events; any other handler name matching a field is a field-change hook
FORM_EVENTS = {
    "setup", "onload", "refresh", "onload_post_render", "validate", "before_save",
    "after_save", "before_submit", "on_submit", "before_cancel", "after_cancel",
    "timeline_refresh", "before_workflow_action", "after_workflow_action",
}

_HANDLER_RE = re.compile(r"\b([A-Za-z_]\w*)\s*(?::\s*(?:function\s*)?)?\(\s*frm\s*[,)]")
_NOT_HANDLERS = {"function", "on", "if", "for", "while", "switch", "return"}


def resolve_preset(style_preset: str) -> Tuple[str, LayoutHints]:
    """Validate a style preset name and return it with its layout hints."""
    preset = (style_preset or "").strip().lower()
    if preset not in STYLE_PRESETS:
        raise ContractValidationError(
            f"Unknown style preset '{style_preset}' (expected one of: {', '.join(STYLE_PRESETS)})"
        )
    return preset, STYLE_PRESETS[preset]


def _fetch(entity_name: str, what: str, fn: Callable[[str], Any]) -> Any:
    try:
        return fn(entity_name)
    except MetadataFetchError:
        raise
    except Exception as e:
        raise MetadataFetchError(f"Failed to fetch {what}: {e}", entity=entity_name) from e


def apply_overrides(
    fields: List[Dict[str, Any]],
    overrides: List[Dict[str, Any]],
    warnings: List[ContractWarning],
) -> List[Dict[str, Any]]:
    """Apply per-field patches; patched attributes replace base ones, the rest are inherited."""
    merged = [dict(f) for f in fields]
    by_name = {f.get("fieldname"): f for f in merged if f.get("fieldname")}
    for patch in overrides:
        fieldname = patch.get("fieldname")
        target = by_name.get(fieldname)
        if target is None:
            warnings.append(ContractWarning(
                "unknown_override_field",
                f"Override targets unknown field '{fieldname}' and was ignored",
                fieldname,
            ))
            continue
        for key, value in patch.items():
            if key != "fieldname":
                target[key] = value
    return merged


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _checked_expressions(
    raw: Dict[str, Any],
    owner: str,
    warnings: List[ContractWarning],
) -> Dict[str, Optional[str]]:
    checked = {}
    for prop in DEPENDENCY_PROPERTIES:
        expression = _text(raw.get(prop))
        if expression is None:
            checked[prop] = None
            continue
        error = validate_expression(expression)
        if error:
            warnings.append(ContractWarning(
                "expression_parse_error",
                f"{prop} dropped: {error}",
                owner,
            ))
            checked[prop] = None
        else:
            checked[prop] = expression
    return checked


def to_field_descriptor(
    raw: Dict[str, Any],
    column: int,
    warnings: List[ContractWarning],
    owner_prefix: str = "",
) -> FieldDescriptor:
    fieldname = raw["fieldname"]
    expressions = _checked_expressions(raw, f"{owner_prefix}{fieldname}", warnings)
    return FieldDescriptor(
        fieldname=fieldname,
        fieldtype=_text(raw.get("fieldtype")) or "Data",
        label=_text(raw.get("label")) or field_label(fieldname),
        required=to_flag(raw.get("reqd", 0)),
        read_only=to_flag(raw.get("read_only", 0)),
        hidden=to_flag(raw.get("hidden", 0)),
        options=_text(raw.get("options")),
        default=raw.get("default"),
        description=_text(raw.get("description")),
        column=column,
        **expressions,
    )


def _data_fields(
    fields: List[Dict[str, Any]],
    warnings: List[ContractWarning],
    owner_prefix: str = "",
) -> List[Dict[str, Any]]:
    """Non-layout fields with a usable fieldname, in declaration order."""
    result = []
    for position, raw in enumerate(fields):
        if raw.get("fieldtype") in LAYOUT_FIELD_TYPES:
            continue
        if not _text(raw.get("fieldname")):
            warnings.append(ContractWarning(
                "missing_fieldname",
                f"{owner_prefix}field at position {position} has no fieldname and was skipped",
            ))
            continue
        result.append(raw)
    return result


def _display_index(raw: Dict[str, Any], position: int) -> int:
    try:
        return int(raw.get("idx"))
    except (TypeError, ValueError):
        return position


def build_list_section(fields: List[Dict[str, Any]]) -> Tuple[ListColumn, ...]:
    flagged = [
        (_display_index(raw, position), position, raw)
        for position, raw in enumerate(fields)
        if to_flag(raw.get("in_list_view", 0))
    ]
    flagged.sort(key=lambda item: (item[0], item[1]))
    return tuple(
        ListColumn(
            fieldname=raw["fieldname"],
            fieldtype=_text(raw.get("fieldtype")) or "Data",
            label=_text(raw.get("label")) or field_label(raw["fieldname"]),
        )
        for _, _, raw in flagged
    )


def build_list_filters(fields: List[Dict[str, Any]]) -> Tuple[ListFilter, ...]:
    return tuple(
        ListFilter(
            fieldname=raw["fieldname"],
            fieldtype=_text(raw.get("fieldtype")) or "Data",
            label=_text(raw.get("label")) or field_label(raw["fieldname"]),
            options=_text(raw.get("options")),
            default=raw.get("default"),
        )
        for raw in fields
        if to_flag(raw.get("in_standard_filter", 0))
    )


def build_form_sections(
    fields: List[Dict[str, Any]],
    warnings: List[ContractWarning],
) -> Tuple[FormSection, ...]:
    """Split fields into sections at every section or tab break.

    Column breaks advance the column index within the current section. The
    implicit leading section is dropped when it holds no fields.
    """
    sections: List[FormSection] = []
    label: Optional[str] = None
    tab: Optional[str] = None
    collapsible = False
    implicit = True
    column = 0
    current: List[FieldDescriptor] = []

    def close() -> None:
        if current or not implicit:
            sections.append(FormSection(label=label, fields=tuple(current), tab=tab, collapsible=collapsible))

    for position, raw in enumerate(fields):
        fieldtype = raw.get("fieldtype")
        if fieldtype in (TAB_BREAK, SECTION_BREAK) and _text(raw.get("depends_on")):
            name = _text(raw.get("label")) or _text(raw.get("fieldname")) or f"position {position}"
            warnings.append(ContractWarning(
                "layout_condition_ignored",
                f"depends_on on {fieldtype} '{name}' is not applied; its fields are always shown",
                _text(raw.get("fieldname")),
            ))
        if fieldtype == TAB_BREAK:
            close()
            tab = _text(raw.get("label")) or field_label(raw.get("fieldname") or f"tab_{position}")
            label, collapsible, implicit, column, current = None, False, True, 0, []
        elif fieldtype == SECTION_BREAK:
            close()
            label = _text(raw.get("label"))
            collapsible = to_flag(raw.get("collapsible", 0))
            implicit, column, current = False, 0, []
        elif fieldtype == COLUMN_BREAK:
            column += 1
        elif fieldtype in LAYOUT_FIELD_TYPES:
            continue
        elif _text(raw.get("fieldname")):
            current.append(to_field_descriptor(raw, column, warnings))
    close()
    return tuple(sections)


def build_child_tables(
    source: MetadataSource,
    fields: List[Dict[str, Any]],
    warnings: List[ContractWarning],
) -> Dict[str, ChildTableFragment]:
    """Shallow fragments for table fields: the child's own field list only.

    Table fields inside a child stay plain descriptors, so mutually
    referencing entities cannot recurse.
    """
    fetched: Dict[str, Optional[List[Dict[str, Any]]]] = {}
    child_tables: Dict[str, ChildTableFragment] = {}
    for raw in fields:
        if raw.get("fieldtype") not in TABLE_FIELD_TYPES:
            continue
        fieldname = raw["fieldname"]
        child_name = _text(raw.get("options"))
        if not child_name:
            warnings.append(ContractWarning(
                "table_without_options",
                "Table field does not name its child entity",
                fieldname,
            ))
            continue
        if child_name not in fetched:
            try:
                fetched[child_name] = source.fetch_field_list(child_name)
            except MetadataFetchError as e:
                warnings.append(ContractWarning(
                    "child_table_unresolved",
                    f"Child entity '{child_name}' could not be fetched: {e.message}",
                    fieldname,
                ))
                fetched[child_name] = None
        child_fields = fetched[child_name]
        if child_fields is None:
            child_tables[fieldname] = ChildTableFragment(child_name, (), resolved=False)
            continue
        prefix = f"{fieldname}."
        descriptors = tuple(
            to_field_descriptor(child, 0, warnings, owner_prefix=prefix)
            for child in _data_fields(child_fields, warnings, owner_prefix=prefix)
        )
        child_tables[fieldname] = ChildTableFragment(child_name, descriptors)
    return child_tables


def build_workflow(
    workflow: Optional[Dict[str, Any]],
    warnings: List[ContractWarning],
) -> Tuple[Optional[WorkflowInfo], Tuple[WorkflowAction, ...]]:
    if not workflow or not to_flag(workflow.get("is_active", 1)):
        return None, ()

    states = []
    for raw in workflow.get("states") or []:
        state = _text(raw.get("state"))
        if not state:
            continue
        try:
            doc_status = int(raw.get("doc_status") or 0)
        except (TypeError, ValueError):
            doc_status = 0
        states.append(WorkflowState(state=state, doc_status=doc_status, allow_edit=_text(raw.get("allow_edit"))))

    actions = []
    for position, raw in enumerate(workflow.get("transitions") or []):
        from_state = _text(raw.get("state"))
        action = _text(raw.get("action"))
        to_state = _text(raw.get("next_state"))
        if not (from_state and action and to_state):
            warnings.append(ContractWarning(
                "incomplete_transition",
                f"Workflow transition at position {position} is missing state, action or next_state",
            ))
            continue
        actions.append(WorkflowAction(from_state, action, to_state, _text(raw.get("allowed"))))

    info = WorkflowInfo(
        name=_text(workflow.get("workflow_name")) or _text(workflow.get("name")) or "",
        state_field=_text(workflow.get("workflow_state_field")) or "workflow_state",
        states=tuple(states),
    )
    return info, tuple(actions)


def extract_handlers(script: str) -> List[str]:
    """Handler names declared in a client script, in first-seen order.

    The script text is only scanned, never executed.
    """
    names: List[str] = []
    for match in _HANDLER_RE.finditer(script or ""):
        name = match.group(1)
        if name not in _NOT_HANDLERS and name not in names:
            names.append(name)
    return names


def build_client_behaviors(
    scripts: List[Dict[str, Any]],
    fieldnames: List[str],
) -> Tuple[ClientBehavior, ...]:
    behaviors = []
    known_fields = set(fieldnames)
    for position, raw in enumerate(scripts):
        if not to_flag(raw.get("enabled", 1)):
            continue
        handlers = extract_handlers(raw.get("script") or "")
        behaviors.append(ClientBehavior(
            name=_text(raw.get("name")) or f"script-{position}",
            view=_text(raw.get("view")) or "Form",
            form_events=tuple(h for h in handlers if h not in known_fields),
            field_events=tuple(h for h in handlers if h in known_fields),
        ))
    return tuple(behaviors)


def build_contract(entity_name: str, style_preset: str, source: MetadataSource) -> UIContract:
    """
    Build a UI contract for an entity from live metadata.

    Args:
        entity_name: Name of the entity (desk DocType) to compile
        style_preset: One of the STYLE_PRESETS names; affects layout hints only
        source: Metadata source to pull the schema from

    Returns:
        A freshly built UIContract

    Raises:
        MetadataFetchError: the source failed or does not know the entity
        ContractValidationError: the entity cannot produce a usable UI
    """
    if not entity_name or not entity_name.strip():
        raise ContractValidationError("Entity name must not be empty")
    entity_name = entity_name.strip()
    preset, layout = resolve_preset(style_preset)
    extra = {"entity": entity_name, "stage": Stage.FETCH_METADATA.value}

    # 1. Fetch raw metadata; any failure aborts the whole build
    log.info("Fetching metadata", extra=extra)
    fields = _fetch(entity_name, "field list", source.fetch_field_list)
    overrides = _fetch(entity_name, "overrides", source.fetch_overrides)
    scripts = _fetch(entity_name, "client behavior", source.fetch_client_behavior)
    workflow = _fetch(entity_name, "workflow", source.fetch_workflow)
    permission_rules = _fetch(entity_name, "permissions", source.fetch_permissions)

    extra = {"entity": entity_name, "stage": Stage.BUILD_CONTRACT.value}
    warnings: List[ContractWarning] = []

    # 2. Overrides on top of base definitions
    merged = apply_overrides(fields or [], overrides or [], warnings)
    data_fields = _data_fields(merged, warnings)
    if not data_fields:
        raise ContractValidationError(f"Entity '{entity_name}' has no fields", entity=entity_name)

    # 3. List columns, filters and form sections
    list_section = build_list_section(data_fields)
    list_filters = build_list_filters(data_fields)
    form_sections = build_form_sections(merged, warnings)

    # 4. Child tables, one level deep
    child_tables = build_child_tables(source, data_fields, warnings)

    # 5. Permissions, workflow and client behavior
    permissions = merge_permissions(permission_rules or {})
    workflow_info, workflow_actions = build_workflow(workflow, warnings)
    behaviors = build_client_behaviors(scripts or [], [f["fieldname"] for f in data_fields])

    for warning in warnings:
        log.warning("%s: %s", warning.field or "-", warning.message, extra=extra)

    contract = UIContract(
        entity_name=entity_name,
        style_preset=preset,
        layout=layout,
        list_section=list_section,
        list_filters=list_filters,
        form_sections=form_sections,
        realtime_topic=realtime_topic(entity_name),
        child_tables=child_tables,
        permissions=permissions,
        workflow_actions=workflow_actions,
        workflow=workflow_info,
        client_behaviors=behaviors,
        warnings=tuple(warnings),
    )
    log.info(
        "Built contract with %d sections, %d list columns, %d child tables",
        len(form_sections), len(list_section), len(child_tables),
        extra=extra,
    )
    return contract
