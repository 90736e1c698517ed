"""Entity-specific rendering functions: helpers, actions and router entry."""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from doctype_ui.expressions import parse, to_dict
from doctype_ui.generators.contract.types import FieldDescriptor, UIContract
from doctype_ui.generators.ui_gen.markers import region
from doctype_ui.generators.ui_gen.render import typed
from doctype_ui.generators.ui_gen.utils import (
    entity_to_slug,
    to_camel_case,
    to_pascal_case,
)

_RULE_KEYS = {
    "depends_on": "dependsOn",
    "mandatory_depends_on": "mandatoryDependsOn",
    "read_only_depends_on": "readOnlyDependsOn",
}


@dataclass(frozen=True)
class EntityNames:
    entity_name: str
    slug: str
    component: str
    language: str

    @classmethod
    def for_contract(cls, contract: UIContract, language: str) -> "EntityNames":
        return cls(
            entity_name=contract.entity_name,
            slug=entity_to_slug(contract.entity_name),
            component=to_pascal_case(contract.entity_name),
            language=language,
        )

    def path(self, stem: str) -> str:
        return f"{stem}.{self.language}"


# Characters str.splitlines() breaks on that json.dumps leaves unescaped
_LINE_BREAKS = {"\x85": "\\u0085", "\u2028": "\\u2028", "\u2029": "\\u2029"}


def _escape_line_breaks(literal: str) -> str:
    for char, escaped in _LINE_BREAKS.items():
        literal = literal.replace(char, escaped)
    return literal


def js(value: Any) -> str:
    """Inline JS literal for a JSON-compatible value."""
    return _escape_line_breaks(json.dumps(value, ensure_ascii=False))


def js_block(value: Any) -> str:
    """Indented JS literal for a JSON-compatible value."""
    return _escape_line_breaks(json.dumps(value, indent=2, ensure_ascii=False))


def comment_text(value: Any) -> str:
    """Schema text made safe for a single comment line: whitespace runs and
    line terminators collapse to one space, and `*/` cannot close a block comment."""
    return " ".join(str(value).split()).replace("*/", "* /")


def field_rules(f: FieldDescriptor) -> Dict[str, Any]:
    """Parsed dependency rules of a field as JSON ASTs."""
    return {_RULE_KEYS[prop]: to_dict(parse(expression)) for prop, expression in f.dependencies().items()}


def field_base_state(f: FieldDescriptor) -> Dict[str, bool]:
    return {"hidden": f.hidden, "required": f.required, "readOnly": f.read_only}


def render_resource(names: EntityNames, contract: UIContract) -> str:
    """Generate pages/<slug>/resource content."""
    list_fields = ["name"] + [c.fieldname for c in contract.list_section if c.fieldname != "name"]
    lines = [
        "import { createResourceClient } from '../../lib/resource-client';",
        "",
        f"export const DOCTYPE = {js(names.entity_name)};",
        f"export const LIST_FIELDS = {js(list_fields)};",
        "export const resource = createResourceClient(DOCTYPE);",
    ]
    return region("resource", "\n".join(lines))


def render_depends(names: EntityNames, contract: UIContract) -> str:
    """Generate pages/<slug>/depends content."""
    base = {}
    rules = {}
    for f in contract.form_fields():
        base[f.fieldname] = field_base_state(f)
        parsed = field_rules(f)
        if parsed:
            rules[f.fieldname] = parsed

    child_base: Dict[str, Dict[str, Any]] = {}
    child_rules: Dict[str, Dict[str, Any]] = {}
    for table_field, fragment in contract.child_tables.items():
        child_base[table_field] = {f.fieldname: field_base_state(f) for f in fragment.fields}
        parsed_children = {f.fieldname: field_rules(f) for f in fragment.fields if field_rules(f)}
        if parsed_children:
            child_rules[table_field] = parsed_children

    constants = (
        "import { fieldState } from '../../lib/depends-eval';\n"
        "\n"
        f"export const BASE_STATE = {js_block(base)};\n"
        "\n"
        f"export const RULES = {js_block(rules)};\n"
        "\n"
        f"export const CHILD_BASE_STATE = {js_block(child_base)};\n"
        "\n"
        f"export const CHILD_RULES = {js_block(child_rules)};\n"
        "\n"
    )
    body = constants + typed(
        "export function getFieldState(fieldname#{: string}#, doc#{: Record<string, any>}#) {\n"
        "  return fieldState(BASE_STATE[fieldname], RULES[fieldname], doc);\n"
        "}\n"
        "\n"
        "export function getChildFieldState(tableField#{: string}#, fieldname#{: string}#, row#{: Record<string, any>}#) {\n"
        "  const base = (CHILD_BASE_STATE[tableField] || {})[fieldname];\n"
        "  const rules = (CHILD_RULES[tableField] || {})[fieldname];\n"
        "  return fieldState(base, rules, row);\n"
        "}\n",
        names.language,
    )
    return region("rules", body)


def render_behavior(names: EntityNames, contract: UIContract) -> str:
    """Generate pages/<slug>/behavior content."""
    scripts = [b.to_dict() for b in contract.client_behaviors]
    form_events: List[str] = []
    field_events: List[str] = []
    for b in contract.client_behaviors:
        form_events.extend(e for e in b.form_events if e not in form_events)
        field_events.extend(e for e in b.field_events if e not in field_events)

    constants = (
        "import { createFormShim, registerHandlers, trigger, triggerFieldChange } from '../../lib/behavior-shim';\n"
        "\n"
        f"export const DOCTYPE = {js(names.entity_name)};\n"
        f"export const CLIENT_SCRIPTS = {js_block(scripts)};\n"
        f"export const FORM_EVENTS = {js(form_events)};\n"
        f"export const FIELD_EVENTS = {js(field_events)};\n"
        "\n"
    )
    body = constants + typed(
        "export function bindBehavior(handlers#{: Record<string, Function>}#) {\n"
        "  return registerHandlers(DOCTYPE, handlers);\n"
        "}\n"
        "\n"
        "export function createForm(options#{: any}#) {\n"
        "  return createFormShim({ doctype: DOCTYPE, ...options });\n"
        "}\n"
        "\n"
        "export function runFormEvent(event#{: string}#, frm#{: any}#) {\n"
        "  return trigger(DOCTYPE, event, frm);\n"
        "}\n"
        "\n"
        "export function runFieldChange(fieldname#{: string}#, frm#{: any}#) {\n"
        "  return triggerFieldChange(DOCTYPE, fieldname, frm);\n"
        "}\n",
        names.language,
    )
    return region("hooks", body)


def render_realtime_hook(names: EntityNames, contract: UIContract) -> str:
    """Generate pages/<slug>/realtime content."""
    body = typed(
        "import { useEffect } from 'react';\n"
        "import { subscribe } from '../../lib/realtime';\n"
        "\n"
        f"export const TOPIC = {js(contract.realtime_topic)};\n"
        "\n"
        "export function useRealtime(onChange#{: (payload?: any) => void}#) {\n"
        "  useEffect(() => subscribe(TOPIC, onChange), [onChange]);\n"
        "}\n",
        names.language,
    )
    return region("subscription", body)


def workflow_bindings(contract: UIContract) -> List[Tuple[str, Dict[str, Any]]]:
    """One uniquely named binding per workflow transition, in transition order."""
    bindings = []
    used = set()
    for action in contract.workflow_actions:
        base = to_camel_case(f"{action.action} from {action.from_state}")
        name = base
        counter = 2
        while name in used:
            name = f"{base}{counter}"
            counter += 1
        used.add(name)
        bindings.append((name, action.to_dict()))
    return bindings


def render_actions(names: EntityNames, contract: UIContract) -> str:
    """Generate actions/<slug> content."""
    crud = typed(
        f"import {{ resource, LIST_FIELDS }} from '../pages/{names.slug}/resource';\n"
        "\n"
        "export function listRecords(options#{: any}# = {}) {\n"
        "  return resource.list({ fields: LIST_FIELDS, ...options });\n"
        "}\n"
        "\n"
        "export function getRecord(name#{: string}#) {\n"
        "  return resource.get(name);\n"
        "}\n"
        "\n"
        "export function createRecord(doc#{: Record<string, any>}#) {\n"
        "  return resource.insert(doc);\n"
        "}\n"
        "\n"
        "export function updateRecord(name#{: string}#, doc#{: Record<string, any>}#) {\n"
        "  return resource.update(name, doc);\n"
        "}\n"
        "\n"
        "export function deleteRecord(name#{: string}#) {\n"
        "  return resource.remove(name);\n"
        "}\n",
        names.language,
    )

    bindings = workflow_bindings(contract)
    state_field = contract.workflow.state_field if contract.workflow else None
    workflow_lines = [
        "import { applyWorkflowAction } from '../lib/resource-client';",
        "",
        f"export const WORKFLOW_STATE_FIELD = {js(state_field)};",
        f"export const WORKFLOW_ACTIONS = {js_block([b for _, b in bindings])};",
        "",
    ]
    for fn_name, binding in bindings:
        workflow_lines.extend([
            f"// {comment_text(binding['fromState'])} -> {comment_text(binding['toState'])}",
            typed(f"export function {fn_name}(name#{{: string}}#) {{", names.language),
            f"  return applyWorkflowAction({js(names.entity_name)}, name, {js(binding['action'])});",
            "}",
            "",
        ])
    workflow_lines.extend([
        typed("export function availableActions(state#{: string}#, roles#{: string[]}# = []) {", names.language),
        "  return WORKFLOW_ACTIONS.filter(",
        "    (t) => t.fromState === state && (!t.allowed || roles.includes(t.allowed)),",
        "  );",
        "}",
        "",
        typed("export function runWorkflowAction(name#{: string}#, action#{: string}#) {", names.language),
        f"  return applyWorkflowAction({js(names.entity_name)}, name, action);",
        "}",
    ])

    permissions = {role: flags.to_dict() for role, flags in contract.permissions.items()}
    perms = typed(
        f"export const PERMISSIONS = {js_block(permissions)};\n"
        "\n"
        "export function can(capability#{: string}#, roles#{: string[]}# = []) {\n"
        "  return roles.some((role) => Boolean(PERMISSIONS[role] && PERMISSIONS[role][capability]));\n"
        "}\n",
        names.language,
    )
    if names.language == "ts":
        perms = perms.replace(
            "export const PERMISSIONS = ",
            "export const PERMISSIONS: Record<string, Record<string, boolean>> = ",
        )

    return (
        region("crud-actions", crud)
        + "\n"
        + region("workflow-actions", "\n".join(workflow_lines))
        + "\n"
        + region("permissions", perms)
    )


def render_router(names: EntityNames, contract: UIContract) -> str:
    """Generate router/<slug> content."""
    base = f"/app/{names.slug}"
    lines = [
        "import { lazy } from 'react';",
        "",
        f"const List = lazy(() => import('../pages/{names.slug}/List'));",
        f"const Form = lazy(() => import('../pages/{names.slug}/Form'));",
        "",
        "export const routes = [",
        f"  {{ path: {js(base)}, name: {js(names.slug + '-list')}, component: List }},",
        f"  {{ path: {js(base + '/new')}, name: {js(names.slug + '-new')}, component: Form }},",
        f"  {{ path: {js(base + '/:name')}, name: {js(names.slug + '-form')}, component: Form }},",
        "];",
        "",
        "export default routes;",
    ]
    return region("routes", "\n".join(lines))
