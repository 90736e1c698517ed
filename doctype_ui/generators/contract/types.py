"""Dataclasses for the UI contract."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

SECTION_BREAK = "Section Break"
COLUMN_BREAK = "Column Break"
TAB_BREAK = "Tab Break"
LAYOUT_FIELD_TYPES = {SECTION_BREAK, COLUMN_BREAK, TAB_BREAK, "Fold"}
TABLE_FIELD_TYPES = {"Table", "Table MultiSelect"}

DEPENDENCY_PROPERTIES = ("depends_on", "mandatory_depends_on", "read_only_depends_on")

PERMISSION_FLAGS = ("read", "write", "create", "delete", "submit", "cancel", "amend")


@dataclass(frozen=True)
class LayoutHints:
    columns: int
    spacing: str
    page_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"columns": self.columns, "spacing": self.spacing, "pageSize": self.page_size}


STYLE_PRESETS = {
    "plain": LayoutHints(columns=2, spacing="md", page_size=20),
    "dense": LayoutHints(columns=3, spacing="sm", page_size=50),
    "spacious": LayoutHints(columns=1, spacing="lg", page_size=10),
}


@dataclass(frozen=True)
class FieldDescriptor:
    fieldname: str
    fieldtype: str
    label: str
    required: bool = False
    read_only: bool = False
    hidden: bool = False
    options: Optional[str] = None
    default: Optional[Any] = None
    description: Optional[str] = None
    column: int = 0
    depends_on: Optional[str] = None
    mandatory_depends_on: Optional[str] = None
    read_only_depends_on: Optional[str] = None

    def dependencies(self) -> Dict[str, str]:
        """Dependency expressions keyed by property name, skipping unset ones."""
        deps = {}
        for prop in DEPENDENCY_PROPERTIES:
            value = getattr(self, prop)
            if value:
                deps[prop] = value
        return deps

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "fieldName": self.fieldname,
            "fieldType": self.fieldtype,
            "label": self.label,
            "required": self.required,
            "readOnly": self.read_only,
            "hidden": self.hidden,
            "options": self.options,
            "default": self.default,
            "description": self.description,
            "column": self.column,
        }
        if self.depends_on:
            data["dependsOn"] = self.depends_on
        if self.mandatory_depends_on:
            data["mandatoryDependsOn"] = self.mandatory_depends_on
        if self.read_only_depends_on:
            data["readOnlyDependsOn"] = self.read_only_depends_on
        return data


@dataclass(frozen=True)
class ListColumn:
    fieldname: str
    fieldtype: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"fieldName": self.fieldname, "fieldType": self.fieldtype, "label": self.label}


@dataclass(frozen=True)
class ListFilter:
    fieldname: str
    fieldtype: str
    label: str
    options: Optional[str] = None
    default: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fieldName": self.fieldname,
            "fieldType": self.fieldtype,
            "label": self.label,
            "options": self.options,
            "default": self.default,
        }


@dataclass(frozen=True)
class FormSection:
    label: Optional[str]
    fields: Tuple[FieldDescriptor, ...]
    tab: Optional[str] = None
    collapsible: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "tab": self.tab,
            "collapsible": self.collapsible,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class ChildTableFragment:
    """Field list of a table field's child entity. Never nests further."""
    entity_name: str
    fields: Tuple[FieldDescriptor, ...]
    resolved: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entityName": self.entity_name,
            "fields": [f.to_dict() for f in self.fields],
            "resolved": self.resolved,
        }


@dataclass(frozen=True)
class PermissionFlags:
    read: bool = False
    write: bool = False
    create: bool = False
    delete: bool = False
    submit: bool = False
    cancel: bool = False
    amend: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {flag: getattr(self, flag) for flag in PERMISSION_FLAGS}


@dataclass(frozen=True)
class WorkflowAction:
    from_state: str
    action: str
    to_state: str
    allowed: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromState": self.from_state,
            "action": self.action,
            "toState": self.to_state,
            "allowed": self.allowed,
        }


@dataclass(frozen=True)
class WorkflowState:
    state: str
    doc_status: int = 0
    allow_edit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state, "docStatus": self.doc_status, "allowEdit": self.allow_edit}


@dataclass(frozen=True)
class WorkflowInfo:
    name: str
    state_field: str
    states: Tuple[WorkflowState, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "stateField": self.state_field,
            "states": [s.to_dict() for s in self.states],
        }


@dataclass(frozen=True)
class ClientBehavior:
    name: str
    view: str
    form_events: Tuple[str, ...] = ()
    field_events: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "view": self.view,
            "formEvents": list(self.form_events),
            "fieldEvents": list(self.field_events),
        }


@dataclass(frozen=True)
class ContractWarning:
    code: str
    message: str
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "field": self.field}


@dataclass(frozen=True)
class UIContract:
    entity_name: str
    style_preset: str
    layout: LayoutHints
    list_section: Tuple[ListColumn, ...]
    form_sections: Tuple[FormSection, ...]
    realtime_topic: str
    list_filters: Tuple[ListFilter, ...] = ()
    child_tables: Dict[str, ChildTableFragment] = field(default_factory=dict)
    permissions: Dict[str, PermissionFlags] = field(default_factory=dict)
    workflow_actions: Tuple[WorkflowAction, ...] = ()
    workflow: Optional[WorkflowInfo] = None
    client_behaviors: Tuple[ClientBehavior, ...] = ()
    warnings: Tuple[ContractWarning, ...] = ()

    def form_fields(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(f for section in self.form_sections for f in section.fields)

    def get_field(self, fieldname: str) -> Optional[FieldDescriptor]:
        for f in self.form_fields():
            if f.fieldname == fieldname:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entityName": self.entity_name,
            "stylePreset": self.style_preset,
            "layout": self.layout.to_dict(),
            "listSection": [c.to_dict() for c in self.list_section],
            "listFilters": [f.to_dict() for f in self.list_filters],
            "formSections": [s.to_dict() for s in self.form_sections],
            "childTables": {name: frag.to_dict() for name, frag in self.child_tables.items()},
            "permissions": {role: flags.to_dict() for role, flags in self.permissions.items()},
            "workflowActions": [a.to_dict() for a in self.workflow_actions],
            "workflow": self.workflow.to_dict() if self.workflow else None,
            "clientBehaviors": [b.to_dict() for b in self.client_behaviors],
            "realtimeTopic": self.realtime_topic,
            "warnings": [w.to_dict() for w in self.warnings],
        }
