"""List and form view rendering.

Generated constants (columns, sections, configs) live in owned regions; the
component code around them is emitted once and then belongs to the editor.
"""
from typing import Any, Dict, List, Tuple

from doctype_ui.generators.contract.types import TABLE_FIELD_TYPES, FieldDescriptor, LayoutHints, UIContract
from doctype_ui.generators.ui_gen.markers import region
from doctype_ui.generators.ui_gen.render import typed
from doctype_ui.generators.ui_gen.render_entity import EntityNames, comment_text, js_block, workflow_bindings
from doctype_ui.generators.ui_gen.types import GenerationWarning

FALLBACK_CONTROL = "fallback"

FIELD_CONTROLS = {
    "Data": "text",
    "Small Text": "textarea",
    "Text": "textarea",
    "Long Text": "textarea",
    "Text Editor": "textarea",
    "Markdown Editor": "textarea",
    "HTML Editor": "textarea",
    "Code": "code",
    "JSON": "code",
    "Int": "number",
    "Float": "number",
    "Currency": "number",
    "Percent": "number",
    "Rating": "number",
    "Check": "checkbox",
    "Select": "select",
    "Autocomplete": "select",
    "Link": "link",
    "Dynamic Link": "link",
    "Date": "date",
    "Datetime": "datetime",
    "Time": "time",
    "Duration": "number",
    "Attach": "attach",
    "Attach Image": "attach",
    "Image": "image",
    "Password": "password",
    "Phone": "text",
    "Color": "color",
    "Read Only": "readonly",
    "Barcode": "text",
    "Signature": "attach",
    "Geolocation": "code",
    "Icon": "text",
    "HTML": "html",
    "Heading": "heading",
    "Button": "button",
    "Table": "table",
    "Table MultiSelect": "table",
}


def control_for(fieldtype: str) -> Tuple[str, bool]:
    """Control name for a field type, and whether the type was recognized."""
    control = FIELD_CONTROLS.get(fieldtype)
    if control is None:
        return FALLBACK_CONTROL, False
    return control, True


def _field_spec(f: FieldDescriptor, control: str) -> Dict[str, Any]:
    spec = {
        "fieldName": f.fieldname,
        "fieldType": f.fieldtype,
        "label": f.label,
        "control": control,
        "options": f.options,
        "column": f.column,
    }
    if f.description:
        spec["description"] = f.description
    return spec


def _unknown_type(path: str, region_name: str, field: str, fieldtype: str) -> GenerationWarning:
    return GenerationWarning(
        path=path,
        message=f"Unrecognized field type '{fieldtype}' rendered with the generic fallback control",
        region=region_name,
        field=field,
    )


def render_list(names: EntityNames, contract: UIContract, layout: LayoutHints) -> Tuple[str, List[GenerationWarning]]:
    """Generate pages/<slug>/List content."""
    path = names.path(f"pages/{names.slug}/List")
    warnings: List[GenerationWarning] = []

    columns = []
    for column in contract.list_section:
        control, known = control_for(column.fieldtype)
        if not known:
            warnings.append(_unknown_type(path, "columns", column.fieldname, column.fieldtype))
        columns.append({**column.to_dict(), "control": control})

    filter_defaults = {f.fieldname: f.default for f in contract.list_filters if f.default not in (None, "")}
    filter_fields = [f.to_dict() for f in contract.list_filters]
    list_config = {
        "doctype": names.entity_name,
        "route": f"/app/{names.slug}",
        "pageSize": layout.page_size,
        "spacing": layout.spacing,
        "realtimeTopic": contract.realtime_topic,
    }

    imports = (
        "import { createElement as h, useCallback, useEffect, useState } from 'react';\n"
        "import { resource, LIST_FIELDS } from './resource';\n"
        "import { useRealtime } from './realtime';\n"
    )

    component = typed(f'''
function formatValue(value#{{: any}}#, column#{{: any}}#) {{
  if (value === null || value === undefined) {{
    return '';
  }}
  if (column.control === 'checkbox') {{
    return value ? 'Yes' : 'No';
  }}
  return String(value);
}}

export default function {names.component}List({{ onOpen }}#{{: {{ onOpen?: (name: string) => void }}}}#) {{
  const [rows, setRows] = useState#{{<any[]>}}#([]);
  const [filters, setFilters] = useState#{{<Record<string, any>>}}#(FILTER_DEFAULTS);
  const [error, setError] = useState#{{<string | null>}}#(null);

  const load = useCallback(async () => {{
    try {{
      setRows(await resource.list({{ fields: LIST_FIELDS, filters, limit: LIST_CONFIG.pageSize }}));
      setError(null);
    }} catch (e) {{
      setError(String(e));
    }}
  }}, [filters]);

  useEffect(() => {{
    load();
  }}, [load]);
  useRealtime(load);

  return h(
    'div',
    {{ className: `doctype-list spacing-${{LIST_CONFIG.spacing}}` }},
    FILTER_FIELDS.length
      ? h(
          'div',
          {{ className: 'doctype-list-filters' }},
          FILTER_FIELDS.map((f) =>
            h('input', {{
              key: f.fieldName,
              placeholder: f.label,
              value: filters[f.fieldName] || '',
              onChange: (e#{{: any}}#) => setFilters({{ ...filters, [f.fieldName]: e.target.value }}),
            }}),
          ),
        )
      : null,
    error ? h('p', {{ className: 'doctype-error' }}, error) : null,
    h(
      'table',
      null,
      h('thead', null, h('tr', null, h('th', null, 'ID'), ...COLUMNS.map((c) => h('th', {{ key: c.fieldName }}, c.label)))),
      h(
        'tbody',
        null,
        rows.map((row) =>
          h(
            'tr',
            {{ key: row.name, onClick: () => onOpen && onOpen(row.name) }},
            h('td', null, row.name),
            ...COLUMNS.map((c) => h('td', {{ key: c.fieldName }}, formatValue(row[c.fieldName], c))),
          ),
        ),
      ),
    ),
  );
}}
''', names.language)

    content = (
        f"/**\n * {comment_text(names.entity_name)} list view.\n"
        " * Code outside the doctype-ui regions is yours to edit; regions are regenerated.\n */\n"
        + region("imports", imports)
        + "\n"
        + region("columns", f"export const COLUMNS = {js_block(columns)};")
        + "\n"
        + region(
            "filter-defaults",
            f"export const FILTER_FIELDS = {js_block(filter_fields)};\n"
            f"export const FILTER_DEFAULTS = {js_block(filter_defaults)};",
        )
        + "\n"
        + region("list-config", f"export const LIST_CONFIG = {js_block(list_config)};")
        + component
    )
    return content, warnings


def render_form(names: EntityNames, contract: UIContract, layout: LayoutHints) -> Tuple[str, List[GenerationWarning]]:
    """Generate pages/<slug>/Form content."""
    path = names.path(f"pages/{names.slug}/Form")
    warnings: List[GenerationWarning] = []

    sections = []
    for section in contract.form_sections:
        fields = []
        for f in section.fields:
            control, known = control_for(f.fieldtype)
            if not known:
                warnings.append(_unknown_type(path, "sections", f.fieldname, f.fieldtype))
            fields.append(_field_spec(f, control))
        sections.append({
            "label": section.label,
            "tab": section.tab,
            "collapsible": section.collapsible,
            "columns": max([f.column for f in section.fields] + [0]) + 1,
            "fields": fields,
        })

    child_tables = {}
    for table_field, fragment in contract.child_tables.items():
        child_fields = []
        for f in fragment.fields:
            control, known = control_for(f.fieldtype)
            if not known:
                warnings.append(_unknown_type(path, "child-tables", f"{table_field}.{f.fieldname}", f.fieldtype))
            if f.fieldtype in TABLE_FIELD_TYPES:
                # Deeper tables stay a name reference
                control = "link"
            child_fields.append(_field_spec(f, control))
        child_tables[table_field] = {
            "doctype": fragment.entity_name,
            "resolved": fragment.resolved,
            "fields": child_fields,
        }

    defaults = {
        f.fieldname: f.default
        for f in contract.form_fields()
        if f.default not in (None, "") and f.fieldtype not in TABLE_FIELD_TYPES
    }
    workflow = {
        "stateField": contract.workflow.state_field if contract.workflow else None,
        "actions": [binding for _, binding in workflow_bindings(contract)],
    }
    form_config = {
        "doctype": names.entity_name,
        "route": f"/app/{names.slug}",
        "columns": layout.columns,
        "spacing": layout.spacing,
        "realtimeTopic": contract.realtime_topic,
        "defaults": defaults,
    }

    imports = (
        "import { createElement as h, useCallback, useEffect, useMemo, useRef, useState } from 'react';\n"
        "import { getFieldState, getChildFieldState } from './depends';\n"
        "import { createForm, runFieldChange, runFormEvent } from './behavior';\n"
        "import { useRealtime } from './realtime';\n"
        f"import {{ availableActions, can, createRecord, getRecord, runWorkflowAction, updateRecord }} from '../../actions/{names.slug}';\n"
    )

    component = typed(f'''
function selectOptions(options#{{: string | null}}#)#{{: string[]}}# {{
  return (options || '').split('\\n').filter((o) => o !== '');
}}

function Control({{ field, value, state, onChange }}#{{: any}}#) {{
  const common = {{
    id: field.fieldName,
    disabled: state.readOnly,
    required: state.required,
  }};
  switch (field.control) {{
    case 'checkbox':
      return h('input', {{ ...common, type: 'checkbox', checked: Boolean(value), onChange: (e#{{: any}}#) => onChange(e.target.checked ? 1 : 0) }});
    case 'select':
      return h(
        'select',
        {{ ...common, value: value || '', onChange: (e#{{: any}}#) => onChange(e.target.value) }},
        selectOptions(field.options).map((o) => h('option', {{ key: o, value: o }}, o)),
      );
    case 'textarea':
    case 'code':
      return h('textarea', {{ ...common, value: value || '', onChange: (e#{{: any}}#) => onChange(e.target.value) }});
    case 'number':
      return h('input', {{ ...common, type: 'number', value: value ?? '', onChange: (e#{{: any}}#) => onChange(e.target.valueAsNumber) }});
    case 'date':
    case 'datetime':
    case 'time':
    case 'color':
    case 'password':
      return h('input', {{
        ...common,
        type: field.control === 'datetime' ? 'datetime-local' : field.control,
        value: value || '',
        onChange: (e#{{: any}}#) => onChange(e.target.value),
      }});
    case 'table':
      return h(ChildTable, {{ field, rows: value || [], readOnly: state.readOnly, onChange }});
    case 'heading':
      return h('h4', null, field.label);
    case 'html':
    case 'button':
    case 'image':
      return null;
    case 'readonly':
      return h('span', null, value ?? '');
    default:
      return h('input', {{ ...common, type: 'text', value: value ?? '', onChange: (e#{{: any}}#) => onChange(e.target.value) }});
  }}
}}

function ChildTable({{ field, rows, readOnly, onChange }}#{{: any}}#) {{
  const table = CHILD_TABLES[field.fieldName];
  if (!table || !table.resolved) {{
    return h('p', {{ className: 'doctype-error' }}, `${{field.label}}: child table unavailable`);
  }}
  const update = (index#{{: number}}#, fieldname#{{: string}}#, value#{{: any}}#) =>
    onChange(rows.map((row#{{: any}}#, i#{{: number}}#) => (i === index ? {{ ...row, [fieldname]: value }} : row)));
  return h(
    'table',
    {{ className: 'doctype-child-table' }},
    h('thead', null, h('tr', null, table.fields.map((f#{{: any}}#) => h('th', {{ key: f.fieldName }}, f.label)))),
    h(
      'tbody',
      null,
      rows.map((row#{{: any}}#, index#{{: number}}#) =>
        h(
          'tr',
          {{ key: row.name || index }},
          table.fields.map((f#{{: any}}#) => {{
            const state = getChildFieldState(field.fieldName, f.fieldName, row);
            return h(
              'td',
              {{ key: f.fieldName }},
              state.visible
                ? h(Control, {{
                    field: f,
                    value: row[f.fieldName],
                    state: {{ ...state, readOnly: readOnly || state.readOnly }},
                    onChange: (v#{{: any}}#) => update(index, f.fieldName, v),
                  }})
                : null,
            );
          }}),
        ),
      ),
    ),
    readOnly ? null : h('button', {{ type: 'button', onClick: () => onChange([...rows, {{}}]) }}, 'Add Row'),
  );
}}

function applyOverrides(state#{{: any}}#, override#{{: any}}#) {{
  if (!override) {{
    return state;
  }}
  return {{
    visible: override.hidden === undefined ? state.visible : !override.hidden,
    required: override.required === undefined ? state.required : Boolean(override.required),
    readOnly: override.readOnly === undefined ? state.readOnly : Boolean(override.readOnly),
  }};
}}

export default function {names.component}Form({{ name, roles = [] }}#{{: {{ name?: string; roles?: string[] }}}}#) {{
  const [doc, setDoc] = useState#{{<Record<string, any>>}}#({{ ...FORM_CONFIG.defaults }});
  const [overrides, setOverrides] = useState#{{<Record<string, any>>}}#({{}});
  const [error, setError] = useState#{{<string | null>}}#(null);
  const docRef = useRef(doc);

  const frm = useMemo(
    () =>
      createForm({{
        getDoc: () => docRef.current,
        setDoc: (next#{{: Record<string, any>}}#) => {{
          docRef.current = next;
          setDoc(next);
        }},
        setFieldProperty: (fieldname#{{: string}}#, property#{{: string}}#, value#{{: any}}#) =>
          setOverrides((prev#{{: any}}#) => ({{ ...prev, [fieldname]: {{ ...prev[fieldname], [property]: value }} }})),
      }}),
    [],
  );

  const load = useCallback(async () => {{
    try {{
      if (name) {{
        const record = await getRecord(name);
        docRef.current = record;
        setDoc(record);
      }}
      await runFormEvent('onload', frm);
      await runFormEvent('refresh', frm);
    }} catch (e) {{
      setError(String(e));
    }}
  }}, [name, frm]);

  useEffect(() => {{
    load();
  }}, [load]);
  useRealtime(load);

  const save = async () => {{
    try {{
      await runFormEvent('validate', frm);
      await runFormEvent('before_save', frm);
      const saved = name ? await updateRecord(name, docRef.current) : await createRecord(docRef.current);
      docRef.current = saved;
      setDoc(saved);
      await runFormEvent('after_save', frm);
      setError(null);
    }} catch (e) {{
      setError(String(e));
    }}
  }};

  const onChange = (fieldname#{{: string}}#, value#{{: any}}#) => {{
    docRef.current = {{ ...docRef.current, [fieldname]: value }};
    setDoc(docRef.current);
    runFieldChange(fieldname, frm);
  }};

  const state = WORKFLOW.stateField ? doc[WORKFLOW.stateField] : null;
  const canWrite = can(name ? 'write' : 'create', roles);

  return h(
    'form',
    {{
      className: `doctype-form columns-${{FORM_CONFIG.columns}} spacing-${{FORM_CONFIG.spacing}}`,
      onSubmit: (e#{{: any}}#) => {{
        e.preventDefault();
        save();
      }},
    }},
    error ? h('p', {{ className: 'doctype-error' }}, error) : null,
    SECTIONS.map((section#{{: any}}#, index#{{: number}}#) =>
      h(
        'section',
        {{ key: index, className: 'doctype-form-section' }},
        section.label ? h('h3', null, section.label) : null,
        section.fields.map((field#{{: any}}#) => {{
          const fieldState = applyOverrides(getFieldState(field.fieldName, doc), overrides[field.fieldName]);
          if (!fieldState.visible) {{
            return null;
          }}
          return h(
            'div',
            {{ key: field.fieldName, className: `doctype-field column-${{field.column}}` }},
            h('label', {{ htmlFor: field.fieldName }}, field.label),
            h(Control, {{
              field,
              value: doc[field.fieldName],
              state: {{ ...fieldState, readOnly: fieldState.readOnly || !canWrite }},
              onChange: (v#{{: any}}#) => onChange(field.fieldName, v),
            }}),
          );
        }}),
      ),
    ),
    h(
      'div',
      {{ className: 'doctype-form-actions' }},
      canWrite ? h('button', {{ type: 'submit' }}, 'Save') : null,
      name && state
        ? availableActions(state, roles).map((t#{{: any}}#) =>
            h('button', {{ key: t.action, type: 'button', onClick: () => runWorkflowAction(name, t.action).then(load) }}, t.action),
          )
        : null,
    ),
  );
}}
''', names.language)

    content = (
        f"/**\n * {comment_text(names.entity_name)} form view.\n"
        " * Code outside the doctype-ui regions is yours to edit; regions are regenerated.\n */\n"
        + region("imports", imports)
        + "\n"
        + region("sections", f"export const SECTIONS = {js_block(sections)};")
        + "\n"
        + region("child-tables", f"export const CHILD_TABLES = {js_block(child_tables)};")
        + "\n"
        + region("workflow-buttons", f"export const WORKFLOW = {js_block(workflow)};")
        + "\n"
        + region("form-config", f"export const FORM_CONFIG = {js_block(form_config)};")
        + component
    )
    return content, warnings
