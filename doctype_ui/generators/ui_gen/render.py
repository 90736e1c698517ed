"""String templates for the shared runtime library files.

Shared files are emitted once per destination tree and are fully
generator-owned: their whole body sits inside a single ``runtime`` region.
Type annotations are written as ``#{...}#`` and kept only for TypeScript.
"""
import re
from typing import List

from doctype_ui.generators.ui_gen.markers import region
from doctype_ui.generators.ui_gen.types import GeneratedFile

RUNTIME_REGION = "runtime"
SUPPORTED_LANGUAGES = ("js", "ts")

_ANNOTATION_RE = re.compile(r"#\{(.*?)\}#")


def typed(template: str, language: str) -> str:
    """Keep ``#{...}#`` annotations for TypeScript, drop them for JavaScript."""
    if language == "ts":
        return _ANNOTATION_RE.sub(r"\1", template)
    return _ANNOTATION_RE.sub("", template)


def _header(title: str) -> str:
    return (
        "/**\n"
        f" * {title}\n"
        " * Generated by doctype-ui. This file is fully regenerated; do not edit.\n"
        " */\n"
    )


def render_resource_client(language: str) -> str:
    """Generate lib/resource-client content."""
    body = _header("REST access to desk resources.") + typed('''const API_BASE_URL =
  (typeof import.meta !== 'undefined' && (import.meta#{ as any}#).env && (import.meta#{ as any}#).env.VITE_API_BASE_URL) || '';

function csrfToken()#{: string | undefined}# {
  const w#{: any}# = typeof window !== 'undefined' ? window : null;
  if (w && w.csrf_token && w.csrf_token !== '{{ csrf_token }}') {
    return w.csrf_token;
  }
  return undefined;
}

export async function httpRequest(method#{: string}#, url#{: string}#, data#{?: any}#)#{: Promise<any>}# {
  const headers#{: Record<string, string>}# = {
    'Content-Type': 'application/json',
    Accept: 'application/json',
  };
  const token = csrfToken();
  if (token) {
    headers['X-Frappe-CSRF-Token'] = token;
  }
  const config#{: RequestInit}# = { method, headers, credentials: 'include' };
  if (data !== undefined && method !== 'GET' && method !== 'DELETE') {
    config.body = JSON.stringify(data);
  }

  const response = await fetch(`${API_BASE_URL}${url}`, config);
  if (!response.ok) {
    const errorText = await response.text();
    let errorMessage = `HTTP ${response.status}: ${errorText}`;
    try {
      const errorJson = JSON.parse(errorText);
      errorMessage = errorJson.exception || errorJson.message || errorMessage;
    } catch (e) {
      // Keep the raw text when the body is not JSON
    }
    throw new Error(errorMessage);
  }
  if (response.status === 202 || response.status === 204) {
    return null;
  }
  const payload = await response.json();
  return payload.data !== undefined ? payload.data : payload.message;
}

function query(params#{: Record<string, any>}#)#{: string}# {
  const parts = Object.keys(params)
    .filter((key) => params[key] !== undefined && params[key] !== null)
    .map((key) => {
      const value = typeof params[key] === 'string' ? params[key] : JSON.stringify(params[key]);
      return `${encodeURIComponent(key)}=${encodeURIComponent(value)}`;
    });
  return parts.length ? `?${parts.join('&')}` : '';
}

function toFilterList(filters#{: Record<string, any>}#)#{: any[]}# {
  return Object.keys(filters || {})
    .filter((key) => filters[key] !== undefined && filters[key] !== null && filters[key] !== '')
    .map((key) => (Array.isArray(filters[key]) ? [key, ...filters[key]] : [key, '=', filters[key]]));
}

export function createResourceClient(doctype#{: string}#) {
  const base = `/api/resource/${encodeURIComponent(doctype)}`;
  return {
    doctype,
    list({ fields = ['name'], filters = {}, orderBy = 'modified desc', limit = 20, start = 0 }#{: any}# = {}) {
      return httpRequest(
        'GET',
        base +
          query({
            fields,
            filters: toFilterList(filters),
            order_by: orderBy,
            limit_page_length: limit,
            limit_start: start,
          }),
      );
    },
    get(name#{: string}#) {
      return httpRequest('GET', `${base}/${encodeURIComponent(name)}`);
    },
    insert(doc#{: Record<string, any>}#) {
      return httpRequest('POST', base, doc);
    },
    update(name#{: string}#, doc#{: Record<string, any>}#) {
      return httpRequest('PUT', `${base}/${encodeURIComponent(name)}`, doc);
    },
    remove(name#{: string}#) {
      return httpRequest('DELETE', `${base}/${encodeURIComponent(name)}`);
    },
  };
}

export function callMethod(method#{: string}#, args#{: Record<string, any>}# = {}) {
  return httpRequest('POST', `/api/method/${method}`, args);
}

export function applyWorkflowAction(doctype#{: string}#, name#{: string}#, action#{: string}#) {
  return callMethod('frappe.model.workflow.apply_workflow', {
    doc: JSON.stringify({ doctype, name }),
    action,
  });
}
''', language)
    return region(RUNTIME_REGION, body)


def render_behavior_shim(language: str) -> str:
    """Generate lib/behavior-shim content."""
    body = _header("Desk-compatible form object and event hooks.") + typed('''const registry#{: Record<string, Array<Record<string, Function>>>}# = {};

export function registerHandlers(doctype#{: string}#, handlers#{: Record<string, Function>}#)#{: () => void}# {
  const list = registry[doctype] || (registry[doctype] = []);
  list.push(handlers);
  return () => {
    const index = list.indexOf(handlers);
    if (index >= 0) {
      list.splice(index, 1);
    }
  };
}

export async function trigger(doctype#{: string}#, event#{: string}#, frm#{: any}#, ...args#{: any[]}#)#{: Promise<void>}# {
  for (const handlers of registry[doctype] || []) {
    const handler = handlers[event];
    if (typeof handler === 'function') {
      await handler(frm, ...args);
    }
  }
}

export function triggerFieldChange(doctype#{: string}#, fieldname#{: string}#, frm#{: any}#)#{: Promise<void>}# {
  return trigger(doctype, fieldname, frm);
}

export function createFormShim({ doctype, getDoc, setDoc, setFieldProperty }#{: any}#) {
  const frm#{: any}# = {
    doctype,
    get doc() {
      return getDoc();
    },
    set_value(fieldname#{: any}#, value#{?: any}#) {
      const values = typeof fieldname === 'object' ? fieldname : { [fieldname]: value };
      setDoc({ ...getDoc(), ...values });
      return Promise.all(Object.keys(values).map((key) => triggerFieldChange(doctype, key, frm)));
    },
    toggle_display(fieldname#{: string}#, show#{: boolean}#) {
      setFieldProperty(fieldname, 'hidden', !show);
    },
    toggle_reqd(fieldname#{: string}#, required#{: boolean}#) {
      setFieldProperty(fieldname, 'required', required);
    },
    toggle_enable(fieldname#{: string}#, enable#{: boolean}#) {
      setFieldProperty(fieldname, 'readOnly', !enable);
    },
    set_df_property(fieldname#{: string}#, property#{: string}#, value#{: any}#) {
      const aliases#{: Record<string, string>}# = { reqd: 'required', read_only: 'readOnly' };
      setFieldProperty(fieldname, aliases[property] || property, value);
    },
    refresh_field() {},
    is_new() {
      const doc = getDoc();
      return !doc || !doc.name || Boolean(doc.__islocal);
    },
  };
  return frm;
}
''', language)
    return region(RUNTIME_REGION, body)


def render_depends_eval(language: str) -> str:
    """Generate lib/depends-eval content.

    Evaluates the JSON AST emitted for dependency expressions. Missing fields
    are EMPTY: equality and membership are false, their negations true,
    ordering comparisons false.
    """
    body = _header("Evaluation of field dependency rules.") + typed('''const EMPTY = Symbol('empty');

function isNumber(value#{: any}#)#{: boolean}# {
  return typeof value === 'number' && Number.isFinite(value);
}

function equal(left#{: any}#, right#{: any}#)#{: boolean}# {
  if (left === EMPTY || right === EMPTY) {
    return false;
  }
  if (typeof left === 'boolean' && isNumber(right)) {
    return Number(left) === right;
  }
  if (isNumber(left) && typeof right === 'boolean') {
    return left === Number(right);
  }
  return left === right;
}

function order(op#{: string}#, left#{: any}#, right#{: any}#)#{: boolean}# {
  const comparable =
    (isNumber(left) && isNumber(right)) || (typeof left === 'string' && typeof right === 'string');
  if (!comparable) {
    return false;
  }
  switch (op) {
    case 'lt':
      return left < right;
    case 'lte':
      return left <= right;
    case 'gt':
      return left > right;
    default:
      return left >= right;
  }
}

function value(node#{: any}#, doc#{: Record<string, any>}#)#{: any}# {
  if ('field' in node) {
    return Object.prototype.hasOwnProperty.call(doc, node.field) ? doc[node.field] : EMPTY;
  }
  if ('literal' in node) {
    return node.literal;
  }
  return truth(node, doc);
}

function truthy(v#{: any}#)#{: boolean}# {
  if (v === EMPTY || v === null || v === undefined) {
    return false;
  }
  if (Array.isArray(v)) {
    return v.length > 0;
  }
  return Boolean(v);
}

function truth(node#{: any}#, doc#{: Record<string, any>}#)#{: boolean}# {
  if ('field' in node || 'literal' in node) {
    return truthy(value(node, doc));
  }
  switch (node.op) {
    case 'eq':
      return equal(value(node.left, doc), value(node.right, doc));
    case 'neq':
      return !equal(value(node.left, doc), value(node.right, doc));
    case 'lt':
    case 'lte':
    case 'gt':
    case 'gte':
      return order(node.op, value(node.left, doc), value(node.right, doc));
    case 'in':
    case 'not_in': {
      const left = value(node.left, doc);
      const found = node.items.some((item#{: any}#) => equal(left, item));
      return node.op === 'in' ? found : !found;
    }
    case 'and':
      return node.children.every((child#{: any}#) => truth(child, doc));
    case 'or':
      return node.children.some((child#{: any}#) => truth(child, doc));
    case 'not':
      return !truth(node.child, doc);
    default:
      return false;
  }
}

export function evaluateRule(node#{: any}#, doc#{: Record<string, any>}#)#{: boolean}# {
  return truth(node, doc || {});
}

export function fieldState(base#{: any}#, rules#{: any}#, doc#{: Record<string, any>}#) {
  const state = {
    visible: !(base && base.hidden),
    required: Boolean(base && base.required),
    readOnly: Boolean(base && base.readOnly),
  };
  if (!rules) {
    return state;
  }
  if (rules.dependsOn) {
    state.visible = state.visible && evaluateRule(rules.dependsOn, doc);
  }
  if (rules.mandatoryDependsOn) {
    state.required = state.required || evaluateRule(rules.mandatoryDependsOn, doc);
  }
  if (rules.readOnlyDependsOn) {
    state.readOnly = state.readOnly || evaluateRule(rules.readOnlyDependsOn, doc);
  }
  return state;
}
''', language)
    return region(RUNTIME_REGION, body)


def render_realtime(language: str) -> str:
    """Generate lib/realtime content."""
    body = _header("Change-notification subscriptions.") + typed('''let transport#{: any}# = null;
const listeners#{: Record<string, Set<Function>>}# = {};

function defaultTransport()#{: any}# {
  const w#{: any}# = typeof window !== 'undefined' ? window : null;
  if (w && w.frappe && w.frappe.realtime) {
    return w.frappe.realtime;
  }
  return null;
}

export function setRealtimeTransport(next#{: any}#)#{: void}# {
  transport = next;
}

export function publish(topic#{: string}#, payload#{?: any}#)#{: void}# {
  for (const listener of Array.from(listeners[topic] || [])) {
    listener(payload);
  }
}

export function subscribe(topic#{: string}#, listener#{: Function}#)#{: () => void}# {
  const set = listeners[topic] || (listeners[topic] = new Set());
  set.add(listener);
  const active = transport || defaultTransport();
  const forward = (payload#{: any}#) => listener(payload);
  if (active) {
    active.on(topic, forward);
  }
  return () => {
    set.delete(listener);
    if (active && typeof active.off === 'function') {
      active.off(topic, forward);
    }
  };
}
''', language)
    return region(RUNTIME_REGION, body)


SHARED_LIBRARIES = (
    ("lib/resource-client", render_resource_client),
    ("lib/behavior-shim", render_behavior_shim),
    ("lib/depends-eval", render_depends_eval),
    ("lib/realtime", render_realtime),
)


def render_shared_libraries(language: str) -> List[GeneratedFile]:
    """Shared runtime files, identical for every entity in a tree."""
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language!r}")
    return [
        GeneratedFile(path=f"{stem}.{language}", content=render(language), owned_regions=(RUNTIME_REGION,))
        for stem, render in SHARED_LIBRARIES
    ]
