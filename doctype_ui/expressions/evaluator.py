"""Direct evaluation of parsed dependency expressions against field values."""
from __future__ import annotations

from typing import Any, Dict, Optional

from doctype_ui.expressions.nodes import (
    BoolOp,
    Compare,
    FieldRef,
    Literal,
    Membership,
    Node,
    Not,
)


class _Empty:
    """Value of a field reference missing from the supplied mapping."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY = _Empty()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _equal(left: Any, right: Any) -> bool:
    if left is EMPTY or right is EMPTY:
        return False
    return bool(left == right)


def _order(op: str, left: Any, right: Any) -> bool:
    comparable = (_is_number(left) and _is_number(right)) or (
        isinstance(left, str) and isinstance(right, str)
    )
    if not comparable:
        return False
    if op == "lt":
        return left < right
    if op == "lte":
        return left <= right
    if op == "gt":
        return left > right
    return left >= right


def _value(node: Node, values: Dict[str, Any]) -> Any:
    if isinstance(node, FieldRef):
        return values.get(node.name, EMPTY)
    if isinstance(node, Literal):
        return node.value
    return _truth(node, values)


def _truth(node: Node, values: Dict[str, Any]) -> bool:
    if isinstance(node, (FieldRef, Literal)):
        return bool(_value(node, values))
    if isinstance(node, Compare):
        left = _value(node.left, values)
        right = _value(node.right, values)
        if node.op == "eq":
            return _equal(left, right)
        if node.op == "neq":
            return not _equal(left, right)
        return _order(node.op, left, right)
    if isinstance(node, Membership):
        left = _value(node.left, values)
        found = any(_equal(left, item) for item in node.items)
        return found if node.op == "in" else not found
    if isinstance(node, BoolOp):
        if node.op == "and":
            return all(_truth(child, values) for child in node.children)
        return any(_truth(child, values) for child in node.children)
    if isinstance(node, Not):
        return not _truth(node.child, values)
    raise TypeError(f"Not an expression node: {node!r}")


def evaluate(node: Node, field_values: Optional[Dict[str, Any]] = None) -> bool:
    return _truth(node, field_values or {})
