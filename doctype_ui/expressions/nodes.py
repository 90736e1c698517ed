"""Restricted AST for dependency expressions.

Nodes are frozen dataclasses with a fixed operator set. ``to_dict`` produces
the JSON form shipped to generated code, which evaluates it with the
``lib/depends-eval`` runtime instead of any string evaluation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union

COMPARE_OPS = ("eq", "neq", "lt", "lte", "gt", "gte")
MEMBERSHIP_OPS = ("in", "not_in")
BOOL_OPS = ("and", "or")


@dataclass(frozen=True)
class FieldRef:
    name: str


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Compare:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Membership:
    op: str
    left: "Node"
    items: Tuple[Any, ...]


@dataclass(frozen=True)
class BoolOp:
    op: str
    children: Tuple["Node", ...]


@dataclass(frozen=True)
class Not:
    child: "Node"


Node = Union[FieldRef, Literal, Compare, Membership, BoolOp, Not]


def to_dict(node: Node) -> Dict[str, Any]:
    if isinstance(node, FieldRef):
        return {"field": node.name}
    if isinstance(node, Literal):
        return {"literal": node.value}
    if isinstance(node, Compare):
        return {"op": node.op, "left": to_dict(node.left), "right": to_dict(node.right)}
    if isinstance(node, Membership):
        return {"op": node.op, "left": to_dict(node.left), "items": list(node.items)}
    if isinstance(node, BoolOp):
        return {"op": node.op, "children": [to_dict(child) for child in node.children]}
    if isinstance(node, Not):
        return {"op": "not", "child": to_dict(node.child)}
    raise TypeError(f"Not an expression node: {node!r}")


def referenced_fields(node: Node) -> List[str]:
    """Field names referenced by an expression, in first-seen order."""
    seen: List[str] = []

    def _walk(current: Node) -> None:
        if isinstance(current, FieldRef):
            if current.name not in seen:
                seen.append(current.name)
        elif isinstance(current, (Compare,)):
            _walk(current.left)
            _walk(current.right)
        elif isinstance(current, Membership):
            _walk(current.left)
        elif isinstance(current, BoolOp):
            for child in current.children:
                _walk(child)
        elif isinstance(current, Not):
            _walk(current.child)

    _walk(node)
    return seen
