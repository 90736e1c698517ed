"""Sandboxed dependency expression parser and evaluator."""
from doctype_ui.expressions.evaluator import EMPTY, evaluate
from doctype_ui.expressions.nodes import Node, referenced_fields, to_dict
from doctype_ui.expressions.parser import normalize, parse, validate

__all__ = [
    "EMPTY",
    "Node",
    "evaluate",
    "normalize",
    "parse",
    "referenced_fields",
    "to_dict",
    "validate",
]
