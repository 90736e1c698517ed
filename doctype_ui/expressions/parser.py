"""Tokenizer and recursive-descent parser for dependency expressions.

Accepted forms cover what desk schemas put in ``depends_on`` style
properties: ``eval:doc.status == 'Closed' && doc.qty > 0``, plain field names
(``customer``), ``in`` / ``not in`` over literal lists, and/or/not, and
parentheses. Anything else (calls, indexing, arithmetic, attribute access
beyond the ``doc.`` prefix) is rejected.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Optional

from doctype_ui.core.errors import ExpressionParseError
from doctype_ui.expressions.nodes import (
    BoolOp,
    Compare,
    FieldRef,
    Literal,
    Membership,
    Node,
    Not,
)

MAX_DEPTH = 32
MAX_LENGTH = 2000

_COMPARATORS = {
    "==": "eq",
    "===": "eq",
    "!=": "neq",
    "!==": "neq",
    "<": "lt",
    "<=": "lte",
    ">": "gt",
    ">=": "gte",
}

_KEYWORD_LITERALS = {
    "true": True,
    "True": True,
    "false": False,
    "False": False,
    "null": None,
    "None": None,
}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)
  | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!()\[\],.])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}


@dataclass(frozen=True)
class Token:
    kind: str
    value: Any
    pos: int


def _unescape(raw: str) -> str:
    body = raw[1:-1]
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ExpressionParseError(f"Unexpected character {text[pos]!r}", text, pos)
        kind = match.lastgroup
        raw = match.group(kind)
        if kind == "number":
            value: Any = float(raw) if any(c in raw for c in ".eE") else int(raw)
            tokens.append(Token("literal", value, pos))
        elif kind == "string":
            tokens.append(Token("literal", _unescape(raw), pos))
        elif kind == "name":
            if raw in _KEYWORD_LITERALS:
                tokens.append(Token("literal", _KEYWORD_LITERALS[raw], pos))
            elif raw in ("and", "or", "not", "in"):
                tokens.append(Token(raw, raw, pos))
            else:
                tokens.append(Token("name", raw, pos))
        elif kind == "op":
            if raw == "&&":
                tokens.append(Token("and", raw, pos))
            elif raw == "||":
                tokens.append(Token("or", raw, pos))
            elif raw == "!":
                tokens.append(Token("not", raw, pos))
            else:
                tokens.append(Token(raw, raw, pos))
        pos = match.end()
    tokens.append(Token("end", None, len(text)))
    return tokens


class _Parser:
    def __init__(self, text: str, tokens: List[Token]) -> None:
        self.text = text
        self.tokens = tokens
        self.index = 0
        self.depth = 0

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _error(self, message: str, token: Optional[Token] = None) -> ExpressionParseError:
        token = token or self._peek()
        return ExpressionParseError(message, self.text, token.pos)

    def _expect(self, kind: str) -> Token:
        token = self._peek()
        if token.kind != kind:
            found = "end of expression" if token.kind == "end" else repr(token.value)
            raise self._error(f"Expected {kind!r}, found {found}", token)
        return self._advance()

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise self._error("Expression nested too deeply")

    def parse(self) -> Node:
        node = self._or()
        token = self._peek()
        if token.kind != "end":
            raise self._error(f"Unexpected token {token.value!r}", token)
        return node

    def _or(self) -> Node:
        children = [self._and()]
        while self._peek().kind == "or":
            self._advance()
            children.append(self._and())
        return children[0] if len(children) == 1 else BoolOp("or", tuple(children))

    def _and(self) -> Node:
        children = [self._not()]
        while self._peek().kind == "and":
            self._advance()
            children.append(self._not())
        return children[0] if len(children) == 1 else BoolOp("and", tuple(children))

    def _not(self) -> Node:
        if self._peek().kind == "not":
            self._advance()
            self._enter()
            child = self._not()
            self.depth -= 1
            return Not(child)
        return self._comparison()

    def _comparison(self) -> Node:
        left = self._operand()
        token = self._peek()
        if token.kind in _COMPARATORS:
            self._advance()
            right = self._operand()
            return Compare(_COMPARATORS[token.kind], left, right)
        if token.kind == "in":
            self._advance()
            return Membership("in", left, self._list())
        if token.kind == "not" and self.tokens[self.index + 1].kind == "in":
            self._advance()
            self._advance()
            return Membership("not_in", left, self._list())
        return left

    def _operand(self) -> Node:
        token = self._peek()
        if token.kind == "literal":
            self._advance()
            return Literal(token.value)
        if token.kind == "name":
            return self._field_ref()
        if token.kind == "(":
            self._advance()
            self._enter()
            node = self._or()
            self.depth -= 1
            self._expect(")")
            return node
        if token.kind == "end":
            raise self._error("Unexpected end of expression", token)
        raise self._error(f"Unexpected token {token.value!r}", token)

    def _field_ref(self) -> Node:
        token = self._advance()
        name = token.value
        if name == "doc" and self._peek().kind == ".":
            self._advance()
            name = self._expect("name").value
        nxt = self._peek()
        if nxt.kind == ".":
            raise self._error("Attribute access is not allowed", nxt)
        if nxt.kind == "(":
            raise self._error("Function calls are not allowed", nxt)
        if nxt.kind == "[":
            raise self._error("Indexing is not allowed", nxt)
        return FieldRef(name)

    def _list(self) -> tuple:
        self._expect("[")
        items = []
        while self._peek().kind != "]":
            token = self._peek()
            if token.kind != "literal":
                raise self._error("Membership lists may only contain literals", token)
            items.append(self._advance().value)
            if self._peek().kind == ",":
                self._advance()
            elif self._peek().kind != "]":
                raise self._error("Expected ',' or ']'")
        self._expect("]")
        return tuple(items)


def normalize(expression: str) -> str:
    """Strip surrounding whitespace and the desk ``eval:`` prefix."""
    text = (expression or "").strip()
    if text.startswith("eval:"):
        text = text[len("eval:"):].strip()
    return text


def parse(expression: str) -> Node:
    if not isinstance(expression, str):
        raise ExpressionParseError("Expression must be a string", repr(expression), 0)
    text = normalize(expression)
    if not text:
        raise ExpressionParseError("Empty expression", expression, 0)
    if len(text) > MAX_LENGTH:
        raise ExpressionParseError("Expression too long", text[:40] + "...", MAX_LENGTH)
    return _Parser(text, tokenize(text)).parse()


def validate(expression: str) -> Optional[str]:
    """Return the parse error message, or None when the expression is valid."""
    try:
        parse(expression)
    except ExpressionParseError as e:
        return str(e)
    return None
