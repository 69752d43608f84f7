# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Boolean expressions used as decision conditions.

Grammar (lowest to highest precedence)::

    expr       := and_expr ("or" and_expr)*
    and_expr   := not_expr ("and" not_expr)*
    not_expr   := "not" not_expr | comparison
    comparison := operand (("==" | "!=" | "<" | "<=" | ">" | ">=") operand)?
    operand    := "(" expr ")" | IDENT | NUMBER | STRING | "true" | "false"

Identifiers may contain dots (``session.valid``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# ###############
# Public Interface
# ###############


class ConditionError(Exception):
    """Raised when a decision condition is not a well-formed boolean expression.

    Attributes:
        column: 0-based offset of the problem within the condition text.
    """

    def __init__(self, message: str, column: int) -> None:
        super().__init__(message)
        self.message = message
        self.column = column


@dataclass(frozen=True)
class Name:
    """An identifier. ``position`` is ``"left"`` for bare identifiers and
    left-hand comparison operands, ``"right"`` for right-hand operands."""

    identifier: str
    position: str = "left"


@dataclass(frozen=True)
class Literal:
    value: bool | int | float | str
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Not:
    operand: Expr


@dataclass(frozen=True)
class BoolOp:
    op: str
    operands: tuple[Expr, ...]


@dataclass(frozen=True)
class Compare:
    op: str
    left: Expr
    right: Expr


Expr = Name | Literal | Not | BoolOp | Compare


def parse_condition(text: str) -> Expr:
    """Parse *text* into an expression tree.

    Raises:
        ConditionError: If the text is empty or not a boolean expression. A
            number or string used where a truth value is expected is rejected.
    """
    tokens = _tokenize(text)
    if not tokens:
        raise ConditionError("Condition is empty", 0)
    parser = _ConditionParser(tokens)
    expr = parser.parse_or()
    if not parser.at_end():
        tok = parser.current()
        raise ConditionError(f"Unexpected {tok.text!r} in condition", tok.offset)
    _require_boolean(expr)
    return expr


def referenced_identifiers(expr: Expr, known: frozenset[str] | set[str]) -> list[str]:
    """Return the identifiers *expr* refers to, in first-seen order.

    A right-hand comparison operand is an enumerated literal (``status ==
    approved``) unless it is one of the *known* names.
    """
    found: list[str] = []
    _collect(expr, known, found)
    return list(dict.fromkeys(found))


# ################
# Implementation
# ################

_COMPARISON_OPS = ("==", "!=", "<=", ">=", "<", ">")
_KEYWORDS = frozenset({"and", "or", "not", "true", "false"})

_TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+)
    | (?P<op>==|!=|<=|>=|<|>)
    | (?P<paren>[()])
    | (?P<number>\d+(?:\.\d+)?)
    | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    | (?P<ident>[A-Za-z_][\w.]*)
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class _Tok:
    kind: str
    text: str
    offset: int


def _tokenize(text: str) -> list[_Tok]:
    tokens: list[_Tok] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ConditionError(f"Unexpected character {text[pos]!r} in condition", pos)
        kind = match.lastgroup or ""
        value = match.group()
        if kind == "ident" and value.lower() in _KEYWORDS:
            kind = value.lower()
            value = value.lower()
        if kind != "space":
            tokens.append(_Tok(kind, value, pos))
        pos = match.end()
    return tokens


class _ConditionParser:
    """Recursive-descent parser over condition tokens."""

    def __init__(self, tokens: list[_Tok]) -> None:
        self._tokens = tokens
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def current(self) -> _Tok:
        return self._tokens[self._pos]

    def _check(self, kind: str) -> bool:
        return not self.at_end() and self._tokens[self._pos].kind == kind

    def _end_offset(self) -> int:
        last = self._tokens[-1]
        return last.offset + len(last.text)

    def parse_or(self) -> Expr:
        operands = [self._parse_and()]
        while self._check("or"):
            self._pos += 1
            operands.append(self._parse_and())
        return operands[0] if len(operands) == 1 else BoolOp("or", tuple(operands))

    def _parse_and(self) -> Expr:
        operands = [self._parse_not()]
        while self._check("and"):
            self._pos += 1
            operands.append(self._parse_not())
        return operands[0] if len(operands) == 1 else BoolOp("and", tuple(operands))

    def _parse_not(self) -> Expr:
        if self._check("not"):
            self._pos += 1
            return Not(self._parse_not())
        return self._parse_comparison()

    def _parse_comparison(self) -> Expr:
        left = self._parse_operand("left")
        if self._check("op"):
            op = self.current().text
            self._pos += 1
            right = self._parse_operand("right")
            return Compare(op, left, right)
        return left

    def _parse_operand(self, position: str) -> Expr:
        if self.at_end():
            raise ConditionError("Condition ends unexpectedly", self._end_offset())
        tok = self.current()
        self._pos += 1
        if tok.kind == "paren" and tok.text == "(":
            expr = self.parse_or()
            if not (self._check("paren") and self.current().text == ")"):
                offset = self.current().offset if not self.at_end() else self._end_offset()
                raise ConditionError("Expected ')' in condition", offset)
            self._pos += 1
            return expr
        if tok.kind == "ident":
            return Name(tok.text, position)
        if tok.kind == "number":
            return Literal(float(tok.text) if "." in tok.text else int(tok.text), tok.offset)
        if tok.kind == "string":
            return Literal(tok.text[1:-1], tok.offset)
        if tok.kind in ("true", "false"):
            return Literal(tok.kind == "true", tok.offset)
        raise ConditionError(f"Unexpected {tok.text!r} in condition", tok.offset)


def _collect(expr: Expr, known: frozenset[str] | set[str], found: list[str]) -> None:
    if isinstance(expr, Name):
        if expr.position == "left" or expr.identifier in known:
            found.append(expr.identifier)
    elif isinstance(expr, Not):
        _collect(expr.operand, known, found)
    elif isinstance(expr, BoolOp):
        for operand in expr.operands:
            _collect(operand, known, found)
    elif isinstance(expr, Compare):
        _collect(expr.left, known, found)
        _collect(expr.right, known, found)


def _require_boolean(expr: Expr) -> None:
    """Reject number and string literals in positions that need a truth value."""
    if isinstance(expr, Literal):
        if not isinstance(expr.value, bool):
            raise ConditionError(f"Expected a boolean expression, got {expr.value!r}", expr.offset)
    elif isinstance(expr, Not):
        _require_boolean(expr.operand)
    elif isinstance(expr, BoolOp):
        for operand in expr.operands:
            _require_boolean(operand)
