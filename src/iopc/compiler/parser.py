# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Recursive-descent parser for IOP specification files.

Converts a token stream produced by the scanner into a SystemSpec semantic
model. Top-level blocks must appear in the order System, Components, Flow
(repeatable), ErrorHandling, ImplementationMap.
"""

import re
from collections.abc import Callable

from iopc.compiler.scanner import Token, TokenType, tokenize
from iopc.model.entities import (
    ActionStep,
    Component,
    DecisionStep,
    ErrorRule,
    Flow,
    ImplementationMap,
    StepNode,
    SystemSpec,
    Trigger,
    normalize_language,
)
from iopc.model.properties import ListValue, PropertyValue, StringValue, parse_scalar_property

# ###############
# Public Interface
# ###############


class ParseError(Exception):
    """Raised when the parser encounters a syntactically invalid construct.

    Attributes:
        line: 1-based line number of the error.
        column: 1-based column number of the error.
    """

    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(f"Line {line}, column {column}: {message}")
        self.message = message
        self.line = line
        self.column = column


def parse(source: str) -> SystemSpec:
    """Parse IOP source text into a semantic SystemSpec model.

    Args:
        source: The full text of an IOP specification.

    Returns:
        A SystemSpec instance representing the parsed system.

    Raises:
        LexerError: If the source has invalid indentation or unterminated literals.
        ParseError: If the source is syntactically invalid.
    """
    tokens = tokenize(source)
    return _Parser(tokens).parse()


def parse_trigger(text: str) -> Trigger:
    """Match a trigger condition structurally.

    ``on schedule(daily, 2:00 AM)`` is a schedule trigger with its arguments,
    ``on <anything>`` is an event trigger, any other text is kept as-is.
    """
    text = text.strip()
    match = _SCHEDULE_RE.fullmatch(text)
    if match:
        args = [a.strip() for a in match.group(1).split(",") if a.strip()]
        return Trigger(text=text, kind="schedule", event="schedule", arguments=args)
    match = _EVENT_RE.fullmatch(text)
    if match:
        return Trigger(text=text, kind="event", event=match.group(1).strip())
    return Trigger(text=text)


# ################
# Implementation
# ################

_TOP_LEVEL_ORDER: dict[str, int] = {
    "System": 0,
    "Components": 1,
    "Flow": 2,
    "ErrorHandling": 3,
    "ImplementationMap": 4,
}

_REPEATABLE_BLOCKS = frozenset({"Flow"})

_VALUE_TYPES = (TokenType.SCALAR, TokenType.STRING, TokenType.BLOCK)

_SCHEDULE_RE = re.compile(r"on\s+schedule\s*\((.*)\)", re.IGNORECASE)
_EVENT_RE = re.compile(r"on\s+(.+)", re.IGNORECASE)


class _Parser:
    """Recursive-descent parser for IOP token streams."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0
        self._flow_count = 0

    def parse(self) -> SystemSpec:
        """Parse the full token stream and return a SystemSpec."""
        spec: SystemSpec | None = None
        last_rank = -1
        last_block = ""
        while not self._at_end():
            tok = self._current()
            if tok.type != TokenType.KEY:
                raise self._error(f"Expected a top-level block, got {_describe(tok)}", tok)
            if tok.value not in _TOP_LEVEL_ORDER:
                raise self._error(f"Unknown top-level block {tok.value!r}", tok)
            rank = _TOP_LEVEL_ORDER[tok.value]
            if rank == last_rank and tok.value not in _REPEATABLE_BLOCKS:
                raise self._error(f"Duplicate {tok.value!r} block", tok)
            if rank < last_rank:
                raise self._error(f"{tok.value!r} block must not appear after {last_block!r}", tok)
            if spec is None and tok.value != "System":
                raise self._error("The specification must start with a 'System' block", tok)
            last_rank = rank
            last_block = tok.value

            if tok.value == "System":
                spec = self._parse_system()
            else:
                assert spec is not None
                self._parse_top_level(tok.value, spec)

        if spec is None:
            tok = self._current()
            raise self._error("The specification must start with a 'System' block", tok)
        return spec

    # ------------------------------------------------------------------
    # Token access helpers
    # ------------------------------------------------------------------

    def _current(self) -> Token:
        """Return the current (un-consumed) token."""
        return self._tokens[self._pos]

    def _peek_type(self) -> TokenType:
        """Return the token type of the current token."""
        return self._tokens[self._pos].type

    def _at_end(self) -> bool:
        """Return True if the current token is the EOF token."""
        return self._peek_type() == TokenType.EOF

    def _advance(self) -> Token:
        """Consume and return the current token, stopping at EOF."""
        tok = self._tokens[self._pos]
        if self._pos < len(self._tokens) - 1:
            self._pos += 1
        return tok

    def _expect(self, *types: TokenType) -> Token:
        """Consume the current token if it matches any of the given types.

        Raises ParseError if the current token does not match.
        """
        tok = self._current()
        if tok.type not in types:
            expected = " or ".join(_TYPE_NAMES.get(t, t.value) for t in types)
            raise self._error(f"Expected {expected}, got {_describe(tok)}", tok)
        return self._advance()

    def _check(self, *types: TokenType) -> bool:
        """Return True if the current token matches any of the given types (without
        consuming).
        """
        return self._peek_type() in types

    def _error(self, message: str, tok: Token) -> ParseError:
        return ParseError(message, tok.line, tok.column)

    # ------------------------------------------------------------------
    # Generic block structure
    # ------------------------------------------------------------------

    def _parse_entries(
        self, context: str, handlers: dict[str, Callable[[Token], None]], *, close: bool = True
    ) -> None:
        """Parse ``key: ...`` entries of one indentation level until its DEDENT.

        The caller has already consumed the opening INDENT. The closing DEDENT
        is consumed here unless *close* is False. Duplicate keys are rejected.
        """
        seen: set[str] = set()
        while not self._check(TokenType.DEDENT, TokenType.EOF):
            tok = self._expect(TokenType.KEY)
            handler = handlers.get(tok.value)
            if handler is None:
                raise self._error(f"Unknown key {tok.value!r} in {context}", tok)
            if tok.value in seen:
                raise self._error(f"Duplicate key {tok.value!r} in {context}", tok)
            seen.add(tok.value)
            handler(tok)
        if close and self._check(TokenType.DEDENT):
            self._advance()

    def _open_nested_block(self) -> bool:
        """Consume the NEWLINE after a bare key and an INDENT if one follows.

        Returns True if a nested block was opened.
        """
        self._expect(TokenType.NEWLINE)
        if self._check(TokenType.INDENT):
            self._advance()
            return True
        return False

    def _parse_text_value(self, key_tok: Token, *, required: bool = True) -> str:
        """Parse the scalar, quoted or block value that follows a key."""
        if self._check(*_VALUE_TYPES):
            value = self._advance().value
            self._expect(TokenType.NEWLINE)
            return value
        if required:
            tok = self._current()
            raise self._error(f"Expected a value for {key_tok.value!r}, got {_describe(tok)}", tok)
        self._expect(TokenType.NEWLINE)
        return ""

    def _parse_list(self, parse_item: Callable[[Token], None]) -> None:
        """Parse a dash list that follows a bare key.

        The list may be indented below the key or aligned with it. Each item is
        handed to *parse_item* positioned on the first token of the item content,
        which must consume everything up to the DEDENT that closes the item.
        """
        self._expect(TokenType.NEWLINE)
        nested = self._check(TokenType.INDENT)
        if nested:
            self._advance()
        while self._check(TokenType.DASH):
            dash = self._advance()
            if self._check(TokenType.NEWLINE):
                self._advance()
                if not self._check(TokenType.INDENT):
                    raise self._error("Empty list item", dash)
            self._expect(TokenType.INDENT)
            parse_item(dash)
            self._expect(TokenType.DEDENT)
        if nested:
            if not self._check(TokenType.DEDENT, TokenType.EOF):
                tok = self._current()
                raise self._error(f"Expected a list item starting with '-', got {_describe(tok)}", tok)
            if self._check(TokenType.DEDENT):
                self._advance()

    def _parse_name_list(self, key_tok: Token) -> list[str]:
        """Parse a port list: ``[a, b]``, ``a, b`` or a nested dash list."""
        if self._check(TokenType.LBRACKET):
            return self._parse_inline_list()
        if self._check(TokenType.SCALAR, TokenType.STRING):
            value = self._advance().value
            self._expect(TokenType.NEWLINE)
            return [part.strip() for part in value.split(",") if part.strip()]
        names: list[str] = []

        def _item(_dash: Token) -> None:
            tok = self._expect(TokenType.SCALAR, TokenType.STRING)
            self._expect(TokenType.NEWLINE)
            names.append(tok.value)

        self._parse_list(_item)
        return names

    def _parse_inline_list(self) -> list[str]:
        """Parse: [ item (, item)* ] NEWLINE"""
        self._expect(TokenType.LBRACKET)
        items: list[str] = []
        if not self._check(TokenType.RBRACKET):
            items.append(self._expect(TokenType.SCALAR, TokenType.STRING).value)
            while self._check(TokenType.COMMA):
                self._advance()
                items.append(self._expect(TokenType.SCALAR, TokenType.STRING).value)
        self._expect(TokenType.RBRACKET)
        self._expect(TokenType.NEWLINE)
        return items

    def _parse_properties(self, key_tok: Token, target: dict[str, PropertyValue]) -> None:
        """Parse: properties: NEWLINE INDENT (key: value NEWLINE)* DEDENT"""
        if not self._open_nested_block():
            return
        while not self._check(TokenType.DEDENT, TokenType.EOF):
            tok = self._expect(TokenType.KEY)
            if tok.value in target:
                raise self._error(f"Duplicate property {tok.value!r}", tok)
            target[tok.value] = self._parse_property_value(tok)
        if self._check(TokenType.DEDENT):
            self._advance()

    def _parse_property_value(self, key_tok: Token) -> PropertyValue:
        if self._check(TokenType.LBRACKET):
            return ListValue(items=self._parse_inline_list())
        tok = self._current()
        if tok.type == TokenType.SCALAR:
            self._advance()
            self._expect(TokenType.NEWLINE)
            return parse_scalar_property(tok.value)
        if tok.type in (TokenType.STRING, TokenType.BLOCK):
            self._advance()
            self._expect(TokenType.NEWLINE)
            return StringValue(value=tok.value)
        raise self._error(f"Expected a value for property {key_tok.value!r}, got {_describe(tok)}", tok)

    # ------------------------------------------------------------------
    # Top-level blocks
    # ------------------------------------------------------------------

    def _parse_top_level(self, block: str, spec: SystemSpec) -> None:
        """Parse one top-level block after System and attach it to *spec*."""
        if block == "Components":
            self._advance()
            self._parse_list(lambda dash: spec.components.append(self._parse_component(dash)))
        elif block == "Flow":
            spec.flows.append(self._parse_flow())
        elif block == "ErrorHandling":
            self._advance()
            self._parse_list(lambda dash: spec.error_rules.append(self._parse_error_rule(dash)))
        else:
            self._advance()
            self._parse_list(lambda dash: spec.implementation_maps.append(self._parse_implementation_map(dash)))

    def _parse_system(self) -> SystemSpec:
        """Parse: System: <Name> [INDENT description | properties DEDENT]"""
        key_tok = self._expect(TokenType.KEY)
        name = self._parse_text_value(key_tok).strip()
        spec = SystemSpec(name=name, line=key_tok.line)
        if self._check(TokenType.INDENT):
            self._advance()
            self._parse_entries(
                "System block",
                {
                    "description": lambda tok: setattr(spec, "description", _clean(self._parse_text_value(tok))),
                    "properties": lambda tok: self._parse_properties(tok, spec.properties),
                },
            )
        return spec

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def _parse_component(self, dash: Token) -> Component:
        """Parse: - <Name>: NEWLINE INDENT attribute* DEDENT"""
        name_tok = self._expect(TokenType.KEY)
        comp = Component(name=name_tok.value, line=name_tok.line)
        if not self._open_nested_block():
            return comp

        def _set_text(attr: str) -> Callable[[Token], None]:
            return lambda tok: setattr(comp, attr, _clean(self._parse_text_value(tok)))

        self._parse_entries(
            f"component {comp.name!r}",
            {
                "type": _set_text("type"),
                "description": _set_text("description"),
                "action": _set_text("action"),
                "inputs": lambda tok: setattr(comp, "inputs", self._parse_name_list(tok)),
                "outputs": lambda tok: setattr(comp, "outputs", self._parse_name_list(tok)),
                "properties": lambda tok: self._parse_properties(tok, comp.properties),
            },
        )
        return comp

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def _parse_flow(self) -> Flow:
        """Parse: Flow: [<Name>] NEWLINE INDENT trigger steps DEDENT"""
        key_tok = self._expect(TokenType.KEY)
        self._flow_count += 1
        name = _clean(self._parse_text_value(key_tok, required=False)) or f"flow{self._flow_count}"
        trigger_text: str | None = None
        steps: list[StepNode] = []

        def _trigger(tok: Token) -> None:
            nonlocal trigger_text
            trigger_text = _clean(self._parse_text_value(tok))

        def _steps(tok: Token) -> None:
            steps.extend(self._parse_steps(tok))

        if not self._check(TokenType.INDENT):
            raise self._error(f"Flow {name!r} requires a 'trigger' and 'steps'", key_tok)
        self._advance()
        self._parse_entries(f"flow {name!r}", {"trigger": _trigger, "steps": _steps})
        if not trigger_text:
            raise self._error(f"Flow {name!r} is missing its 'trigger'", key_tok)
        return Flow(name=name, trigger=parse_trigger(trigger_text), steps=steps, line=key_tok.line)

    def _parse_steps(self, key_tok: Token) -> list[StepNode]:
        """Parse a dash list of flow steps."""
        steps: list[StepNode] = []
        self._parse_list(lambda dash: steps.append(self._parse_step(dash)))
        return steps

    def _parse_step(self, dash: Token) -> StepNode:
        """Parse one step: an action ``<Component>: <verb>`` or a ``decision`` block."""
        tok = self._current()
        if tok.type in (TokenType.SCALAR, TokenType.STRING):
            self._advance()
            self._expect(TokenType.NEWLINE)
            return ActionStep(component=tok.value, line=tok.line)
        key_tok = self._expect(TokenType.KEY)
        if key_tok.value == "decision":
            return self._parse_decision(key_tok)
        verb = _clean(self._parse_text_value(key_tok, required=False))
        if self._check(TokenType.INDENT):
            raise self._error(f"Action step {key_tok.value!r} cannot have a nested block", self._current())
        return ActionStep(component=key_tok.value, verb=verb, line=key_tok.line)

    def _parse_decision(self, key_tok: Token) -> DecisionStep:
        """Parse a decision block.

        Either form is accepted::

            - decision:                 - decision: <condition>
                if: <condition>             then: ...
                then: ...                   else: ...
                else: ...
        """
        condition: str | None = None
        condition_tok = key_tok
        then_branch: list[StepNode] | None = None
        else_branch: list[StepNode] = []

        if self._check(*_VALUE_TYPES):
            condition_tok = self._current()
            condition = _clean(self._parse_text_value(key_tok))
        else:
            self._expect(TokenType.NEWLINE)
        if not self._check(TokenType.INDENT):
            raise self._error("Decision requires a 'then' branch", key_tok)
        self._advance()

        def _if(tok: Token) -> None:
            nonlocal condition, condition_tok
            if condition is not None:
                raise self._error("Decision condition is given twice", tok)
            condition_tok = self._current()
            condition = _clean(self._parse_text_value(tok))

        def _then(tok: Token) -> None:
            nonlocal then_branch
            if not self._next_is_list():
                raise self._error("Decision 'then' branch has no body", tok)
            then_branch = self._parse_steps(tok)

        def _else(tok: Token) -> None:
            if self._next_is_list():
                else_branch.extend(self._parse_steps(tok))
            else:
                self._expect(TokenType.NEWLINE)

        self._parse_entries("decision", {"if": _if, "then": _then, "else": _else})
        if not condition:
            raise self._error("Decision requires an 'if' condition", key_tok)
        if not then_branch:
            raise self._error("Decision 'then' branch has no body", key_tok)
        return DecisionStep(
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
            line=condition_tok.line,
            condition_column=condition_tok.column,
        )

    def _next_is_list(self) -> bool:
        """Return True if a bare key is followed by a dash list."""
        if not self._check(TokenType.NEWLINE):
            return False
        following = self._tokens[self._pos + 1]
        if following.type == TokenType.DASH:
            return True
        return following.type == TokenType.INDENT and self._tokens[self._pos + 2].type == TokenType.DASH

    # ------------------------------------------------------------------
    # ErrorHandling and ImplementationMap
    # ------------------------------------------------------------------

    def _parse_error_rule(self, dash: Token) -> ErrorRule:
        """Parse: - <Condition>: <resolution action>"""
        key_tok = self._expect(TokenType.KEY)
        action = _clean(self._parse_text_value(key_tok))
        return ErrorRule(condition=key_tok.value, action=action, line=key_tok.line)

    def _parse_implementation_map(self, dash: Token) -> ImplementationMap:
        """Parse an item with ComponentType, TargetLanguage and ImplementationPattern."""
        values: dict[str, str] = {}
        line = self._current().line

        def _store(tok: Token) -> None:
            values[tok.value] = self._parse_text_value(tok)

        self._parse_entries(
            "ImplementationMap entry",
            {"ComponentType": _store, "TargetLanguage": _store, "ImplementationPattern": _store},
            close=False,
        )
        for required in ("ComponentType", "TargetLanguage", "ImplementationPattern"):
            if not values.get(required, "").strip():
                raise ParseError(f"ImplementationMap entry is missing {required!r}", line, dash.column)
        return ImplementationMap(
            component_type=values["ComponentType"].strip(),
            target_language=normalize_language(values["TargetLanguage"]),
            template=values["ImplementationPattern"],
            line=line,
        )


_TYPE_NAMES: dict[TokenType, str] = {
    TokenType.INDENT: "an indented block",
    TokenType.DEDENT: "end of block",
    TokenType.NEWLINE: "end of line",
    TokenType.KEY: "a key",
    TokenType.SCALAR: "a value",
    TokenType.STRING: "a string",
    TokenType.BLOCK: "a block string",
    TokenType.DASH: "'-'",
    TokenType.EOF: "end of file",
}


def _describe(tok: Token) -> str:
    if tok.type == TokenType.KEY:
        return f"key {tok.value!r}"
    if tok.type in (TokenType.SCALAR, TokenType.STRING):
        return repr(tok.value)
    return _TYPE_NAMES.get(tok.type, repr(tok.value))


def _clean(text: str) -> str:
    return text.strip()
