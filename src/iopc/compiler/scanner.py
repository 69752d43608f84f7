# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexical scanner for IOP specification files.

Converts raw source text into a sequence of tokens for subsequent parsing.
The IOP format is indentation-scoped: nesting is expressed by INDENT and
DEDENT tokens rather than braces. A list item dash opens an implicit
indentation level at the column of the item content, so that keys aligned
with the first key of an item belong to the same item::

    - ComponentType: Validator      DASH INDENT KEY SCALAR NEWLINE
      TargetLanguage: Python        KEY SCALAR NEWLINE
"""

import enum
import re
from dataclasses import dataclass

# ###############
# Public Interface
# ###############


class TokenType(enum.Enum):
    """All token types produced by the IOP scanner."""

    # Structure
    INDENT = "INDENT"
    DEDENT = "DEDENT"
    NEWLINE = "NEWLINE"
    DASH = "-"

    # Mapping keys (the trailing colon is consumed with the key)
    KEY = "KEY"

    # Inline lists
    LBRACKET = "["
    RBRACKET = "]"
    COMMA = ","

    # Values
    SCALAR = "SCALAR"
    STRING = "STRING"
    BLOCK = "BLOCK"

    # End of file
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    """A lexical token with its source location.

    Attributes:
        type: The kind of token.
        value: The raw text of the token (decoded content for STRING and BLOCK
            tokens, the key name without its colon for KEY tokens).
        line: 1-based line number where the token starts.
        column: 1-based column number where the token starts.
    """

    type: TokenType
    value: str
    line: int
    column: int


class LexerError(Exception):
    """Raised when the scanner encounters invalid indentation or an unterminated literal.

    Attributes:
        line: 1-based line number of the error.
        column: 1-based column number of the error.
    """

    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(f"Line {line}, column {column}: {message}")
        self.message = message
        self.line = line
        self.column = column


def tokenize(source: str) -> list[Token]:
    """Tokenize IOP source text into a sequence of tokens.

    Returns a list of tokens. The final token is always an EOF token, preceded
    by the DEDENT tokens that close every open indentation level. Comments and
    blank lines are consumed and not included in the output.

    Args:
        source: The full text of an IOP specification.

    Returns:
        A list of Token objects ending with a single EOF token.

    Raises:
        LexerError: On tab indentation, inconsistent dedents, unterminated
            string literals or malformed inline lists.
    """
    return _Scanner(source).tokenize()


# ################
# Implementation
# ################

_KEY_RE = re.compile(r"([A-Za-z_][\w .\-]*?)[ \t]*:(?=\s|$)")
_BLOCK_MARKERS = ("|", ">")


class _Scanner:
    """Internal line-oriented scanner state."""

    def __init__(self, source: str) -> None:
        self._lines = source.splitlines()
        self._index = 0
        self._indents: list[int] = [0]
        self._tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        """Run the scanner and return all tokens including the terminal EOF."""
        while self._index < len(self._lines):
            raw = self._lines[self._index]
            line_no = self._index + 1
            self._index += 1
            if _is_blank_or_comment(raw):
                continue
            indent = self._measure_indent(raw, line_no)
            self._apply_indent(indent, line_no)
            self._scan_line_content(raw, indent, line_no)
            self._emit(TokenType.NEWLINE, "", line_no, len(raw) + 1)
        end_line = len(self._lines) + 1
        while len(self._indents) > 1:
            self._indents.pop()
            self._emit(TokenType.DEDENT, "", end_line, 1)
        self._emit(TokenType.EOF, "", end_line, 1)
        return self._tokens

    # ------------------------------------------------------------------
    # Indentation tracking
    # ------------------------------------------------------------------

    def _measure_indent(self, raw: str, line_no: int) -> int:
        """Return the number of leading spaces, rejecting tab indentation."""
        count = 0
        for ch in raw:
            if ch == " ":
                count += 1
            elif ch == "\t":
                raise LexerError("Tabs are not allowed in indentation", line_no, count + 1)
            else:
                break
        return count

    def _apply_indent(self, indent: int, line_no: int) -> None:
        """Emit INDENT or DEDENT tokens to move to *indent*."""
        if indent > self._indents[-1]:
            self._indents.append(indent)
            self._emit(TokenType.INDENT, "", line_no, 1)
            return
        while indent < self._indents[-1]:
            self._indents.pop()
            self._emit(TokenType.DEDENT, "", line_no, 1)
        if indent != self._indents[-1]:
            raise LexerError(
                f"Inconsistent dedent: column {indent + 1} does not match any enclosing block",
                line_no,
                indent + 1,
            )

    # ------------------------------------------------------------------
    # Line content
    # ------------------------------------------------------------------

    def _scan_line_content(self, raw: str, start: int, line_no: int) -> None:
        """Scan dashes, a key and/or a value starting at column *start*."""
        pos = start
        while raw.startswith("-", pos) and (pos + 1 == len(raw) or raw[pos + 1] == " "):
            self._emit(TokenType.DASH, "-", line_no, pos + 1)
            pos += 1
            while pos < len(raw) and raw[pos] == " ":
                pos += 1
            if pos >= len(raw) or _starts_comment(raw, pos):
                return
            # Item content opens its own indentation level.
            self._indents.append(pos)
            self._emit(TokenType.INDENT, "", line_no, pos + 1)

        match = _KEY_RE.match(raw, pos)
        if match:
            self._emit(TokenType.KEY, match.group(1).strip(), line_no, pos + 1)
            pos = match.end()
            while pos < len(raw) and raw[pos] in " \t":
                pos += 1
            if pos >= len(raw) or _starts_comment(raw, pos):
                return
        self._scan_value(raw, pos, line_no)

    def _scan_value(self, raw: str, pos: int, line_no: int) -> None:
        """Scan the value part of a line beginning at *pos*."""
        ch = raw[pos]
        if ch == '"':
            end = self._scan_string(raw, pos, line_no)
            self._expect_line_end(raw, end, line_no)
        elif ch == "[":
            self._scan_inline_list(raw, pos, line_no)
        elif ch in _BLOCK_MARKERS and _strip_comment(raw[pos + 1 :]).strip() == "":
            self._scan_block(ch, line_no, pos + 1)
        else:
            text = _strip_comment(raw[pos:]).rstrip()
            self._emit(TokenType.SCALAR, text, line_no, pos + 1)

    def _scan_string(self, raw: str, pos: int, line_no: int) -> int:
        """Scan a double-quoted string literal and return the position after it."""
        col = pos + 1
        pos += 1  # opening "
        chars: list[str] = []
        while pos < len(raw):
            ch = raw[pos]
            if ch == '"':
                self._emit(TokenType.STRING, "".join(chars), line_no, col)
                return pos + 1
            if ch == "\\":
                pos += 1
                if pos >= len(raw):
                    break
                esc = raw[pos]
                if esc == "n":
                    chars.append("\n")
                elif esc == "t":
                    chars.append("\t")
                elif esc == "\\":
                    chars.append("\\")
                elif esc == '"':
                    chars.append('"')
                else:
                    raise LexerError(f"Invalid escape sequence: '\\{esc}'", line_no, pos + 1)
            else:
                chars.append(ch)
            pos += 1
        raise LexerError("Unterminated string literal", line_no, col)

    def _scan_inline_list(self, raw: str, pos: int, line_no: int) -> None:
        """Scan ``[item, item, ...]`` where items are bare words or quoted strings."""
        self._emit(TokenType.LBRACKET, "[", line_no, pos + 1)
        pos += 1
        expect_item = True
        while True:
            while pos < len(raw) and raw[pos] == " ":
                pos += 1
            if pos >= len(raw):
                raise LexerError("Unterminated inline list, expected ']'", line_no, pos + 1)
            ch = raw[pos]
            if ch == "]":
                self._emit(TokenType.RBRACKET, "]", line_no, pos + 1)
                self._expect_line_end(raw, pos + 1, line_no)
                return
            if ch == ",":
                if expect_item:
                    raise LexerError("Empty item in inline list", line_no, pos + 1)
                self._emit(TokenType.COMMA, ",", line_no, pos + 1)
                pos += 1
                expect_item = True
                continue
            if not expect_item:
                raise LexerError("Expected ',' or ']' in inline list", line_no, pos + 1)
            if ch == '"':
                pos = self._scan_string(raw, pos, line_no)
            else:
                start = pos
                while pos < len(raw) and raw[pos] not in ",]":
                    pos += 1
                self._emit(TokenType.SCALAR, raw[start:pos].strip(), line_no, start + 1)
            expect_item = False

    def _scan_block(self, marker: str, line_no: int, col: int) -> None:
        """Consume the indented lines following a block marker into one BLOCK token.

        ``|`` keeps line breaks; ``>`` folds lines into a single paragraph per
        run of non-blank lines. Both keep exactly one trailing newline.
        """
        parent = self._indents[-1]
        collected: list[str] = []
        block_indent: int | None = None
        while self._index < len(self._lines):
            raw = self._lines[self._index]
            if raw.strip() == "":
                collected.append("")
                self._index += 1
                continue
            indent = len(raw) - len(raw.lstrip(" "))
            if block_indent is None:
                if indent <= parent:
                    break
                if raw[indent] == "\t":
                    raise LexerError("Tabs are not allowed in indentation", self._index + 1, indent + 1)
                block_indent = indent
            elif indent < block_indent:
                if raw[indent] == "\t":
                    raise LexerError("Tabs are not allowed in indentation", self._index + 1, indent + 1)
                break
            collected.append(raw[block_indent:])
            self._index += 1

        while collected and collected[-1] == "":
            collected.pop()
        if marker == "|":
            text = "\n".join(collected)
        else:
            text = _fold(collected)
        self._emit(TokenType.BLOCK, text + "\n" if text else "", line_no, col)

    def _expect_line_end(self, raw: str, pos: int, line_no: int) -> None:
        """Ensure that only whitespace or a comment follows position *pos*."""
        rest = raw[pos:]
        if _strip_comment(rest).strip():
            raise LexerError(f"Unexpected text after value: {rest.strip()!r}", line_no, pos + 1)

    def _emit(self, token_type: TokenType, value: str, line: int, column: int) -> None:
        self._tokens.append(Token(token_type, value, line, column))


def _is_blank_or_comment(raw: str) -> bool:
    stripped = raw.strip()
    return not stripped or stripped.startswith("#")


def _starts_comment(raw: str, pos: int) -> bool:
    return raw[pos] == "#"


def _strip_comment(text: str) -> str:
    """Remove a trailing ``#`` comment that is preceded by whitespace."""
    for i, ch in enumerate(text):
        if ch == "#" and (i == 0 or text[i - 1] in " \t"):
            return text[:i]
    return text


def _fold(lines: list[str]) -> str:
    paragraphs: list[str] = []
    current: list[str] = []
    for line in lines:
        if line == "":
            if current:
                paragraphs.append(" ".join(current))
                current = []
        else:
            current.append(line.strip())
    if current:
        paragraphs.append(" ".join(current))
    return "\n".join(paragraphs)
