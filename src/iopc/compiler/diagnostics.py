# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Structured diagnostics shared by every compiler stage.

Parse failures, validation findings and isolated generation failures are all
reported as :class:`Diagnostic` entries so that a caller always receives one
complete, ordered list regardless of the stage that produced them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

# ###############
# Public Interface
# ###############


class Severity(enum.Enum):
    """Severity of a diagnostic. Only errors block later stages."""

    ERROR = "error"
    WARNING = "warning"


class DiagnosticCode(enum.Enum):
    """The diagnostic taxonomy."""

    SYNTAX_ERROR = "SyntaxError"
    UNRESOLVED_REFERENCE = "UnresolvedReferenceError"
    DUPLICATE_DEFINITION = "DuplicateDefinitionError"
    CYCLIC_DEPENDENCY = "CyclicDependencyError"
    UNKNOWN_IMPLEMENTATION_MAP = "UnknownImplementationMapError"
    UNBOUND_PLACEHOLDER = "UnboundPlaceholderError"
    INVALID_CONDITION = "InvalidConditionError"
    INVALID_PROPERTY = "InvalidPropertyError"
    ARTIFACT_WRITE = "ArtifactWriteError"


@dataclass(frozen=True)
class Diagnostic:
    """A single error or warning.

    Attributes:
        code: Category of the diagnostic.
        severity: Whether the diagnostic blocks later stages.
        message: Human-readable description.
        name: The offending name (component, input, condition key, ...).
        kind: Sub-category, e.g. ``"input"`` or ``"condition-identifier"``.
        line: 1-based source line, when known.
        column: 1-based source column, when known.
        path: Ordered names associated with the diagnostic, e.g. the cycle
            path or the lines of every duplicate occurrence.
    """

    code: DiagnosticCode
    severity: Severity
    message: str
    name: str | None = None
    kind: str | None = None
    line: int | None = None
    column: int | None = None
    path: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "code": self.code.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.name is not None:
            d["name"] = self.name
        if self.kind is not None:
            d["kind"] = self.kind
        if self.line is not None:
            d["line"] = self.line
        if self.column is not None:
            d["column"] = self.column
        if self.path:
            d["path"] = list(self.path)
        return d

    def format(self) -> str:
        """Return a one-line rendering such as ``line 4: [Code] message``."""
        location = f"line {self.line}: " if self.line else ""
        return f"{location}[{self.code.value}] {self.message}"


def error(code: DiagnosticCode, message: str, **kwargs: Any) -> Diagnostic:
    """Build an error-severity diagnostic."""
    return Diagnostic(code=code, severity=Severity.ERROR, message=message, **kwargs)


def warning(code: DiagnosticCode, message: str, **kwargs: Any) -> Diagnostic:
    """Build a warning-severity diagnostic."""
    return Diagnostic(code=code, severity=Severity.WARNING, message=message, **kwargs)


def has_errors(diagnostics: list[Diagnostic]) -> bool:
    """Return True if any diagnostic has error severity."""
    return any(d.is_error for d in diagnostics)
