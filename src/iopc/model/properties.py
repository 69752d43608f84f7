# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Property value representations for the IOP semantic model."""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel
from pydantic import Field as _Field

# ###############
# Public Interface
# ###############


class PropertyKind(Enum):
    """The closed set of property value kinds."""

    SCALAR = "scalar"
    STRING = "string"
    DURATION = "duration"
    TOKEN = "token"
    LIST = "list"


class ScalarValue(BaseModel):
    """A numeric or boolean property value."""

    kind: Literal["scalar"] = "scalar"
    value: bool | int | float

    def render(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


class StringValue(BaseModel):
    """A quoted free-text property value."""

    kind: Literal["string"] = "string"
    value: str

    def render(self) -> str:
        return self.value


class DurationValue(BaseModel):
    """A duration such as ``5s`` or ``250ms``, kept with its value in seconds."""

    kind: Literal["duration"] = "duration"
    text: str
    seconds: float

    def render(self) -> str:
        return self.text


class TokenValue(BaseModel):
    """A bare enumerated word such as ``high`` or ``daily``."""

    kind: Literal["token"] = "token"
    value: str

    def render(self) -> str:
        return self.value


class ListValue(BaseModel):
    """An inline list of tokens, e.g. ``[username, password]``."""

    kind: Literal["list"] = "list"
    items: list[str] = _Field(default_factory=list)

    def render(self) -> str:
        return ", ".join(self.items)


# A property value, one of the closed set of variants.
# The `kind` discriminator field enables fast, unambiguous deserialization.
PropertyValue = Annotated[
    ScalarValue | StringValue | DurationValue | TokenValue | ListValue,
    _Field(discriminator="kind"),
]


def property_kind(value: PropertyValue) -> PropertyKind:
    """Return the :class:`PropertyKind` of a property value."""
    return PropertyKind(value.kind)


def parse_scalar_property(text: str) -> PropertyValue:
    """Classify an unquoted property text into its variant.

    ``true``/``false`` and numbers become :class:`ScalarValue`, a number with
    a time unit suffix becomes :class:`DurationValue`, anything else is a
    :class:`TokenValue`.
    """
    if text in ("true", "false"):
        return ScalarValue(value=text == "true")
    if _INT_RE.fullmatch(text):
        return ScalarValue(value=int(text))
    if _FLOAT_RE.fullmatch(text):
        return ScalarValue(value=float(text))
    match = _DURATION_RE.fullmatch(text)
    if match:
        amount = float(match.group(1))
        return DurationValue(text=text, seconds=amount * _DURATION_UNITS[match.group(2)])
    return TokenValue(value=text)


# ################
# Implementation
# ################

_INT_RE = re.compile(r"-?\d+")
_FLOAT_RE = re.compile(r"-?\d+\.\d+")
_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)")

_DURATION_UNITS: dict[str, float] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}
