# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Immutable lookup table from error condition to resolution action."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from iopc.model.entities import SystemSpec

# ###############
# Public Interface
# ###############


class ErrorTable(Mapping[str, str]):
    """Read-only mapping of ErrorHandling condition keys to their actions."""

    def __init__(self, entries: Mapping[str, str]) -> None:
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, condition: str) -> str | None:
        """Return the resolution action for *condition*, or None."""
        return self._entries.get(condition)

    def to_dict(self) -> dict[str, str]:
        return dict(self._entries)


def build_error_table(spec: SystemSpec) -> ErrorTable:
    """Build the error table for *spec*. The first rule for a key wins."""
    entries: dict[str, str] = {}
    for rule in spec.error_rules:
        entries.setdefault(rule.condition, rule.action)
    return ErrorTable(entries)
