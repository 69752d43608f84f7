# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Registries consulted by validation and code generation.

The built-in registries are constructed once at import time and never
mutated. A specification's own ImplementationMap entries are layered on top
of the built-in strategies with :meth:`ImplementationRegistry.with_maps`,
which returns a new registry.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from iopc.model.entities import WILDCARD_TYPE, ImplementationMap, normalize_language
from iopc.model.properties import PropertyKind

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class GenerationStrategy:
    """A template registered for one (component type, language) pair.

    Attributes:
        component_type: The component type tag, or ``*`` for any type.
        language: Normalized target language name.
        template: Template text with ``{{placeholder}}`` markers.
        source: ``builtin`` for shipped strategies, ``spec`` for
            ImplementationMap entries.
        line: Source line of the ImplementationMap entry, 0 for built-ins.
    """

    component_type: str
    language: str
    template: str
    source: Literal["builtin", "spec"] = "builtin"
    line: int = 0


class ImplementationRegistry(Mapping[tuple[str, str], GenerationStrategy]):
    """Immutable mapping from ``(component_type, language)`` to a strategy."""

    def __init__(self, strategies: Iterable[GenerationStrategy] = ()) -> None:
        entries: dict[tuple[str, str], GenerationStrategy] = {}
        for strategy in strategies:
            entries[(strategy.component_type, normalize_language(strategy.language))] = strategy
        self._entries = MappingProxyType(entries)

    def __getitem__(self, key: tuple[str, str]) -> GenerationStrategy:
        return self._entries[key]

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, component_type: str, language: str) -> GenerationStrategy | None:
        """Return the strategy for *component_type*, falling back to the wildcard."""
        language = normalize_language(language)
        strategy = self._entries.get((component_type, language))
        if strategy is None:
            strategy = self._entries.get((WILDCARD_TYPE, language))
        return strategy

    def languages(self) -> list[str]:
        return sorted({language for _, language in self._entries})

    def with_maps(self, maps: Iterable[ImplementationMap]) -> ImplementationRegistry:
        """Return a new registry where *maps* override existing strategies.

        When a specification declares the same pair twice the first entry
        wins, matching the order in which validation reports the duplicate.
        """
        overrides: dict[tuple[str, str], GenerationStrategy] = {}
        for m in maps:
            key = (m.component_type, normalize_language(m.target_language))
            if key in overrides:
                continue
            overrides[key] = GenerationStrategy(
                component_type=m.component_type,
                language=key[1],
                template=m.template,
                source="spec",
                line=m.line,
            )
        merged = dict(self._entries)
        merged.update(overrides)
        return ImplementationRegistry(merged.values())


def extension_for(language: str, extensions: Mapping[str, str] | None = None) -> str:
    """Return the file extension (with its leading dot) for *language*.

    *extensions* entries take precedence over the built-in table. Unknown
    languages use ``.txt``.
    """
    language = normalize_language(language)
    if extensions and language in extensions:
        ext = extensions[language]
    else:
        ext = EXTENSIONS.get(language, ".txt")
    return ext if ext.startswith(".") else f".{ext}"


def is_valid_language(language: str) -> bool:
    """Return True if the normalized *language* is usable as a directory name."""
    return bool(_LANGUAGE_RE.fullmatch(language)) and ".." not in language


# Built-in strategies shipped with the compiler.
BUILTIN_REGISTRY = ImplementationRegistry(
    [
        GenerationStrategy(
            component_type=WILDCARD_TYPE,
            language="markdown",
            template=(
                "# {{name}}\n"
                "\n"
                "Type: {{type}}\n"
                "\n"
                "{{description}}\n"
                "\n"
                "- Inputs: {{inputs}}\n"
                "- Outputs: {{outputs}}\n"
                "\n"
                "## Action\n"
                "\n"
                "{{action}}\n"
            ),
        ),
    ]
)

EXTENSIONS: Mapping[str, str] = MappingProxyType(
    {
        "python": ".py",
        "javascript": ".js",
        "typescript": ".ts",
        "java": ".java",
        "go": ".go",
        "rust": ".rs",
        "csharp": ".cs",
        "c++": ".cpp",
        "ruby": ".rb",
        "kotlin": ".kt",
        "markdown": ".md",
    }
)

# Allowed property keys, and their kinds, per component type tag. Types that
# are not listed accept any property.
PROPERTY_SCHEMAS: Mapping[str, Mapping[str, PropertyKind]] = MappingProxyType(
    {
        "Validator": MappingProxyType(
            {
                "timeout": PropertyKind.DURATION,
                "strict": PropertyKind.SCALAR,
                "max_attempts": PropertyKind.SCALAR,
            }
        ),
        "Service": MappingProxyType(
            {
                "timeout": PropertyKind.DURATION,
                "retries": PropertyKind.SCALAR,
                "endpoint": PropertyKind.STRING,
                "protocol": PropertyKind.TOKEN,
            }
        ),
        "Store": MappingProxyType(
            {
                "engine": PropertyKind.TOKEN,
                "ttl": PropertyKind.DURATION,
                "capacity": PropertyKind.SCALAR,
            }
        ),
        "Scheduler": MappingProxyType(
            {
                "interval": PropertyKind.DURATION,
                "schedule": PropertyKind.STRING,
                "timezone": PropertyKind.TOKEN,
            }
        ),
    }
)

# ################
# Implementation
# ################

_LANGUAGE_RE = re.compile(r"[a-z0-9][a-z0-9+#._-]*")
