# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the implementation registry and extension table."""

import pytest

from iopc.compiler.registry import (
    BUILTIN_REGISTRY,
    GenerationStrategy,
    ImplementationRegistry,
    extension_for,
    is_valid_language,
)
from iopc.model.entities import ImplementationMap


def _map(component_type: str, language: str, template: str, line: int = 0) -> ImplementationMap:
    return ImplementationMap(component_type=component_type, target_language=language, template=template, line=line)


class TestLookup:
    def test_exact_type_preferred_over_wildcard(self) -> None:
        registry = ImplementationRegistry(
            [GenerationStrategy("*", "python", "any"), GenerationStrategy("Validator", "python", "validator")]
        )
        assert registry.lookup("Validator", "python").template == "validator"
        assert registry.lookup("Service", "python").template == "any"

    def test_language_is_case_insensitive(self) -> None:
        registry = ImplementationRegistry([GenerationStrategy("*", "Python", "any")])
        assert registry.lookup("X", "PYTHON") is not None
        assert registry.languages() == ["python"]

    def test_missing_pair_returns_none(self) -> None:
        assert BUILTIN_REGISTRY.lookup("Validator", "go") is None

    def test_builtin_markdown_covers_every_type(self) -> None:
        assert BUILTIN_REGISTRY.lookup("Anything", "markdown") is not None


class TestWithMaps:
    def test_spec_maps_override_builtins(self) -> None:
        registry = BUILTIN_REGISTRY.with_maps([_map("*", "Markdown", "custom", line=12)])
        strategy = registry.lookup("X", "markdown")
        assert strategy.template == "custom"
        assert strategy.source == "spec"
        assert strategy.line == 12

    def test_first_duplicate_map_wins(self) -> None:
        registry = BUILTIN_REGISTRY.with_maps([_map("T", "go", "first"), _map("T", "Go", "second")])
        assert registry.lookup("T", "go").template == "first"

    def test_original_registry_is_unchanged(self) -> None:
        BUILTIN_REGISTRY.with_maps([_map("T", "go", "x")])
        assert BUILTIN_REGISTRY.lookup("T", "go") is None


class TestExtensions:
    def test_builtin_extension(self) -> None:
        assert extension_for("Python") == ".py"
        assert extension_for("typescript") == ".ts"

    def test_unknown_language_uses_txt(self) -> None:
        assert extension_for("cobol") == ".txt"

    def test_override_adds_leading_dot(self) -> None:
        assert extension_for("python", {"python": "pyi"}) == ".pyi"
        assert extension_for("cobol", {"cobol": ".cbl"}) == ".cbl"


class TestLanguageNames:
    @pytest.mark.parametrize("language", ["python", "c++", "c#", "objective-c", "go1.22", "f_sharp"])
    def test_valid_names(self, language: str) -> None:
        assert is_valid_language(language)

    @pytest.mark.parametrize("language", ["", "..", "../x", "a/b", "a\\b", ".hidden", "py..thon", "two words"])
    def test_invalid_names(self, language: str) -> None:
        assert not is_valid_language(language)
