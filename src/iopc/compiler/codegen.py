# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Template-based code generation with per-artifact failure isolation.

For one target language, every component is rendered through the strategy
registered for its type tag and written to
``<out_dir>/<language>/<Component><ext>``. A missing strategy, an unbound
placeholder or a failed file write fails only the affected artifact.
Rendering runs on a bounded thread pool and can be cancelled through a
:class:`threading.Event`; tasks that have not started when the event is set
are reported as cancelled.
"""

from __future__ import annotations

import enum
import logging
import os
import re
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from iopc.compiler.diagnostics import Diagnostic, DiagnosticCode, error
from iopc.compiler.error_table import ErrorTable
from iopc.compiler.registry import (
    BUILTIN_REGISTRY,
    GenerationStrategy,
    ImplementationRegistry,
    extension_for,
    is_valid_language,
)
from iopc.model.entities import Component, SystemSpec, normalize_language

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class UnboundPlaceholderError(Exception):
    """Raised when a template references a placeholder with no value.

    Attributes:
        template: The template text being rendered.
        placeholder: The unbound placeholder name.
    """

    def __init__(self, template: str, placeholder: str) -> None:
        super().__init__(f"Placeholder '{{{{{placeholder}}}}}' has no value")
        self.template = template
        self.placeholder = placeholder


class UnknownImplementationMapError(Exception):
    """Raised when no strategy is registered for a component type and language.

    Attributes:
        component_type: The component type tag.
        language: The normalized target language.
    """

    def __init__(self, component_type: str, language: str) -> None:
        super().__init__(f"No implementation map for component type '{component_type}' in language '{language}'")
        self.component_type = component_type
        self.language = language


class ArtifactStatus(enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ArtifactResult:
    """Outcome of generating one (component, language) artifact.

    Attributes:
        component: The component name.
        language: The normalized target language.
        status: Whether the artifact was written, failed or cancelled.
        path: Output path relative to the output directory, using ``/``.
        reason: Message explaining a failure.
    """

    component: str
    language: str
    status: ArtifactStatus
    path: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"component": self.component, "language": self.language, "status": self.status.value}
        if self.path is not None:
            d["path"] = self.path
        if self.reason is not None:
            d["reason"] = self.reason
        return d


@dataclass(frozen=True)
class GenerationReport:
    """All artifact outcomes and generation diagnostics for one language."""

    language: str
    artifacts: tuple[ArtifactResult, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    def with_status(self, status: ArtifactStatus) -> list[ArtifactResult]:
        return [a for a in self.artifacts if a.status == status]

    @property
    def succeeded(self) -> list[ArtifactResult]:
        return self.with_status(ArtifactStatus.SUCCEEDED)

    @property
    def failed(self) -> list[ArtifactResult]:
        return self.with_status(ArtifactStatus.FAILED)

    @property
    def cancelled(self) -> list[ArtifactResult]:
        return self.with_status(ArtifactStatus.CANCELLED)

    @property
    def has_failures(self) -> bool:
        """Return True if any artifact failed or was cancelled."""
        return any(a.status != ArtifactStatus.SUCCEEDED for a in self.artifacts)


def default_workers() -> int:
    """Default size of the generation worker pool."""
    return min(8, os.cpu_count() or 1)


def render(template: str, context: Mapping[str, str]) -> str:
    """Substitute every ``{{name}}`` placeholder of *template* from *context*.

    Raises:
        UnboundPlaceholderError: For the first placeholder missing from *context*.
    """

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in context:
            raise UnboundPlaceholderError(template, name)
        return context[name]

    return _PLACEHOLDER_RE.sub(_substitute, template)


def placeholder_context(
    component: Component,
    spec: SystemSpec,
    language: str,
    error_table: ErrorTable | None = None,
) -> dict[str, str]:
    """Return the placeholder values available when rendering *component*."""
    context = {
        "name": component.name,
        "type": component.type_tag,
        "description": component.description or "",
        "action": component.action or "",
        "system": spec.name,
        "language": language,
        "inputs": ", ".join(component.inputs),
        "outputs": ", ".join(component.outputs),
    }
    for key, value in component.properties.items():
        context[f"properties.{key}"] = value.render()
    if error_table is not None:
        for condition, action in error_table.items():
            context[f"errors.{condition}"] = action
    return context


def generate(
    spec: SystemSpec,
    language: str,
    *,
    registry: ImplementationRegistry = BUILTIN_REGISTRY,
    error_table: ErrorTable | None = None,
    out_dir: Path | None = None,
    workers: int | None = None,
    cancel_event: threading.Event | None = None,
    extensions: Mapping[str, str] | None = None,
) -> GenerationReport:
    """Generate one artifact per component of *spec* for *language*.

    The specification's ImplementationMap entries override *registry*. When
    *out_dir* is None artifacts are rendered but not written.

    Args:
        spec: A specification that passed validation.
        language: Target language name (case-insensitive).
        registry: Strategies to fall back on when the specification has no map.
        error_table: Source of ``{{errors.<key>}}`` placeholder values.
        out_dir: Root of the output tree.
        workers: Size of the worker pool; defaults to :func:`default_workers`.
        cancel_event: When set, tasks that have not started are cancelled.
        extensions: Language to file extension overrides.

    Returns:
        A :class:`GenerationReport` with artifacts in component declaration order.

    Raises:
        ValueError: If *language* cannot be used as an output directory name.
    """
    language = normalize_language(language)
    if not is_valid_language(language):
        raise ValueError(f"Invalid target language: {language!r}")
    registry = registry.with_maps(spec.implementation_maps)
    cancel_event = cancel_event or threading.Event()
    ext = extension_for(language, extensions)
    workers = workers or default_workers()

    components = _unique_components(spec)
    logger.debug("Generating %d %s artifact(s) with %d worker(s)", len(components), language, workers)

    diagnostics: list[Diagnostic] = []
    reported_pairs: set[str] = set()
    planned: list[tuple[Component, GenerationStrategy | None]] = []
    for comp in components:
        strategy = registry.lookup(comp.type_tag, language)
        if strategy is None and comp.type_tag not in reported_pairs:
            reported_pairs.add(comp.type_tag)
            exc = UnknownImplementationMapError(comp.type_tag, language)
            diagnostics.append(
                error(
                    DiagnosticCode.UNKNOWN_IMPLEMENTATION_MAP,
                    str(exc),
                    name=comp.type_tag,
                    path=(comp.type_tag, language),
                    line=comp.line,
                )
            )
        planned.append((comp, strategy))

    task = _ArtifactTask(spec, language, ext, error_table, out_dir, cancel_event)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(task.run, comp, strategy) for comp, strategy in planned]
        outcomes = [f.result() for f in futures]

    results: list[ArtifactResult] = []
    for result, diagnostic in outcomes:
        results.append(result)
        if diagnostic is not None:
            diagnostics.append(diagnostic)
        if result.status == ArtifactStatus.FAILED:
            logger.warning("Artifact %s/%s failed: %s", language, result.component, result.reason)

    return GenerationReport(language=language, artifacts=tuple(results), diagnostics=tuple(diagnostics))


# ################
# Implementation
# ################

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][\w .\-]*?)\s*\}\}")


def _unique_components(spec: SystemSpec) -> list[Component]:
    seen: set[str] = set()
    result: list[Component] = []
    for comp in spec.components:
        if comp.name not in seen:
            seen.add(comp.name)
            result.append(comp)
    return result


class _ArtifactTask:
    """Renders and writes a single artifact. Shared read-only by all workers."""

    def __init__(
        self,
        spec: SystemSpec,
        language: str,
        ext: str,
        error_table: ErrorTable | None,
        out_dir: Path | None,
        cancel_event: threading.Event,
    ) -> None:
        self._spec = spec
        self._language = language
        self._ext = ext
        self._error_table = error_table
        self._out_dir = out_dir
        self._cancel_event = cancel_event

    def run(
        self, comp: Component, strategy: GenerationStrategy | None
    ) -> tuple[ArtifactResult, Diagnostic | None]:
        if strategy is None:
            reason = str(UnknownImplementationMapError(comp.type_tag, self._language))
            return self._result(comp, ArtifactStatus.FAILED, reason=reason), None
        if self._cancel_event.is_set():
            return self._result(comp, ArtifactStatus.CANCELLED, reason="Generation was cancelled"), None

        context = placeholder_context(comp, self._spec, self._language, self._error_table)
        try:
            text = render(strategy.template, context)
        except UnboundPlaceholderError as exc:
            diagnostic = error(
                DiagnosticCode.UNBOUND_PLACEHOLDER,
                f"Component '{comp.name}': {exc}",
                name=exc.placeholder,
                path=(comp.name,),
                line=strategy.line or None,
            )
            return self._result(comp, ArtifactStatus.FAILED, reason=str(exc)), diagnostic

        rel_path = f"{self._language}/{comp.name}{self._ext}"
        if self._out_dir is not None:
            path = self._out_dir / self._language / f"{comp.name}{self._ext}"
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(text, encoding="utf-8")
            except OSError as exc:
                reason = f"Cannot write '{rel_path}': {exc.strerror or exc}"
                diagnostic = error(
                    DiagnosticCode.ARTIFACT_WRITE,
                    f"Component '{comp.name}': {reason}",
                    name=comp.name,
                    path=(rel_path,),
                    line=comp.line or None,
                )
                return self._result(comp, ArtifactStatus.FAILED, reason=reason), diagnostic
        return self._result(comp, ArtifactStatus.SUCCEEDED, path=rel_path), None

    def _result(self, comp: Component, status: ArtifactStatus, **kwargs: Any) -> ArtifactResult:
        return ArtifactResult(component=comp.name, language=self._language, status=status, **kwargs)
