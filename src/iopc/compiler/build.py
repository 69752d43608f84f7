# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compilation pipeline for IOP specification files.

One compilation unit runs through these stages:

1. **Parse**: source text to a SystemSpec. A syntax error stops the run.
2. **Validate**: build the intent graph and run every semantic check.
   Error-severity diagnostics stop the run after this stage.
3. **Compile**: flows to state machines and error rules to the error table.
   The two are independent and run on a two-worker pool.
4. **Generate**: when a target language is requested, render one artifact
   per component.

The complete diagnostic list is always returned in a
:class:`CompilationResult`. When an output directory is given the report is
written there for every outcome, including parse and validation failures.
Independent units can be compiled in parallel with :func:`compile_sources`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from iopc.compiler.codegen import GenerationReport, generate
from iopc.compiler.diagnostics import Diagnostic, DiagnosticCode, error
from iopc.compiler.error_table import ErrorTable, build_error_table
from iopc.compiler.flows import StateMachine, compile_flows
from iopc.compiler.graph import CyclicDependencyError, IntentGraph, build_intent_graph
from iopc.compiler.parser import ParseError, parse
from iopc.compiler.registry import BUILTIN_REGISTRY, ImplementationRegistry, is_valid_language
from iopc.compiler.report import REPORT_NAME, write_report
from iopc.compiler.scanner import LexerError
from iopc.model.entities import SystemSpec, normalize_language
from iopc.validation import checks

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

STAGE_PARSE = "parse"
STAGE_VALIDATE = "validate"
STAGE_COMPILE = "compile"
STAGE_GENERATE = "generate"


class CompilerError(Exception):
    """Raised when a specification file cannot be read."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


@dataclass
class CompilationResult:
    """Everything produced by compiling one specification.

    Attributes:
        source: Label of the compiled source, usually its file path.
        stage: The last stage that ran (``parse``, ``validate``, ``compile``
            or ``generate``).
        spec: The parsed specification, or None after a syntax error.
        graph: The intent graph, or None after a syntax error.
        diagnostics: All diagnostics in stage order.
        topological_order: Suggested component order; empty for cyclic graphs.
        state_machines: Compiled flows keyed by flow name.
        error_table: The error table, once compiled.
        generation: The generation report, when a language was requested.
    """

    source: str
    stage: str
    spec: SystemSpec | None = None
    graph: IntentGraph | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    topological_order: list[str] = field(default_factory=list)
    state_machines: dict[str, StateMachine] = field(default_factory=dict)
    error_table: ErrorTable | None = None
    generation: GenerationReport | None = None

    @property
    def exit_code(self) -> int:
        """0 on success, 1 on a syntax error, 2 on validation errors and 3
        when any artifact failed or was cancelled."""
        if self.stage == STAGE_PARSE:
            return 1
        if self.stage == STAGE_VALIDATE:
            return 2
        if self.generation is not None and self.generation.has_failures:
            return 3
        return 0


def compile_source(
    source: str,
    *,
    source_name: str = "<string>",
    language: str | None = None,
    out_dir: Path | None = None,
    registry: ImplementationRegistry = BUILTIN_REGISTRY,
    workers: int | None = None,
    cancel_event: threading.Event | None = None,
    extensions: Mapping[str, str] | None = None,
    report_name: str = REPORT_NAME,
) -> CompilationResult:
    """Compile IOP source text.

    Args:
        source: The specification text.
        source_name: Label used in logs and in the report.
        language: Target language to generate; None stops after the compile stage.
        out_dir: Output directory for artifacts and the report.
        registry: Built-in strategies the specification's maps are layered on.
        workers: Size of the generation worker pool.
        cancel_event: Cancels generation tasks that have not started.
        extensions: Language to file extension overrides.
        report_name: File name of the report inside *out_dir*.

    Returns:
        The :class:`CompilationResult`. It never raises for problems in the
        specification itself.

    Raises:
        CompilerError: If *language* is not a usable language name or the
            report cannot be written.
    """
    if language is not None and not is_valid_language(normalize_language(language)):
        raise CompilerError(f"Invalid target language: {language!r}")
    result = _run_pipeline(
        source,
        source_name=source_name,
        language=language,
        out_dir=out_dir,
        registry=registry,
        workers=workers,
        cancel_event=cancel_event,
        extensions=extensions,
    )
    if out_dir is not None:
        try:
            write_report(result, out_dir / report_name)
        except OSError as exc:
            raise CompilerError(f"Cannot write report to '{out_dir / report_name}': {exc}") from exc
        logger.debug("Wrote report to %s", out_dir / report_name)
    return result


def compile_file(path: Path, **options: object) -> CompilationResult:
    """Read *path* and compile it with :func:`compile_source`.

    Raises:
        CompilerError: If the file cannot be read.
    """
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CompilerError(f"Cannot read '{path}': {exc}") from exc
    except UnicodeDecodeError as exc:
        raise CompilerError(f"Cannot read '{path}': not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc
    return compile_source(source, source_name=str(path), **options)  # type: ignore[arg-type]


def compile_sources(paths: list[Path], *, max_workers: int | None = None, **options: object) -> list[CompilationResult]:
    """Compile independent specification files in parallel.

    Units share no state. Results are returned in the order of *paths*.

    Raises:
        CompilerError: If any file cannot be read.
    """
    if not paths:
        return []
    with ThreadPoolExecutor(max_workers=max_workers or min(len(paths), 8)) as executor:
        futures = [executor.submit(compile_file, path, **options) for path in paths]
        return [f.result() for f in futures]


# ################
# Implementation
# ################


def _run_pipeline(
    source: str,
    *,
    source_name: str,
    language: str | None,
    out_dir: Path | None,
    registry: ImplementationRegistry,
    workers: int | None,
    cancel_event: threading.Event | None,
    extensions: Mapping[str, str] | None,
) -> CompilationResult:
    logger.debug("Parsing %s", source_name)
    try:
        spec = parse(source)
    except (LexerError, ParseError) as exc:
        diagnostic = error(DiagnosticCode.SYNTAX_ERROR, exc.message, line=exc.line, column=exc.column)
        return CompilationResult(source=source_name, stage=STAGE_PARSE, diagnostics=[diagnostic])

    logger.debug("Validating %s (%d components)", spec.name, len(spec.components))
    graph = build_intent_graph(spec)
    validation = checks.validate(spec, graph)
    try:
        order = graph.topological_order()
    except CyclicDependencyError:
        order = []
    result = CompilationResult(
        source=source_name,
        stage=STAGE_VALIDATE,
        spec=spec,
        graph=graph,
        diagnostics=list(validation.diagnostics),
        topological_order=order,
    )
    if validation.has_errors:
        logger.debug("Validation of %s failed with %d error(s)", spec.name, len(validation.errors))
        return result

    with ThreadPoolExecutor(max_workers=2) as executor:
        machines = executor.submit(compile_flows, spec)
        table = executor.submit(build_error_table, spec)
        result.state_machines = machines.result()
        result.error_table = table.result()
    result.stage = STAGE_COMPILE
    logger.debug("Compiled %d flow(s) and %d error rule(s)", len(result.state_machines), len(result.error_table))

    if language is None:
        return result

    result.generation = generate(
        spec,
        language,
        registry=registry,
        error_table=result.error_table,
        out_dir=out_dir,
        workers=workers,
        cancel_event=cancel_event,
        extensions=extensions,
    )
    result.diagnostics.extend(result.generation.diagnostics)
    result.stage = STAGE_GENERATE
    return result
