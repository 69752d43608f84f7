# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compiler pipeline for IOP specifications: parsing, graph, flows and generation."""

from iopc.compiler.build import CompilationResult, CompilerError, compile_file, compile_source, compile_sources
from iopc.compiler.codegen import (
    ArtifactResult,
    ArtifactStatus,
    GenerationReport,
    UnboundPlaceholderError,
    UnknownImplementationMapError,
    generate,
    render,
)
from iopc.compiler.diagnostics import Diagnostic, DiagnosticCode, Severity
from iopc.compiler.error_table import ErrorTable, build_error_table
from iopc.compiler.flows import State, StateMachine, Transition, compile_flow, compile_flows
from iopc.compiler.graph import CyclicDependencyError, Edge, IntentGraph, build_intent_graph
from iopc.compiler.parser import ParseError, parse
from iopc.compiler.registry import BUILTIN_REGISTRY, GenerationStrategy, ImplementationRegistry
from iopc.compiler.report import read_report, serialize_report, write_report
from iopc.compiler.scanner import LexerError

__all__ = [
    "parse",
    "ParseError",
    "LexerError",
    "build_intent_graph",
    "IntentGraph",
    "Edge",
    "CyclicDependencyError",
    "compile_flow",
    "compile_flows",
    "StateMachine",
    "State",
    "Transition",
    "build_error_table",
    "ErrorTable",
    "BUILTIN_REGISTRY",
    "GenerationStrategy",
    "ImplementationRegistry",
    "generate",
    "render",
    "ArtifactResult",
    "ArtifactStatus",
    "GenerationReport",
    "UnboundPlaceholderError",
    "UnknownImplementationMapError",
    "Diagnostic",
    "DiagnosticCode",
    "Severity",
    "serialize_report",
    "write_report",
    "read_report",
    "compile_source",
    "compile_file",
    "compile_sources",
    "CompilationResult",
    "CompilerError",
]
