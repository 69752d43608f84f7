# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entry point for the IOPC command-line interface."""

import argparse
import json
import logging
import sys
from pathlib import Path

from iopc.compiler.build import CompilationResult, CompilerError, compile_file, compile_sources
from iopc.compiler.diagnostics import Diagnostic, has_errors
from iopc.workspace.config import CompilerConfig, ConfigError, find_config, load_config

# ###############
# Public Interface
# ###############


def main() -> None:
    """Run the IOPC CLI."""
    parser = argparse.ArgumentParser(
        prog="iopc",
        description="IOPC: schema compiler for Intent-Oriented Programming specifications",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # validate subcommand
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate one or more specification files",
        description="Parse and validate IOP specification files and report every diagnostic.",
    )
    validate_parser.add_argument("files", nargs="+", help="Specification files to validate")

    # compile subcommand
    compile_parser = subparsers.add_parser(
        "compile",
        help="Generate source artifacts for a target language",
        description="Validate a specification and generate one artifact per component.",
    )
    compile_parser.add_argument("file", help="Specification file to compile")
    compile_parser.add_argument("--target", required=True, help="Target language, e.g. python")
    compile_parser.add_argument("--out", required=True, help="Output directory")
    compile_parser.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Size of the generation worker pool (default: from config, or min(8, CPUs))",
    )
    compile_parser.add_argument(
        "--config",
        default=None,
        help="Path to a .iopc.yaml file (default: .iopc.yaml next to the specification)",
    )

    # flows subcommand
    flows_parser = subparsers.add_parser(
        "flows",
        help="Print the compiled flow state machines",
        description="Compile every flow of a specification into a state machine and print it.",
    )
    flows_parser.add_argument("file", help="Specification file")
    flows_parser.add_argument(
        "--format",
        choices=["json", "mermaid"],
        default="json",
        help="Output format (default: json)",
    )

    # graph subcommand
    graph_parser = subparsers.add_parser(
        "graph",
        help="Print the intent graph",
        description="Print the component dependency edges and the topological order.",
    )
    graph_parser.add_argument("file", help="Specification file")

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(_dispatch(args))


# ################
# Implementation
# ################


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return value


def _dispatch(args: argparse.Namespace) -> int:
    """Dispatch to the appropriate subcommand handler."""
    if args.command == "validate":
        return _cmd_validate(args)
    if args.command == "compile":
        return _cmd_compile(args)
    if args.command == "flows":
        return _cmd_flows(args)
    if args.command == "graph":
        return _cmd_graph(args)
    return 0


def _print_diagnostics(source: str, diagnostics: list[Diagnostic]) -> None:
    for d in diagnostics:
        if d.is_error:
            print(f"Error: {source}: {d.format()}", file=sys.stderr)
        else:
            print(f"Warning: {source}: {d.format()}")


def _cmd_validate(args: argparse.Namespace) -> int:
    """Handle the validate subcommand.

    Returns 2 if any file has a syntax or semantic error and 1 if a file cannot be read.
    """
    paths = [Path(f) for f in args.files]
    try:
        results = compile_sources(paths)
    except CompilerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for result in results:
        _print_diagnostics(result.source, result.diagnostics)

    exit_code = max(2 if has_errors(result.diagnostics) else 0 for result in results)
    if exit_code == 0:
        print(f"No issues found in {len(results)} file(s).")
    return exit_code


def _load_config(args: argparse.Namespace, spec_file: Path) -> CompilerConfig:
    if args.config is not None:
        return load_config(Path(args.config))
    return find_config(spec_file)


def _cmd_compile(args: argparse.Namespace) -> int:
    """Handle the compile subcommand."""
    spec_file = Path(args.file)
    try:
        config = _load_config(args, spec_file)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    out_dir = Path(args.out)
    try:
        result = compile_file(
            spec_file,
            language=args.target,
            out_dir=out_dir,
            workers=args.workers or config.workers,
            extensions=config.extensions,
            report_name=config.report_name,
        )
    except CompilerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    _print_diagnostics(result.source, result.diagnostics)
    if result.generation is not None:
        generation = result.generation
        print(
            f"Generated {len(generation.succeeded)} of {len(generation.artifacts)} artifact(s) "
            f"for '{generation.language}' in '{out_dir}'."
        )
        for artifact in generation.failed:
            print(f"  failed: {artifact.component} ({artifact.reason})")
        for artifact in generation.cancelled:
            print(f"  cancelled: {artifact.component}")
    return result.exit_code


def _compile_for_inspection(path: Path) -> CompilationResult | None:
    """Compile *path* without generation, printing any problem found."""
    try:
        result = compile_file(path)
    except CompilerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return None
    _print_diagnostics(result.source, result.diagnostics)
    return result


def _cmd_flows(args: argparse.Namespace) -> int:
    """Handle the flows subcommand."""
    result = _compile_for_inspection(Path(args.file))
    if result is None:
        return 1
    if result.exit_code != 0:
        return result.exit_code

    if args.format == "mermaid":
        for name, machine in result.state_machines.items():
            print(f"%% Flow: {name}")
            print(machine.to_mermaid(), end="")
    else:
        document = {name: machine.to_dict() for name, machine in result.state_machines.items()}
        print(json.dumps(document, indent=2))
    return 0


def _cmd_graph(args: argparse.Namespace) -> int:
    """Handle the graph subcommand."""
    result = _compile_for_inspection(Path(args.file))
    if result is None:
        return 1
    if result.graph is None:
        return result.exit_code

    print(f"Components: {len(result.graph.nodes)}")
    for edge in result.graph.edges:
        print(f"  {edge.producer} --{edge.output}--> {edge.consumer}")
    cycles = result.graph.find_cycles()
    if cycles:
        for cycle in cycles:
            print(f"Cycle: {' -> '.join([*cycle, cycle[0]])}")
        return 2
    print(f"Topological order: {', '.join(result.topological_order)}")
    return 0
