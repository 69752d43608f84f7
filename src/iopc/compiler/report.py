# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Serialization of the machine-readable compilation report.

The report is stored as indented JSON with sorted keys so that recompiling
an unchanged specification produces a byte-identical file. The format is
versioned so future schema changes can be detected.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from iopc.compiler.build import CompilationResult

# ###############
# Public Interface
# ###############

REPORT_FORMAT_VERSION = "1"
REPORT_NAME = "report.json"


def report_to_dict(result: CompilationResult) -> dict[str, Any]:
    """Return the report document for a compilation result."""
    generation = result.generation
    return {
        "v": REPORT_FORMAT_VERSION,
        "source": result.source,
        "system": result.spec.name if result.spec is not None else None,
        "stage": result.stage,
        "diagnostics": [d.to_dict() for d in result.diagnostics],
        "topological_order": result.topological_order,
        "language": generation.language if generation is not None else None,
        "artifacts": [a.to_dict() for a in generation.artifacts] if generation is not None else [],
    }


def serialize_report(result: CompilationResult) -> str:
    """Serialize the report for *result* to a deterministic JSON string."""
    return json.dumps(report_to_dict(result), indent=2, sort_keys=True) + "\n"


def write_report(result: CompilationResult, path: Path) -> None:
    """Write the report to *path*, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_report(result), encoding="utf-8")


def read_report(path: Path) -> dict[str, Any]:
    """Read a report written by :func:`write_report`.

    Raises:
        ValueError: If the report format version is not recognised.
    """
    obj = json.loads(path.read_text(encoding="utf-8"))
    version = obj.get("v")
    if version != REPORT_FORMAT_VERSION:
        raise ValueError(f"Unsupported report format version: {version!r}")
    return obj
