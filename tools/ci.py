#!/usr/bin/env python3
# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run all CI checks locally: format, lint, tests, sample specs and build."""

import subprocess
import sys
import time
from pathlib import Path

from yachalk import chalk

# ###############
# Public Interface
# ###############

STEPS: list[tuple[str, list[str]]] = [
    ("Format check", ["uv", "run", "ruff", "format", "--check", "src/", "tests/"]),
    ("Lint", ["uv", "run", "ruff", "check", "src/", "tests/"]),
    ("Tests", ["uv", "run", "pytest", "--cov=iopc", "--cov-report=term-missing"]),
    ("Build", ["uv", "build"]),
]


def main() -> int:
    """Run all CI steps and report results."""
    results: list[tuple[str, bool, float]] = []
    steps = [*STEPS[:3], _sample_step(), *STEPS[3:]]

    for name, cmd in steps:
        _banner(name)
        start = time.monotonic()
        proc = subprocess.run(cmd, cwd=_repo_root())
        results.append((name, proc.returncode == 0, time.monotonic() - start))

    _banner("  Summary")
    for name, passed, elapsed in results:
        color = chalk.green if passed else chalk.red
        print(color(f"  {'PASS' if passed else 'FAIL'}  {name} ({elapsed:.1f}s)"))

    print()
    return 0 if all(passed for _, passed, _ in results) else 1


# ################
# Implementation
# ################


def _repo_root() -> Path:
    return Path(__file__).parent.parent


def _sample_step() -> tuple[str, list[str]]:
    """Validate every bundled sample specification with the installed CLI."""
    samples = sorted(str(p.relative_to(_repo_root())) for p in (_repo_root() / "samples").glob("*.iop"))
    return ("Sample specs", ["uv", "run", "iopc", "validate", *samples])


def _banner(title: str) -> None:
    sep = chalk.blue("=" * 60)
    print(f"\n{sep}")
    print(chalk.blue(title))
    print(sep)


if __name__ == "__main__":
    sys.exit(main())
