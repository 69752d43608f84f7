# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic checks for IOP specifications (references, duplicates, cycles, etc.)."""

from iopc.validation.checks import (
    ValidationResult,
    validate,
)

__all__ = [
    "ValidationResult",
    "validate",
]
