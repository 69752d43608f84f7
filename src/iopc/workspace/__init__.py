# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compiler configuration for IOPC."""

from iopc.workspace.config import (
    CONFIG_FILE_NAME,
    CompilerConfig,
    ConfigError,
    find_config,
    load_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "CompilerConfig",
    "ConfigError",
    "find_config",
    "load_config",
]
