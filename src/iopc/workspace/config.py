# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Data model and YAML parser for the optional ``.iopc.yaml`` compiler configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from iopc.compiler.report import REPORT_NAME
from iopc.model.entities import normalize_language

# ###############
# Public Interface
# ###############

CONFIG_FILE_NAME = ".iopc.yaml"


class ConfigError(Exception):
    """Raised when a configuration file is invalid or cannot be loaded."""


@dataclass
class CompilerConfig:
    """Settings that tune a compilation run.

    Attributes:
        workers: Size of the generation worker pool, or None for the default.
        extensions: Language to file extension overrides.
        report_name: File name of the report written into the output directory.
    """

    workers: int | None = None
    extensions: dict[str, str] = field(default_factory=dict)
    report_name: str = REPORT_NAME


def load_config(path: Path) -> CompilerConfig:
    """Load and parse a compiler configuration file.

    Args:
        path: Path to the ``.iopc.yaml`` file.

    Returns:
        A CompilerConfig instance populated from the file.

    Raises:
        ConfigError: If the file cannot be read or the configuration is invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except OSError as exc:
        raise ConfigError(f"Cannot read config file: {exc}") from exc

    return _parse_config(text, source_label=str(path))


def find_config(spec_file: Path) -> CompilerConfig:
    """Load ``.iopc.yaml`` next to *spec_file*, or return the defaults if absent."""
    candidate = spec_file.parent / CONFIG_FILE_NAME
    if candidate.is_file():
        return load_config(candidate)
    return CompilerConfig()


# ################
# Implementation
# ################

_KNOWN_KEYS = frozenset({"workers", "extensions", "report-name"})


def _parse_config(text: str, source_label: str = "<string>") -> CompilerConfig:
    """Parse configuration YAML text into a CompilerConfig.

    An empty document yields the defaults.

    Raises:
        ConfigError: If the YAML is invalid or a field has the wrong type.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {source_label}: {exc}") from exc

    if data is None:
        return CompilerConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{source_label}: configuration must be a YAML mapping")

    unknown = sorted(str(key) for key in data if key not in _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"{source_label}: unknown field(s): {', '.join(unknown)}")

    config = CompilerConfig()
    if "workers" in data:
        workers = data["workers"]
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise ConfigError(f"{source_label}: 'workers' must be a positive integer")
        config.workers = workers

    if "extensions" in data:
        raw = data["extensions"]
        if not isinstance(raw, dict):
            raise ConfigError(f"{source_label}: 'extensions' must be a mapping of language to extension")
        for language, ext in raw.items():
            if not isinstance(language, str) or not isinstance(ext, str) or not ext.strip("."):
                raise ConfigError(f"{source_label}: extensions entry '{language}' must map to a non-empty string")
            ext = ext.strip()
            config.extensions[normalize_language(language)] = ext if ext.startswith(".") else f".{ext}"

    if "report-name" in data:
        report_name = data["report-name"]
        if not isinstance(report_name, str) or not report_name.strip() or "/" in report_name:
            raise ConfigError(f"{source_label}: 'report-name' must be a plain file name")
        config.report_name = report_name.strip()

    return config
