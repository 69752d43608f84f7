# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the compilation pipeline."""

import threading
from pathlib import Path

import pytest

from iopc.compiler.build import (
    STAGE_COMPILE,
    STAGE_GENERATE,
    STAGE_PARSE,
    STAGE_VALIDATE,
    CompilerError,
    compile_file,
    compile_source,
    compile_sources,
)
from iopc.compiler.diagnostics import DiagnosticCode
from iopc.compiler.report import read_report

# ###############
# Test Helpers
# ###############

VALID_SPEC = """\
System: Shop
  properties:
    external_inputs: [order]

Components:
  - Checkout:
      inputs: [order]
      outputs: [receipt]
  - Mailer:
      inputs: [receipt]

Flow: Purchase
  trigger: on order placed
  steps:
    - Checkout: take payment
    - decision:
        if: receipt
        then:
          - Mailer: send receipt

ErrorHandling:
  - PaymentDeclined: Ask for another card

ImplementationMap:
  - ComponentType: "*"
    TargetLanguage: Python
    ImplementationPattern: |
      class {{name}}:
          \"\"\"{{errors.PaymentDeclined}}\"\"\"
"""

UNRESOLVED_SPEC = """\
System: UserAuthentication
  properties:
    external_inputs: [username, password]

Components:
  - CredentialValidator:
      inputs: [username, password]
      outputs: [user_record]
  - TokenIssuer:
      inputs: [verified_identity]
      outputs: [session_token]
"""

PARTIALLY_MAPPED_SPEC = """\
System: Pair
Components:
  - Left:
      type: Worker
  - Right:
      type: Worker
ImplementationMap:
  - ComponentType: Worker
    TargetLanguage: Python
    ImplementationPattern: "# {{name}}"
"""


# ###############
# Stages and Exit Codes
# ###############


class TestStages:
    def test_valid_spec_without_language_stops_after_compile(self) -> None:
        result = compile_source(VALID_SPEC)
        assert result.stage == STAGE_COMPILE
        assert result.exit_code == 0
        assert result.diagnostics == []
        assert result.topological_order == ["Checkout", "Mailer"]
        assert list(result.state_machines) == ["Purchase"]
        assert result.error_table.resolve("PaymentDeclined") == "Ask for another card"
        assert result.generation is None

    def test_syntax_error_exits_1(self) -> None:
        result = compile_source("Components:\n  - A\n")
        assert result.stage == STAGE_PARSE
        assert result.exit_code == 1
        assert result.spec is None
        assert [d.code for d in result.diagnostics] == [DiagnosticCode.SYNTAX_ERROR]
        assert result.diagnostics[0].line == 1

    def test_lexer_error_is_a_syntax_error(self) -> None:
        result = compile_source('System: S\n  description: "open\n')
        assert result.exit_code == 1
        assert result.diagnostics[0].code == DiagnosticCode.SYNTAX_ERROR

    def test_validation_errors_exit_2(self) -> None:
        result = compile_source(UNRESOLVED_SPEC, language="python")
        assert result.stage == STAGE_VALIDATE
        assert result.exit_code == 2
        assert result.generation is None
        assert result.state_machines == {}

    def test_unresolved_input_end_to_end(self, tmp_path: Path) -> None:
        result = compile_source(UNRESOLVED_SPEC, language="python", out_dir=tmp_path)
        unresolved = [d for d in result.diagnostics if d.code == DiagnosticCode.UNRESOLVED_REFERENCE]
        assert len(unresolved) == 1
        assert unresolved[0].kind == "input"
        assert unresolved[0].name == "verified_identity"
        assert result.exit_code == 2
        assert not (tmp_path / "python").exists()

    def test_warnings_do_not_block(self) -> None:
        source = VALID_SPEC + "  - ComponentType: Ghost\n    TargetLanguage: Go\n    ImplementationPattern: x\n"
        result = compile_source(source)
        assert result.exit_code == 0
        assert [d.code for d in result.diagnostics] == [DiagnosticCode.UNKNOWN_IMPLEMENTATION_MAP]

    def test_generation_success_exits_0(self, tmp_path: Path) -> None:
        result = compile_source(VALID_SPEC, language="python", out_dir=tmp_path)
        assert result.stage == STAGE_GENERATE
        assert result.exit_code == 0
        text = (tmp_path / "python" / "Checkout.py").read_text(encoding="utf-8")
        assert text == 'class Checkout:\n    """Ask for another card"""\n'

    def test_unmapped_language_end_to_end(self, tmp_path: Path) -> None:
        result = compile_source(PARTIALLY_MAPPED_SPEC, source_name="pair.iop", language="go", out_dir=tmp_path)
        assert result.exit_code == 3
        assert [d.code for d in result.diagnostics] == [DiagnosticCode.UNKNOWN_IMPLEMENTATION_MAP]
        assert result.generation.succeeded == []
        assert tmp_path.is_dir()
        assert not (tmp_path / "go").exists()
        report = read_report(tmp_path / "report.json")
        assert [d["code"] for d in report["diagnostics"]] == ["UnknownImplementationMapError"]
        assert [a["status"] for a in report["artifacts"]] == ["failed", "failed"]

    def test_cancelled_generation_exits_3(self) -> None:
        cancel = threading.Event()
        cancel.set()
        result = compile_source(VALID_SPEC, language="python", cancel_event=cancel)
        assert result.exit_code == 3
        assert len(result.generation.cancelled) == 2


# ###############
# Reports and Idempotence
# ###############


class TestReports:
    def test_report_written_on_syntax_error(self, tmp_path: Path) -> None:
        compile_source("Nope: x\n", source_name="bad.iop", out_dir=tmp_path)
        report = read_report(tmp_path / "report.json")
        assert report["stage"] == "parse"
        assert report["system"] is None
        assert report["source"] == "bad.iop"

    def test_custom_report_name(self, tmp_path: Path) -> None:
        compile_source(VALID_SPEC, out_dir=tmp_path, report_name="out.json")
        assert (tmp_path / "out.json").exists()

    def test_recompiling_is_byte_identical(self, tmp_path: Path) -> None:
        first, second = tmp_path / "first", tmp_path / "second"
        compile_source(VALID_SPEC, source_name="shop.iop", language="python", out_dir=first)
        compile_source(VALID_SPEC, source_name="shop.iop", language="python", out_dir=second)
        for name in ["report.json", "python/Checkout.py", "python/Mailer.py"]:
            assert (first / name).read_bytes() == (second / name).read_bytes()


# ###############
# Files
# ###############


class TestFiles:
    def test_compile_file(self, tmp_path: Path) -> None:
        path = tmp_path / "shop.iop"
        path.write_text(VALID_SPEC, encoding="utf-8")
        result = compile_file(path)
        assert result.source == str(path)
        assert result.exit_code == 0

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(CompilerError, match="Cannot read"):
            compile_file(tmp_path / "missing.iop")

    def test_invalid_utf8_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "latin1.iop"
        path.write_bytes(b"System: caf\xe9\n")
        with pytest.raises(CompilerError, match="not valid UTF-8"):
            compile_file(path)

    def test_target_outside_output_directory_raises(self, tmp_path: Path) -> None:
        out = tmp_path / "out"
        with pytest.raises(CompilerError, match="Invalid target language"):
            compile_source(VALID_SPEC, language="../escaped", out_dir=out)
        assert not out.exists()
        assert not (tmp_path / "escaped").exists()

    def test_artifact_write_failure_exits_3(self, tmp_path: Path) -> None:
        (tmp_path / "python" / "Mailer.py").mkdir(parents=True)
        result = compile_source(VALID_SPEC, language="python", out_dir=tmp_path)
        assert result.exit_code == 3
        assert [a.component for a in result.generation.failed] == ["Mailer"]
        assert DiagnosticCode.ARTIFACT_WRITE in [d.code for d in result.diagnostics]
        report = read_report(tmp_path / "report.json")
        assert [a["status"] for a in report["artifacts"]] == ["succeeded", "failed"]
        assert (tmp_path / "python" / "Checkout.py").exists()

    def test_compile_sources_keeps_order(self, tmp_path: Path) -> None:
        paths = []
        for name, source in [("a.iop", VALID_SPEC), ("b.iop", UNRESOLVED_SPEC), ("c.iop", "bad\n")]:
            path = tmp_path / name
            path.write_text(source, encoding="utf-8")
            paths.append(path)
        results = compile_sources(paths, max_workers=3)
        assert [r.exit_code for r in results] == [0, 2, 1]
        assert [Path(r.source).name for r in results] == ["a.iop", "b.iop", "c.iop"]

    def test_compile_sources_of_nothing(self) -> None:
        assert compile_sources([]) == []
