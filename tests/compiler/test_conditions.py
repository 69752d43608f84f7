# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for decision condition expressions."""

import pytest

from iopc.compiler.conditions import (
    BoolOp,
    Compare,
    ConditionError,
    Literal,
    Name,
    Not,
    parse_condition,
    referenced_identifiers,
)


class TestParseCondition:
    def test_bare_identifier(self) -> None:
        assert parse_condition("verified_identity") == Name("verified_identity")

    def test_dotted_identifier(self) -> None:
        assert parse_condition("session.valid") == Name("session.valid")

    def test_and_binds_tighter_than_or(self) -> None:
        expr = parse_condition("a or b and c")
        assert expr == BoolOp("or", (Name("a"), BoolOp("and", (Name("b"), Name("c")))))

    def test_not_and_parentheses(self) -> None:
        expr = parse_condition("not (a or b)")
        assert expr == Not(BoolOp("or", (Name("a"), Name("b"))))

    def test_keywords_are_case_insensitive(self) -> None:
        assert parse_condition("A AND NOT B") == BoolOp("and", (Name("A"), Not(Name("B"))))

    @pytest.mark.parametrize("op", ["==", "!=", "<", "<=", ">", ">="])
    def test_comparison_operators(self, op: str) -> None:
        assert parse_condition(f"attempts {op} 3") == Compare(op, Name("attempts"), Literal(3))

    def test_literals(self) -> None:
        assert parse_condition("ratio > 0.5") == Compare(">", Name("ratio"), Literal(0.5))
        assert parse_condition('status == "ok"') == Compare("==", Name("status"), Literal("ok"))
        assert parse_condition("enabled == true") == Compare("==", Name("enabled"), Literal(True))

    def test_right_identifier_is_marked(self) -> None:
        expr = parse_condition("status == approved")
        assert expr == Compare("==", Name("status"), Name("approved", "right"))

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "a and", "(a or b", "a b", "a == == b", "a @ b", "and a", "42", '"yes"', "a and 3", "not 'x'"],
    )
    def test_malformed_conditions_raise(self, text: str) -> None:
        with pytest.raises(ConditionError):
            parse_condition(text)

    def test_error_offset_points_at_problem(self) -> None:
        with pytest.raises(ConditionError) as exc_info:
            parse_condition("a and b c")
        assert exc_info.value.column == 8

    def test_number_where_truth_value_expected(self) -> None:
        with pytest.raises(ConditionError, match="Expected a boolean expression, got 3") as exc_info:
            parse_condition("ready and 3")
        assert exc_info.value.column == 10

    def test_boolean_literals_are_conditions(self) -> None:
        assert parse_condition("true") == Literal(True)
        assert parse_condition("not false or a") == BoolOp("or", (Not(Literal(False)), Name("a")))


class TestReferencedIdentifiers:
    def test_collects_left_identifiers_in_order(self) -> None:
        expr = parse_condition("b and (a or not b)")
        assert referenced_identifiers(expr, set()) == ["b", "a"]

    def test_right_identifier_is_enum_literal(self) -> None:
        expr = parse_condition("status == approved")
        assert referenced_identifiers(expr, {"status"}) == ["status"]

    def test_right_identifier_naming_known_value_is_reference(self) -> None:
        expr = parse_condition("expected == actual")
        assert referenced_identifiers(expr, {"expected", "actual"}) == ["expected", "actual"]

    def test_literals_are_not_references(self) -> None:
        expr = parse_condition('count > 3 and label == "x"')
        assert referenced_identifiers(expr, set()) == ["count", "label"]
