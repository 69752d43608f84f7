# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the IOP semantic validation checks."""

from iopc.compiler.diagnostics import DiagnosticCode, Severity
from iopc.compiler.graph import build_intent_graph
from iopc.compiler.parser import parse
from iopc.model.entities import (
    ActionStep,
    Component,
    DecisionStep,
    ErrorRule,
    Flow,
    ImplementationMap,
    SystemSpec,
    Trigger,
)
from iopc.model.properties import DurationValue, ListValue, PropertyKind, StringValue, TokenValue
from iopc.validation.checks import ValidationResult, validate

# ###############
# Test Helpers
# ###############


def _comp(name: str, inputs: list[str] | None = None, outputs: list[str] | None = None, **kwargs: object) -> Component:
    """Create a Component with the given ports."""
    return Component(name=name, inputs=inputs or [], outputs=outputs or [], **kwargs)


def _flow(name: str, *steps: ActionStep | DecisionStep, line: int = 0) -> Flow:
    """Create a Flow triggered by a login attempt."""
    return Flow(name=name, trigger=Trigger(text="on login attempt"), steps=list(steps), line=line)


def _validate(spec: SystemSpec) -> ValidationResult:
    return validate(spec, build_intent_graph(spec))


def _codes(result: ValidationResult) -> list[DiagnosticCode]:
    return [d.code for d in result.diagnostics]


def _externals(*names: str) -> dict[str, ListValue]:
    return {"external_inputs": ListValue(items=list(names))}


# ###############
# Valid Specifications
# ###############


class TestValidSpec:
    def test_empty_spec_is_valid(self) -> None:
        result = _validate(SystemSpec(name="S"))
        assert result.diagnostics == []
        assert not result.has_errors

    def test_connected_components_are_valid(self) -> None:
        spec = SystemSpec(
            name="S",
            properties=_externals("username"),
            components=[_comp("A", ["username"], ["token"]), _comp("B", ["token"])],
            flows=[_flow("Login", ActionStep(component="A"), ActionStep(component="B"))],
        )
        assert _validate(spec).diagnostics == []


# ###############
# Duplicates
# ###############


class TestDuplicates:
    def test_duplicate_component_lists_every_line(self) -> None:
        spec = SystemSpec(name="S", components=[_comp("A", line=3), _comp("B", line=5), _comp("A", line=9)])
        result = _validate(spec)
        assert len(result.errors) == 1
        diagnostic = result.errors[0]
        assert diagnostic.code == DiagnosticCode.DUPLICATE_DEFINITION
        assert diagnostic.name == "A"
        assert diagnostic.kind == "component"
        assert diagnostic.line == 9
        assert diagnostic.path == ("3", "9")
        assert "defined 2 times" in diagnostic.message

    def test_duplicate_flow(self) -> None:
        spec = SystemSpec(name="S", flows=[_flow("F", line=1), _flow("F", line=4)])
        result = _validate(spec)
        assert [(d.code, d.kind) for d in result.errors] == [(DiagnosticCode.DUPLICATE_DEFINITION, "flow")]

    def test_duplicate_error_condition(self) -> None:
        spec = SystemSpec(
            name="S", error_rules=[ErrorRule(condition="E", action="a"), ErrorRule(condition="E", action="b")]
        )
        assert [d.kind for d in _validate(spec).errors] == ["error-condition"]

    def test_duplicate_implementation_map_ignores_language_case(self) -> None:
        spec = SystemSpec(
            name="S",
            components=[_comp("A", type="Worker")],
            implementation_maps=[
                ImplementationMap(component_type="Worker", target_language="Python", template="x", line=7),
                ImplementationMap(component_type="Worker", target_language="python", template="y", line=11),
            ],
        )
        result = _validate(spec)
        assert len(result.errors) == 1
        assert result.errors[0].name == "Worker/python"
        assert result.errors[0].kind == "implementation-map"
        assert result.errors[0].line == 11


# ###############
# References
# ###############


class TestReferences:
    def test_unresolved_input_reported_once_with_consumers(self) -> None:
        spec = SystemSpec(name="S", components=[_comp("A", ["x"]), _comp("B", ["x"])])
        result = _validate(spec)
        assert len(result.errors) == 1
        assert result.errors[0].code == DiagnosticCode.UNRESOLVED_REFERENCE
        assert result.errors[0].kind == "input"
        assert result.errors[0].name == "x"
        assert result.errors[0].path == ("A", "B")

    def test_external_inputs_are_resolved(self) -> None:
        spec = SystemSpec(name="S", properties=_externals("x"), components=[_comp("A", ["x"])])
        assert _validate(spec).diagnostics == []

    def test_single_external_input_as_token(self) -> None:
        spec = SystemSpec(
            name="S", properties={"external_inputs": TokenValue(value="x")}, components=[_comp("A", ["x"])]
        )
        assert _validate(spec).diagnostics == []

    def test_comma_separated_external_inputs_from_source(self) -> None:
        spec = parse(
            "System: UserAuthentication\n"
            "  properties:\n"
            "    external_inputs: username, password\n"
            "Components:\n"
            "  - CredentialValidator:\n"
            "      inputs: username, password\n"
            "      outputs: [user_record]\n"
        )
        assert spec.external_inputs == frozenset({"username", "password"})
        assert _validate(spec).diagnostics == []

    def test_flow_step_with_unknown_component(self) -> None:
        spec = SystemSpec(name="S", flows=[_flow("F", ActionStep(component="Ghost", line=6))])
        result = _validate(spec)
        assert [(d.kind, d.name, d.line) for d in result.errors] == [("component", "Ghost", 6)]

    def test_steps_inside_decisions_are_checked(self) -> None:
        decision = DecisionStep(condition="ok", then_branch=[ActionStep(component="Ghost")])
        spec = SystemSpec(name="S", components=[_comp("A", outputs=["ok"])], flows=[_flow("F", decision)])
        assert [d.name for d in _validate(spec).errors] == ["Ghost"]


# ###############
# Cycles
# ###############


class TestCycles:
    def test_cycle_is_reported_with_path(self) -> None:
        spec = SystemSpec(
            name="S", components=[_comp("B", ["a"], ["b"], line=4), _comp("A", ["b"], ["a"], line=2)]
        )
        result = _validate(spec)
        assert _codes(result) == [DiagnosticCode.CYCLIC_DEPENDENCY]
        assert result.errors[0].path == ("A", "B")
        assert result.errors[0].name == "A"
        assert result.errors[0].line == 2
        assert result.errors[0].message == "Cyclic dependency: A -> B -> A"


# ###############
# Conditions
# ###############


class TestConditions:
    def _spec(self, condition: str, column: int = 0) -> SystemSpec:
        decision = DecisionStep(condition=condition, line=8, condition_column=column)
        return SystemSpec(
            name="S",
            properties={"external_predicates": ListValue(items=["maintenance"])},
            components=[_comp("A", outputs=["verified"])],
            flows=[_flow("F", decision)],
        )

    def test_known_identifiers(self) -> None:
        assert _validate(self._spec("verified and not maintenance")).diagnostics == []

    def test_unknown_identifier(self) -> None:
        result = _validate(self._spec("verified and approved"))
        assert [(d.kind, d.name, d.line) for d in result.errors] == [("condition-identifier", "approved", 8)]

    def test_enum_literal_on_right_is_allowed(self) -> None:
        assert _validate(self._spec("verified == yes")).diagnostics == []

    def test_malformed_condition(self) -> None:
        result = _validate(self._spec("verified and", column=13))
        assert _codes(result) == [DiagnosticCode.INVALID_CONDITION]
        assert result.errors[0].line == 8
        assert result.errors[0].column == 13 + 12

    def test_number_is_not_a_condition(self) -> None:
        result = _validate(self._spec("42", column=12))
        assert _codes(result) == [DiagnosticCode.INVALID_CONDITION]
        assert result.errors[0].column == 12

    def test_string_operand_of_and_is_not_a_condition(self) -> None:
        result = _validate(self._spec('verified and "yes"'))
        assert _codes(result) == [DiagnosticCode.INVALID_CONDITION]

    def test_condition_from_parsed_source(self) -> None:
        spec = parse(
            "System: S\n"
            "Components:\n"
            "  - A:\n"
            "      outputs: [ok]\n"
            "Flow: F\n"
            "  trigger: on start\n"
            "  steps:\n"
            "    - decision: ok or\n"
            "      then:\n"
            "        - A: run\n"
        )
        result = _validate(spec)
        assert _codes(result) == [DiagnosticCode.INVALID_CONDITION]
        assert result.errors[0].line == 8


# ###############
# Implementation Maps
# ###############


class TestImplementationMaps:
    def test_map_for_unknown_type_warns_once(self) -> None:
        maps = [
            ImplementationMap(component_type="Ghost", target_language="python", template="x"),
            ImplementationMap(component_type="Ghost", target_language="go", template="x"),
        ]
        result = _validate(SystemSpec(name="S", implementation_maps=maps))
        assert not result.has_errors
        assert [(d.code, d.severity) for d in result.warnings] == [
            (DiagnosticCode.UNKNOWN_IMPLEMENTATION_MAP, Severity.WARNING)
        ]

    def test_wildcard_map_never_warns(self) -> None:
        maps = [ImplementationMap(component_type="*", target_language="python", template="x")]
        assert _validate(SystemSpec(name="S", implementation_maps=maps)).diagnostics == []

    def test_type_tag_defaults_to_name(self) -> None:
        maps = [ImplementationMap(component_type="Mailer", target_language="python", template="x")]
        spec = SystemSpec(name="S", components=[_comp("Mailer")], implementation_maps=maps)
        assert _validate(spec).diagnostics == []


# ###############
# Properties
# ###############


class TestProperties:
    def test_allowed_property(self) -> None:
        comp = _comp("V", type="Validator", properties={"timeout": DurationValue(text="5s", seconds=5.0)})
        assert _validate(SystemSpec(name="S", components=[comp])).diagnostics == []

    def test_unknown_key_warns(self) -> None:
        comp = _comp("V", type="Validator", properties={"color": TokenValue(value="red")})
        result = _validate(SystemSpec(name="S", components=[comp]))
        assert not result.has_errors
        assert [(d.code, d.name, d.kind) for d in result.warnings] == [(DiagnosticCode.INVALID_PROPERTY, "color", "V")]

    def test_wrong_kind_is_error(self) -> None:
        comp = _comp("V", type="Validator", properties={"timeout": StringValue(value="soon")})
        result = _validate(SystemSpec(name="S", components=[comp]))
        assert len(result.errors) == 1
        assert "must be a duration, got string" in result.errors[0].message

    def test_unregistered_type_accepts_anything(self) -> None:
        comp = _comp("X", type="Custom", properties={"anything": TokenValue(value="goes")})
        assert _validate(SystemSpec(name="S", components=[comp])).diagnostics == []

    def test_custom_schema(self) -> None:
        comp = _comp("X", type="Custom", properties={"level": TokenValue(value="high")})
        spec = SystemSpec(name="S", components=[comp])
        result = validate(spec, build_intent_graph(spec), property_schemas={"Custom": {"level": PropertyKind.SCALAR}})
        assert len(result.errors) == 1


# ###############
# Ordering
# ###############


class TestOrdering:
    def test_all_checks_run(self) -> None:
        spec = SystemSpec(
            name="S",
            components=[_comp("A", ["missing"], line=1), _comp("A", line=2)],
            flows=[_flow("F", ActionStep(component="Ghost"))],
        )
        result = _validate(spec)
        assert [d.kind for d in result.errors] == ["component", "input", "component"]
