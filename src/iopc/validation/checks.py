# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic validation checks for parsed IOP specifications.

The checks operate on a parsed SystemSpec together with its intent graph.
Every check always runs, so one call reports every problem in the
specification rather than stopping at the first one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from iopc.compiler.conditions import ConditionError, parse_condition, referenced_identifiers
from iopc.compiler.diagnostics import Diagnostic, DiagnosticCode, Severity, error, warning
from iopc.compiler.graph import IntentGraph
from iopc.compiler.registry import PROPERTY_SCHEMAS
from iopc.model.entities import WILDCARD_TYPE, DecisionStep, StepNode, SystemSpec, normalize_language
from iopc.model.properties import PropertyKind, property_kind

# ###############
# Public Interface
# ###############


@dataclass
class ValidationResult:
    """Result of running validation checks.

    Attributes:
        diagnostics: Every error and warning, grouped by check in the order
            the checks run.
    """

    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        """Return True if any error-severity diagnostics were found."""
        return len(self.errors) > 0


def validate(
    spec: SystemSpec,
    graph: IntentGraph,
    *,
    property_schemas: Mapping[str, Mapping[str, PropertyKind]] = PROPERTY_SCHEMAS,
) -> ValidationResult:
    """Run all validation checks on a parsed specification.

    Checks performed:

    1. **Duplicate components** (error): one diagnostic per repeated name,
       listing the line of every occurrence.

    2. **Unresolved inputs** (error): an input that no component produces and
       that is not listed in the ``external_inputs`` system property. One
       diagnostic per input name.

    3. **Cycles** (error): one diagnostic per cycle in the intent graph, the
       path starting at the smallest component name.

    4. **Flows** (error): duplicate flow names, steps naming an unknown
       component, conditions that are not boolean expressions and condition
       identifiers that are neither outputs, external inputs nor external
       predicates.

    5. **Error rules** (error): duplicate condition keys.

    6. **Implementation maps**: duplicate (type, language) pairs (error) and
       maps whose type matches no component (warning).

    7. **Properties**: keys not allowed for a registered component type
       (warning) and values of the wrong kind (error).

    Args:
        spec: The parsed specification.
        graph: The intent graph built from *spec*.
        property_schemas: Allowed property keys and kinds per component type.

    Returns:
        A :class:`ValidationResult`. An empty result indicates a valid specification.
    """
    diagnostics: list[Diagnostic] = []
    diagnostics.extend(_check_duplicate_components(spec))
    diagnostics.extend(_check_unresolved_inputs(spec))
    diagnostics.extend(_check_cycles(spec, graph))
    diagnostics.extend(_check_flows(spec))
    diagnostics.extend(_check_error_rules(spec))
    diagnostics.extend(_check_implementation_maps(spec))
    diagnostics.extend(_check_properties(spec, property_schemas))
    return ValidationResult(diagnostics=diagnostics)


# ################
# Implementation
# ################


def _duplicates(items: Iterable[tuple[str, int]]) -> dict[str, list[int]]:
    """Group (name, line) pairs and keep only names seen more than once."""
    lines: dict[str, list[int]] = {}
    for name, line in items:
        lines.setdefault(name, []).append(line)
    return {name: found for name, found in lines.items() if len(found) > 1}


def _duplicate_diagnostics(items: Iterable[tuple[str, int]], kind: str, label: str) -> list[Diagnostic]:
    result: list[Diagnostic] = []
    for name, lines in _duplicates(items).items():
        locations = ", ".join(str(line) for line in lines)
        result.append(
            error(
                DiagnosticCode.DUPLICATE_DEFINITION,
                f"Duplicate {label} '{name}' defined {len(lines)} times (lines {locations})",
                name=name,
                kind=kind,
                line=lines[1],
                path=tuple(str(line) for line in lines),
            )
        )
    return result


def _check_duplicate_components(spec: SystemSpec) -> list[Diagnostic]:
    return _duplicate_diagnostics(((c.name, c.line) for c in spec.components), "component", "component")


def _produced_outputs(spec: SystemSpec) -> set[str]:
    return {output for comp in spec.components for output in comp.outputs}


def _check_unresolved_inputs(spec: SystemSpec) -> list[Diagnostic]:
    """Report each input name that is neither produced nor external, once."""
    available = _produced_outputs(spec) | spec.external_inputs
    reported: set[str] = set()
    result: list[Diagnostic] = []
    for comp in spec.components:
        for name in comp.inputs:
            if name in available or name in reported:
                continue
            reported.add(name)
            consumers = [c.name for c in spec.components if name in c.inputs]
            result.append(
                error(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"Input '{name}' of component '{comp.name}' is not produced by any component"
                    " and is not declared as an external input",
                    name=name,
                    kind="input",
                    line=comp.line,
                    path=tuple(consumers),
                )
            )
    return result


def _check_cycles(spec: SystemSpec, graph: IntentGraph) -> list[Diagnostic]:
    result: list[Diagnostic] = []
    for cycle in graph.find_cycles():
        first = spec.find_component(cycle[0])
        result.append(
            error(
                DiagnosticCode.CYCLIC_DEPENDENCY,
                f"Cyclic dependency: {' -> '.join([*cycle, cycle[0]])}",
                name=cycle[0],
                line=first.line if first else None,
                path=tuple(cycle),
            )
        )
    return result


def _walk_steps(steps: list[StepNode]) -> Iterable[StepNode]:
    for step in steps:
        yield step
        if isinstance(step, DecisionStep):
            yield from _walk_steps(step.then_branch)
            yield from _walk_steps(step.else_branch)


def _check_flows(spec: SystemSpec) -> list[Diagnostic]:
    result = _duplicate_diagnostics(((f.name, f.line) for f in spec.flows), "flow", "flow")
    component_names = {c.name for c in spec.components}
    known = _produced_outputs(spec) | spec.external_inputs | spec.external_predicates
    for flow in spec.flows:
        for step in _walk_steps(flow.steps):
            if isinstance(step, DecisionStep):
                result.extend(_check_condition(flow.name, step, known))
            elif step.component not in component_names:
                result.append(
                    error(
                        DiagnosticCode.UNRESOLVED_REFERENCE,
                        f"Flow '{flow.name}' references unknown component '{step.component}'",
                        name=step.component,
                        kind="component",
                        line=step.line,
                    )
                )
    return result


def _check_condition(flow_name: str, step: DecisionStep, known: set[str]) -> list[Diagnostic]:
    try:
        expr = parse_condition(step.condition)
    except ConditionError as exc:
        return [
            error(
                DiagnosticCode.INVALID_CONDITION,
                f"Flow '{flow_name}': condition '{step.condition}' is not a boolean expression: {exc.message}",
                name=step.condition,
                line=step.line,
                column=step.condition_column + exc.column if step.condition_column else None,
            )
        ]
    return [
        error(
            DiagnosticCode.UNRESOLVED_REFERENCE,
            f"Flow '{flow_name}': condition identifier '{identifier}' is not an output,"
            " external input or external predicate",
            name=identifier,
            kind="condition-identifier",
            line=step.line,
        )
        for identifier in referenced_identifiers(expr, known)
        if identifier not in known
    ]


def _check_error_rules(spec: SystemSpec) -> list[Diagnostic]:
    return _duplicate_diagnostics(
        ((r.condition, r.line) for r in spec.error_rules), "error-condition", "error condition"
    )


def _check_implementation_maps(spec: SystemSpec) -> list[Diagnostic]:
    result = _duplicate_diagnostics(
        (
            (f"{m.component_type}/{normalize_language(m.target_language)}", m.line)
            for m in spec.implementation_maps
        ),
        "implementation-map",
        "implementation map",
    )
    type_tags = {c.type_tag for c in spec.components}
    reported: set[str] = set()
    for m in spec.implementation_maps:
        if m.component_type == WILDCARD_TYPE or m.component_type in type_tags or m.component_type in reported:
            continue
        reported.add(m.component_type)
        result.append(
            warning(
                DiagnosticCode.UNKNOWN_IMPLEMENTATION_MAP,
                f"Implementation map for type '{m.component_type}' matches no component",
                name=m.component_type,
                line=m.line,
                path=(m.component_type, m.target_language),
            )
        )
    return result


def _check_properties(
    spec: SystemSpec, property_schemas: Mapping[str, Mapping[str, PropertyKind]]
) -> list[Diagnostic]:
    result: list[Diagnostic] = []
    for comp in spec.components:
        schema = property_schemas.get(comp.type_tag)
        if schema is None:
            continue
        for key, value in comp.properties.items():
            expected = schema.get(key)
            if expected is None:
                result.append(
                    warning(
                        DiagnosticCode.INVALID_PROPERTY,
                        f"Property '{key}' is not defined for component type '{comp.type_tag}'",
                        name=key,
                        kind=comp.name,
                        line=comp.line,
                    )
                )
            elif property_kind(value) != expected:
                result.append(
                    error(
                        DiagnosticCode.INVALID_PROPERTY,
                        f"Property '{key}' of component '{comp.name}' must be a {expected.value},"
                        f" got {property_kind(value).value}",
                        name=key,
                        kind=comp.name,
                        line=comp.line,
                    )
                )
    return result
