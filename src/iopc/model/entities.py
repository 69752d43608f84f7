# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Core entities for the IOP semantic model."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel
from pydantic import Field as _Field

from iopc.model.properties import ListValue, PropertyValue

# ###############
# Public Interface
# ###############

WILDCARD_TYPE = "*"
EXTERNAL_INPUTS_KEY = "external_inputs"
EXTERNAL_PREDICATES_KEY = "external_predicates"


class Component(BaseModel):
    """A unit of intent with named input and output ports."""

    name: str
    type: str = ""
    description: str | None = None
    inputs: list[str] = _Field(default_factory=list)
    outputs: list[str] = _Field(default_factory=list)
    action: str | None = None
    properties: dict[str, PropertyValue] = _Field(default_factory=dict)
    line: int = 0

    @property
    def type_tag(self) -> str:
        """The declared type, or the component name when no type was given."""
        return self.type or self.name


class ActionStep(BaseModel):
    """A flow step that invokes a component with a verb phrase."""

    kind: Literal["action"] = "action"
    component: str
    verb: str = ""
    line: int = 0


class DecisionStep(BaseModel):
    """A flow branch point with a ``then`` and an optional ``else`` arm."""

    kind: Literal["decision"] = "decision"
    condition: str
    then_branch: list[StepNode] = _Field(default_factory=list)
    else_branch: list[StepNode] = _Field(default_factory=list)
    line: int = 0
    condition_column: int = 0


# A flow step: an action or a (recursively nested) decision.
StepNode = Annotated[ActionStep | DecisionStep, _Field(discriminator="kind")]


class Trigger(BaseModel):
    """The structurally matched trigger condition of a flow.

    ``on login attempt`` yields ``kind="event"`` with ``event="login attempt"``;
    ``on schedule(daily, 2:00 AM)`` yields ``kind="schedule"`` with the
    arguments ``["daily", "2:00 AM"]``.
    """

    text: str
    kind: Literal["event", "schedule", "other"] = "other"
    event: str | None = None
    arguments: list[str] = _Field(default_factory=list)


class Flow(BaseModel):
    """A trigger-initiated sequence of steps."""

    name: str
    trigger: Trigger
    steps: list[StepNode] = _Field(default_factory=list)
    line: int = 0


class ErrorRule(BaseModel):
    """A global mapping from an error condition to its resolution."""

    condition: str
    action: str
    line: int = 0


class ImplementationMap(BaseModel):
    """A template that implements a component type in a target language."""

    component_type: str
    target_language: str
    template: str
    line: int = 0


class SystemSpec(BaseModel):
    """Top-level model representing one parsed IOP specification."""

    name: str
    description: str | None = None
    properties: dict[str, PropertyValue] = _Field(default_factory=dict)
    components: list[Component] = _Field(default_factory=list)
    flows: list[Flow] = _Field(default_factory=list)
    error_rules: list[ErrorRule] = _Field(default_factory=list)
    implementation_maps: list[ImplementationMap] = _Field(default_factory=list)
    line: int = 0

    @property
    def external_inputs(self) -> frozenset[str]:
        """Input names supplied from outside the system."""
        return _list_property(self.properties, EXTERNAL_INPUTS_KEY)

    @property
    def external_predicates(self) -> frozenset[str]:
        """Predicate names that decisions may test without a producing component."""
        return _list_property(self.properties, EXTERNAL_PREDICATES_KEY)

    def find_component(self, name: str) -> Component | None:
        """Return the first component named *name*, or None."""
        for comp in self.components:
            if comp.name == name:
                return comp
        return None


def normalize_language(language: str) -> str:
    """Normalize a target language name for registry lookups."""
    return language.strip().lower()


# ################
# Implementation
# ################


def _list_property(properties: dict[str, PropertyValue], key: str) -> frozenset[str]:
    value = properties.get(key)
    if isinstance(value, ListValue):
        return frozenset(value.items)
    if value is not None:
        return frozenset(part.strip() for part in value.render().split(",") if part.strip())
    return frozenset()


# Resolve forward references in self-referential models.
DecisionStep.model_rebuild()
Flow.model_rebuild()
