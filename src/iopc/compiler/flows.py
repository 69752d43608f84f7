# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compilation of flows into explicit finite-state machines.

States live in an arena and refer to each other by index. State 0 is always
the trigger state, and the single terminal state is always the last state.
Action states have one ``next`` transition. Branch states have exactly a
``then`` and an ``else`` transition. Both branches of a decision rejoin the
step that follows it, or the terminal state when the decision ends its
sequence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from iopc.model.entities import ActionStep, Flow, StepNode, SystemSpec

# ###############
# Public Interface
# ###############

TRIGGER = "trigger"
ACTION = "action"
BRANCH = "branch"
TERMINAL = "terminal"


@dataclass(frozen=True)
class Transition:
    """A labeled edge to another state of the same machine."""

    label: str
    target: int


@dataclass(frozen=True)
class State:
    """One state of a compiled flow.

    Attributes:
        index: Position of the state in the machine's arena.
        kind: One of ``trigger``, ``action``, ``branch`` or ``terminal``.
        label: The trigger text, ``Component: verb``, or the condition.
        component: The invoked component, for action states.
        condition: The tested condition, for branch states.
        transitions: Outgoing transitions in ``next``/``then``/``else`` order.
    """

    index: int
    kind: str
    label: str
    component: str | None = None
    condition: str | None = None
    transitions: tuple[Transition, ...] = ()

    def target(self, label: str) -> int | None:
        """Return the index the transition called *label* leads to, if any."""
        for transition in self.transitions:
            if transition.label == label:
                return transition.target
        return None


@dataclass(frozen=True)
class StateMachine:
    """The compiled form of one flow."""

    flow: str
    trigger: str
    states: tuple[State, ...]

    @property
    def initial(self) -> int:
        return 0

    @property
    def terminal(self) -> int:
        return len(self.states) - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "flow": self.flow,
            "trigger": self.trigger,
            "initial": self.initial,
            "terminal": self.terminal,
            "states": [
                {
                    "index": s.index,
                    "kind": s.kind,
                    "label": s.label,
                    "transitions": {t.label: t.target for t in s.transitions},
                }
                for s in self.states
            ],
        }

    def to_mermaid(self) -> str:
        """Render the machine as a Mermaid ``stateDiagram-v2`` document."""
        lines = ["stateDiagram-v2"]
        for state in self.states:
            if state.kind == TERMINAL:
                continue
            label = _mermaid_label(state.label)
            if state.kind == BRANCH:
                lines.append(f"    state s{state.index} <<choice>>")
                lines.append(f"    note right of s{state.index}: {label}")
            else:
                lines.append(f"    s{state.index}: {label}")
        lines.append("    [*] --> s0")
        for state in self.states:
            for transition in state.transitions:
                target = "[*]" if transition.target == self.terminal else f"s{transition.target}"
                suffix = "" if transition.label == "next" else f": {transition.label}"
                lines.append(f"    s{state.index} --> {target}{suffix}")
        return "\n".join(lines) + "\n"


def compile_flow(flow: Flow) -> StateMachine:
    """Flatten *flow* into a state machine. Performs no I/O."""
    builder = _MachineBuilder()
    trigger = builder.add(TRIGGER, flow.trigger.text)
    pending = builder.compile_sequence(flow.steps, [(trigger, "next")])
    terminal = builder.add(TERMINAL, "")
    builder.patch(pending, terminal)
    return StateMachine(flow=flow.name, trigger=flow.trigger.text, states=builder.freeze())


def compile_flows(spec: SystemSpec) -> dict[str, StateMachine]:
    """Compile every flow of *spec*, keyed by flow name in declaration order."""
    return {flow.name: compile_flow(flow) for flow in spec.flows}


# ################
# Implementation
# ################

_TRANSITION_ORDER = {"next": 0, "then": 1, "else": 2}


@dataclass
class _PendingState:
    kind: str
    label: str
    component: str | None
    condition: str | None
    transitions: dict[str, int]


class _MachineBuilder:
    """Mutable arena used while flattening; frozen once complete."""

    def __init__(self) -> None:
        self._states: list[_PendingState] = []

    def add(self, kind: str, label: str, *, component: str | None = None, condition: str | None = None) -> int:
        self._states.append(_PendingState(kind, label, component, condition, {}))
        return len(self._states) - 1

    def patch(self, pending: list[tuple[int, str]], target: int) -> None:
        """Point every dangling exit in *pending* at *target*."""
        for index, label in pending:
            self._states[index].transitions[label] = target

    def compile_sequence(self, steps: list[StepNode], pending: list[tuple[int, str]]) -> list[tuple[int, str]]:
        """Append states for *steps*, returning the exits that still dangle."""
        for step in steps:
            if isinstance(step, ActionStep):
                label = f"{step.component}: {step.verb}" if step.verb else step.component
                index = self.add(ACTION, label, component=step.component)
                self.patch(pending, index)
                pending = [(index, "next")]
            else:
                index = self.add(BRANCH, step.condition, condition=step.condition)
                self.patch(pending, index)
                then_exits = self.compile_sequence(step.then_branch, [(index, "then")])
                else_exits = self.compile_sequence(step.else_branch, [(index, "else")])
                pending = then_exits + else_exits
        return pending

    def freeze(self) -> tuple[State, ...]:
        return tuple(
            State(
                index=i,
                kind=s.kind,
                label=s.label,
                component=s.component,
                condition=s.condition,
                transitions=tuple(
                    Transition(label, target)
                    for label, target in sorted(s.transitions.items(), key=lambda item: _TRANSITION_ORDER[item[0]])
                ),
            )
            for i, s in enumerate(self._states)
        )


def _mermaid_label(text: str) -> str:
    return re.sub(r"\s+", " ", text.replace(":", "#58;")).strip()
