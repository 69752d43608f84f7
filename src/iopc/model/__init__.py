# Copyright 2026 IOPC Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic model for IOP (systems, components, flows, maps, etc.)."""

from iopc.model.entities import (
    WILDCARD_TYPE,
    ActionStep,
    Component,
    DecisionStep,
    ErrorRule,
    Flow,
    ImplementationMap,
    StepNode,
    SystemSpec,
    Trigger,
    normalize_language,
)
from iopc.model.properties import (
    DurationValue,
    ListValue,
    PropertyKind,
    PropertyValue,
    ScalarValue,
    StringValue,
    TokenValue,
    parse_scalar_property,
    property_kind,
)

__all__ = [
    # Property values
    "PropertyKind",
    "PropertyValue",
    "ScalarValue",
    "StringValue",
    "DurationValue",
    "TokenValue",
    "ListValue",
    "parse_scalar_property",
    "property_kind",
    # Entities
    "WILDCARD_TYPE",
    "Component",
    "ActionStep",
    "DecisionStep",
    "StepNode",
    "Trigger",
    "Flow",
    "ErrorRule",
    "ImplementationMap",
    "SystemSpec",
    "normalize_language",
]
