"""Alignment domain models.

Configuration-time entities (glossary terms, guidelines, journeys,
canned responses, variables, tools) plus the enums they share.
"""

from parley.alignment.models.agent import Agent
from parley.alignment.models.base import AgentScopedModel, TenantScopedModel, utc_now
from parley.alignment.models.canned_response import CannedResponse
from parley.alignment.models.enums import (
    CompositionMode,
    Criticality,
    ParameterSource,
    RelationshipKind,
    Scope,
    StateKind,
    VariableScope,
)
from parley.alignment.models.field import FieldDefinition
from parley.alignment.models.glossary import GlossaryTerm
from parley.alignment.models.guideline import (
    Guideline,
    GuidelineRelationship,
    MatchedGuideline,
)
from parley.alignment.models.journey import Journey, JourneyState, JourneyTransition
from parley.alignment.models.tool import ToolDefinition, ToolParameter
from parley.alignment.models.variable import ContextVariable, ContextVariableValue

__all__ = [
    "Agent",
    "AgentScopedModel",
    "CannedResponse",
    "CompositionMode",
    "ContextVariable",
    "ContextVariableValue",
    "Criticality",
    "FieldDefinition",
    "GlossaryTerm",
    "Guideline",
    "GuidelineRelationship",
    "Journey",
    "JourneyState",
    "JourneyTransition",
    "MatchedGuideline",
    "ParameterSource",
    "RelationshipKind",
    "Scope",
    "StateKind",
    "TenantScopedModel",
    "ToolDefinition",
    "ToolParameter",
    "VariableScope",
    "utc_now",
]
