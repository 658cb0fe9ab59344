"""Guideline models."""

import re
from typing import Self
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from parley.alignment.models.base import AgentScopedModel
from parley.alignment.models.enums import (
    CompositionMode,
    Criticality,
    RelationshipKind,
    Scope,
)


class Guideline(AgentScopedModel):
    """Condition-action rule that shapes agent behavior.

    A guideline without an action is an observation: matching it records
    that the condition holds (for example to abandon a journey) without
    instructing the reply.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    name: str = Field(..., min_length=1, max_length=100, description="Guideline name")
    condition: str = Field(..., min_length=1, description="When this guideline applies")
    action: str | None = Field(default=None, description="What the agent should do")
    criticality: Criticality = Field(
        default=Criticality.MEDIUM, description="How strongly the guideline must hold"
    )
    tool_ids: list[str] = Field(default_factory=list, description="Tools to call when matched")
    composition_mode: CompositionMode | None = Field(
        default=None, description="Composition mode required while matched"
    )
    scope: Scope = Field(default=Scope.GLOBAL, description="Eligibility scope")
    journey_id: UUID | None = Field(default=None, description="Journey for JOURNEY/STATE scope")
    state_id: str | None = Field(default=None, description="State for STATE scope")
    enabled: bool = Field(default=True, description="Whether guideline is active")
    abandons_journey: bool = Field(
        default=False, description="A match means the customer is leaving the active journey"
    )
    protected_fields: list[str] = Field(
        default_factory=list,
        description="Fact names whose values must never appear in a reply",
    )
    forbidden_patterns: list[str] = Field(
        default_factory=list, description="Regular expressions a reply must not match"
    )
    enforcement_expression: str | None = Field(
        default=None,
        description="simpleeval expression over reply variables that must hold",
    )

    @field_validator("forbidden_patterns")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid forbidden pattern {pattern!r}: {e}") from e
        return v

    @model_validator(mode="after")
    def validate_scope_target(self) -> Self:
        if self.scope in (Scope.JOURNEY, Scope.STATE) and self.journey_id is None:
            raise ValueError(f"journey_id is required for {self.scope.value} scope")
        if self.scope == Scope.STATE and not self.state_id:
            raise ValueError("state_id is required for state scope")
        return self

    @property
    def is_observation(self) -> bool:
        return self.action is None

    @property
    def has_deterministic_checks(self) -> bool:
        return bool(
            self.protected_fields or self.forbidden_patterns or self.enforcement_expression
        )


class GuidelineRelationship(AgentScopedModel):
    """Directed relationship between two guidelines."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    source_id: UUID = Field(..., description="Source guideline")
    target_id: UUID = Field(..., description="Target guideline")
    kind: RelationshipKind = Field(
        default=RelationshipKind.EXCLUDES, description="Relationship type"
    )

    def involves(self, a: UUID, b: UUID) -> bool:
        return {self.source_id, self.target_id} == {a, b}


class MatchedGuideline(BaseModel):
    """A guideline the oracle judged applicable to the current turn."""

    guideline: Guideline = Field(..., description="The matched guideline")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Oracle confidence")
    reasoning: str = Field(default="", description="Why it matched")
    definition_index: int = Field(
        default=0, ge=0, description="Position in the agent's definition order"
    )

    @property
    def criticality(self) -> Criticality:
        return self.guideline.criticality
