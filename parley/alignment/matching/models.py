"""Matching result models."""

from uuid import UUID

from pydantic import BaseModel, Field

from parley.alignment.models import Journey, MatchedGuideline


class MatchedJourney(BaseModel):
    """A journey whose activation conditions hold this turn."""

    journey: Journey = Field(..., description="The matched journey")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Best condition confidence")
    reasoning: str = Field(default="", description="Why it matched")
    definition_index: int = Field(default=0, ge=0, description="Definition order")


class GuidelineMatchResult(BaseModel):
    """Output of the guideline matching step."""

    matched: list[MatchedGuideline] = Field(
        default_factory=list,
        description="Matched guidelines by criticality, confidence, definition order",
    )
    rejected_ids: list[UUID] = Field(default_factory=list, description="Evaluated, not matched")
    matched_journeys: list[MatchedJourney] = Field(
        default_factory=list, description="Journeys whose activation conditions hold"
    )
    evaluated_count: int = Field(default=0, description="Conditions sent to the oracle")
    match_time_ms: float = Field(default=0.0, description="Time spent matching")

    @property
    def abandons_journey(self) -> bool:
        return any(m.guideline.abandons_journey for m in self.matched)
