"""Enforcement models for alignment pipeline.

Contains models for self-critique results.
"""

from uuid import UUID

from pydantic import BaseModel, Field


class ConstraintViolation(BaseModel):
    """A draft reply breaking a high-criticality guideline."""

    guideline_id: UUID
    guideline_name: str
    violation_type: str = Field(
        ...,
        description="protected_field, forbidden_pattern, expression_failed or semantic",
    )
    details: str


class EnforcementResult(BaseModel):
    """Result of self-critique over a draft reply."""

    passed: bool
    violations: list[ConstraintViolation] = Field(default_factory=list)

    # Remediation
    regeneration_attempted: bool = False
    regeneration_succeeded: bool = False
    fallback_used: bool = False
    fallback_response_id: UUID | None = None
    deflected: bool = False

    # Final response (may differ from the draft)
    final_response: str
    enforcement_time_ms: float = Field(default=0.0, ge=0)
