"""Pipeline result models for alignment engine.

Contains the main AlignmentResult and timing models.
"""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from parley.alignment.context.models import Context
from parley.alignment.diagnostics import Diagnostic
from parley.alignment.enforcement.models import EnforcementResult
from parley.alignment.execution.models import ToolResult
from parley.alignment.generation.models import ResponseTrace
from parley.alignment.journeys.models import JourneyDecision
from parley.alignment.matching.conflicts import SuppressedGuideline
from parley.alignment.models import MatchedGuideline
from parley.alignment.models.base import utc_now


class PipelineStepTiming(BaseModel):
    """Timing information for a single pipeline step."""

    step: str = Field(..., description="Step name")
    started_at: datetime
    ended_at: datetime
    duration_ms: float = Field(ge=0)
    skipped: bool = False
    skip_reason: str | None = None


class AlignmentResult(BaseModel):
    """Complete result of processing a turn through the alignment pipeline.

    Contains every intermediate result for auditability and debugging.
    """

    # Identifiers
    turn_id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    tenant_id: UUID
    agent_id: UUID
    customer_id: str

    # Input
    user_message: str

    # Pipeline outputs
    context: Context | None = None
    matched_guidelines: list[MatchedGuideline] = Field(
        default_factory=list, description="Guidelines in effect after conflict resolution"
    )
    suppressed_guidelines: list[SuppressedGuideline] = Field(default_factory=list)
    journey_decision: JourneyDecision | None = None
    tool_results: list[ToolResult] = Field(default_factory=list)
    trace: ResponseTrace | None = None
    enforcement: EnforcementResult | None = None
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    # Final output
    response: str = Field(..., description="The reply sent to the customer")
    deflected: bool = Field(default=False, description="The reply is the generic deflection")
    attempts: int = Field(default=1, ge=1, description="Turn attempts made")

    # Metadata
    pipeline_timings: list[PipelineStepTiming] = Field(default_factory=list)
    total_time_ms: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
