"""Generation models for alignment pipeline.

Contains models for drafts, composition results and the response trace.
"""

from uuid import UUID

from pydantic import BaseModel, Field

from parley.alignment.diagnostics import Diagnostic
from parley.alignment.enforcement.models import EnforcementResult
from parley.alignment.models import CompositionMode


class GenerationResult(BaseModel):
    """Result of one LLM generation."""

    response: str = Field(default="")

    # LLM details
    model: str | None = None
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    generation_time_ms: float = Field(default=0.0, ge=0)


class ResponseTrace(BaseModel):
    """How the reply was produced."""

    mode: CompositionMode = Field(..., description="Resolved composition mode")
    draft: str | None = Field(default=None, description="Generated draft before templating")
    canned_response_id: UUID | None = Field(default=None, description="Template used")
    no_approved_response: bool = Field(
        default=False, description="Strict mode found no usable template"
    )
    generated: bool = Field(default=False, description="The reply contains generated text")
    deflected: bool = Field(default=False, description="The generic deflection was sent")
    guidelines_used: list[UUID] = Field(default_factory=list)
    guidelines_suppressed: list[UUID] = Field(default_factory=list)
    tools_used: list[str] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)


class CompositionResult(BaseModel):
    """Final reply with its trace and self-critique result."""

    response: str = Field(..., description="Reply sent to the customer")
    trace: ResponseTrace
    enforcement: EnforcementResult | None = None
    composition_time_ms: float = Field(default=0.0, ge=0)
