"""Turn diagnostics.

Conditions worth an operator's attention that do not abort the turn.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class DiagnosticKind(str, Enum):
    """Kinds of non-fatal turn diagnostics."""

    AMBIGUOUS_GUIDELINE_CONFLICT = "ambiguous_guideline_conflict"
    UNRESOLVED_TRANSITION = "unresolved_transition"
    JOURNEY_HOP_LIMIT = "journey_hop_limit"
    JOURNEY_TOOL_FAILED = "journey_tool_failed"
    NO_APPROVED_RESPONSE = "no_approved_response"
    MATCHING_UNAVAILABLE = "matching_unavailable"
    VARIABLE_REFRESH_FAILED = "variable_refresh_failed"


class Diagnostic(BaseModel):
    """A single diagnostic attached to a turn result."""

    kind: DiagnosticKind = Field(..., description="Diagnostic kind")
    message: str = Field(..., description="Human-readable summary")
    details: dict[str, Any] = Field(default_factory=dict, description="Structured context")
