"""Journey navigation models."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from parley.alignment.diagnostics import Diagnostic


class JourneyAction(str, Enum):
    """Navigation outcome for a turn.

    - NONE: No journey active and none started
    - START: A journey was activated
    - CONTINUE: Stayed on the current state
    - TRANSITION: Moved to a new state
    - COMPLETE: Reached a terminal state
    - ABANDON: The active journey was dropped and nothing replaced it
    - UNRESOLVED: No transition could be resolved; state unchanged
    """

    NONE = "none"
    START = "start"
    CONTINUE = "continue"
    TRANSITION = "transition"
    COMPLETE = "complete"
    ABANDON = "abandon"
    UNRESOLVED = "unresolved"


class JourneyDecision(BaseModel):
    """Result of journey navigation for one turn.

    target_state_id is where the session pointer rests after the turn.
    While pending_tool_state_id is set the walk is suspended on a TOOL
    state and must be resumed once the tool has run.
    """

    action: JourneyAction = Field(..., description="Navigation outcome")
    journey_id: UUID | None = Field(default=None, description="Journey active after the turn")
    source_state_id: str | None = Field(default=None, description="State at turn start")
    target_state_id: str | None = Field(default=None, description="State after the turn")
    visited_state_ids: list[str] = Field(
        default_factory=list, description="States reached this turn, in order"
    )
    skipped_state_ids: list[str] = Field(
        default_factory=list, description="Chat states passed because their fields were known"
    )
    pending_tool_state_id: str | None = Field(
        default=None, description="TOOL state awaiting execution"
    )
    abandoned_journey_id: UUID | None = Field(default=None, description="Journey dropped this turn")
    completed_journey_id: UUID | None = Field(
        default=None, description="Journey that ended at a terminal state before this turn"
    )
    reasoning: str = Field(default="", description="Why")
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def is_pending_tool(self) -> bool:
        return self.pending_tool_state_id is not None

    @property
    def state_changed(self) -> bool:
        return self.target_state_id != self.source_state_id
