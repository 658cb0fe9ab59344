"""Session models for conversation domain."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from parley.conversation.models.enums import EventKind, EventSource, SessionStatus


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class JourneyVisit(BaseModel):
    """Record of reaching a journey state."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    journey_id: UUID = Field(..., description="Journey")
    state_id: str = Field(..., description="Reached state")
    entered_at: datetime = Field(default_factory=utc_now, description="When it was reached")
    turn_number: int = Field(..., description="Turn when reached")
    skipped: bool = Field(default=False, description="Passed through without stopping")
    reason: str | None = Field(default=None, description="How we got here")


class Event(BaseModel):
    """Append-only session event."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    session_id: UUID = Field(..., description="Owning session")
    turn_id: UUID = Field(..., description="Turn that produced the event")
    kind: EventKind = Field(..., description="Event kind")
    source: EventSource = Field(..., description="Producer")
    data: dict[str, Any] = Field(default_factory=dict, description="Event payload")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")

    @property
    def message(self) -> str | None:
        if self.kind != EventKind.MESSAGE:
            return None
        return self.data.get("message")


class Session(BaseModel):
    """Runtime conversation state for one customer of one agent.

    Only the turn pipeline mutates a session, and only through a turn
    transaction committed while the customer's lock is held.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    session_id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    tenant_id: UUID = Field(..., description="Owning tenant")
    agent_id: UUID = Field(..., description="Serving agent")
    customer_id: str = Field(..., description="Customer identifier")
    active_journey_id: UUID | None = Field(default=None, description="Current journey")
    active_state_id: str | None = Field(default=None, description="Current journey state")
    journey_history: list[JourneyVisit] = Field(
        default_factory=list, description="Navigation history"
    )
    completed_journey_ids: list[UUID] = Field(
        default_factory=list, description="Journeys that reached a terminal state"
    )
    facts: dict[str, Any] = Field(
        default_factory=dict, description="Facts stated by the customer"
    )
    data: dict[str, Any] = Field(
        default_factory=dict, description="Session values written by tools"
    )
    turn_count: int = Field(default=0, description="Total turns")
    status: SessionStatus = Field(default=SessionStatus.ACTIVE, description="Current status")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")
    last_activity_at: datetime = Field(default_factory=utc_now, description="Last activity")
