"""Conversation domain models."""

from parley.conversation.models.enums import EventKind, EventSource, SessionStatus
from parley.conversation.models.session import Event, JourneyVisit, Session

__all__ = [
    "Event",
    "EventKind",
    "EventSource",
    "JourneyVisit",
    "Session",
    "SessionStatus",
]
