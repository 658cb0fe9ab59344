"""Enums for conversation domain."""

from enum import Enum


class SessionStatus(str, Enum):
    """Session lifecycle status."""

    ACTIVE = "active"
    CLOSED = "closed"


class EventKind(str, Enum):
    """Kinds of session events."""

    MESSAGE = "message"
    TOOL = "tool"
    JOURNEY = "journey"


class EventSource(str, Enum):
    """Who produced an event."""

    CUSTOMER = "customer"
    AGENT = "agent"
    SYSTEM = "system"
