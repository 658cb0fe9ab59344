"""SessionStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from parley.conversation.models import Event, EventKind, Session


class SessionStore(ABC):
    """Abstract interface for session and event storage.

    Events are append-only and returned in insertion order.
    """

    @abstractmethod
    async def get(self, session_id: UUID) -> Session | None:
        """Get a session by ID."""
        pass

    @abstractmethod
    async def save(self, session: Session) -> UUID:
        """Save a session, returning its ID."""
        pass

    @abstractmethod
    async def delete(self, session_id: UUID) -> bool:
        """Delete a session and its events."""
        pass

    @abstractmethod
    async def get_by_customer(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        customer_id: str,
    ) -> Session | None:
        """Get the most recent active session for a customer."""
        pass

    @abstractmethod
    async def append_events(self, session_id: UUID, events: list[Event]) -> None:
        """Append events to a session's log."""
        pass

    @abstractmethod
    async def list_events(
        self,
        session_id: UUID,
        *,
        kinds: list[EventKind] | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """List events oldest first.

        Args:
            session_id: Session
            kinds: Only events of these kinds
            limit: Only the most recent events, after kind filtering
        """
        pass
