"""In-memory implementation of SessionStore."""

from datetime import UTC, datetime
from uuid import UUID

from parley.conversation.models import Event, EventKind, Session, SessionStatus
from parley.conversation.store import SessionStore


class InMemorySessionStore(SessionStore):
    """In-memory SessionStore for testing and development.

    Sessions are copied on the way in and out so callers never hold a
    reference to stored state. Not suitable for production use.
    """

    def __init__(self) -> None:
        self._sessions: dict[UUID, Session] = {}
        self._events: dict[UUID, list[Event]] = {}

    async def get(self, session_id: UUID) -> Session | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def save(self, session: Session) -> UUID:
        stored = session.model_copy(deep=True)
        stored.last_activity_at = datetime.now(UTC)
        self._sessions[stored.session_id] = stored
        return stored.session_id

    async def delete(self, session_id: UUID) -> bool:
        self._events.pop(session_id, None)
        return self._sessions.pop(session_id, None) is not None

    async def get_by_customer(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        customer_id: str,
    ) -> Session | None:
        candidates = [
            s
            for s in self._sessions.values()
            if s.tenant_id == tenant_id
            and s.agent_id == agent_id
            and s.customer_id == customer_id
            and s.status == SessionStatus.ACTIVE
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda s: s.last_activity_at)
        return latest.model_copy(deep=True)

    async def append_events(self, session_id: UUID, events: list[Event]) -> None:
        self._events.setdefault(session_id, []).extend(e.model_copy() for e in events)

    async def list_events(
        self,
        session_id: UUID,
        *,
        kinds: list[EventKind] | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        events = self._events.get(session_id, [])
        if kinds is not None:
            events = [e for e in events if e.kind in kinds]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return list(events)
