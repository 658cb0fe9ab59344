"""Turn transaction: staged writes committed in one step."""

import asyncio
from typing import Any
from uuid import UUID, uuid4

from parley.alignment.journeys.models import JourneyAction, JourneyDecision
from parley.alignment.models import ContextVariableValue
from parley.conversation.models import (
    Event,
    EventKind,
    EventSource,
    JourneyVisit,
    Session,
)
from parley.conversation.store import SessionStore
from parley.observability.logging import get_logger
from parley.variables.store import ContextVariableStore

logger = get_logger(__name__)

_RESTING_ACTIONS = {
    JourneyAction.START,
    JourneyAction.CONTINUE,
    JourneyAction.TRANSITION,
    JourneyAction.COMPLETE,
}


class TurnTransaction:
    """Collects every write a turn makes and applies them together.

    Nothing reaches the stores until commit(). A turn that is cancelled or
    fails before commit leaves no trace. The commit itself is shielded so
    cancellation arriving mid-commit cannot leave a partial write, and
    commit() does not return or raise before the writes finish.
    """

    def __init__(
        self,
        session: Session,
        session_store: SessionStore,
        variable_store: ContextVariableStore,
        turn_id: UUID | None = None,
    ) -> None:
        self._session = session.model_copy(deep=True)
        self._session_store = session_store
        self._variable_store = variable_store
        self.turn_id = turn_id or uuid4()
        self._events: list[Event] = []
        self._variables: dict[tuple[str, str], ContextVariableValue] = {}
        self._committed = False

    @property
    def session(self) -> Session:
        """Staged session state, as it will be saved."""
        return self._session

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    @property
    def variable_values(self) -> list[ContextVariableValue]:
        return list(self._variables.values())

    def stage_event(self, kind: EventKind, source: EventSource, data: dict[str, Any]) -> Event:
        event = Event(
            session_id=self._session.session_id,
            turn_id=self.turn_id,
            kind=kind,
            source=source,
            data=data,
        )
        self._events.append(event)
        return event

    def stage_variable_values(self, values: list[ContextVariableValue]) -> None:
        """Stage variable values; the last value staged for a key wins."""
        for value in values:
            self._variables[(value.variable_name, value.key)] = value

    def stage_facts(self, facts: dict[str, Any]) -> None:
        self._session.facts.update(facts)

    def stage_session_data(self, data: dict[str, Any]) -> None:
        self._session.data.update(data)

    def stage_journey(self, decision: JourneyDecision, *, max_history: int = 100) -> None:
        """Move the session's journey pointer as the decision says.

        UNRESOLVED decisions leave the pointer where it was.
        """
        session = self._session

        if (
            decision.completed_journey_id is not None
            and decision.completed_journey_id not in session.completed_journey_ids
        ):
            session.completed_journey_ids.append(decision.completed_journey_id)

        if decision.action == JourneyAction.UNRESOLVED:
            return

        if decision.action not in _RESTING_ACTIONS:
            if decision.abandoned_journey_id or decision.completed_journey_id:
                session.active_journey_id = None
                session.active_state_id = None
            return

        session.active_journey_id = decision.journey_id
        session.active_state_id = decision.target_state_id

        turn_number = session.turn_count + 1
        skipped = set(decision.skipped_state_ids)
        for state_id in decision.visited_state_ids:
            session.journey_history.append(
                JourneyVisit(
                    journey_id=decision.journey_id,
                    state_id=state_id,
                    turn_number=turn_number,
                    skipped=state_id in skipped,
                    reason=decision.action.value,
                )
            )
        if len(session.journey_history) > max_history:
            session.journey_history = session.journey_history[-max_history:]

        if (
            decision.action == JourneyAction.COMPLETE
            and decision.journey_id not in session.completed_journey_ids
        ):
            session.completed_journey_ids.append(decision.journey_id)

    def stage_turn(self) -> None:
        self._session.turn_count += 1

    async def commit(self) -> Session:
        """Apply staged writes. Returns the saved session."""
        if self._committed:
            raise RuntimeError(f"Turn {self.turn_id} is already committed")
        self._committed = True
        task = asyncio.ensure_future(self._apply())
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # Hold the caller (and its customer lock) until the writes land
            await task
            raise
        return self._session

    def discard(self) -> None:
        """Drop staged writes."""
        self._events.clear()
        self._variables.clear()
        self._committed = True

    async def _apply(self) -> None:
        session = self._session
        if self._variables:
            await self._variable_store.set_values(
                session.tenant_id, session.agent_id, list(self._variables.values())
            )
        if self._events:
            await self._session_store.append_events(session.session_id, self._events)
        await self._session_store.save(session)

        logger.debug(
            "turn_committed",
            session_id=str(session.session_id),
            turn_id=str(self.turn_id),
            events=len(self._events),
            variables=len(self._variables),
        )
