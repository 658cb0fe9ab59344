"""Journey navigation for alignment pipeline.

Decides which journey is active and walks its state graph each turn.
Transitions are evaluated in declared order and the first that holds
(or is unconditional) is taken. Fork states are always passed through,
chat states whose collected fields are already known are skipped, and
the walk suspends on tool states so the caller can run the tool.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from parley.alignment.context.models import Context
from parley.alignment.diagnostics import Diagnostic, DiagnosticKind
from parley.alignment.journeys.models import JourneyAction, JourneyDecision
from parley.alignment.matching.evaluator import ConditionEvaluator
from parley.alignment.matching.models import MatchedJourney
from parley.alignment.models import Journey, JourneyState, JourneyTransition, StateKind
from parley.observability.logging import get_logger

logger = get_logger(__name__)


class _Stop(str, Enum):
    CHAT = "chat"
    SATISFIED = "satisfied"
    STAY = "stay"
    TERMINAL = "terminal"
    TOOL = "tool"
    UNRESOLVED = "unresolved"
    HOP_LIMIT = "hop_limit"


@dataclass
class _Walk:
    """Progress of one walk through a journey graph."""

    journey: Journey
    source_state_id: str | None
    visited: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    abandoned_journey_id: UUID | None = None
    completed_journey_id: UUID | None = None

    @property
    def started(self) -> bool:
        return self.source_state_id is None


class JourneyEngine:
    """Per-session journey state machine driver.

    Only one journey is active per session. A newly matched journey does
    not preempt the active one unless the active journey reached a
    terminal state or the customer abandoned it.
    """

    def __init__(
        self,
        evaluator: ConditionEvaluator,
        max_hops: int = 25,
        min_confidence: float = 0.5,
    ) -> None:
        """Initialize the journey engine.

        Args:
            evaluator: Oracle for transition conditions
            max_hops: Maximum transitions taken in one turn
            min_confidence: Minimum confidence for a condition to hold
        """
        self._evaluator = evaluator
        self._max_hops = max_hops
        self._min_confidence = min_confidence

    async def navigate(
        self,
        *,
        journeys: list[Journey],
        active_journey_id: UUID | None,
        active_state_id: str | None,
        matched_journeys: list[MatchedJourney],
        abandon: bool,
        context: Context,
    ) -> JourneyDecision:
        """Decide the journey and state for this turn.

        Args:
            journeys: Agent journeys
            active_journey_id: Journey active at turn start
            active_state_id: State current at turn start
            matched_journeys: Journeys whose activation conditions hold, best first
            abandon: Whether an abandoning guideline matched
            context: Turn context

        Returns:
            JourneyDecision, possibly suspended on a tool state
        """
        abandoned: UUID | None = None
        completed: UUID | None = None

        if active_journey_id is not None:
            journey = next((j for j in journeys if j.id == active_journey_id), None)
            state = journey.get_state(active_state_id) if journey else None

            if journey is None or state is None:
                logger.warning(
                    "active_journey_missing",
                    journey_id=str(active_journey_id),
                    state_id=active_state_id,
                )
                abandoned = active_journey_id
            elif abandon:
                logger.info("journey_abandoned", journey_id=str(journey.id), state_id=state.id)
                abandoned = journey.id
            elif state.is_terminal:
                completed = journey.id
            else:
                walk = _Walk(journey=journey, source_state_id=state.id)
                # The pointer only rests on chat or terminal states; anything
                # else is re-entered so its tool or fork is handled again.
                arrive = state.kind != StateKind.CHAT
                return await self._walk(walk, state, context, arrive=arrive)

        candidates = [m for m in matched_journeys if m.journey.id != abandoned]
        if not candidates:
            return JourneyDecision(
                action=JourneyAction.ABANDON if abandoned else JourneyAction.NONE,
                abandoned_journey_id=abandoned,
                completed_journey_id=completed,
            )

        journey = candidates[0].journey
        logger.info(
            "journey_activated",
            journey_id=str(journey.id),
            title=journey.title,
            confidence=candidates[0].confidence,
        )
        walk = _Walk(
            journey=journey,
            source_state_id=None,
            abandoned_journey_id=abandoned,
            completed_journey_id=completed,
        )
        walk.visited.append(journey.initial_state_id)
        return await self._walk(walk, journey.initial_state, context, arrive=True)

    async def resume(
        self,
        journey: Journey,
        decision: JourneyDecision,
        context: Context,
        *,
        tool_succeeded: bool,
    ) -> JourneyDecision:
        """Continue a walk suspended on a tool state.

        Args:
            journey: Journey being walked
            decision: Decision returned with pending_tool_state_id set
            context: Turn context, including the tool's result
            tool_succeeded: Whether the tool call succeeded

        Returns:
            Updated JourneyDecision
        """
        tool_state = journey.get_state(decision.pending_tool_state_id)
        if tool_state is None:
            raise ValueError(f"No pending tool state in journey {journey.id}")

        walk = _Walk(
            journey=journey,
            source_state_id=decision.source_state_id,
            visited=list(decision.visited_state_ids),
            skipped=list(decision.skipped_state_ids),
            abandoned_journey_id=decision.abandoned_journey_id,
            completed_journey_id=decision.completed_journey_id,
        )

        if not tool_succeeded:
            logger.warning(
                "journey_tool_failed",
                journey_id=str(journey.id),
                state_id=tool_state.id,
                tool_id=tool_state.tool_id,
            )
            return self._rollback(
                walk,
                Diagnostic(
                    kind=DiagnosticKind.JOURNEY_TOOL_FAILED,
                    message=f"Tool '{tool_state.tool_id}' failed in state '{tool_state.id}'",
                    details={"journey_id": str(journey.id), "state_id": tool_state.id},
                ),
            )

        return await self._walk(walk, tool_state, context, arrive=False)

    async def _walk(
        self,
        walk: _Walk,
        state: JourneyState,
        context: Context,
        *,
        arrive: bool,
    ) -> JourneyDecision:
        current = state
        arriving = arrive
        known = context.known_fields()

        while True:
            if arriving and current.kind == StateKind.TOOL:
                return self._decide(walk, current, _Stop.TOOL)
            if current.is_terminal:
                return self._decide(walk, current, _Stop.TERMINAL)

            skipping = False
            if arriving and current.kind == StateKind.CHAT:
                if not current.is_satisfied_by(known):
                    return self._decide(walk, current, _Stop.CHAT)
                skipping = True

            transition = await self._select_transition(current, context)

            if transition is None:
                if current.kind == StateKind.CHAT:
                    stop = _Stop.SATISFIED if skipping else _Stop.STAY
                    return self._decide(walk, current, stop)
                return self._decide(walk, current, _Stop.UNRESOLVED)

            if skipping:
                walk.skipped.append(current.id)
                logger.debug(
                    "journey_state_skipped",
                    journey_id=str(walk.journey.id),
                    state_id=current.id,
                    collected=current.collects,
                )

            if len(walk.visited) >= self._max_hops:
                return self._decide(walk, current, _Stop.HOP_LIMIT)

            next_state = walk.journey.get_state(transition.target_state_id)
            if next_state is None:
                return self._decide(walk, current, _Stop.UNRESOLVED)
            walk.visited.append(next_state.id)
            current = next_state
            arriving = True

    async def _select_transition(
        self,
        state: JourneyState,
        context: Context,
    ) -> JourneyTransition | None:
        """First transition in declared order that holds or is unconditional."""
        conditional = [t for t in state.transitions if t.condition is not None]
        evaluations = await self._evaluator.evaluate_many(
            [t.condition for t in conditional if t.condition is not None], context
        )
        holds = {
            id(t): e.applies and e.confidence >= self._min_confidence
            for t, e in zip(conditional, evaluations)
        }
        for transition in state.transitions:
            if transition.is_unconditional or holds.get(id(transition), False):
                return transition
        return None

    def _decide(self, walk: _Walk, state: JourneyState, stop: _Stop) -> JourneyDecision:
        journey = walk.journey

        if stop == _Stop.UNRESOLVED:
            logger.warning(
                "journey_transition_unresolved",
                journey_id=str(journey.id),
                state_id=state.id,
                source_state_id=walk.source_state_id,
            )
            return self._rollback(
                walk,
                Diagnostic(
                    kind=DiagnosticKind.UNRESOLVED_TRANSITION,
                    message=f"No transition from state '{state.id}' could be resolved",
                    details={"journey_id": str(journey.id), "state_id": state.id},
                ),
            )

        if stop == _Stop.HOP_LIMIT:
            logger.warning(
                "journey_hop_limit_reached",
                journey_id=str(journey.id),
                state_id=state.id,
                max_hops=self._max_hops,
            )
            return self._rollback(
                walk,
                Diagnostic(
                    kind=DiagnosticKind.JOURNEY_HOP_LIMIT,
                    message=f"Journey walk exceeded {self._max_hops} transitions",
                    details={"journey_id": str(journey.id), "state_id": state.id},
                ),
            )

        if stop == _Stop.TERMINAL:
            action = JourneyAction.COMPLETE
        elif walk.started:
            action = JourneyAction.START
        elif state.id == walk.source_state_id and not walk.visited:
            action = JourneyAction.CONTINUE
        else:
            action = JourneyAction.TRANSITION

        decision = JourneyDecision(
            action=action,
            journey_id=journey.id,
            source_state_id=walk.source_state_id,
            target_state_id=state.id,
            visited_state_ids=list(walk.visited),
            skipped_state_ids=list(walk.skipped),
            pending_tool_state_id=state.id if stop == _Stop.TOOL else None,
            abandoned_journey_id=walk.abandoned_journey_id,
            completed_journey_id=walk.completed_journey_id,
            reasoning=f"stopped at {stop.value} state '{state.id}'",
        )

        if stop == _Stop.SATISFIED:
            logger.warning(
                "journey_transition_unresolved",
                journey_id=str(journey.id),
                state_id=state.id,
                source_state_id=walk.source_state_id,
                collected=state.collects,
            )
            decision.diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.UNRESOLVED_TRANSITION,
                    message=f"State '{state.id}' is satisfied but no transition holds",
                    details={"journey_id": str(journey.id), "state_id": state.id},
                )
            )

        if stop != _Stop.TOOL:
            logger.info(
                "journey_navigated",
                journey_id=str(journey.id),
                action=action.value,
                source_state_id=walk.source_state_id,
                target_state_id=state.id,
                skipped=walk.skipped,
            )
        return decision

    def _rollback(self, walk: _Walk, diagnostic: Diagnostic) -> JourneyDecision:
        """Leave the session where it was at turn start."""
        if walk.started:
            # Nothing to keep: the journey never got a resting state
            return JourneyDecision(
                action=JourneyAction.ABANDON if walk.abandoned_journey_id else JourneyAction.NONE,
                abandoned_journey_id=walk.abandoned_journey_id,
                completed_journey_id=walk.completed_journey_id,
                reasoning=diagnostic.message,
                diagnostics=[diagnostic],
            )
        return JourneyDecision(
            action=JourneyAction.UNRESOLVED,
            journey_id=walk.journey.id,
            source_state_id=walk.source_state_id,
            target_state_id=walk.source_state_id,
            reasoning=diagnostic.message,
            diagnostics=[diagnostic],
        )
