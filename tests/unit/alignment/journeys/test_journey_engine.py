"""Unit tests for JourneyEngine."""

import pytest

from parley.alignment.diagnostics import DiagnosticKind
from parley.alignment.journeys import JourneyAction, JourneyEngine
from parley.alignment.matching import MatchedJourney, MockConditionEvaluator
from parley.alignment.models import Journey
from tests.factories.alignment import JourneyFactory, create_context

HAIRCUT = "The customer wants a haircut"
CONFIRMS = "The customer confirms the booking"
SHIPPED = "The order has shipped"


def _matched(journey: Journey) -> list[MatchedJourney]:
    return [MatchedJourney(journey=journey, confidence=1.0)]


def _order_journey() -> Journey:
    J = JourneyFactory
    return J.create(
        [
            J.chat(
                "ask_order",
                "Ask for the order number",
                to=[("lookup", None)],
                collects=["order_id"],
            ),
            J.tool("lookup", "lookup_order", to=[("shipped", SHIPPED), ("pending", None)]),
            J.chat("shipped", "Tell the customer the order has shipped"),
            J.chat("pending", "Tell the customer the order is being prepared"),
        ],
        title="Order status",
    )


@pytest.fixture
def booking() -> Journey:
    return JourneyFactory.booking()


class TestActivation:
    """Tests for starting journeys."""

    @pytest.mark.asyncio
    async def test_no_journey(self) -> None:
        engine = JourneyEngine(MockConditionEvaluator())

        decision = await engine.navigate(
            journeys=[],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=[],
            abandon=False,
            context=create_context(),
        )

        assert decision.action == JourneyAction.NONE
        assert decision.journey_id is None

    @pytest.mark.asyncio
    async def test_start_rests_on_initial_state(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator())

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=_matched(booking),
            abandon=False,
            context=create_context("I want to book"),
        )

        assert decision.action == JourneyAction.START
        assert decision.journey_id == booking.id
        assert decision.target_state_id == "ask_service"
        assert decision.source_state_id is None

    @pytest.mark.asyncio
    async def test_known_fields_skip_states(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator({HAIRCUT: True}))
        context = create_context(
            "I'd like a haircut on 2026-11-02",
            facts={"service": "haircut", "date": "2026-11-02"},
        )

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=_matched(booking),
            abandon=False,
            context=context,
        )

        assert decision.action == JourneyAction.START
        assert decision.target_state_id == "confirm"
        assert decision.skipped_state_ids == ["ask_service", "ask_date"]
        assert decision.visited_state_ids == ["ask_service", "route", "ask_date", "confirm"]

    @pytest.mark.asyncio
    async def test_fork_takes_first_holding_branch(self, booking: Journey) -> None:
        engine = JourneyEngine(
            MockConditionEvaluator({HAIRCUT: False, "The customer wants coloring": True})
        )

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=booking.id,
            active_state_id="ask_service",
            matched_journeys=[],
            abandon=False,
            context=create_context("Coloring please", facts={"service": "coloring"}),
        )

        assert decision.action == JourneyAction.TRANSITION
        assert decision.target_state_id == "ask_color"
        assert decision.visited_state_ids == ["route", "ask_color"]


class TestNavigation:
    """Tests for moving through an active journey."""

    @pytest.mark.asyncio
    async def test_continue_when_nothing_holds(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator({CONFIRMS: False}))

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=booking.id,
            active_state_id="confirm",
            matched_journeys=[],
            abandon=False,
            context=create_context("Hmm, let me think"),
        )

        assert decision.action == JourneyAction.CONTINUE
        assert decision.target_state_id == "confirm"
        assert not decision.state_changed

    @pytest.mark.asyncio
    async def test_satisfied_state_without_transition_is_reported(self) -> None:
        J = JourneyFactory
        journey = J.create(
            [
                J.chat(
                    "ask_date",
                    "Ask which date suits the customer",
                    to=[("confirm", "The date is within opening days")],
                    collects=["date"],
                ),
                J.chat("confirm", "Confirm the booking"),
            ],
            title="Reschedule",
        )
        engine = JourneyEngine(MockConditionEvaluator({"The date is within opening days": False}))

        decision = await engine.navigate(
            journeys=[journey],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=_matched(journey),
            abandon=False,
            context=create_context("Sunday works", facts={"date": "Sunday"}),
        )

        assert decision.action == JourneyAction.START
        assert decision.target_state_id == "ask_date"
        assert decision.skipped_state_ids == []
        assert [d.kind for d in decision.diagnostics] == [DiagnosticKind.UNRESOLVED_TRANSITION]
        assert decision.diagnostics[0].details["state_id"] == "ask_date"

    @pytest.mark.asyncio
    async def test_navigation_is_repeatable(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator({CONFIRMS: False}))
        kwargs = dict(
            journeys=[booking],
            active_journey_id=booking.id,
            active_state_id="confirm",
            matched_journeys=[],
            abandon=False,
            context=create_context("Hmm"),
        )

        first = await engine.navigate(**kwargs)
        second = await engine.navigate(**kwargs)

        assert first == second

    @pytest.mark.asyncio
    async def test_terminal_state_completes(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator({CONFIRMS: True}))

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=booking.id,
            active_state_id="confirm",
            matched_journeys=[],
            abandon=False,
            context=create_context("Yes, book it"),
        )

        assert decision.action == JourneyAction.COMPLETE
        assert decision.target_state_id == "done"

    @pytest.mark.asyncio
    async def test_completed_journey_is_released(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator())

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=booking.id,
            active_state_id="done",
            matched_journeys=[],
            abandon=False,
            context=create_context("Thanks"),
        )

        assert decision.action == JourneyAction.NONE
        assert decision.completed_journey_id == booking.id

    @pytest.mark.asyncio
    async def test_new_journey_does_not_preempt_active(self, booking: Journey) -> None:
        other = _order_journey()
        engine = JourneyEngine(MockConditionEvaluator())

        decision = await engine.navigate(
            journeys=[booking, other],
            active_journey_id=booking.id,
            active_state_id="confirm",
            matched_journeys=_matched(other),
            abandon=False,
            context=create_context("Also, where is my order?"),
        )

        assert decision.journey_id == booking.id
        assert decision.action == JourneyAction.CONTINUE


class TestAbandon:
    """Tests for leaving a journey."""

    @pytest.mark.asyncio
    async def test_abandon_without_replacement(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator())

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=booking.id,
            active_state_id="ask_date",
            matched_journeys=[],
            abandon=True,
            context=create_context("Forget it"),
        )

        assert decision.action == JourneyAction.ABANDON
        assert decision.abandoned_journey_id == booking.id
        assert decision.journey_id is None

    @pytest.mark.asyncio
    async def test_abandon_then_start_other(self, booking: Journey) -> None:
        other = _order_journey()
        engine = JourneyEngine(MockConditionEvaluator())

        decision = await engine.navigate(
            journeys=[booking, other],
            active_journey_id=booking.id,
            active_state_id="ask_date",
            matched_journeys=_matched(booking) + _matched(other),
            abandon=True,
            context=create_context("Never mind, where is my order?"),
        )

        assert decision.action == JourneyAction.START
        assert decision.journey_id == other.id
        assert decision.abandoned_journey_id == booking.id

    @pytest.mark.asyncio
    async def test_missing_active_journey_is_dropped(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator())

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=booking.id,
            active_state_id="removed_state",
            matched_journeys=[],
            abandon=False,
            context=create_context(),
        )

        assert decision.action == JourneyAction.ABANDON


class TestRollback:
    """Tests for walks that cannot settle."""

    @pytest.mark.asyncio
    async def test_unresolved_fork_keeps_source_state(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator(default=False))

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=booking.id,
            active_state_id="ask_service",
            matched_journeys=[],
            abandon=False,
            context=create_context("A massage", facts={"service": "massage"}),
        )

        assert decision.action == JourneyAction.UNRESOLVED
        assert decision.target_state_id == "ask_service"
        assert decision.visited_state_ids == []
        assert [d.kind for d in decision.diagnostics] == [DiagnosticKind.UNRESOLVED_TRANSITION]

    @pytest.mark.asyncio
    async def test_unresolved_start_activates_nothing(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator(default=False))

        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=_matched(booking),
            abandon=False,
            context=create_context("A massage", facts={"service": "massage"}),
        )

        assert decision.action == JourneyAction.NONE
        assert decision.journey_id is None
        assert decision.diagnostics[0].kind == DiagnosticKind.UNRESOLVED_TRANSITION

    @pytest.mark.asyncio
    async def test_hop_limit(self) -> None:
        J = JourneyFactory
        loop = J.create(
            [
                J.chat("a", "Ask for x", to=[("b", None)], collects=["x"]),
                J.chat("b", "Ask for x again", to=[("a", None)], collects=["x"]),
            ]
        )
        engine = JourneyEngine(MockConditionEvaluator(), max_hops=5)

        decision = await engine.navigate(
            journeys=[loop],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=_matched(loop),
            abandon=False,
            context=create_context(facts={"x": "1"}),
        )

        assert decision.action == JourneyAction.NONE
        assert decision.diagnostics[0].kind == DiagnosticKind.JOURNEY_HOP_LIMIT


class TestToolStates:
    """Tests for suspending on and resuming from tool states."""

    @pytest.mark.asyncio
    async def test_suspends_on_tool_state(self) -> None:
        journey = _order_journey()
        engine = JourneyEngine(MockConditionEvaluator())

        decision = await engine.navigate(
            journeys=[journey],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=_matched(journey),
            abandon=False,
            context=create_context("Order 12345", facts={"order_id": "12345"}),
        )

        assert decision.is_pending_tool
        assert decision.pending_tool_state_id == "lookup"
        assert decision.skipped_state_ids == ["ask_order"]

    @pytest.mark.asyncio
    async def test_resume_after_success_follows_result(self) -> None:
        journey = _order_journey()
        evaluator = MockConditionEvaluator(
            {SHIPPED: lambda ctx: ctx.tool_data.get("status") == "shipped"}
        )
        engine = JourneyEngine(evaluator)
        context = create_context("Order 12345", facts={"order_id": "12345"})
        suspended = await engine.navigate(
            journeys=[journey],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=_matched(journey),
            abandon=False,
            context=context,
        )

        context.merge_tool_data("lookup_order", {"status": "shipped"})
        decision = await engine.resume(journey, suspended, context, tool_succeeded=True)

        assert not decision.is_pending_tool
        assert decision.action == JourneyAction.COMPLETE
        assert decision.target_state_id == "shipped"
        assert decision.visited_state_ids == ["ask_order", "lookup", "shipped"]

    @pytest.mark.asyncio
    async def test_tool_failure_rolls_back(self) -> None:
        journey = _order_journey()
        engine = JourneyEngine(MockConditionEvaluator())
        context = create_context("It's 12345", facts={"order_id": "12345"})
        suspended = await engine.navigate(
            journeys=[journey],
            active_journey_id=journey.id,
            active_state_id="ask_order",
            matched_journeys=[],
            abandon=False,
            context=context,
        )

        decision = await engine.resume(journey, suspended, context, tool_succeeded=False)

        assert decision.action == JourneyAction.UNRESOLVED
        assert decision.target_state_id == "ask_order"
        assert decision.diagnostics[0].kind == DiagnosticKind.JOURNEY_TOOL_FAILED

    @pytest.mark.asyncio
    async def test_resume_without_pending_state_raises(self, booking: Journey) -> None:
        engine = JourneyEngine(MockConditionEvaluator())
        decision = await engine.navigate(
            journeys=[booking],
            active_journey_id=None,
            active_state_id=None,
            matched_journeys=_matched(booking),
            abandon=False,
            context=create_context(),
        )

        with pytest.raises(ValueError):
            await engine.resume(booking, decision, create_context(), tool_succeeded=True)
