"""Tests for journey model validation."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from parley.alignment.models import Journey, JourneyState, JourneyTransition, StateKind
from tests.factories.alignment import JourneyFactory


class TestJourneyState:
    """Tests for JourneyState."""

    def test_chat_state_requires_instruction(self) -> None:
        with pytest.raises(ValidationError, match="requires an instruction"):
            JourneyState(id="ask", kind=StateKind.CHAT)

    def test_tool_state_requires_tool_id(self) -> None:
        with pytest.raises(ValidationError, match="requires a tool_id"):
            JourneyState(id="lookup", kind=StateKind.TOOL)

    def test_at_most_one_unconditional_transition(self) -> None:
        with pytest.raises(ValidationError, match="unconditional"):
            JourneyState(
                id="ask",
                instruction="Ask",
                transitions=[
                    JourneyTransition(target_state_id="a"),
                    JourneyTransition(target_state_id="b"),
                ],
            )

    def test_state_without_transitions_is_terminal(self) -> None:
        assert JourneyFactory.chat("done", "Say goodbye").is_terminal

    def test_satisfied_when_all_collected_fields_known(self) -> None:
        state = JourneyFactory.chat("ask_date", collects=["date", "time"])

        assert state.is_satisfied_by({"date": "2026-11-02", "time": "10:00"})
        assert not state.is_satisfied_by({"date": "2026-11-02"})
        assert not state.is_satisfied_by({"date": "2026-11-02", "time": ""})

    def test_state_without_collected_fields_never_satisfied(self) -> None:
        assert not JourneyFactory.chat("confirm").is_satisfied_by({"anything": 1})

    def test_can_skip_false_never_satisfied(self) -> None:
        state = JourneyFactory.chat("ask_date", collects=["date"], can_skip=False)
        assert not state.is_satisfied_by({"date": "2026-11-02"})


class TestJourney:
    """Tests for Journey graph validation."""

    def test_initial_state_must_exist(self) -> None:
        with pytest.raises(ValidationError, match="Initial state"):
            Journey(
                tenant_id=uuid4(),
                agent_id=uuid4(),
                title="Broken",
                states=[JourneyFactory.chat("a")],
                initial_state_id="missing",
            )

    def test_transition_targets_must_exist(self) -> None:
        with pytest.raises(ValidationError, match="unknown state"):
            JourneyFactory.create([JourneyFactory.chat("a", to=[("nowhere", None)])])

    def test_duplicate_state_ids_rejected(self) -> None:
        with pytest.raises(ValidationError, match="duplicate"):
            JourneyFactory.create([JourneyFactory.chat("a"), JourneyFactory.chat("a")])

    def test_get_state(self) -> None:
        journey = JourneyFactory.booking()

        assert journey.get_state("confirm") is not None
        assert journey.get_state("missing") is None
        assert journey.get_state(None) is None
        assert journey.initial_state.id == "ask_service"
