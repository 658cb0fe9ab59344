"""Tests for SignalMatcher and PromptBuilder."""

from parley.alignment.context.models import Turn
from parley.alignment.enforcement import ConstraintViolation
from parley.alignment.execution import ToolOutcome, ToolResult
from parley.alignment.generation import PromptBuilder, SignalMatcher
from parley.alignment.models import Criticality
from tests.factories.alignment import CannedResponseFactory, GuidelineFactory, create_context


class TestSignalMatcher:
    """Tests for SignalMatcher."""

    def test_score_ignores_case_stopwords_and_suffixes(self) -> None:
        matcher = SignalMatcher()

        assert matcher.score("Order shipped", "Your order is shipping today") == 1.0
        assert matcher.score("refund policy", "the refund is on its way") == 0.5
        assert matcher.score("the and of", "anything") == 0.0

    def test_best_match_prefers_higher_score_then_earlier(self) -> None:
        partial = CannedResponseFactory.create("Partial", signals=["order status delayed"])
        first = CannedResponseFactory.create("First", signals=["order status"])
        second = CannedResponseFactory.create("Second", signals=["status order"])

        match = SignalMatcher().best_match(
            [partial, first, second], "Here is your order status"
        )

        assert match is not None
        assert match.canned_response.id == first.id
        assert match.score == 1.0

    def test_below_threshold_is_no_match(self) -> None:
        canned = CannedResponseFactory.create("x", signals=["warranty claim process details"])
        assert SignalMatcher(threshold=0.6).best_match([canned], "warranty info") is None

    def test_unrenderable_candidates_skipped_when_values_given(self) -> None:
        canned = CannedResponseFactory.create(
            "Order {{order_id}} shipped", signals=["order shipped"]
        )
        matcher = SignalMatcher()

        assert matcher.best_match([canned], "order shipped", values={}) is None
        assert matcher.best_match([canned], "order shipped") is not None


class TestPromptBuilder:
    """Tests for PromptBuilder."""

    def test_guidelines_section(self) -> None:
        high = GuidelineFactory.matched(
            GuidelineFactory.create(
                condition="the customer asks for a discount",
                action="Explain discounts are not available",
                criticality=Criticality.HIGH,
            )
        )
        observation = GuidelineFactory.matched(
            GuidelineFactory.create(condition="the customer is upset", action=None)
        )

        prompt = PromptBuilder().build_system_prompt([high, observation], create_context())

        assert (
            "1. When the customer asks for a discount: Explain discounts are not available"
            in prompt
        )
        assert "[!] Critical" in prompt
        assert "the customer is upset" not in prompt

    def test_journey_and_facts(self) -> None:
        context = create_context(
            journey_title="Book an appointment",
            state_instruction="Ask which date suits the customer",
            facts={"service": "haircut"},
        )

        prompt = PromptBuilder().build_system_prompt([], context)

        assert "You are helping with: Book an appointment" in prompt
        assert "Now: Ask which date suits the customer" in prompt
        assert "- service: haircut" in prompt

    def test_tool_results_section(self) -> None:
        results = [
            ToolResult(
                tool_id="lookup_order",
                group_id="g",
                outcome=ToolOutcome.SUCCESS,
                data={"status": "shipped"},
            ),
            ToolResult(
                tool_id="start_return",
                group_id="g",
                outcome=ToolOutcome.DEFERRED,
                missing_parameters=["order_id"],
            ),
            ToolResult(
                tool_id="crm", group_id="g", outcome=ToolOutcome.TIMEOUT, error="timeout"
            ),
            ToolResult(
                tool_id="notify", group_id="g", outcome=ToolOutcome.SKIPPED, error="x"
            ),
        ]

        prompt = PromptBuilder().build_system_prompt([], create_context(), tool_results=results)

        assert "- lookup_order: {'status': 'shipped'}" in prompt
        assert "- start_return: not run yet; ask the customer for order_id" in prompt
        assert "- crm: unavailable right now" in prompt
        assert "notify" not in prompt

    def test_violations_appended(self) -> None:
        guideline = GuidelineFactory.create(name="no_cost_basis")
        violation = ConstraintViolation(
            guideline_id=guideline.id,
            guideline_name="no_cost_basis",
            violation_type="protected_field",
            details="Reply discloses protected field 'cost_basis'",
        )

        prompt = PromptBuilder().build_system_prompt(
            [], create_context(), violations=[violation]
        )

        assert prompt.rstrip().endswith("Reply discloses protected field 'cost_basis'")
        assert "## Correction Required" in prompt

    def test_build_messages_maps_roles_and_limits_history(self) -> None:
        history = [
            Turn(role="customer", content="one"),
            Turn(role="agent", content="two"),
            Turn(role="customer", content="three"),
        ]

        messages = PromptBuilder(max_history_turns=2).build_messages("sys", "four", history)

        assert [(m.role, m.content) for m in messages] == [
            ("system", "sys"),
            ("assistant", "two"),
            ("user", "three"),
            ("user", "four"),
        ]
