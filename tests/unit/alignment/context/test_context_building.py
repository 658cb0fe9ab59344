"""Tests for context building, field extraction and glossary matching."""

import json
from uuid import uuid4

import pytest

from parley.alignment.context import (
    ContextBuilder,
    GlossaryMatcher,
    LLMFieldExtractor,
    PatternFieldExtractor,
    events_to_turns,
)
from parley.alignment.context.glossary_matcher import term_pattern
from parley.alignment.models import FieldDefinition, GlossaryTerm
from parley.conversation.models import Event, EventKind, EventSource, Session
from parley.providers.llm import ProviderError
from tests.factories.alignment import create_context
from tests.factories.llm import ScriptedLLMExecutor


def _field(name: str, pattern: str | None = None, description: str = "") -> FieldDefinition:
    return FieldDefinition(
        tenant_id=uuid4(), agent_id=uuid4(), name=name, pattern=pattern, description=description
    )


def _term(name: str, description: str, synonyms: list[str] | None = None) -> GlossaryTerm:
    return GlossaryTerm(
        tenant_id=uuid4(),
        agent_id=uuid4(),
        name=name,
        description=description,
        synonyms=synonyms or [],
    )


def _message(session_id, source: EventSource, text: str) -> Event:
    return Event(
        session_id=session_id,
        turn_id=uuid4(),
        kind=EventKind.MESSAGE,
        source=source,
        data={"message": text},
    )


class TestPatternFieldExtractor:
    """Tests for PatternFieldExtractor."""

    @pytest.mark.asyncio
    async def test_named_value_group_is_kept(self) -> None:
        extractor = PatternFieldExtractor()
        fields = [_field("order_id", r"order\s*#?(?P<value>\d{4,})")]

        values = await extractor.extract("It's order #12345, thanks", fields)

        assert values == {"order_id": "12345"}

    @pytest.mark.asyncio
    async def test_first_group_then_whole_match(self) -> None:
        extractor = PatternFieldExtractor()
        fields = [
            _field("date", r"(\d{4}-\d{2}-\d{2})"),
            _field("service", r"haircut|coloring"),
        ]

        values = await extractor.extract("A Haircut on 2026-11-02 please", fields)

        assert values == {"date": "2026-11-02", "service": "Haircut"}

    @pytest.mark.asyncio
    async def test_fields_without_pattern_or_match_ignored(self) -> None:
        extractor = PatternFieldExtractor()
        fields = [_field("name"), _field("date", r"\d{4}-\d{2}-\d{2}")]

        assert await extractor.extract("hello there", fields) == {}


class TestLLMFieldExtractor:
    """Tests for LLMFieldExtractor."""

    @pytest.mark.asyncio
    async def test_keeps_only_declared_stated_values(self) -> None:
        executor = ScriptedLLMExecutor(
            [json.dumps({"values": {"order_id": "777", "date": None, "invented": "x"}})]
        )
        extractor = LLMFieldExtractor(executor)
        fields = [_field("order_id", description="Order number"), _field("date")]

        values = await extractor.extract("my order is 777", fields)

        assert values == {"order_id": "777"}
        assert "Order number" in executor.generate_calls[0][-1].content

    @pytest.mark.asyncio
    async def test_provider_failure_yields_no_facts(self) -> None:
        extractor = LLMFieldExtractor(ScriptedLLMExecutor([ProviderError("down")]))

        assert await extractor.extract("my order is 777", [_field("order_id")]) == {}


class TestGlossaryMatcher:
    """Tests for GlossaryMatcher."""

    def test_matches_name_or_synonym_as_whole_word(self) -> None:
        a100 = _term("A100", "Flagship blender", ["A-100"])
        sla = _term("SLA", "Service level agreement")
        matcher = GlossaryMatcher()

        assert matcher.find_terms([a100, sla], ["My a-100 broke"]) == [a100]
        assert matcher.find_terms([a100, sla], ["The SLAB is heavy"]) == []

    def test_searches_every_text(self) -> None:
        a100 = _term("A100", "Flagship blender")
        assert GlossaryMatcher().find_terms([a100], ["hi", "about my A100"]) == [a100]

    def test_pattern_cache_is_bounded(self) -> None:
        term_pattern.cache_clear()
        matcher = GlossaryMatcher()

        for i in range(term_pattern.cache_info().maxsize + 10):
            matcher.find_terms([_term(f"Term{i}", "Generated")], ["nothing to see"])

        info = term_pattern.cache_info()
        assert info.currsize == info.maxsize
        assert term_pattern("A100") is term_pattern("A100")


class TestContextBuilder:
    """Tests for ContextBuilder."""

    @pytest.mark.asyncio
    async def test_builds_history_terms_and_facts(self) -> None:
        session = Session(
            tenant_id=uuid4(),
            agent_id=uuid4(),
            customer_id="cust-1",
            facts={"name": "Ada"},
            data={"ticket": "T-1"},
        )
        events = [
            _message(session.session_id, EventSource.CUSTOMER, "I bought an A100"),
            _message(session.session_id, EventSource.AGENT, "How can I help?"),
        ]
        builder = ContextBuilder(field_extractor=PatternFieldExtractor(), history_turns=5)

        context = await builder.build(
            message="It's order 12345",
            session=session,
            events=events,
            glossary=[_term("A100", "Flagship blender")],
            fields=[_field("order_id", r"order (?P<value>\d+)")],
            variables={"tier": "gold"},
            customer_tags=["vip"],
        )

        assert [t.role for t in context.history] == ["customer", "agent"]
        assert [t.name for t in context.glossary_terms] == ["A100"]
        assert context.facts == {"name": "Ada", "order_id": "12345"}
        assert context.extracted_facts == {"order_id": "12345"}
        assert context.variables == {"tier": "gold"}
        assert context.session_data == {"ticket": "T-1"}
        assert context.customer_tags == ["vip"]

    @pytest.mark.asyncio
    async def test_history_is_limited(self) -> None:
        session = Session(tenant_id=uuid4(), agent_id=uuid4(), customer_id="cust-1")
        events = [
            _message(session.session_id, EventSource.CUSTOMER, f"message {i}") for i in range(6)
        ]

        context = await ContextBuilder(history_turns=2).build(
            message="latest",
            session=session,
            events=events,
            glossary=[],
            fields=[],
            variables={},
        )

        assert [t.content for t in context.history] == ["message 4", "message 5"]

    def test_events_to_turns_skips_non_messages(self) -> None:
        session_id = uuid4()
        tool_event = Event(
            session_id=session_id,
            turn_id=uuid4(),
            kind=EventKind.TOOL,
            source=EventSource.SYSTEM,
            data={"tool_id": "lookup"},
        )

        turns = events_to_turns([tool_event, _message(session_id, EventSource.AGENT, "Hi")])

        assert [(t.role, t.content) for t in turns] == [("agent", "Hi")]


class TestContext:
    """Tests for Context helpers."""

    def test_facts_win_in_known_fields(self) -> None:
        context = create_context(
            variables={"date": "from-variable", "tier": "gold"},
            facts={"date": "from-customer"},
        )
        assert context.known_fields() == {"date": "from-customer", "tier": "gold"}

    def test_merge_tool_data_flattens_dicts(self) -> None:
        context = create_context()
        context.merge_tool_data("lookup_order", {"status": "shipped"})

        assert context.tool_data == {"lookup_order": {"status": "shipped"}, "status": "shipped"}

    def test_for_review_sets_candidate_without_mutating(self) -> None:
        context = create_context()
        reviewed = context.for_review("draft reply")

        assert reviewed.candidate_response == "draft reply"
        assert context.candidate_response is None
