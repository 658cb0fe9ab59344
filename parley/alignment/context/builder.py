"""Context assembly for a turn."""

from typing import Any

from parley.alignment.context.field_extractor import FieldExtractor
from parley.alignment.context.glossary_matcher import GlossaryMatcher
from parley.alignment.context.models import Context, Turn
from parley.alignment.models import FieldDefinition, GlossaryTerm
from parley.conversation.models import Event, EventSource, Session
from parley.observability.logging import get_logger

logger = get_logger(__name__)


def events_to_turns(events: list[Event]) -> list[Turn]:
    """Convert message events to history turns, oldest first."""
    turns = []
    for event in events:
        text = event.message
        if text is None or event.source == EventSource.SYSTEM:
            continue
        role = "customer" if event.source == EventSource.CUSTOMER else "agent"
        turns.append(Turn(role=role, content=text))
    return turns


class ContextBuilder:
    """Builds the turn Context from the session and the new message.

    Spots glossary terms in the message and recent history, and extracts
    customer-stated facts for the configured fields.
    """

    def __init__(
        self,
        field_extractor: FieldExtractor | None = None,
        glossary_matcher: GlossaryMatcher | None = None,
        history_turns: int = 5,
    ) -> None:
        self._field_extractor = field_extractor
        self._glossary_matcher = glossary_matcher or GlossaryMatcher()
        self._history_turns = history_turns

    async def build(
        self,
        *,
        message: str,
        session: Session,
        events: list[Event],
        glossary: list[GlossaryTerm],
        fields: list[FieldDefinition],
        variables: dict[str, Any],
        customer_tags: list[str] | None = None,
    ) -> Context:
        history = events_to_turns(events)
        if self._history_turns:
            history = history[-self._history_turns :]
        else:
            history = []

        terms = self._glossary_matcher.find_terms(
            glossary, [message, *(t.content for t in history)]
        )

        extracted: dict[str, Any] = {}
        if self._field_extractor and fields:
            extracted = await self._field_extractor.extract(message, fields, history)

        logger.debug(
            "context_built",
            session_id=str(session.session_id),
            history_turns=len(history),
            glossary_terms=len(terms),
            extracted_fields=sorted(extracted),
        )

        return Context(
            message=message,
            history=history,
            glossary_terms=terms,
            customer_id=session.customer_id,
            customer_tags=list(customer_tags or []),
            facts={**session.facts, **extracted},
            extracted_facts=extracted,
            variables=dict(variables),
            session_data=dict(session.data),
        )
