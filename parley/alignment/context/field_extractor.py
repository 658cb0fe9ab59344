"""Extraction of customer-stated facts from messages."""

import re
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from parley.alignment.context.models import Turn
from parley.alignment.models import FieldDefinition
from parley.observability.logging import get_logger
from parley.providers.llm import LLMExecutor, ProviderError

logger = get_logger(__name__)


class FieldExtractor(ABC):
    """Pulls values for declared fields out of a customer message."""

    @abstractmethod
    async def extract(
        self,
        message: str,
        fields: list[FieldDefinition],
        history: list[Turn] | None = None,
    ) -> dict[str, Any]:
        """Return values found in the message, keyed by field name."""
        pass


class PatternFieldExtractor(FieldExtractor):
    """Regex extraction using each field's pattern.

    Keeps the named group 'value' when present, else group 1, else the
    whole match. Fields without a pattern are ignored.
    """

    async def extract(
        self,
        message: str,
        fields: list[FieldDefinition],
        history: list[Turn] | None = None,  # noqa: ARG002
    ) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for field in fields:
            if not field.pattern:
                continue
            match = re.search(field.pattern, message, re.IGNORECASE)
            if match is None:
                continue
            if "value" in match.re.groupindex:
                value = match.group("value")
            elif match.re.groups:
                value = match.group(1)
            else:
                value = match.group(0)
            if value:
                values[field.name] = value.strip()
        return values


class ExtractedFields(BaseModel):
    """Structured output for LLM field extraction."""

    values: dict[str, str | None] = Field(
        default_factory=dict, description="Field name to stated value, null if not stated"
    )


class LLMFieldExtractor(FieldExtractor):
    """LLM extraction guided by field descriptions.

    Only values the customer explicitly stated are kept. Provider
    failures yield no facts rather than aborting the turn.
    """

    def __init__(self, llm_executor: LLMExecutor, history_turns: int = 3) -> None:
        self._llm_executor = llm_executor
        self._history_turns = history_turns

    async def extract(
        self,
        message: str,
        fields: list[FieldDefinition],
        history: list[Turn] | None = None,
    ) -> dict[str, Any]:
        if not fields:
            return {}

        field_lines = "\n".join(
            f"- {f.name}: {f.description or 'no description'}" for f in fields
        )
        recent = (history or [])[-self._history_turns :] if self._history_turns else []
        history_text = "\n".join(f"{t.role}: {t.content}" for t in recent) or "(none)"
        prompt = (
            "Extract the values the customer explicitly stated in their latest message.\n"
            "Never guess or infer values that were not said.\n\n"
            f"Fields:\n{field_lines}\n\n"
            f"Recent conversation:\n{history_text}\n\n"
            f"Latest customer message:\n{message}"
        )

        try:
            parsed, _ = await self._llm_executor.generate_structured(prompt, ExtractedFields)
        except ProviderError as e:
            logger.warning("field_extraction_failed", error=str(e))
            return {}

        known = {f.name for f in fields}
        return {
            name: value
            for name, value in parsed.values.items()
            if name in known and value not in (None, "")
        }
