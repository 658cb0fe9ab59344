"""Condition evaluation oracle interface."""

import asyncio
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from parley.alignment.context.models import Context


class ConditionEvaluation(BaseModel):
    """Judgment on whether a natural-language condition holds."""

    applies: bool = Field(..., description="Whether the condition holds")
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Judgment confidence")
    reasoning: str = Field(default="", description="Why")


class ConditionEvaluator(ABC):
    """Judges natural-language conditions against the turn context.

    Guideline matching, journey activation, journey transitions and the
    semantic self-critique all go through this interface.

    Raises:
        MatchingUnavailableError: when no judgment can be produced
    """

    @abstractmethod
    async def evaluate(self, condition: str, context: Context) -> ConditionEvaluation:
        """Judge a single condition."""
        pass

    async def evaluate_many(
        self,
        conditions: list[str],
        context: Context,
    ) -> list[ConditionEvaluation]:
        """Judge several conditions; results align with the input order."""
        if not conditions:
            return []
        return list(await asyncio.gather(*(self.evaluate(c, context) for c in conditions)))
