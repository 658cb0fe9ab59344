"""Guideline matching for alignment pipeline.

Selects the guidelines (and journey activations) relevant to the
current turn by asking the condition oracle about each candidate.
"""

import time
from uuid import UUID

from parley.alignment.context.models import Context
from parley.alignment.matching.evaluator import ConditionEvaluator
from parley.alignment.matching.models import GuidelineMatchResult, MatchedJourney
from parley.alignment.models import Guideline, Journey, MatchedGuideline, Scope
from parley.observability.logging import get_logger

logger = get_logger(__name__)


class GuidelineMatcher:
    """Oracle-based guideline and journey matching.

    Matching has no side effects. Oracle failures propagate as
    MatchingUnavailableError; no guideline is ever skipped silently.
    """

    def __init__(
        self,
        evaluator: ConditionEvaluator,
        min_confidence: float = 0.5,
    ) -> None:
        self._evaluator = evaluator
        self._min_confidence = min_confidence

    def eligible(
        self,
        guidelines: list[Guideline],
        active_journey_id: UUID | None,
        active_state_id: str | None,
    ) -> list[Guideline]:
        """Global guidelines plus those scoped to the active journey or state."""
        result = []
        for guideline in guidelines:
            if not guideline.enabled:
                continue
            if guideline.scope == Scope.GLOBAL:
                result.append(guideline)
            elif guideline.journey_id != active_journey_id or active_journey_id is None:
                continue
            elif guideline.scope == Scope.JOURNEY:
                result.append(guideline)
            elif guideline.state_id == active_state_id:
                result.append(guideline)
        return result

    async def match(
        self,
        context: Context,
        guidelines: list[Guideline],
        journeys: list[Journey] | None = None,
        active_journey_id: UUID | None = None,
    ) -> GuidelineMatchResult:
        """Match guidelines and journey activation conditions.

        Args:
            context: Turn context
            guidelines: Eligible guidelines in definition order
            journeys: Agent journeys in definition order
            active_journey_id: Journey already active (its conditions are not re-evaluated)

        Returns:
            GuidelineMatchResult with matches ordered by criticality (desc),
            confidence (desc), then definition order
        """
        start_time = time.perf_counter()

        candidate_journeys = [
            j for j in (journeys or []) if j.enabled and j.id != active_journey_id and j.conditions
        ]
        conditions = [g.condition for g in guidelines]
        for journey in candidate_journeys:
            conditions.extend(journey.conditions)

        evaluations = await self._evaluator.evaluate_many(conditions, context)

        matched: list[MatchedGuideline] = []
        rejected: list[UUID] = []
        for index, (guideline, evaluation) in enumerate(zip(guidelines, evaluations)):
            if evaluation.applies and evaluation.confidence >= self._min_confidence:
                matched.append(
                    MatchedGuideline(
                        guideline=guideline,
                        confidence=evaluation.confidence,
                        reasoning=evaluation.reasoning,
                        definition_index=index,
                    )
                )
            else:
                rejected.append(guideline.id)

        matched.sort(key=lambda m: (-m.criticality.rank, -m.confidence, m.definition_index))

        matched_journeys: list[MatchedJourney] = []
        offset = len(guidelines)
        for index, journey in enumerate(candidate_journeys):
            journey_evals = evaluations[offset : offset + len(journey.conditions)]
            offset += len(journey.conditions)
            hits = [
                e for e in journey_evals if e.applies and e.confidence >= self._min_confidence
            ]
            if hits:
                best = max(hits, key=lambda e: e.confidence)
                matched_journeys.append(
                    MatchedJourney(
                        journey=journey,
                        confidence=best.confidence,
                        reasoning=best.reasoning,
                        definition_index=index,
                    )
                )

        matched_journeys.sort(key=lambda m: (-m.confidence, m.definition_index))
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "guidelines_matched",
            matched=len(matched),
            rejected=len(rejected),
            journeys_matched=len(matched_journeys),
            elapsed_ms=elapsed_ms,
        )

        return GuidelineMatchResult(
            matched=matched,
            rejected_ids=rejected,
            matched_journeys=matched_journeys,
            evaluated_count=len(conditions),
            match_time_ms=elapsed_ms,
        )
