"""LLM-backed condition evaluation.

Conditions are judged in batches with a JSON prompt. Anything short of
a complete, parseable judgment raises MatchingUnavailableError.
"""

import asyncio
import json
import time
from pathlib import Path

from parley.alignment.context.models import Context
from parley.alignment.matching.evaluator import ConditionEvaluation, ConditionEvaluator
from parley.errors import MatchingUnavailableError
from parley.observability.logging import get_logger
from parley.providers.llm import LLMExecutor, LLMMessage, ProviderError
from parley.providers.llm.executor import strip_code_fence

logger = get_logger(__name__)

_PROMPT_TEMPLATE_PATH = Path(__file__).parent / "prompts" / "evaluate_conditions.txt"


class LLMConditionEvaluator(ConditionEvaluator):
    """Batch condition judgment through an LLMExecutor."""

    def __init__(
        self,
        llm_executor: LLMExecutor,
        batch_size: int = 5,
        timeout_ms: int = 10000,
        prompt_template: str | None = None,
    ) -> None:
        """Initialize the evaluator.

        Args:
            llm_executor: Executor for the matching step
            batch_size: Conditions judged per LLM call
            timeout_ms: Timeout per LLM call
            prompt_template: Optional custom prompt template
        """
        self._llm_executor = llm_executor
        self._batch_size = batch_size
        self._timeout_ms = timeout_ms
        self._prompt_template = prompt_template or _PROMPT_TEMPLATE_PATH.read_text()

    async def evaluate(self, condition: str, context: Context) -> ConditionEvaluation:
        return (await self.evaluate_many([condition], context))[0]

    async def evaluate_many(
        self,
        conditions: list[str],
        context: Context,
    ) -> list[ConditionEvaluation]:
        if not conditions:
            return []

        start_time = time.perf_counter()
        batches = [
            conditions[i : i + self._batch_size]
            for i in range(0, len(conditions), self._batch_size)
        ]
        results = await asyncio.gather(*(self._evaluate_batch(b, context) for b in batches))
        evaluations = [e for batch in results for e in batch]

        logger.debug(
            "conditions_evaluated",
            conditions=len(conditions),
            batches=len(batches),
            applies=sum(1 for e in evaluations if e.applies),
            elapsed_ms=(time.perf_counter() - start_time) * 1000,
        )
        return evaluations

    async def _evaluate_batch(
        self,
        conditions: list[str],
        context: Context,
    ) -> list[ConditionEvaluation]:
        prompt = self._build_prompt(conditions, context)
        try:
            response = await asyncio.wait_for(
                self._llm_executor.generate(
                    messages=[LLMMessage(role="user", content=prompt)],
                    temperature=0.0,
                    max_tokens=1000,
                ),
                timeout=self._timeout_ms / 1000,
            )
        except TimeoutError as e:
            raise MatchingUnavailableError(
                f"Condition evaluation timed out after {self._timeout_ms}ms"
            ) from e
        except ProviderError as e:
            raise MatchingUnavailableError(f"Condition evaluation failed: {e}") from e

        return self._parse_evaluations(response.content, len(conditions))

    def _build_prompt(self, conditions: list[str], context: Context) -> str:
        glossary = "\n".join(
            f"- {t.name}: {t.description}" for t in context.glossary_terms
        ) or "(none)"
        facts = "\n".join(
            f"- {name}: {value}" for name, value in context.known_fields().items()
        ) or "(none)"
        history = "\n".join(f"{t.role}: {t.content}" for t in context.history) or "(none)"
        candidate_section = ""
        if context.candidate_response is not None:
            candidate_section = (
                f"\n## Candidate agent reply\n{context.candidate_response}\n"
            )
        numbered = "\n".join(f"- c{i + 1}: {c}" for i, c in enumerate(conditions))

        return self._prompt_template.format(
            glossary=glossary,
            facts=facts,
            history=history,
            message=context.message,
            candidate_section=candidate_section,
            conditions=numbered,
        )

    def _parse_evaluations(self, content: str, count: int) -> list[ConditionEvaluation]:
        content = strip_code_fence(content)
        try:
            data = json.loads(content)
            by_id = {str(e["id"]): e for e in data["evaluations"]}
            return [
                ConditionEvaluation(
                    applies=bool(by_id[f"c{i + 1}"]["applies"]),
                    confidence=float(by_id[f"c{i + 1}"].get("confidence", 1.0)),
                    reasoning=str(by_id[f"c{i + 1}"].get("reasoning", "")),
                )
                for i in range(count)
            ]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "condition_evaluation_unparseable",
                content_preview=content[:100],
                error=str(e),
            )
            raise MatchingUnavailableError(f"Unparseable condition evaluation: {e}") from e
