"""Deterministic condition evaluator for tests and local development."""

from collections.abc import Callable
from typing import Any

from parley.alignment.context.models import Context
from parley.alignment.matching.evaluator import ConditionEvaluation, ConditionEvaluator
from parley.errors import MatchingUnavailableError

Rule = bool | ConditionEvaluation | Callable[[Context], bool]


class MockConditionEvaluator(ConditionEvaluator):
    """Condition evaluator driven by a table of rules.

    Rules are keyed by the exact condition text and may be a bool, a
    full ConditionEvaluation, or a predicate over the context. Unknown
    conditions evaluate to `default`.
    """

    def __init__(
        self,
        rules: dict[str, Rule] | None = None,
        default: bool = False,
        fail_times: int = 0,
    ) -> None:
        """Initialize mock evaluator.

        Args:
            rules: Condition text to outcome
            default: Outcome for conditions without a rule
            fail_times: Number of initial calls that raise MatchingUnavailableError
        """
        self._rules: dict[str, Rule] = dict(rules or {})
        self._default = default
        self._fail_times = fail_times
        self._call_history: list[dict[str, Any]] = []

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Return history of calls for testing assertions."""
        return self._call_history

    def set_rule(self, condition: str, rule: Rule) -> None:
        self._rules[condition] = rule

    async def evaluate(self, condition: str, context: Context) -> ConditionEvaluation:
        self._call_history.append({"condition": condition, "message": context.message})

        if self._fail_times > 0:
            self._fail_times -= 1
            raise MatchingUnavailableError("Mock evaluator unavailable")

        rule = self._rules.get(condition, self._default)
        if isinstance(rule, ConditionEvaluation):
            return rule
        applies = rule(context) if callable(rule) else bool(rule)
        return ConditionEvaluation(
            applies=applies,
            confidence=1.0 if applies else 0.0,
            reasoning="mock rule" if condition in self._rules else "mock default",
        )
