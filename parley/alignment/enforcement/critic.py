"""Self-critique of draft replies against high-criticality guidelines."""

import re
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from parley.alignment.context.models import Context
from parley.alignment.enforcement.deterministic_enforcer import DeterministicEnforcer
from parley.alignment.enforcement.fallback import FallbackHandler
from parley.alignment.enforcement.models import ConstraintViolation, EnforcementResult
from parley.alignment.enforcement.variable_extractor import VariableExtractor
from parley.alignment.matching.evaluator import ConditionEvaluator
from parley.alignment.models import CannedResponse, Criticality, Guideline, MatchedGuideline
from parley.observability.logging import get_logger
from parley.observability.metrics import ENFORCEMENT_VIOLATIONS
from parley.providers.llm import ProviderError

logger = get_logger(__name__)

Regenerate = Callable[[list[ConstraintViolation]], Awaitable[str]]


def _value_forms(value: Any) -> list[str]:
    """Textual forms a value could take in a reply."""
    if value is None or isinstance(value, bool):
        return []
    if isinstance(value, int | float):
        forms = {str(value), f"{value:,.2f}", f"{value:.2f}"}
        if float(value).is_integer():
            forms.add(str(int(value)))
            forms.add(f"{int(value):,}")
        return sorted(forms, key=len, reverse=True)
    text = str(value).strip()
    return [text] if text else []


class ResponseCritic:
    """Checks a draft against every active HIGH guideline.

    Checks per guideline:
    - protected_fields: the field's known value must not appear in the reply
    - forbidden_patterns: no pattern may match the reply
    - enforcement_expression: must hold over variables read from the reply
    - semantic check (optional): the oracle judges whether the reply
      breaks the guideline's action

    On violation the draft is regenerated once with the violations as
    feedback. If the new draft still violates, the first fallback canned
    response that passes the checks is used, else the generic deflection.
    """

    def __init__(
        self,
        enforcer: DeterministicEnforcer | None = None,
        extractor: VariableExtractor | None = None,
        evaluator: ConditionEvaluator | None = None,
        semantic_check_enabled: bool = False,
        max_retries: int = 1,
        min_confidence: float = 0.5,
    ) -> None:
        """Initialize the critic.

        Args:
            enforcer: Expression evaluator
            extractor: Reply variable extractor
            evaluator: Oracle for the semantic check
            semantic_check_enabled: Run the oracle-based check
            max_retries: Regeneration attempts on violation (0 or 1)
            min_confidence: Oracle confidence needed to report a semantic violation
        """
        self._enforcer = enforcer or DeterministicEnforcer()
        self._extractor = extractor or VariableExtractor()
        self._evaluator = evaluator
        self._semantic_check_enabled = semantic_check_enabled and evaluator is not None
        self._max_retries = max_retries
        self._min_confidence = min_confidence

    async def review(
        self,
        response: str,
        matched: list[MatchedGuideline],
        context: Context,
        *,
        fallback: FallbackHandler,
        fallback_candidates: list[CannedResponse],
        values: Mapping[str, Any],
        regenerate: Regenerate | None = None,
    ) -> EnforcementResult:
        """Check a draft and repair it if needed.

        Args:
            response: Draft reply
            matched: Active matched guidelines
            context: Turn context
            fallback: Fallback handler
            fallback_candidates: Canned responses in scope
            values: Values for placeholder rendering
            regenerate: Produces a new draft given the violations; None
                when the reply must not be regenerated

        Returns:
            EnforcementResult with the reply to send
        """
        start_time = time.perf_counter()
        guidelines = [m.guideline for m in matched if m.criticality == Criticality.HIGH]

        def done(result: EnforcementResult) -> EnforcementResult:
            result.enforcement_time_ms = (time.perf_counter() - start_time) * 1000
            return result

        violations = await self.check(response, guidelines, context)
        if not violations:
            return done(EnforcementResult(passed=True, final_response=response))

        self._record(violations)
        regeneration_attempted = False
        regeneration_succeeded = False

        if regenerate is not None and self._max_retries > 0:
            regeneration_attempted = True
            try:
                regenerated = await regenerate(violations)
            except ProviderError as e:
                logger.warning("enforcement_regeneration_failed", error=str(e))
                regenerated = ""

            if regenerated:
                remaining = await self.check(regenerated, guidelines, context)
                if not remaining:
                    logger.info("enforcement_regeneration_succeeded", violations=len(violations))
                    return done(
                        EnforcementResult(
                            passed=True,
                            violations=violations,
                            regeneration_attempted=True,
                            regeneration_succeeded=True,
                            final_response=regenerated,
                        )
                    )
                self._record(remaining)
                violations = remaining

        logger.warning(
            "enforcement_violations_unresolved",
            guideline_ids=[str(v.guideline_id) for v in violations],
            types=[v.violation_type for v in violations],
        )
        failed = EnforcementResult(
            passed=False,
            violations=violations,
            regeneration_attempted=regeneration_attempted,
            regeneration_succeeded=regeneration_succeeded,
            final_response=response,
        )
        return done(
            fallback.apply_fallback(
                failed,
                fallback_candidates,
                values,
                lambda text: not self.deterministic_violations(text, guidelines, context),
            )
        )

    async def check(
        self,
        response: str,
        guidelines: list[Guideline],
        context: Context,
    ) -> list[ConstraintViolation]:
        """All violations of the given guidelines by a reply."""
        violations = self.deterministic_violations(response, guidelines, context)
        if self._semantic_check_enabled:
            violations.extend(await self._semantic_violations(response, guidelines, context))
        return violations

    def deterministic_violations(
        self,
        response: str,
        guidelines: list[Guideline],
        context: Context,
    ) -> list[ConstraintViolation]:
        violations: list[ConstraintViolation] = []
        known = context.known_fields()
        variables: dict[str, Any] | None = None

        for guideline in guidelines:
            for name in guideline.protected_fields:
                leaked = self._find_leak(response, known.get(name))
                if leaked:
                    violations.append(
                        ConstraintViolation(
                            guideline_id=guideline.id,
                            guideline_name=guideline.name,
                            violation_type="protected_field",
                            details=f"Reply discloses protected field '{name}'",
                        )
                    )

            for pattern in guideline.forbidden_patterns:
                if re.search(pattern, response, re.IGNORECASE):
                    violations.append(
                        ConstraintViolation(
                            guideline_id=guideline.id,
                            guideline_name=guideline.name,
                            violation_type="forbidden_pattern",
                            details=f"Reply matches forbidden pattern {pattern!r}",
                        )
                    )

            if guideline.enforcement_expression:
                if variables is None:
                    variables = self._extractor.extract_variables(response, known)
                passed, error = self._enforcer.evaluate(guideline.enforcement_expression, variables)
                if not passed:
                    violations.append(
                        ConstraintViolation(
                            guideline_id=guideline.id,
                            guideline_name=guideline.name,
                            violation_type="expression_failed",
                            details=error or "",
                        )
                    )

        return violations

    async def _semantic_violations(
        self,
        response: str,
        guidelines: list[Guideline],
        context: Context,
    ) -> list[ConstraintViolation]:
        checked = [g for g in guidelines if g.action]
        if not checked or self._evaluator is None:
            return []

        conditions = [
            f"The candidate reply does not follow this instruction: {g.action}" for g in checked
        ]
        evaluations = await self._evaluator.evaluate_many(conditions, context.for_review(response))
        return [
            ConstraintViolation(
                guideline_id=g.id,
                guideline_name=g.name,
                violation_type="semantic",
                details=e.reasoning or "Reply does not follow the guideline",
            )
            for g, e in zip(checked, evaluations, strict=True)
            if e.applies and e.confidence >= self._min_confidence
        ]

    def _find_leak(self, response: str, value: Any) -> str | None:
        for form in _value_forms(value):
            if re.search(rf"(?<!\w){re.escape(form)}(?!\w)", response, re.IGNORECASE):
                return form
        return None

    def _record(self, violations: list[ConstraintViolation]) -> None:
        for violation in violations:
            ENFORCEMENT_VIOLATIONS.labels(violation_type=violation.violation_type).inc()
