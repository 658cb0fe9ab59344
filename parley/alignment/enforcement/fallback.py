"""Fallback handling for replies that cannot be made compliant."""

from collections.abc import Callable, Mapping
from typing import Any

from parley.alignment.enforcement.models import EnforcementResult
from parley.alignment.models import CannedResponse
from parley.observability.logging import get_logger
from parley.observability.metrics import DEFLECTIONS

logger = get_logger(__name__)


class FallbackHandler:
    """Provide safe replies when a draft cannot be used.

    Used as a last resort when:
    1. A draft still violates a high-criticality guideline after regeneration
    2. A tool reported a security violation
    3. The turn could not be processed at all

    The generic deflection text is static configuration, so it cannot leak
    conversation values.
    """

    def __init__(self, deflection_message: str) -> None:
        self._deflection_message = deflection_message

    @property
    def deflection_message(self) -> str:
        return self._deflection_message

    def select_fallback(
        self,
        candidates: list[CannedResponse],
        values: Mapping[str, Any],
        is_safe: Callable[[str], bool],
    ) -> tuple[CannedResponse, str] | None:
        """First fallback template that renders and passes the checks.

        Args:
            candidates: Canned responses in scope, in store order
            values: Values for placeholders
            is_safe: Deterministic check for a rendered text

        Returns:
            (template, rendered text), or None
        """
        for canned in candidates:
            if not canned.is_fallback or not canned.can_render(values):
                continue
            text = canned.render(values)
            if is_safe(text):
                return canned, text
        return None

    def apply_fallback(
        self,
        original_result: EnforcementResult,
        candidates: list[CannedResponse],
        values: Mapping[str, Any],
        is_safe: Callable[[str], bool],
    ) -> EnforcementResult:
        """Replace a non-compliant reply with a fallback or the deflection."""
        selected = self.select_fallback(candidates, values, is_safe)
        if selected is None:
            return original_result.model_copy(
                update={
                    "deflected": True,
                    "final_response": self.deflect("enforcement_failed"),
                }
            )

        canned, text = selected
        DEFLECTIONS.labels(reason="fallback_template").inc()
        logger.info("fallback_template_used", canned_response_id=str(canned.id))
        return original_result.model_copy(
            update={
                "fallback_used": True,
                "fallback_response_id": canned.id,
                "final_response": text,
            }
        )

    def deflect(self, reason: str) -> str:
        DEFLECTIONS.labels(reason=reason).inc()
        logger.info("reply_deflected", reason=reason)
        return self._deflection_message
