"""Extract variables from reply text for enforcement expressions."""

import re
from typing import Any

from parley.observability.logging import get_logger

logger = get_logger(__name__)


class VariableExtractor:
    """Extract variables from a reply using regex patterns.

    Values found in the reply override known conversation values of the
    same name, so an expression like "amount <= refund_limit" compares what
    the reply says against what the agent knows.
    """

    AMOUNT_PATTERN = re.compile(
        r"\$\s*(\d+(?:,\d{3})*(?:\.\d{2})?)|"
        r"(\d+(?:,\d{3})*(?:\.\d{2})?)\s*(?:USD|dollars?|€|EUR|£|GBP)",
        re.IGNORECASE,
    )
    PERCENTAGE_PATTERN = re.compile(
        r"(\d+(?:\.\d+)?)\s*(?:%|percent|percentage)",
        re.IGNORECASE,
    )

    def extract_variables(
        self,
        response: str,
        known: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Merge known values with values read from the reply.

        Args:
            response: Reply text
            known: Trusted conversation values (facts, variables, tool data)

        Returns:
            Variables for expression evaluation
        """
        variables: dict[str, Any] = dict(known or {})
        variables.update(self._extract_amounts(response))
        variables.update(self._extract_percentages(response))
        variables.update(self._extract_boolean_flags(response))

        logger.debug(
            "variables_extracted",
            variable_count=len(variables),
        )
        return variables

    def _extract_amounts(self, text: str) -> dict[str, float]:
        """Highest monetary amount in the text, as 'amount'."""
        amounts = []
        for match in self.AMOUNT_PATTERN.findall(text):
            amount_str = (match[0] or match[1]).replace(",", "")
            try:
                amounts.append(float(amount_str))
            except ValueError:
                continue
        return {"amount": max(amounts)} if amounts else {}

    def _extract_percentages(self, text: str) -> dict[str, float]:
        """Highest percentage in the text, as 'discount_percent'."""
        percentages = []
        for match in self.PERCENTAGE_PATTERN.findall(text):
            try:
                percentages.append(float(match))
            except ValueError:
                continue
        return {"discount_percent": max(percentages)} if percentages else {}

    def _extract_boolean_flags(self, text: str) -> dict[str, bool]:
        lower_text = text.lower()
        return {
            "contains_refund": "refund" in lower_text,
            "contains_promise": any(
                word in lower_text for word in ["promise", "guarantee", "will definitely"]
            ),
            "contains_competitor": any(
                word in lower_text for word in ["competitor", "alternative", "instead try"]
            ),
            "contains_apology": any(
                word in lower_text for word in ["sorry", "apologize", "apologies"]
            ),
        }
