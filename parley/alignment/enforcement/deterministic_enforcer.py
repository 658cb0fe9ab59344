"""Deterministic enforcement using expression evaluation."""

from typing import Any

from simpleeval import EvalWithCompoundTypes, InvalidExpression, NameNotDefined

from parley.observability.logging import get_logger

logger = get_logger(__name__)


class DeterministicEnforcer:
    """Evaluate guideline enforcement expressions.

    Uses simpleeval so expressions such as "amount <= 50" or
    "not contains_refund" run without arbitrary code execution.
    """

    SAFE_FUNCTIONS = {
        "len": len,
        "abs": abs,
        "min": min,
        "max": max,
        "lower": lambda s: s.lower() if isinstance(s, str) else s,
        "upper": lambda s: s.upper() if isinstance(s, str) else s,
        "int": int,
        "float": float,
        "str": str,
        "bool": bool,
    }

    def evaluate(
        self,
        expression: str,
        variables: dict[str, Any],
    ) -> tuple[bool, str | None]:
        """Evaluate an enforcement expression.

        Args:
            expression: Expression to evaluate (e.g., "amount <= 50")
            variables: Names available to the expression

        Returns:
            (True, None) when the expression holds, else (False, reason).
            Errors count as failures.
        """
        try:
            evaluator = EvalWithCompoundTypes(
                names=variables,
                functions=self.SAFE_FUNCTIONS,
            )
            passed = bool(evaluator.eval(expression))
        except NameNotDefined as e:
            logger.warning(
                "enforcement_expression_undefined_variable",
                expression=expression,
                missing_variable=e.name,
            )
            return False, f"Undefined variable in expression: {e.name}"
        except (InvalidExpression, SyntaxError) as e:
            logger.warning(
                "enforcement_expression_invalid",
                expression=expression,
                error=str(e),
            )
            return False, f"Invalid expression: {e}"
        except Exception as e:  # noqa: BLE001
            logger.error(
                "enforcement_expression_evaluation_error",
                expression=expression,
                error=str(e),
            )
            return False, f"Expression evaluation error: {e}"

        if passed:
            return True, None
        return False, f"Expression '{expression}' does not hold for the reply"

    @staticmethod
    def validate_syntax(expression: str) -> tuple[bool, str | None]:
        """Check an expression parses; undefined names are allowed."""
        try:
            EvalWithCompoundTypes(
                names={},
                functions=DeterministicEnforcer.SAFE_FUNCTIONS,
            ).eval(expression)
        except NameNotDefined:
            return True, None
        except (InvalidExpression, SyntaxError) as e:
            return False, f"Invalid syntax: {e}"
        except Exception:  # noqa: BLE001
            # Type errors against empty names are expected at load time
            return True, None
        return True, None
