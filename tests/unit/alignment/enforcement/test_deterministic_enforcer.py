"""Unit tests for DeterministicEnforcer and VariableExtractor."""

import pytest

from parley.alignment.enforcement import DeterministicEnforcer, VariableExtractor


class TestDeterministicEnforcer:
    """Tests for DeterministicEnforcer."""

    @pytest.fixture
    def enforcer(self) -> DeterministicEnforcer:
        return DeterministicEnforcer()

    @pytest.mark.parametrize(
        ("expression", "variables", "expected"),
        [
            ("amount <= 50", {"amount": 30}, True),
            ("amount <= 50", {"amount": 80}, False),
            ("not contains_refund", {"contains_refund": False}, True),
            ("lower(tier) == 'gold' or amount < 10", {"tier": "GOLD", "amount": 99}, True),
            ("max(amount, 5) < limit", {"amount": 3, "limit": 6}, True),
        ],
    )
    def test_expressions(
        self, enforcer: DeterministicEnforcer, expression: str, variables: dict, expected: bool
    ) -> None:
        passed, error = enforcer.evaluate(expression, variables)

        assert passed is expected
        assert (error is None) is expected

    def test_undefined_variable_fails(self, enforcer: DeterministicEnforcer) -> None:
        passed, error = enforcer.evaluate("amount <= 50", {})

        assert not passed
        assert "amount" in error

    def test_unsafe_expression_fails(self, enforcer: DeterministicEnforcer) -> None:
        passed, _ = enforcer.evaluate("__import__('os').system('true')", {})
        assert not passed

    def test_validate_syntax(self) -> None:
        assert DeterministicEnforcer.validate_syntax("amount <= 50") == (True, None)
        valid, error = DeterministicEnforcer.validate_syntax("amount <=")
        assert not valid
        assert error.startswith("Invalid syntax")


class TestVariableExtractor:
    """Tests for VariableExtractor."""

    def test_amounts_and_percentages(self) -> None:
        variables = VariableExtractor().extract_variables(
            "You get a 15% discount, so $1,250.00 becomes 1062.50 USD."
        )

        assert variables["amount"] == 1250.0
        assert variables["discount_percent"] == 15.0

    def test_flags(self) -> None:
        variables = VariableExtractor().extract_variables(
            "Sorry! I promise your refund is coming."
        )

        assert variables["contains_refund"]
        assert variables["contains_promise"]
        assert variables["contains_apology"]
        assert not variables["contains_competitor"]

    def test_reply_values_override_known(self) -> None:
        variables = VariableExtractor().extract_variables(
            "That is $20", known={"amount": 5, "limit": 50}
        )

        assert variables["amount"] == 20.0
        assert variables["limit"] == 50

    def test_no_amount(self) -> None:
        assert "amount" not in VariableExtractor().extract_variables("Hello")
