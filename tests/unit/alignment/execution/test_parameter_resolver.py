"""Unit tests for ParameterResolver and ToolScheduler."""

from uuid import uuid4

from parley.alignment.execution import (
    ParameterResolver,
    ToolContext,
    ToolOutcome,
    ToolResult,
    ToolScheduler,
)
from parley.alignment.models import ParameterSource, ToolDefinition, ToolParameter


def _context(**kwargs) -> ToolContext:
    return ToolContext(
        tenant_id=uuid4(),
        agent_id=uuid4(),
        session_id=uuid4(),
        customer_id="cust-1",
        **kwargs,
    )


def _tool(id: str, *params: ToolParameter) -> ToolDefinition:
    return ToolDefinition(id=id, parameters=list(params))


class TestParameterResolver:
    """Tests for ParameterResolver."""

    def test_customer_parameters_come_only_from_facts(self) -> None:
        definition = _tool(
            "lookup_order", ToolParameter(name="order_id", source=ParameterSource.CUSTOMER)
        )
        resolver = ParameterResolver()

        missing = resolver.resolve(definition, _context(variables={"order_id": "999"}))
        stated = resolver.resolve(definition, _context(facts={"order_id": "12345"}))

        assert missing.missing_customer == ["order_id"]
        assert not missing.ready
        assert stated.arguments == {"order_id": "12345"}
        assert stated.ready

    def test_context_lookup_order(self) -> None:
        definition = _tool("t", ToolParameter(name="tier"), ToolParameter(name="customer_id"))
        context = _context(
            variables={"tier": "gold"},
            session_data={"tier": "silver"},
            facts={"tier": "bronze"},
        )

        resolution = ParameterResolver().resolve(definition, context)

        assert resolution.arguments == {"tier": "gold", "customer_id": "cust-1"}

    def test_missing_context_parameter(self) -> None:
        resolution = ParameterResolver().resolve(
            _tool("t", ToolParameter(name="region")), _context()
        )
        assert resolution.missing_context == ["region"]
        assert resolution.missing_customer == []

    def test_optional_parameters(self) -> None:
        definition = _tool(
            "t",
            ToolParameter(name="limit", required=False, default=10),
            ToolParameter(name="cursor", required=False),
        )

        resolution = ParameterResolver().resolve(definition, _context())

        assert resolution.arguments == {"limit": 10}
        assert resolution.ready

    def test_explicit_arguments_win(self) -> None:
        definition = _tool(
            "t", ToolParameter(name="order_id", source=ParameterSource.CUSTOMER)
        )

        resolution = ParameterResolver().resolve(
            definition, _context(), explicit={"order_id": "42"}
        )

        assert resolution.arguments == {"order_id": "42"}

    def test_upstream_result_binding(self) -> None:
        definition = _tool(
            "send_receipt",
            ToolParameter(name="email", from_tool="lookup_order", from_field="customer_email"),
        )
        ok = ToolResult(
            tool_id="lookup_order",
            group_id="g",
            outcome=ToolOutcome.SUCCESS,
            data={"customer_email": "ada@example.com"},
        )
        failed = ok.model_copy(update={"outcome": ToolOutcome.TOOL_ERROR, "data": None})
        resolver = ParameterResolver()

        assert resolver.resolve(definition, _context(), {"lookup_order": ok}).arguments == {
            "email": "ada@example.com"
        }
        assert resolver.resolve(
            definition, _context(), {"lookup_order": failed}
        ).failed_dependencies == ["lookup_order"]
        assert resolver.resolve(definition, _context()).failed_dependencies == ["lookup_order"]


class TestToolScheduler:
    """Tests for ToolScheduler."""

    def test_independent_tools_share_a_wave(self) -> None:
        a, b = _tool("a"), _tool("b")
        assert ToolScheduler().schedule([a, b]) == [[a, b]]

    def test_dependencies_form_waves(self) -> None:
        lookup = _tool("lookup")
        refund = _tool("refund", ToolParameter(name="order", from_tool="lookup"))
        notify = _tool("notify", ToolParameter(name="refund_id", from_tool="refund"))
        audit = _tool("audit")

        waves = ToolScheduler().schedule([notify, refund, lookup, audit])

        assert [[d.id for d in wave] for wave in waves] == [
            ["lookup", "audit"],
            ["refund"],
            ["notify"],
        ]

    def test_dependency_outside_group_is_ignored(self) -> None:
        refund = _tool("refund", ToolParameter(name="order", from_tool="lookup"))
        assert ToolScheduler().schedule([refund]) == [[refund]]

    def test_cycle_falls_back_to_request_order(self) -> None:
        a = _tool("a", ToolParameter(name="x", from_tool="b"))
        b = _tool("b", ToolParameter(name="y", from_tool="a"))

        assert ToolScheduler().schedule([a, b]) == [[a], [b]]
