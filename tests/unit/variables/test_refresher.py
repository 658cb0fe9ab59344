"""Unit tests for VariableRefresher and InMemoryContextVariableStore."""

from datetime import timedelta
from uuid import uuid4

import pytest

from parley.alignment.diagnostics import DiagnosticKind
from parley.alignment.execution import ToolCaller, ToolContext, ToolOutput, ToolRegistry
from parley.alignment.models import (
    ContextVariable,
    ContextVariableValue,
    ToolDefinition,
    VariableScope,
    utc_now,
)
from parley.errors import ToolExecutionError
from parley.variables import InMemoryContextVariableStore, VariableRefresher

TENANT = uuid4()
AGENT = uuid4()


def _variable(name: str, **kwargs) -> ContextVariable:
    return ContextVariable(tenant_id=TENANT, agent_id=AGENT, name=name, **kwargs)


def _tool_context(customer_tags: list[str] | None = None) -> ToolContext:
    return ToolContext(
        tenant_id=TENANT,
        agent_id=AGENT,
        session_id=uuid4(),
        customer_id="cust-1",
        customer_tags=customer_tags or [],
    )


@pytest.fixture
def store() -> InMemoryContextVariableStore:
    return InMemoryContextVariableStore()


@pytest.fixture
def registry() -> ToolRegistry:
    registry = ToolRegistry()

    @registry.tool(ToolDefinition(id="fetch_tier"))
    async def fetch_tier(context: ToolContext) -> ToolOutput:
        return ToolOutput(data={"raw": "ignored"}, variable_updates={"tier": "platinum"})

    @registry.tool(ToolDefinition(id="fetch_balance"))
    async def fetch_balance(context: ToolContext) -> float:
        return 120.5

    @registry.tool(ToolDefinition(id="broken"))
    async def broken(context: ToolContext) -> None:
        raise ToolExecutionError("CRM down", retryable=True)

    return registry


class TestInMemoryContextVariableStore:
    """Tests for InMemoryContextVariableStore."""

    @pytest.mark.asyncio
    async def test_values_keyed_by_agent_and_key(
        self, store: InMemoryContextVariableStore
    ) -> None:
        await store.set_values(
            TENANT,
            AGENT,
            [
                ContextVariableValue(variable_name="tier", key="cust-1", value="gold"),
                ContextVariableValue(variable_name="promo", key="vip", value="10%"),
            ],
        )
        await store.set_values(
            TENANT, uuid4(), [ContextVariableValue(variable_name="tier", key="cust-1", value="x")]
        )

        values = await store.list_values(TENANT, AGENT, ["cust-1"])

        assert [(v.variable_name, v.value) for v in values] == [("tier", "gold")]
        assert (await store.get_value(TENANT, AGENT, "promo", "vip")).value == "10%"
        assert await store.delete_value(TENANT, AGENT, "promo", "vip")
        assert await store.get_value(TENANT, AGENT, "promo", "vip") is None


class TestVariableRefresher:
    """Tests for VariableRefresher."""

    @pytest.mark.asyncio
    async def test_customer_and_tag_scopes(self, store: InMemoryContextVariableStore) -> None:
        await store.set_values(
            TENANT,
            AGENT,
            [
                ContextVariableValue(variable_name="tier", key="cust-1", value="gold"),
                ContextVariableValue(variable_name="promo", key="regular", value="5%"),
                ContextVariableValue(variable_name="promo", key="vip", value="10%"),
            ],
        )
        refresher = VariableRefresher(store)

        snapshot = await refresher.load(
            tenant_id=TENANT,
            agent_id=AGENT,
            variables=[_variable("tier"), _variable("promo", scope=VariableScope.TAG)],
            customer_id="cust-1",
            customer_tags=["vip", "regular"],
            tool_context=_tool_context(["vip", "regular"]),
        )

        assert snapshot.values == {"tier": "gold", "promo": "10%"}
        assert snapshot.refreshed == []

    @pytest.mark.asyncio
    async def test_missing_and_stale_values_are_refreshed(
        self, store: InMemoryContextVariableStore, registry: ToolRegistry
    ) -> None:
        await store.set_values(
            TENANT,
            AGENT,
            [
                ContextVariableValue(
                    variable_name="balance",
                    key="cust-1",
                    value=10.0,
                    updated_at=utc_now() - timedelta(hours=2),
                ),
                ContextVariableValue(variable_name="fresh", key="cust-1", value="kept"),
            ],
        )
        refresher = VariableRefresher(store, ToolCaller(registry))

        snapshot = await refresher.load(
            tenant_id=TENANT,
            agent_id=AGENT,
            variables=[
                _variable("tier", refresh_tool_id="fetch_tier"),
                _variable("balance", refresh_tool_id="fetch_balance", max_age_seconds=60),
                _variable("fresh", refresh_tool_id="broken", max_age_seconds=3600),
            ],
            customer_id="cust-1",
            customer_tags=[],
            tool_context=_tool_context(),
        )

        assert snapshot.values == {"tier": "platinum", "balance": 120.5, "fresh": "kept"}
        assert sorted(v.variable_name for v in snapshot.refreshed) == ["balance", "tier"]
        assert all(v.key == "cust-1" for v in snapshot.refreshed)
        # Nothing is written until the turn commits
        assert (await store.get_value(TENANT, AGENT, "balance", "cust-1")).value == 10.0

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_value(
        self, store: InMemoryContextVariableStore, registry: ToolRegistry
    ) -> None:
        await store.set_values(
            TENANT,
            AGENT,
            [
                ContextVariableValue(
                    variable_name="tier",
                    key="cust-1",
                    value="gold",
                    updated_at=utc_now() - timedelta(days=1),
                )
            ],
        )
        refresher = VariableRefresher(store, ToolCaller(registry))

        snapshot = await refresher.load(
            tenant_id=TENANT,
            agent_id=AGENT,
            variables=[_variable("tier", refresh_tool_id="broken", max_age_seconds=60)],
            customer_id="cust-1",
            customer_tags=[],
            tool_context=_tool_context(),
        )

        assert snapshot.values == {"tier": "gold"}
        assert snapshot.refreshed == []
        assert [d.kind for d in snapshot.diagnostics] == [DiagnosticKind.VARIABLE_REFRESH_FAILED]

    @pytest.mark.asyncio
    async def test_refresh_disabled(
        self, store: InMemoryContextVariableStore, registry: ToolRegistry
    ) -> None:
        refresher = VariableRefresher(store, ToolCaller(registry), enabled=False)

        snapshot = await refresher.load(
            tenant_id=TENANT,
            agent_id=AGENT,
            variables=[_variable("tier", refresh_tool_id="fetch_tier")],
            customer_id="cust-1",
            customer_tags=[],
            tool_context=_tool_context(),
        )

        assert snapshot.values == {}

    @pytest.mark.asyncio
    async def test_disabled_variables_ignored(self, store: InMemoryContextVariableStore) -> None:
        await store.set_values(
            TENANT, AGENT, [ContextVariableValue(variable_name="tier", key="cust-1", value="gold")]
        )

        snapshot = await VariableRefresher(store).load(
            tenant_id=TENANT,
            agent_id=AGENT,
            variables=[_variable("tier", enabled=False)],
            customer_id="cust-1",
            customer_tags=[],
            tool_context=_tool_context(),
        )

        assert snapshot.values == {}
