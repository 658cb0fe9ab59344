"""Context variable resolution and refresh."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from parley.alignment.diagnostics import Diagnostic, DiagnosticKind
from parley.alignment.execution import ToolCallRequest, ToolCaller, ToolContext
from parley.alignment.models import ContextVariable, ContextVariableValue, VariableScope
from parley.observability.logging import get_logger
from parley.variables.store import ContextVariableStore

logger = get_logger(__name__)


class VariableSnapshot(BaseModel):
    """Variable values visible to one turn."""

    values: dict[str, Any] = Field(default_factory=dict, description="Value by variable name")
    refreshed: list[ContextVariableValue] = Field(
        default_factory=list, description="New values to stage for commit"
    )
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class VariableRefresher:
    """Loads a customer's context variables and refreshes stale ones.

    A customer-scoped variable is keyed by customer id. A tag-scoped
    variable takes the value of the customer's first tag that has one.
    Variables with a refresh tool are re-fetched concurrently when their
    value is missing or older than max_age_seconds. A failed refresh keeps
    the previous value.
    """

    def __init__(
        self,
        store: ContextVariableStore,
        tool_caller: ToolCaller | None = None,
        enabled: bool = True,
    ) -> None:
        """Initialize the refresher.

        Args:
            store: Context variable values
            tool_caller: Caller used for refresh tools, with the refresh timeout
            enabled: Whether stale values are refreshed at all
        """
        self._store = store
        self._tool_caller = tool_caller
        self._enabled = enabled

    async def load(
        self,
        *,
        tenant_id: UUID,
        agent_id: UUID,
        variables: list[ContextVariable],
        customer_id: str,
        customer_tags: list[str],
        tool_context: ToolContext,
    ) -> VariableSnapshot:
        """Resolve every enabled variable, refreshing the stale ones.

        Args:
            tenant_id: Tenant
            agent_id: Agent
            variables: Variable definitions for the agent
            customer_id: Customer the turn belongs to
            customer_tags: Customer tags, in priority order
            tool_context: Context handed to refresh tools

        Returns:
            VariableSnapshot with current values and values to stage
        """
        variables = [v for v in variables if v.enabled]
        if not variables:
            return VariableSnapshot()

        stored = await self._store.list_values(tenant_id, agent_id, [customer_id, *customer_tags])
        by_key = {(v.variable_name, v.key): v for v in stored}

        snapshot = VariableSnapshot()
        stale: list[tuple[ContextVariable, str]] = []

        for variable in variables:
            key, current = self._resolve(variable, by_key, customer_id, customer_tags)
            if current is not None:
                snapshot.values[variable.name] = current.value
            if (
                key is not None
                and variable.refresh_tool_id
                and (current is None or current.is_stale(variable.max_age_seconds))
            ):
                stale.append((variable, key))

        if stale and self._enabled and self._tool_caller is not None:
            await self._refresh(stale, tool_context, snapshot)

        return snapshot

    def _resolve(
        self,
        variable: ContextVariable,
        by_key: dict[tuple[str, str], ContextVariableValue],
        customer_id: str,
        customer_tags: list[str],
    ) -> tuple[str | None, ContextVariableValue | None]:
        """Key a variable is stored under for this customer, and its value."""
        if variable.scope == VariableScope.CUSTOMER:
            return customer_id, by_key.get((variable.name, customer_id))
        for tag in customer_tags:
            value = by_key.get((variable.name, tag))
            if value is not None:
                return tag, value
        return (customer_tags[0] if customer_tags else None), None

    async def _refresh(
        self,
        stale: list[tuple[ContextVariable, str]],
        tool_context: ToolContext,
        snapshot: VariableSnapshot,
    ) -> None:
        requests = [
            ToolCallRequest(tool_id=variable.refresh_tool_id, group_id=f"variable:{variable.name}")
            for variable, _ in stale
            if variable.refresh_tool_id
        ]
        results = await self._tool_caller.call(requests, tool_context)  # type: ignore[union-attr]

        for (variable, key), result in zip(stale, results, strict=True):
            if not result.success:
                logger.warning(
                    "variable_refresh_failed",
                    variable=variable.name,
                    tool_id=variable.refresh_tool_id,
                    outcome=result.outcome.value,
                    error=result.error,
                )
                snapshot.diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.VARIABLE_REFRESH_FAILED,
                        message=f"Variable '{variable.name}' could not be refreshed",
                        details={
                            "tool_id": variable.refresh_tool_id,
                            "outcome": result.outcome.value,
                        },
                    )
                )
                continue

            value = result.variable_updates.get(variable.name, result.data)
            snapshot.values[variable.name] = value
            snapshot.refreshed.append(
                ContextVariableValue(variable_name=variable.name, key=key, value=value)
            )
            logger.debug(
                "variable_refreshed", variable=variable.name, scope=variable.scope.value
            )
