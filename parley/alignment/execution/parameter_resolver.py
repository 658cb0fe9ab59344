"""Tool parameter resolution by source."""

from typing import Any

from pydantic import BaseModel, Field

from parley.alignment.execution.models import ToolContext, ToolResult
from parley.alignment.models import ParameterSource, ToolDefinition

_MISSING = object()


class ParameterResolution(BaseModel):
    """Arguments for one call, or why it cannot be made."""

    arguments: dict[str, Any] = Field(default_factory=dict)
    missing_customer: list[str] = Field(
        default_factory=list, description="Customer-sourced parameters not yet stated"
    )
    missing_context: list[str] = Field(
        default_factory=list, description="Context-sourced parameters not available"
    )
    failed_dependencies: list[str] = Field(
        default_factory=list, description="Upstream tools that did not succeed"
    )

    @property
    def ready(self) -> bool:
        return not (self.missing_customer or self.missing_context or self.failed_dependencies)


class ParameterResolver:
    """Resolves tool arguments from the turn's known values.

    CUSTOMER parameters come only from facts the customer stated. CONTEXT
    parameters come from an upstream tool result when bound to one, else
    from context variables, session values, this turn's tool data, facts
    and the built-in identifiers (customer_id, session_id).
    """

    def resolve(
        self,
        definition: ToolDefinition,
        context: ToolContext,
        upstream: dict[str, ToolResult] | None = None,
        explicit: dict[str, Any] | None = None,
    ) -> ParameterResolution:
        upstream = upstream or {}
        explicit = explicit or {}
        resolution = ParameterResolution()

        for param in definition.parameters:
            if param.name in explicit:
                resolution.arguments[param.name] = explicit[param.name]
                continue

            if param.from_tool:
                result = upstream.get(param.from_tool)
                if result is None or not result.success:
                    if param.required:
                        resolution.failed_dependencies.append(param.from_tool)
                    continue
                value = self._from_result(result, param.from_field or param.name)
            elif param.source == ParameterSource.CUSTOMER:
                value = context.facts.get(param.name, _MISSING)
            else:
                value = self._from_context(context, param.name)

            if value is _MISSING or value is None:
                if not param.required:
                    if param.default is not None:
                        resolution.arguments[param.name] = param.default
                elif param.source == ParameterSource.CUSTOMER and not param.from_tool:
                    resolution.missing_customer.append(param.name)
                else:
                    resolution.missing_context.append(param.name)
                continue

            resolution.arguments[param.name] = value

        return resolution

    def _from_result(self, result: ToolResult, key: str) -> Any:
        if isinstance(result.data, dict):
            return result.data.get(key, _MISSING)
        return _MISSING if result.data is None else result.data

    def _from_context(self, context: ToolContext, name: str) -> Any:
        for source in (context.variables, context.session_data, context.tool_data, context.facts):
            if name in source:
                return source[name]
        if name == "customer_id":
            return context.customer_id
        if name == "session_id":
            return str(context.session_id)
        return _MISSING
