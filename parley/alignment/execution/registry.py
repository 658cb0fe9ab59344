"""Tool registration."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from parley.alignment.models import ToolDefinition
from parley.errors import ToolNotFoundError

ToolFunction = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class RegisteredTool:
    """A tool function with its declared metadata."""

    definition: ToolDefinition
    function: ToolFunction


class ToolRegistry:
    """Maps tool ids to async functions.

    Functions are called as `await fn(context: ToolContext, **arguments)`.
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}

    def register(self, definition: ToolDefinition, function: ToolFunction) -> None:
        if definition.id in self._tools:
            raise ValueError(f"Tool '{definition.id}' is already registered")
        self._tools[definition.id] = RegisteredTool(definition=definition, function=function)

    def tool(self, definition: ToolDefinition) -> Callable[[ToolFunction], ToolFunction]:
        """Decorator form of register."""

        def decorator(function: ToolFunction) -> ToolFunction:
            self.register(definition, function)
            return function

        return decorator

    def get(self, tool_id: str) -> RegisteredTool:
        try:
            return self._tools[tool_id]
        except KeyError:
            raise ToolNotFoundError(f"Tool '{tool_id}' is not registered") from None

    def has(self, tool_id: str) -> bool:
        return tool_id in self._tools

    def definitions(self) -> list[ToolDefinition]:
        return [t.definition for t in self._tools.values()]


__all__ = ["RegisteredTool", "ToolFunction", "ToolRegistry"]
