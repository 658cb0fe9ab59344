"""Tool execution for alignment pipeline."""

from parley.alignment.execution.models import (
    ToolCallRequest,
    ToolContext,
    ToolOutcome,
    ToolOutput,
    ToolResult,
)
from parley.alignment.execution.parameter_resolver import ParameterResolution, ParameterResolver
from parley.alignment.execution.registry import RegisteredTool, ToolFunction, ToolRegistry
from parley.alignment.execution.tool_caller import ToolCaller
from parley.alignment.execution.tool_scheduler import ToolScheduler

__all__ = [
    "ParameterResolution",
    "ParameterResolver",
    "RegisteredTool",
    "ToolCallRequest",
    "ToolCaller",
    "ToolContext",
    "ToolFunction",
    "ToolOutcome",
    "ToolOutput",
    "ToolRegistry",
    "ToolResult",
    "ToolScheduler",
]
