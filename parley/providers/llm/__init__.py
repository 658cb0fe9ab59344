"""LLM access through Agno-backed executors."""

from parley.providers.llm.base import (
    LLMMessage,
    LLMResponse,
    ProviderError,
    RateLimitError,
    TokenUsage,
)
from parley.providers.llm.executor import (
    ExecutionContext,
    LLMExecutor,
    clear_execution_context,
    create_executor,
    create_executor_from_step_config,
    get_execution_context,
    set_execution_context,
)

__all__ = [
    "ExecutionContext",
    "LLMExecutor",
    "LLMMessage",
    "LLMResponse",
    "ProviderError",
    "RateLimitError",
    "TokenUsage",
    "clear_execution_context",
    "create_executor",
    "create_executor_from_step_config",
    "get_execution_context",
    "set_execution_context",
]
