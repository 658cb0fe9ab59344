"""LLM Executor - runs LLM calls for pipeline steps using Agno.

Each pipeline step (condition matching, field extraction, generation)
gets its own executor configured with a model, optional fallback models
and a timeout. The executor routes model strings to Agno model classes:

- openrouter/* -> OpenRouter
- anthropic/*  -> Claude
- openai/*     -> OpenAIChat
- groq/*       -> Groq
- mock/*       -> canned response, no network
"""

from __future__ import annotations

import asyncio
import json
import time
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from parley.observability.logging import get_logger
from parley.providers.llm.base import (
    LLMMessage,
    LLMResponse,
    ProviderError,
    RateLimitError,
    TokenUsage,
)

if TYPE_CHECKING:
    from agno.agent import Agent

    from parley.config.models.pipeline import OpenRouterProviderConfig

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass
class ExecutionContext:
    """Tenant, session and step info for the turn being processed.

    Set once at the start of a turn so executors can tag their calls
    without threading ids through every method.
    """

    tenant_id: UUID
    agent_id: UUID
    session_id: UUID
    turn_id: UUID | None = None
    customer_id: str | None = None


_execution_context: ContextVar[ExecutionContext | None] = ContextVar(
    "execution_context", default=None
)


def set_execution_context(ctx: ExecutionContext) -> None:
    """Set execution context for current async task."""
    _execution_context.set(ctx)


def get_execution_context() -> ExecutionContext | None:
    """Get execution context for current async task."""
    return _execution_context.get()


def clear_execution_context() -> None:
    """Clear execution context."""
    _execution_context.set(None)


def strip_code_fence(content: str) -> str:
    """Return the body of a ```json (or bare ```) fenced block, if present."""
    content = content.strip()
    for fence in ("```json", "```"):
        if fence in content:
            start = content.find(fence) + len(fence)
            end = content.find("```", start)
            if end > start:
                return content[start:end].strip()
    return content


class LLMExecutor:
    """Executes LLM calls for one pipeline step using Agno.

    Tries the primary model, then each fallback model in order. Every
    attempt is bounded by the executor timeout.

    Example:
        executor = LLMExecutor(
            model="openrouter/anthropic/claude-3-haiku-20240307",
            fallback_models=["anthropic/claude-3-haiku-20240307"],
            step_name="matching",
        )
        response = await executor.generate([LLMMessage(role="user", content="Hi")])
    """

    def __init__(
        self,
        model: str,
        fallback_models: list[str] | None = None,
        timeout: float = 60.0,
        step_name: str | None = None,
        openrouter_config: OpenRouterProviderConfig | None = None,
    ) -> None:
        self._model = model
        self._fallback_models = fallback_models or []
        self._timeout = timeout
        self._step_name = step_name
        self._openrouter_config = openrouter_config
        self._agents: dict[str, Agent] = {}

    @property
    def model(self) -> str:
        """Primary model for this executor."""
        return self._model

    @property
    def step_name(self) -> str | None:
        """Pipeline step this executor serves."""
        return self._step_name

    async def generate(
        self,
        messages: list[LLMMessage],
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate text from messages, falling back across models.

        Raises:
            ProviderError: If every model in the chain failed
        """
        models_to_try = [self._model, *self._fallback_models]
        last_error: Exception | None = None
        ctx = get_execution_context()

        for model in models_to_try:
            try:
                response = await self._generate_with_model(
                    model=model,
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    **kwargs,
                )
            except RateLimitError as e:
                logger.warning("executor_rate_limited", model=model, step=self._step_name)
                last_error = e
                continue
            except ProviderError as e:
                logger.warning(
                    "executor_provider_error",
                    model=model,
                    step=self._step_name,
                    error=str(e),
                )
                last_error = e
                continue

            if ctx:
                response.metadata["tenant_id"] = str(ctx.tenant_id)
                response.metadata["session_id"] = str(ctx.session_id)
            response.metadata["step"] = self._step_name
            return response

        raise ProviderError(
            f"All models failed for step {self._step_name}. "
            f"Tried: {models_to_try}. Last error: {last_error}"
        )

    async def generate_structured(
        self,
        prompt: str,
        schema: type[T],
        *,
        system_prompt: str | None = None,
        max_tokens: int = 1024,
    ) -> tuple[T, LLMResponse]:
        """Generate output parsed into a pydantic schema.

        Raises:
            ProviderError: If generation failed or the output did not
                validate against the schema
        """
        schema_str = json.dumps(schema.model_json_schema(), indent=2)
        json_prompt = (
            f"{prompt}\n\nRespond with valid JSON matching this schema:\n"
            f"```json\n{schema_str}\n```\n\nOutput only the JSON, no other text."
        )

        messages = []
        if system_prompt:
            messages.append(LLMMessage(role="system", content=system_prompt))
        messages.append(LLMMessage(role="user", content=json_prompt))

        response = await self.generate(messages, max_tokens=max_tokens, temperature=0.0)
        content = strip_code_fence(response.content)

        try:
            parsed = schema.model_validate_json(content)
        except ValidationError as e:
            logger.warning(
                "structured_parse_failed",
                schema=schema.__name__,
                step=self._step_name,
                error=str(e),
            )
            raise ProviderError(f"Failed to parse structured response: {e}") from e

        return parsed, response

    def _get_or_create_agent(self, model: str) -> Agent:
        """Get the cached Agno agent for a model string, creating it once."""
        if model in self._agents:
            return self._agents[model]

        from agno.agent import Agent

        agent = Agent(
            model=self._create_agno_model(model),
            num_history_messages=0,
            markdown=False,
        )
        self._agents[model] = agent
        return agent

    def _create_agno_model(self, model: str) -> Any:
        """Create the Agno model class for a model string."""
        provider_type, api_model = self._parse_model(model)

        if provider_type == "anthropic":
            from agno.models.anthropic import Claude

            return Claude(id=api_model)

        if provider_type == "openai":
            from agno.models.openai import OpenAIChat

            return OpenAIChat(id=api_model)

        if provider_type == "groq":
            from agno.models.groq import Groq

            return Groq(id=api_model)

        from agno.models.openrouter import OpenRouter

        if provider_type != "openrouter":
            logger.warning(
                "unknown_provider_defaulting_to_openrouter",
                model=model,
                provider_type=provider_type,
            )
            return OpenRouter(id=model)

        extra_body = None
        if self._openrouter_config:
            extra_body = self._openrouter_config.to_request_params()
        return OpenRouter(id=api_model, extra_body=extra_body)

    def _format_input(self, messages: list[LLMMessage]) -> str:
        """Flatten non-system messages into the single input Agno expects."""
        turns = [m for m in messages if m.role != "system"]
        if len(turns) == 1:
            return turns[0].content

        parts = []
        for msg in turns:
            speaker = "User" if msg.role == "user" else "Assistant"
            parts.append(f"{speaker}: {msg.content}")
        return "\n\n".join(parts)

    async def _generate_with_model(
        self,
        model: str,
        messages: list[LLMMessage],
        max_tokens: int,  # noqa: ARG002
        temperature: float,  # noqa: ARG002
        **kwargs: Any,  # noqa: ARG002
    ) -> LLMResponse:
        """Run one model. Sampling options are fixed at Agno model creation."""
        provider_type, _ = self._parse_model(model)
        if provider_type == "mock":
            return self._mock_response(model)

        agent = self._get_or_create_agent(model)
        system_prompt = next((m.content for m in messages if m.role == "system"), None)
        if system_prompt:
            agent.instructions = [system_prompt]

        start_time = time.perf_counter()
        try:
            run_response = await asyncio.wait_for(
                agent.arun(self._format_input(messages)),
                timeout=self._timeout,
            )
        except TimeoutError as e:
            raise ProviderError(f"Model {model} timed out after {self._timeout}s") from e
        except Exception as e:
            error_msg = str(e).lower()
            if "rate" in error_msg and "limit" in error_msg:
                raise RateLimitError(f"Rate limited: {e}") from e
            raise ProviderError(f"Agno execution failed: {e}") from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        content = run_response.content or ""

        logger.debug(
            "executor_generate_complete",
            model=model,
            step=self._step_name,
            latency_ms=round(latency_ms, 2),
            content_length=len(content),
        )

        return LLMResponse(
            content=content,
            model=model,
            finish_reason="stop",
            metadata={"latency_ms": latency_ms, "provider": provider_type},
        )

    def _mock_response(self, model: str) -> LLMResponse:
        return LLMResponse(
            content=f"Mock response for {model}",
            model=model,
            finish_reason="stop",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )

    def _parse_model(self, model: str) -> tuple[str, str]:
        """Parse a model string into (provider_type, api_model).

        Examples:
            "openrouter/anthropic/claude-3-haiku" -> ("openrouter", "anthropic/claude-3-haiku")
            "openai/gpt-4o-mini" -> ("openai", "gpt-4o-mini")
            "mock/test" -> ("mock", "test")
        """
        parts = model.split("/")
        if len(parts) >= 2:
            return parts[0], "/".join(parts[1:])
        return "mock", model


def create_executor(
    model: str,
    fallback_models: list[str] | None = None,
    step_name: str | None = None,
    timeout: float = 60.0,
) -> LLMExecutor:
    """Create an LLMExecutor with the given configuration."""
    return LLMExecutor(
        model=model,
        fallback_models=fallback_models,
        step_name=step_name,
        timeout=timeout,
    )


def create_executor_from_step_config(
    step_config: Any,
    step_name: str,
    timeout: float = 60.0,
) -> LLMExecutor:
    """Create an LLMExecutor from a pipeline step configuration section."""
    return LLMExecutor(
        model=step_config.model,
        fallback_models=getattr(step_config, "fallback_models", []),
        timeout=timeout,
        step_name=step_name,
        openrouter_config=getattr(step_config, "openrouter", None),
    )
