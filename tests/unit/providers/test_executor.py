"""Unit tests for LLMExecutor."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from pydantic import BaseModel

from parley.providers.llm import (
    ExecutionContext,
    LLMExecutor,
    LLMMessage,
    LLMResponse,
    ProviderError,
    RateLimitError,
    clear_execution_context,
    set_execution_context,
)
from parley.providers.llm.executor import strip_code_fence


class Verdict(BaseModel):
    applies: bool
    reasoning: str = ""


def _response(content: str, model: str = "mock/test") -> LLMResponse:
    return LLMResponse(content=content, model=model)


class TestGenerate:
    """Tests for model selection and fallback."""

    @pytest.mark.asyncio
    async def test_mock_model_needs_no_network(self) -> None:
        executor = LLMExecutor(model="mock/test", step_name="generation")

        response = await executor.generate([LLMMessage(role="user", content="Hi")])

        assert response.content == "Mock response for mock/test"
        assert response.metadata["step"] == "generation"

    @pytest.mark.asyncio
    async def test_falls_back_to_next_model(self, monkeypatch: pytest.MonkeyPatch) -> None:
        executor = LLMExecutor(
            model="openai/gpt-4o-mini", fallback_models=["mock/backup"], step_name="matching"
        )
        attempts = AsyncMock(side_effect=[RateLimitError("slow down"), _response("ok")])
        monkeypatch.setattr(executor, "_generate_with_model", attempts)

        response = await executor.generate([LLMMessage(role="user", content="Hi")])

        assert response.content == "ok"
        assert [c.kwargs["model"] for c in attempts.call_args_list] == [
            "openai/gpt-4o-mini",
            "mock/backup",
        ]

    @pytest.mark.asyncio
    async def test_all_models_failing_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        executor = LLMExecutor(model="openai/a", fallback_models=["groq/b"])
        monkeypatch.setattr(
            executor, "_generate_with_model", AsyncMock(side_effect=ProviderError("down"))
        )

        with pytest.raises(ProviderError, match="All models failed"):
            await executor.generate([LLMMessage(role="user", content="Hi")])

    @pytest.mark.asyncio
    async def test_tags_response_with_execution_context(self) -> None:
        tenant_id, session_id = uuid4(), uuid4()
        set_execution_context(
            ExecutionContext(tenant_id=tenant_id, agent_id=uuid4(), session_id=session_id)
        )
        try:
            response = await LLMExecutor(model="mock/test").generate(
                [LLMMessage(role="user", content="Hi")]
            )
        finally:
            clear_execution_context()

        assert response.metadata["tenant_id"] == str(tenant_id)
        assert response.metadata["session_id"] == str(session_id)


class TestGenerateStructured:
    """Tests for schema-validated output."""

    @pytest.mark.asyncio
    async def test_parses_fenced_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        executor = LLMExecutor(model="mock/test")
        monkeypatch.setattr(
            executor,
            "generate",
            AsyncMock(return_value=_response('```json\n{"applies": true}\n```')),
        )

        parsed, _ = await executor.generate_structured("Does it hold?", Verdict)

        assert parsed == Verdict(applies=True)

    @pytest.mark.asyncio
    async def test_invalid_output_raises_provider_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        executor = LLMExecutor(model="mock/test")
        monkeypatch.setattr(
            executor, "generate", AsyncMock(return_value=_response("not json at all"))
        )

        with pytest.raises(ProviderError, match="Failed to parse"):
            await executor.generate_structured("Does it hold?", Verdict)


@pytest.mark.parametrize(
    ("model", "expected"),
    [
        ("openrouter/anthropic/claude-3-haiku", ("openrouter", "anthropic/claude-3-haiku")),
        ("openai/gpt-4o-mini", ("openai", "gpt-4o-mini")),
        ("bare-model", ("mock", "bare-model")),
    ],
)
def test_parse_model(model: str, expected: tuple[str, str]) -> None:
    assert LLMExecutor(model="mock/test")._parse_model(model) == expected


def test_strip_code_fence() -> None:
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'
