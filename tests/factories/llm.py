"""Scripted LLM executors for tests."""

from collections.abc import Callable
from typing import Any

from parley.providers.llm import LLMExecutor, LLMMessage, LLMResponse, ProviderError

Reply = str | Exception | Callable[[list[LLMMessage]], str]


class ScriptedLLMExecutor(LLMExecutor):
    """Mock LLM executor that returns scripted replies in call order.

    The last reply repeats once the script runs out. A reply may be an
    exception to raise or a callable over the messages.
    """

    def __init__(self, replies: list[Reply] | None = None, step_name: str = "test") -> None:
        super().__init__(model="mock/test", step_name=step_name)
        self._replies: list[Reply] = list(replies or ["Happy to help."])
        self._call_count = 0
        self.generate_calls: list[list[LLMMessage]] = []

    @property
    def call_count(self) -> int:
        return self._call_count

    def system_prompt(self, call: int = -1) -> str:
        """System prompt sent with the given call."""
        messages = self.generate_calls[call]
        return next((m.content for m in messages if m.role == "system"), "")

    async def generate(self, messages: list[LLMMessage], **kwargs: Any) -> LLMResponse:
        self.generate_calls.append(messages)
        reply = self._replies[min(self._call_count, len(self._replies) - 1)]
        self._call_count += 1

        if isinstance(reply, Exception):
            raise reply
        content = reply(messages) if callable(reply) else reply
        return LLMResponse(
            content=content,
            model="mock-model",
            usage={"prompt_tokens": 10, "completion_tokens": 5},
        )


def failing_executor(message: str = "provider down") -> ScriptedLLMExecutor:
    return ScriptedLLMExecutor([ProviderError(message)])
