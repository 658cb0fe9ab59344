"""LLM message types and provider errors."""

from typing import Any

from pydantic import BaseModel, Field


class LLMMessage(BaseModel):
    """A message in a conversation."""

    role: str = Field(..., description="Role: system, user, or assistant")
    content: str = Field(..., description="Message content")


class TokenUsage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int = Field(..., description="Tokens in prompt")
    completion_tokens: int = Field(..., description="Tokens in completion")
    total_tokens: int = Field(..., description="Total tokens used")


class LLMResponse(BaseModel):
    """Response from an LLM call."""

    content: str = Field(..., description="Generated text")
    model: str = Field(..., description="Model used")
    finish_reason: str | None = Field(default=None, description="Why generation stopped")
    usage: TokenUsage | dict[str, int] | None = Field(default=None, description="Token usage")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Execution metadata")

    @property
    def token_counts(self) -> tuple[int, int]:
        """Return (prompt_tokens, completion_tokens), zero when unknown."""
        if self.usage is None:
            return 0, 0
        if isinstance(self.usage, dict):
            return self.usage.get("prompt_tokens", 0), self.usage.get("completion_tokens", 0)
        return self.usage.prompt_tokens, self.usage.completion_tokens


class ProviderError(Exception):
    """Base exception for LLM provider errors."""


class RateLimitError(ProviderError):
    """Rate limit exceeded."""
