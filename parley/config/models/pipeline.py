"""Turn pipeline configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

from parley.alignment.models.enums import CompositionMode

ProviderSortMode = Literal["price", "latency", "throughput"]
FieldExtractionMode = Literal["pattern", "llm"]


class OpenRouterProviderConfig(BaseModel):
    """OpenRouter provider routing preferences.

    Only applies to openrouter/* model strings.
    """

    provider_order: list[str] | None = Field(
        default=None,
        description="Ordered list of provider names to try",
    )
    provider_sort: ProviderSortMode | None = Field(
        default=None,
        description="Sort providers by 'price', 'latency', or 'throughput'",
    )
    allow_fallbacks: bool = Field(
        default=True,
        description="Allow OpenRouter to use providers outside provider_order",
    )

    def to_request_params(self) -> dict | None:
        """Convert to the OpenRouter `provider` request body."""
        provider: dict = {}
        if self.provider_order:
            provider["order"] = self.provider_order
        if self.provider_sort:
            provider["sort"] = self.provider_sort
        if not self.allow_fallbacks:
            provider["allow_fallbacks"] = False
        return {"provider": provider} if provider else None


class LLMStepConfig(BaseModel):
    """Shared model settings for pipeline steps that call an LLM."""

    model: str = Field(
        default="openrouter/anthropic/claude-3-haiku-20240307",
        description="Full model identifier (e.g., 'openrouter/anthropic/claude-3-haiku')",
    )
    fallback_models: list[str] = Field(
        default_factory=list,
        description="Fallback models if primary fails",
    )
    openrouter: OpenRouterProviderConfig | None = Field(
        default=None,
        description="OpenRouter routing preferences",
    )


class MatchingConfig(LLMStepConfig):
    """Guideline and journey condition matching."""

    batch_size: int = Field(default=5, gt=0, description="Conditions per oracle call")
    min_confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum confidence for a condition to count as matched",
    )
    timeout_ms: int = Field(default=10000, gt=0, description="Timeout per oracle call")
    max_turn_attempts: int = Field(
        default=2,
        ge=1,
        description="Turn attempts when the oracle is unavailable before deflecting",
    )
    history_turns: int = Field(
        default=5,
        ge=0,
        description="Conversation turns included in matching prompts",
    )


class FieldExtractionConfig(LLMStepConfig):
    """Extraction of customer-stated facts from messages."""

    enabled: bool = Field(default=True, description="Enable this step")
    mode: FieldExtractionMode = Field(default="pattern", description="Extraction mode")


class JourneyConfig(BaseModel):
    """Journey navigation settings."""

    max_hops: int = Field(
        default=25,
        ge=1,
        description="Maximum states traversed in one turn",
    )
    max_history: int = Field(
        default=100,
        ge=1,
        description="Journey visits kept on the session",
    )


class ToolExecutionConfig(BaseModel):
    """Tool execution settings."""

    timeout_ms: int = Field(default=5000, gt=0, description="Default timeout per tool call")
    max_parallel: int = Field(default=5, ge=1, description="Max tools executed in parallel")


class VariableRefreshConfig(BaseModel):
    """Context variable refresh settings."""

    refresh_enabled: bool = Field(default=True, description="Refresh stale variables each turn")
    refresh_timeout_ms: int = Field(
        default=3000,
        gt=0,
        description="Timeout per refresher tool call",
    )


class GenerationConfig(LLMStepConfig):
    """Response generation settings."""

    model: str = Field(
        default="openrouter/anthropic/claude-sonnet-4-5-20250514",
        description="Full model identifier",
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Generation temperature")
    max_tokens: int = Field(default=1024, gt=0, description="Max tokens for response")


class CompositionConfig(BaseModel):
    """Message composition settings."""

    default_mode: CompositionMode = Field(
        default=CompositionMode.FLUID,
        description="Composition mode when the agent does not set one",
    )
    signal_threshold: float = Field(
        default=0.6,
        gt=0.0,
        le=1.0,
        description="Share of a signal's words that must appear for it to match",
    )
    no_match_message: str = Field(
        default="I'm sorry, I can't help with that right now.",
        description="Reply used in strict mode when no canned response applies",
    )
    deflection_message: str = Field(
        default=(
            "I'm sorry, I'm unable to help with that. "
            "Is there anything else I can do for you?"
        ),
        description="Generic reply when no safe response can be produced",
    )


class EnforcementConfig(BaseModel):
    """Self-critique settings."""

    enabled: bool = Field(default=True, description="Enable this step")
    self_critique_enabled: bool = Field(
        default=True,
        description="Regenerate once when a draft violates a high-criticality guideline",
    )
    max_retries: int = Field(default=1, ge=0, le=1, description="Regeneration attempts")
    semantic_check_enabled: bool = Field(
        default=False,
        description="Ask the oracle whether drafts follow high-criticality actions",
    )


class PipelineConfig(BaseModel):
    """Configuration for every step of the turn pipeline."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    field_extraction: FieldExtractionConfig = Field(default_factory=FieldExtractionConfig)
    journeys: JourneyConfig = Field(default_factory=JourneyConfig)
    tool_execution: ToolExecutionConfig = Field(default_factory=ToolExecutionConfig)
    variables: VariableRefreshConfig = Field(default_factory=VariableRefreshConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    composition: CompositionConfig = Field(default_factory=CompositionConfig)
    enforcement: EnforcementConfig = Field(default_factory=EnforcementConfig)
