"""Configuration section models."""

from parley.config.models.observability import (
    LoggingConfig,
    ObservabilityConfig,
)
from parley.config.models.pipeline import (
    CompositionConfig,
    EnforcementConfig,
    FieldExtractionConfig,
    GenerationConfig,
    JourneyConfig,
    LLMStepConfig,
    MatchingConfig,
    OpenRouterProviderConfig,
    PipelineConfig,
    ToolExecutionConfig,
    VariableRefreshConfig,
)
from parley.config.models.storage import MutexConfig, StorageConfig

__all__ = [
    "CompositionConfig",
    "EnforcementConfig",
    "FieldExtractionConfig",
    "GenerationConfig",
    "JourneyConfig",
    "LLMStepConfig",
    "LoggingConfig",
    "MatchingConfig",
    "MutexConfig",
    "ObservabilityConfig",
    "OpenRouterProviderConfig",
    "PipelineConfig",
    "StorageConfig",
    "ToolExecutionConfig",
    "VariableRefreshConfig",
]
