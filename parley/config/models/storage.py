"""Storage and locking backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

MutexBackend = Literal["inmemory", "redis"]


class MutexConfig(BaseModel):
    """Per-customer turn lock configuration."""

    backend: MutexBackend = Field(default="inmemory", description="Lock backend")
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL (required for the redis backend)",
    )
    lock_timeout: int = Field(
        default=30,
        gt=0,
        description="Seconds before a held lock auto-expires",
    )
    blocking_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for a busy customer lock",
    )


class StorageConfig(BaseModel):
    """Storage backends used by the engine."""

    mutex: MutexConfig = Field(default_factory=MutexConfig, description="Turn lock")
