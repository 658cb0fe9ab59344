"""Context variable models."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from parley.alignment.models.base import AgentScopedModel, utc_now
from parley.alignment.models.enums import VariableScope


class ContextVariable(AgentScopedModel):
    """Per-customer or per-tag value made available to every turn.

    A variable with a refresh tool is re-fetched at the start of a turn
    once its value is older than max_age_seconds (or missing).
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    name: str = Field(
        ...,
        pattern=r"^[a-z_][a-z0-9_]*$",
        max_length=50,
        description="Variable name",
    )
    description: str = Field(default="", description="What the value means")
    scope: VariableScope = Field(default=VariableScope.CUSTOMER, description="Key space")
    refresh_tool_id: str | None = Field(default=None, description="Tool that computes the value")
    max_age_seconds: int | None = Field(
        default=None, gt=0, description="Freshness window; None means never stale"
    )
    enabled: bool = Field(default=True, description="Whether the variable is used")


class ContextVariableValue(BaseModel):
    """Stored value of a context variable for one key."""

    variable_name: str = Field(..., description="Variable name")
    key: str = Field(..., description="Customer id or tag")
    value: Any = Field(default=None, description="Current value")
    updated_at: datetime = Field(default_factory=utc_now, description="Last refresh time")

    def is_stale(self, max_age_seconds: int | None, now: datetime | None = None) -> bool:
        if max_age_seconds is None:
            return False
        now = now or utc_now()
        return now - self.updated_at > timedelta(seconds=max_age_seconds)
