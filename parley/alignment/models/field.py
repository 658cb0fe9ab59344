"""Customer fact definitions."""

import re
from uuid import UUID, uuid4

from pydantic import Field, field_validator

from parley.alignment.models.base import AgentScopedModel


class FieldDefinition(AgentScopedModel):
    """A fact the agent can pick up from what the customer says.

    Extracted values feed journey skipping, customer-sourced tool
    parameters and canned response placeholders.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    name: str = Field(..., pattern=r"^[a-z_][a-z0-9_]*$", max_length=50, description="Fact name")
    description: str = Field(default="", description="What the fact means")
    pattern: str | None = Field(
        default=None,
        description="Regex for pattern extraction; the 'value' group or group 1 is kept",
    )

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str | None) -> str | None:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid pattern {v!r}: {e}") from e
        return v
