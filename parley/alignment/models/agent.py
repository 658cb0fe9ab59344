"""Agent model."""

from uuid import UUID, uuid4

from pydantic import Field

from parley.alignment.models.base import TenantScopedModel
from parley.alignment.models.enums import CompositionMode


class Agent(TenantScopedModel):
    """Conversational agent configuration root."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    name: str = Field(..., min_length=1, max_length=100, description="Agent name")
    description: str = Field(default="", description="Persona and purpose")
    composition_mode: CompositionMode | None = Field(
        default=None, description="Default composition mode; pipeline default when unset"
    )
