"""Ownership bases for agent configuration entities.

Every configuration entity belongs to a tenant; most also belong to one
agent. Entities are never removed from a store, only marked deleted, so
stores check visibility through these helpers instead of comparing ids.
"""

from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class TenantScopedModel(BaseModel):
    """Entity owned by a tenant, with timestamps and a deletion marker."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    tenant_id: UUID = Field(..., description="Owning tenant identifier")
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the entity was defined; newer definitions win equal-criticality ties",
    )
    updated_at: datetime = Field(default_factory=utc_now, description="Last modification time")
    deleted_at: datetime | None = Field(default=None, description="Set once the entity is removed")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def visible_to(self, tenant_id: UUID) -> bool:
        """Whether a lookup by this tenant may return the entity."""
        return self.tenant_id == tenant_id and not self.is_deleted

    def soft_delete(self) -> None:
        """Hide the entity from every lookup; it keeps its store position."""
        self.deleted_at = self.updated_at = utc_now()


class AgentScopedModel(TenantScopedModel):
    """Entity that is part of one agent's configuration."""

    agent_id: UUID = Field(..., description="Owning agent identifier")

    def belongs_to(self, tenant_id: UUID, agent_id: UUID) -> bool:
        """Whether the entity is live configuration of the given agent."""
        return self.agent_id == agent_id and self.visible_to(tenant_id)
