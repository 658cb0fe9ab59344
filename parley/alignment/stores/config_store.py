"""AgentConfigStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from parley.alignment.models import (
    Agent,
    CannedResponse,
    ContextVariable,
    FieldDefinition,
    GlossaryTerm,
    Guideline,
    GuidelineRelationship,
    Journey,
)


class AgentConfigStore(ABC):
    """Abstract interface for agent configuration storage.

    Holds everything authored at configuration time. List operations
    return entities in definition order and skip soft-deleted ones.
    """

    # Agent operations
    @abstractmethod
    async def get_agent(self, tenant_id: UUID, agent_id: UUID) -> Agent | None:
        """Get an agent by ID."""
        pass

    @abstractmethod
    async def save_agent(self, agent: Agent) -> UUID:
        """Save an agent, returning its ID."""
        pass

    # Guideline operations
    @abstractmethod
    async def get_guidelines(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        *,
        enabled_only: bool = True,
    ) -> list[Guideline]:
        """Get guidelines for an agent."""
        pass

    @abstractmethod
    async def save_guideline(self, guideline: Guideline) -> UUID:
        """Save a guideline, returning its ID."""
        pass

    @abstractmethod
    async def delete_guideline(self, tenant_id: UUID, guideline_id: UUID) -> bool:
        """Soft-delete a guideline."""
        pass

    @abstractmethod
    async def get_relationships(
        self,
        tenant_id: UUID,
        agent_id: UUID,
    ) -> list[GuidelineRelationship]:
        """Get guideline relationships for an agent."""
        pass

    @abstractmethod
    async def save_relationship(self, relationship: GuidelineRelationship) -> UUID:
        """Save a guideline relationship."""
        pass

    # Journey operations
    @abstractmethod
    async def get_journeys(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        *,
        enabled_only: bool = True,
    ) -> list[Journey]:
        """Get journeys for an agent."""
        pass

    @abstractmethod
    async def get_journey(self, tenant_id: UUID, journey_id: UUID) -> Journey | None:
        """Get a journey by ID, including disabled ones."""
        pass

    @abstractmethod
    async def save_journey(self, journey: Journey) -> UUID:
        """Save a journey."""
        pass

    # Glossary operations
    @abstractmethod
    async def get_glossary_terms(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        *,
        enabled_only: bool = True,
    ) -> list[GlossaryTerm]:
        """Get glossary terms for an agent."""
        pass

    @abstractmethod
    async def save_glossary_term(self, term: GlossaryTerm) -> UUID:
        """Save a glossary term."""
        pass

    # Canned response operations
    @abstractmethod
    async def get_canned_responses(
        self,
        tenant_id: UUID,
        agent_id: UUID,
    ) -> list[CannedResponse]:
        """Get canned responses for an agent."""
        pass

    @abstractmethod
    async def save_canned_response(self, response: CannedResponse) -> UUID:
        """Save a canned response."""
        pass

    # Context variable operations
    @abstractmethod
    async def get_variables(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        *,
        enabled_only: bool = True,
    ) -> list[ContextVariable]:
        """Get context variable definitions for an agent."""
        pass

    @abstractmethod
    async def save_variable(self, variable: ContextVariable) -> UUID:
        """Save a context variable definition."""
        pass

    # Field definition operations
    @abstractmethod
    async def get_fields(self, tenant_id: UUID, agent_id: UUID) -> list[FieldDefinition]:
        """Get customer fact definitions for an agent."""
        pass

    @abstractmethod
    async def save_field(self, field: FieldDefinition) -> UUID:
        """Save a customer fact definition."""
        pass
