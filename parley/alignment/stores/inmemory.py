"""In-memory implementation of AgentConfigStore."""

from typing import TypeVar
from uuid import UUID

from parley.alignment.models import (
    Agent,
    AgentScopedModel,
    CannedResponse,
    ContextVariable,
    FieldDefinition,
    GlossaryTerm,
    Guideline,
    GuidelineRelationship,
    Journey,
)
from parley.alignment.stores.config_store import AgentConfigStore

M = TypeVar("M", bound=AgentScopedModel)


def _for_agent(
    items: dict[UUID, M],
    tenant_id: UUID,
    agent_id: UUID,
    enabled_only: bool = False,
) -> list[M]:
    """Entities of one agent, in insertion order."""
    results = []
    for item in items.values():
        if not item.belongs_to(tenant_id, agent_id):
            continue
        if enabled_only and not getattr(item, "enabled", True):
            continue
        results.append(item)
    return results


class InMemoryAgentConfigStore(AgentConfigStore):
    """In-memory AgentConfigStore for testing and development.

    Dict insertion order is the definition order. Re-saving an entity
    keeps its original position.
    """

    def __init__(self) -> None:
        self._agents: dict[UUID, Agent] = {}
        self._guidelines: dict[UUID, Guideline] = {}
        self._relationships: dict[UUID, GuidelineRelationship] = {}
        self._journeys: dict[UUID, Journey] = {}
        self._terms: dict[UUID, GlossaryTerm] = {}
        self._canned_responses: dict[UUID, CannedResponse] = {}
        self._variables: dict[UUID, ContextVariable] = {}
        self._fields: dict[UUID, FieldDefinition] = {}

    async def get_agent(self, tenant_id: UUID, agent_id: UUID) -> Agent | None:
        agent = self._agents.get(agent_id)
        if agent and agent.visible_to(tenant_id):
            return agent
        return None

    async def save_agent(self, agent: Agent) -> UUID:
        self._agents[agent.id] = agent
        return agent.id

    async def get_guidelines(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        *,
        enabled_only: bool = True,
    ) -> list[Guideline]:
        return _for_agent(self._guidelines, tenant_id, agent_id, enabled_only)

    async def save_guideline(self, guideline: Guideline) -> UUID:
        self._guidelines[guideline.id] = guideline
        return guideline.id

    async def delete_guideline(self, tenant_id: UUID, guideline_id: UUID) -> bool:
        guideline = self._guidelines.get(guideline_id)
        if guideline is None or not guideline.visible_to(tenant_id):
            return False
        guideline.soft_delete()
        return True

    async def get_relationships(
        self,
        tenant_id: UUID,
        agent_id: UUID,
    ) -> list[GuidelineRelationship]:
        return _for_agent(self._relationships, tenant_id, agent_id)

    async def save_relationship(self, relationship: GuidelineRelationship) -> UUID:
        self._relationships[relationship.id] = relationship
        return relationship.id

    async def get_journeys(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        *,
        enabled_only: bool = True,
    ) -> list[Journey]:
        return _for_agent(self._journeys, tenant_id, agent_id, enabled_only)

    async def get_journey(self, tenant_id: UUID, journey_id: UUID) -> Journey | None:
        journey = self._journeys.get(journey_id)
        if journey and journey.visible_to(tenant_id):
            return journey
        return None

    async def save_journey(self, journey: Journey) -> UUID:
        self._journeys[journey.id] = journey
        return journey.id

    async def get_glossary_terms(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        *,
        enabled_only: bool = True,
    ) -> list[GlossaryTerm]:
        return _for_agent(self._terms, tenant_id, agent_id, enabled_only)

    async def save_glossary_term(self, term: GlossaryTerm) -> UUID:
        self._terms[term.id] = term
        return term.id

    async def get_canned_responses(
        self,
        tenant_id: UUID,
        agent_id: UUID,
    ) -> list[CannedResponse]:
        return _for_agent(self._canned_responses, tenant_id, agent_id)

    async def save_canned_response(self, response: CannedResponse) -> UUID:
        self._canned_responses[response.id] = response
        return response.id

    async def get_variables(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        *,
        enabled_only: bool = True,
    ) -> list[ContextVariable]:
        return _for_agent(self._variables, tenant_id, agent_id, enabled_only)

    async def save_variable(self, variable: ContextVariable) -> UUID:
        self._variables[variable.id] = variable
        return variable.id

    async def get_fields(self, tenant_id: UUID, agent_id: UUID) -> list[FieldDefinition]:
        return _for_agent(self._fields, tenant_id, agent_id)

    async def save_field(self, field: FieldDefinition) -> UUID:
        self._fields[field.id] = field
        return field.id
