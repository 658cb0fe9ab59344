"""Agent definition loader.

Reads an agent authored as a TOML file into an AgentConfigStore:

    [agent]
    name = "Support"

    [[glossary]]
    name = "A100"
    description = "Our flagship blender"

    [[fields]]
    name = "order_id"
    pattern = "order (?P<value>\\d+)"

    [[journeys]]
    key = "booking"
    title = "Book an appointment"
    conditions = ["The customer wants to book an appointment"]
    initial_state = "ask_service"

    [[journeys.states]]
    id = "ask_service"
    instruction = "Ask which service they want"
    collects = ["service"]

    [[journeys.states.transitions]]
    to = "confirm"

    [[guidelines]]
    key = "no_cost_basis"
    condition = "The customer asks about internal costs"
    action = "Decline to share internal costs"
    criticality = "high"

    [[relationships]]
    source = "no_cost_basis"
    target = "share_pricing"

Guidelines, journeys and canned responses refer to each other by their
`key`. Every entity is validated before anything is written, so a
definition that fails validation leaves the store untouched.
"""

import tomllib
from pathlib import Path
from typing import Any, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ValidationError

from parley.alignment.execution import ToolRegistry
from parley.alignment.models import (
    Agent,
    CannedResponse,
    ContextVariable,
    FieldDefinition,
    GlossaryTerm,
    Guideline,
    GuidelineRelationship,
    Journey,
    StateKind,
)
from parley.alignment.stores import AgentConfigStore
from parley.errors import ConfigurationError, InvalidJourneyError
from parley.observability.logging import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class AgentDefinition(BaseModel):
    """Validated entities of one agent definition, not yet saved."""

    agent: Agent
    glossary: list[GlossaryTerm] = []
    fields: list[FieldDefinition] = []
    journeys: list[Journey] = []
    guidelines: list[Guideline] = []
    relationships: list[GuidelineRelationship] = []
    canned_responses: list[CannedResponse] = []
    variables: list[ContextVariable] = []


class AgentDefinitionLoader:
    """Load TOML agent definitions into a configuration store."""

    def __init__(
        self,
        store: AgentConfigStore,
        tool_registry: ToolRegistry | None = None,
    ) -> None:
        """Initialize the loader.

        Args:
            store: Store the definition is saved into
            tool_registry: When given, every referenced tool must be registered
        """
        self._store = store
        self._tool_registry = tool_registry

    async def load_file(
        self,
        path: str | Path,
        *,
        tenant_id: UUID,
        agent_id: UUID | None = None,
    ) -> Agent:
        """Parse, validate and save an agent definition file.

        Raises:
            ConfigurationError: If the file is missing, malformed or invalid
            InvalidJourneyError: If a journey graph is invalid
        """
        path = Path(path)
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Agent definition not found: {path}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e

        return await self.load(data, tenant_id=tenant_id, agent_id=agent_id)

    async def load(
        self,
        data: dict[str, Any],
        *,
        tenant_id: UUID,
        agent_id: UUID | None = None,
    ) -> Agent:
        """Validate and save an already-parsed agent definition."""
        definition = self.parse(data, tenant_id=tenant_id, agent_id=agent_id)

        await self._store.save_agent(definition.agent)
        for term in definition.glossary:
            await self._store.save_glossary_term(term)
        for field in definition.fields:
            await self._store.save_field(field)
        for journey in definition.journeys:
            await self._store.save_journey(journey)
        for guideline in definition.guidelines:
            await self._store.save_guideline(guideline)
        for relationship in definition.relationships:
            await self._store.save_relationship(relationship)
        for response in definition.canned_responses:
            await self._store.save_canned_response(response)
        for variable in definition.variables:
            await self._store.save_variable(variable)

        logger.info(
            "agent_definition_loaded",
            tenant_id=str(tenant_id),
            agent_id=str(definition.agent.id),
            guidelines=len(definition.guidelines),
            journeys=len(definition.journeys),
            canned_responses=len(definition.canned_responses),
        )
        return definition.agent

    def parse(
        self,
        data: dict[str, Any],
        *,
        tenant_id: UUID,
        agent_id: UUID | None = None,
    ) -> AgentDefinition:
        """Build validated entities without touching the store."""
        agent_data = data.get("agent")
        if not isinstance(agent_data, dict):
            raise ConfigurationError("Agent definition requires an [agent] table")

        agent = _validate(
            Agent, {**agent_data, "tenant_id": tenant_id, "id": agent_id or uuid4()}, "agent"
        )
        owner = {"tenant_id": tenant_id, "agent_id": agent.id}

        journeys: list[Journey] = []
        journeys_by_key: dict[str, Journey] = {}
        for i, raw in enumerate(data.get("journeys", [])):
            journey = self._parse_journey(raw, owner, f"journeys[{i}]")
            key = raw.get("key") or journey.title
            if key in journeys_by_key:
                raise ConfigurationError(f"Duplicate journey key '{key}'")
            journeys_by_key[key] = journey
            journeys.append(journey)

        guidelines: list[Guideline] = []
        guideline_ids: dict[str, UUID] = {}
        for i, raw in enumerate(data.get("guidelines", [])):
            key = raw.get("key") or raw.get("name")
            if not key:
                raise ConfigurationError(f"guidelines[{i}] needs a key or name")
            if key in guideline_ids:
                raise ConfigurationError(f"Duplicate guideline key '{key}'")
            fields = {k: v for k, v in raw.items() if k not in ("key", "journey", "state", "tools")}
            fields.setdefault("name", key)
            guideline = _validate(
                Guideline,
                {
                    **fields,
                    **owner,
                    **_scope_target(raw, journeys_by_key, f"guidelines[{i}]"),
                    "tool_ids": raw.get("tools", raw.get("tool_ids", [])),
                },
                f"guidelines[{i}]",
            )
            guideline_ids[key] = guideline.id
            guidelines.append(guideline)

        relationships = []
        for i, raw in enumerate(data.get("relationships", [])):
            ids = []
            for end in ("source", "target"):
                ref = raw.get(end)
                if ref not in guideline_ids:
                    raise ConfigurationError(
                        f"relationships[{i}] refers to unknown guideline '{ref}'"
                    )
                ids.append(guideline_ids[ref])
            relationships.append(
                _validate(
                    GuidelineRelationship,
                    {
                        **owner,
                        "source_id": ids[0],
                        "target_id": ids[1],
                        "kind": raw.get("kind", "excludes"),
                    },
                    f"relationships[{i}]",
                )
            )

        canned_responses = [
            _validate(
                CannedResponse,
                {
                    **{k: v for k, v in raw.items() if k not in ("journey", "state")},
                    **owner,
                    **_scope_target(raw, journeys_by_key, f"canned_responses[{i}]"),
                },
                f"canned_responses[{i}]",
            )
            for i, raw in enumerate(data.get("canned_responses", []))
        ]

        variables = [
            _validate(
                ContextVariable,
                {
                    **{k: v for k, v in raw.items() if k != "refresh_tool"},
                    **owner,
                    "refresh_tool_id": raw.get("refresh_tool"),
                },
                f"variables[{i}]",
            )
            for i, raw in enumerate(data.get("variables", []))
        ]

        definition = AgentDefinition(
            agent=agent,
            glossary=[
                _validate(GlossaryTerm, {**raw, **owner}, f"glossary[{i}]")
                for i, raw in enumerate(data.get("glossary", []))
            ],
            fields=[
                _validate(FieldDefinition, {**raw, **owner}, f"fields[{i}]")
                for i, raw in enumerate(data.get("fields", []))
            ],
            journeys=journeys,
            guidelines=guidelines,
            relationships=relationships,
            canned_responses=canned_responses,
            variables=variables,
        )
        self._check_tools(definition)
        return definition

    def _parse_journey(
        self, raw: dict[str, Any], owner: dict[str, UUID], where: str
    ) -> Journey:
        states = []
        for state in raw.get("states", []):
            state_data = {k: v for k, v in state.items() if k not in ("tool", "transitions")}
            state_data["tool_id"] = state.get("tool", state.get("tool_id"))
            state_data["transitions"] = [
                {"target_state_id": t.get("to"), "condition": t.get("condition")}
                for t in state.get("transitions", [])
            ]
            states.append(state_data)

        journey_data = {k: v for k, v in raw.items() if k not in ("key", "initial_state")}
        journey_data["states"] = states
        journey_data["initial_state_id"] = raw.get(
            "initial_state", raw.get("initial_state_id", states[0]["id"] if states else None)
        )
        try:
            return Journey.model_validate({**journey_data, **owner})
        except ValidationError as e:
            raise InvalidJourneyError(f"Invalid journey at {where}: {e}") from e

    def _check_tools(self, definition: AgentDefinition) -> None:
        if self._tool_registry is None:
            return

        referenced: set[str] = set()
        for guideline in definition.guidelines:
            referenced.update(guideline.tool_ids)
        for journey in definition.journeys:
            referenced.update(
                s.tool_id for s in journey.states if s.kind == StateKind.TOOL and s.tool_id
            )
        for variable in definition.variables:
            if variable.refresh_tool_id:
                referenced.add(variable.refresh_tool_id)

        missing = sorted(t for t in referenced if not self._tool_registry.has(t))
        if missing:
            raise ConfigurationError(f"Agent definition refers to unregistered tools: {missing}")


def _validate(model: type[M], data: dict[str, Any], where: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {where}: {e}") from e


def _scope_target(
    raw: dict[str, Any], journeys: dict[str, Journey], where: str
) -> dict[str, Any]:
    """Resolve journey/state references into scope fields."""
    journey_key = raw.get("journey")
    if journey_key is None:
        return {}
    journey = journeys.get(journey_key)
    if journey is None:
        raise ConfigurationError(f"{where} refers to unknown journey '{journey_key}'")

    state_id = raw.get("state")
    if state_id is not None and journey.get_state(state_id) is None:
        raise ConfigurationError(f"{where} refers to unknown state '{state_id}'")
    return {
        "journey_id": journey.id,
        "state_id": state_id,
        "scope": raw.get("scope", "state" if state_id else "journey"),
    }


__all__ = ["AgentDefinition", "AgentDefinitionLoader"]
