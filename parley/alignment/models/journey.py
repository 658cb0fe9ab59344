"""Journey (conversation state machine) models."""

from collections.abc import Mapping
from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from parley.alignment.models.base import AgentScopedModel
from parley.alignment.models.enums import CompositionMode, StateKind


class JourneyTransition(BaseModel):
    """Outgoing edge of a journey state."""

    target_state_id: str = Field(..., min_length=1, description="Destination state")
    condition: str | None = Field(
        default=None, description="Natural-language condition; None means unconditional"
    )

    @property
    def is_unconditional(self) -> bool:
        return self.condition is None


class JourneyState(BaseModel):
    """Single state within a journey.

    CHAT states carry an instruction for the reply, TOOL states a tool to
    call, FORK states only conditional transitions. A state without
    transitions is terminal.
    """

    id: str = Field(..., min_length=1, description="State id, unique within the journey")
    kind: StateKind = Field(default=StateKind.CHAT, description="State kind")
    instruction: str | None = Field(default=None, description="What the agent says or asks")
    tool_id: str | None = Field(default=None, description="Tool called in a TOOL state")
    transitions: list[JourneyTransition] = Field(
        default_factory=list, description="Outgoing transitions in evaluation order"
    )
    collects: list[str] = Field(
        default_factory=list, description="Fields this state's question elicits"
    )
    can_skip: bool = Field(
        default=True, description="Skip the state when every collected field is known"
    )
    composition_mode: CompositionMode | None = Field(
        default=None, description="Composition mode while this state is current"
    )

    @model_validator(mode="after")
    def validate_kind_payload(self) -> Self:
        if self.kind == StateKind.CHAT and not self.instruction:
            raise ValueError(f"Chat state '{self.id}' requires an instruction")
        if self.kind == StateKind.TOOL and not self.tool_id:
            raise ValueError(f"Tool state '{self.id}' requires a tool_id")
        unconditional = [t for t in self.transitions if t.is_unconditional]
        if len(unconditional) > 1:
            raise ValueError(
                f"State '{self.id}' has {len(unconditional)} unconditional transitions; "
                "at most one is allowed"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return not self.transitions

    def is_satisfied_by(self, known_fields: Mapping[str, Any]) -> bool:
        """Whether every field this state would ask for is already known."""
        if self.kind != StateKind.CHAT or not self.can_skip or not self.collects:
            return False
        return all(known_fields.get(name) not in (None, "") for name in self.collects)


class Journey(AgentScopedModel):
    """Multi-state conversation flow owned by an agent."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    title: str = Field(..., min_length=1, max_length=200, description="Journey title")
    description: str = Field(default="", description="What the journey accomplishes")
    conditions: list[str] = Field(
        default_factory=list, description="Activation conditions; any one starts the journey"
    )
    states: list[JourneyState] = Field(..., min_length=1, description="Journey states")
    initial_state_id: str = Field(..., description="State entered on activation")
    composition_mode: CompositionMode | None = Field(
        default=None, description="Composition mode while the journey is active"
    )
    enabled: bool = Field(default=True, description="Whether the journey can activate")

    @model_validator(mode="after")
    def validate_graph(self) -> Self:
        ids = [s.id for s in self.states]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Journey '{self.title}' has duplicate state ids")
        known = set(ids)
        if self.initial_state_id not in known:
            raise ValueError(f"Initial state '{self.initial_state_id}' does not exist")
        for state in self.states:
            for transition in state.transitions:
                if transition.target_state_id not in known:
                    raise ValueError(
                        f"State '{state.id}' transitions to unknown state "
                        f"'{transition.target_state_id}'"
                    )
        return self

    def get_state(self, state_id: str | None) -> JourneyState | None:
        if state_id is None:
            return None
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    @property
    def initial_state(self) -> JourneyState:
        return next(s for s in self.states if s.id == self.initial_state_id)
