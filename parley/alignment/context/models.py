"""Context models for alignment pipeline."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from parley.alignment.models import GlossaryTerm


class Turn(BaseModel):
    """A single message in the conversation history."""

    role: Literal["customer", "agent"] = Field(..., description="Who spoke")
    content: str = Field(..., description="What was said")


class Context(BaseModel):
    """Everything the pipeline knows about the current turn.

    facts are values the customer stated (this turn or earlier) and are
    the only source for customer-sourced tool parameters. variables,
    session_data and tool_data come from the agent's own systems.
    """

    model_config = ConfigDict(frozen=False)

    message: str = Field(..., description="Customer message for this turn")
    history: list[Turn] = Field(default_factory=list, description="Prior turns, oldest first")
    glossary_terms: list[GlossaryTerm] = Field(
        default_factory=list, description="Terms mentioned in the conversation"
    )
    customer_id: str = Field(..., description="Customer identifier")
    customer_tags: list[str] = Field(default_factory=list, description="Customer tags")
    facts: dict[str, Any] = Field(default_factory=dict, description="Customer-stated facts")
    extracted_facts: dict[str, Any] = Field(
        default_factory=dict, description="Facts first seen in this message"
    )
    variables: dict[str, Any] = Field(default_factory=dict, description="Context variable values")
    session_data: dict[str, Any] = Field(
        default_factory=dict, description="Tool-written session values"
    )
    tool_data: dict[str, Any] = Field(
        default_factory=dict, description="Values returned by this turn's tools"
    )
    journey_title: str | None = Field(default=None, description="Active journey title")
    state_instruction: str | None = Field(default=None, description="Current state instruction")
    candidate_response: str | None = Field(
        default=None, description="Draft reply under review by the critic"
    )

    def known_fields(self) -> dict[str, Any]:
        """Trusted values by name; customer-stated facts win on collisions."""
        return {
            **self.variables,
            **self.session_data,
            **self.tool_data,
            **self.facts,
        }

    def merge_tool_data(self, tool_id: str, data: Any) -> None:
        self.tool_data[tool_id] = data
        if isinstance(data, dict):
            self.tool_data.update({k: v for k, v in data.items() if isinstance(k, str)})

    def for_review(self, response: str) -> "Context":
        return self.model_copy(update={"candidate_response": response})
