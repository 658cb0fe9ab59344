"""Canned response models."""

import re
from collections.abc import Mapping
from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import Field, computed_field, model_validator

from parley.alignment.models.base import AgentScopedModel
from parley.alignment.models.enums import Scope

FIELD_PATTERN = re.compile(r"\{\{(\w+)\}\}")


class CannedResponse(AgentScopedModel):
    """Pre-approved reply text with {{field}} placeholders.

    Signals are short phrases describing what the response conveys; the
    composer matches them against the draft or the turn's instructions.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    text: str = Field(..., min_length=1, description="Template text with {{field}} placeholders")
    signals: list[str] = Field(default_factory=list, description="What the response conveys")
    scope: Scope = Field(default=Scope.GLOBAL, description="Eligibility scope")
    journey_id: UUID | None = Field(default=None, description="Journey for JOURNEY/STATE scope")
    state_id: str | None = Field(default=None, description="State for STATE scope")
    is_fallback: bool = Field(
        default=False, description="Safe reply used when a draft cannot be made compliant"
    )

    @model_validator(mode="after")
    def validate_scope_target(self) -> Self:
        if self.scope in (Scope.JOURNEY, Scope.STATE) and self.journey_id is None:
            raise ValueError(f"journey_id is required for {self.scope.value} scope")
        if self.scope == Scope.STATE and not self.state_id:
            raise ValueError("state_id is required for state scope")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def placeholders(self) -> list[str]:
        """Placeholder names in order of first appearance."""
        return list(dict.fromkeys(FIELD_PATTERN.findall(self.text)))

    def can_render(self, values: Mapping[str, Any]) -> bool:
        return all(values.get(name) not in (None, "") for name in self.placeholders)

    def render(self, values: Mapping[str, Any]) -> str:
        """Substitute placeholders; unknown fields are left as-is."""

        def replace(match: re.Match[str]) -> str:
            value = values.get(match.group(1))
            return match.group(0) if value is None else str(value)

        return FIELD_PATTERN.sub(replace, self.text)
