"""Glossary models."""

from uuid import UUID, uuid4

from pydantic import Field, field_validator

from parley.alignment.models.base import AgentScopedModel


class GlossaryTerm(AgentScopedModel):
    """Domain term whose definition enriches matching and generation."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    name: str = Field(..., min_length=1, max_length=100, description="Term as written")
    description: str = Field(..., min_length=1, description="What the term means")
    synonyms: list[str] = Field(default_factory=list, description="Alternative spellings")
    enabled: bool = Field(default=True, description="Whether the term is used")

    @field_validator("synonyms")
    @classmethod
    def drop_blank_synonyms(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s.strip()]

    @property
    def all_names(self) -> list[str]:
        return [self.name, *self.synonyms]
