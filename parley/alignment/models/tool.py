"""Tool definition models."""

from typing import Any

from pydantic import BaseModel, Field

from parley.alignment.models.enums import ParameterSource


class ToolParameter(BaseModel):
    """Declared input of a tool."""

    name: str = Field(..., min_length=1, description="Keyword argument name")
    description: str = Field(default="", description="What the value means")
    source: ParameterSource = Field(
        default=ParameterSource.CONTEXT, description="Where the value may come from"
    )
    required: bool = Field(default=True, description="Whether the call needs the value")
    default: Any = Field(default=None, description="Value used when optional and unresolved")
    from_tool: str | None = Field(
        default=None, description="Take the value from this tool's result"
    )
    from_field: str | None = Field(
        default=None, description="Key in the upstream result data (defaults to name)"
    )


class ToolDefinition(BaseModel):
    """Metadata for a registered tool function."""

    id: str = Field(..., min_length=1, description="Tool identifier")
    description: str = Field(default="", description="What the tool does")
    parameters: list[ToolParameter] = Field(default_factory=list, description="Inputs")
    timeout_ms: int | None = Field(
        default=None, gt=0, description="Per-call timeout; defaults to the pipeline setting"
    )
    retryable_on_timeout: bool = Field(
        default=True, description="Whether a timed-out call may be retried"
    )

    @property
    def depends_on(self) -> set[str]:
        return {p.from_tool for p in self.parameters if p.from_tool}
