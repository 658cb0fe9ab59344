"""Tool execution models."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ToolOutcome(str, Enum):
    """How a tool call ended.

    - SUCCESS: The tool returned a result
    - TOOL_ERROR: The tool failed; see retryable
    - SECURITY_VIOLATION: The tool refused the call; never retryable
    - TIMEOUT: The call exceeded its timeout
    - MISSING_PARAMETER: A required context parameter could not be resolved
    - DEFERRED: A required customer parameter has not been stated yet
    - SKIPPED: Not issued because a sibling or dependency failed
    """

    SUCCESS = "success"
    TOOL_ERROR = "tool_error"
    SECURITY_VIOLATION = "security_violation"
    TIMEOUT = "timeout"
    MISSING_PARAMETER = "missing_parameter"
    DEFERRED = "deferred"
    SKIPPED = "skipped"


class ToolOutput(BaseModel):
    """What a tool function returns.

    Functions may also return any plain value, which is wrapped as data.
    """

    data: Any = Field(default=None, description="Result payload")
    canned_fields: dict[str, Any] = Field(
        default_factory=dict, description="Values for canned response placeholders"
    )
    variable_updates: dict[str, Any] = Field(
        default_factory=dict, description="Context variable values to store for the customer"
    )
    session_updates: dict[str, Any] = Field(
        default_factory=dict, description="Values to store on the session"
    )


class ToolContext(BaseModel):
    """Read-only view of the conversation handed to tool functions."""

    tenant_id: UUID = Field(..., description="Tenant")
    agent_id: UUID = Field(..., description="Agent")
    session_id: UUID = Field(..., description="Session")
    customer_id: str = Field(..., description="Customer")
    customer_tags: list[str] = Field(default_factory=list, description="Customer tags")
    message: str = Field(default="", description="Latest customer message")
    facts: dict[str, Any] = Field(default_factory=dict, description="Customer-stated facts")
    variables: dict[str, Any] = Field(default_factory=dict, description="Context variables")
    session_data: dict[str, Any] = Field(default_factory=dict, description="Session values")
    tool_data: dict[str, Any] = Field(default_factory=dict, description="This turn's tool data")


class ToolCallRequest(BaseModel):
    """A tool call the pipeline wants made."""

    tool_id: str = Field(..., description="Registered tool id")
    group_id: str = Field(..., description="Calls made for the same guideline or state")
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Explicit arguments that bypass resolution"
    )


class ToolResult(BaseModel):
    """Result of one tool call, whatever its outcome."""

    tool_id: str = Field(..., description="Tool called")
    group_id: str = Field(..., description="Guideline or state group")
    outcome: ToolOutcome = Field(..., description="How the call ended")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Resolved arguments")
    data: Any = Field(default=None, description="Result payload")
    error: str | None = Field(default=None, description="Error description")
    retryable: bool = Field(default=False, description="Whether retrying may succeed")
    missing_parameters: list[str] = Field(
        default_factory=list, description="Unresolved required parameters"
    )
    canned_fields: dict[str, Any] = Field(default_factory=dict)
    variable_updates: dict[str, Any] = Field(default_factory=dict)
    session_updates: dict[str, Any] = Field(default_factory=dict)
    execution_time_ms: float = Field(default=0.0, description="Execution time")

    @property
    def success(self) -> bool:
        return self.outcome == ToolOutcome.SUCCESS
