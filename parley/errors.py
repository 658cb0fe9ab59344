"""Exception hierarchy for Parley.

Every exception carries an error_code and a retryable flag so callers
can decide between retrying the turn and surfacing a safe reply.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    MATCHING_UNAVAILABLE = "MATCHING_UNAVAILABLE"
    CUSTOMER_BUSY = "CUSTOMER_BUSY"
    TOOL_FAILED = "TOOL_FAILED"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    INVALID_JOURNEY = "INVALID_JOURNEY"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"


class ParleyError(Exception):
    """Base exception for all Parley errors."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MatchingUnavailableError(ParleyError):
    """Raised when the condition oracle cannot produce a judgment.

    Aborts the current turn attempt; guidelines are never silently skipped.
    """

    error_code = ErrorCode.MATCHING_UNAVAILABLE
    retryable = True


class CustomerBusyError(ParleyError):
    """Raised when another turn for the same customer holds the lock too long."""

    error_code = ErrorCode.CUSTOMER_BUSY
    retryable = True


class ToolExecutionError(ParleyError):
    """Raised by tool functions to report a failure.

    The tool caller converts it into a TOOL_ERROR result.
    """

    error_code = ErrorCode.TOOL_FAILED

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ToolSecurityViolation(ParleyError):
    """Raised by tool functions when a call must not proceed.

    Never retryable. Cancels the other calls made for the same guideline.
    """

    error_code = ErrorCode.SECURITY_VIOLATION


class ToolNotFoundError(ParleyError):
    """Raised when a tool id is not registered."""

    error_code = ErrorCode.TOOL_NOT_FOUND


class ConfigurationError(ParleyError):
    """Raised when an agent definition cannot be loaded."""

    error_code = ErrorCode.INVALID_CONFIGURATION


class InvalidJourneyError(ConfigurationError):
    """Raised when a journey graph violates its structural rules."""

    error_code = ErrorCode.INVALID_JOURNEY


class AgentNotFoundError(ParleyError):
    """Raised when an agent id has no configuration."""

    error_code = ErrorCode.AGENT_NOT_FOUND
