"""Enums for alignment domain."""

from enum import Enum


class Criticality(str, Enum):
    """How strongly a guideline must hold.

    Ordered LOW < MEDIUM < HIGH. HIGH guidelines are enforced by the
    self-critique pass and win every conflict against lower ones.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _CRITICALITY_RANK[self]


_CRITICALITY_RANK = {
    Criticality.LOW: 0,
    Criticality.MEDIUM: 1,
    Criticality.HIGH: 2,
}


class Scope(str, Enum):
    """Where a guideline or canned response is eligible.

    - GLOBAL: Always eligible for the agent
    - JOURNEY: Only while the given journey is active
    - STATE: Only while the given journey state is current
    """

    GLOBAL = "global"
    JOURNEY = "journey"
    STATE = "state"


class CompositionMode(str, Enum):
    """How the reply text may be produced.

    - FLUID: Free generation, canned responses used opportunistically
    - COMPOSITED: Generated draft restyled after the closest canned response
    - STRICT: Only approved canned responses, verbatim
    """

    FLUID = "fluid"
    COMPOSITED = "composited"
    STRICT = "strict"

    @property
    def strictness(self) -> int:
        return _MODE_STRICTNESS[self]


_MODE_STRICTNESS = {
    CompositionMode.FLUID: 0,
    CompositionMode.COMPOSITED: 1,
    CompositionMode.STRICT: 2,
}


class StateKind(str, Enum):
    """Journey state kinds."""

    CHAT = "chat"
    TOOL = "tool"
    FORK = "fork"


class ParameterSource(str, Enum):
    """Where a tool parameter value may come from.

    - CUSTOMER: Must have been stated by the customer; never guessed
    - CONTEXT: Taken from session, variables or other tool results
    """

    CUSTOMER = "customer"
    CONTEXT = "context"


class VariableScope(str, Enum):
    """Key space for context variable values."""

    CUSTOMER = "customer"
    TAG = "tag"


class RelationshipKind(str, Enum):
    """Relationship between two guidelines.

    - EXCLUDES: The actions contradict; at most one may apply in a turn
    """

    EXCLUDES = "excludes"
