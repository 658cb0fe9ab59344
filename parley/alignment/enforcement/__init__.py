"""Self-critique and fallback for composed replies."""

from parley.alignment.enforcement.critic import ResponseCritic
from parley.alignment.enforcement.deterministic_enforcer import DeterministicEnforcer
from parley.alignment.enforcement.fallback import FallbackHandler
from parley.alignment.enforcement.models import ConstraintViolation, EnforcementResult
from parley.alignment.enforcement.variable_extractor import VariableExtractor

__all__ = [
    "ConstraintViolation",
    "DeterministicEnforcer",
    "EnforcementResult",
    "FallbackHandler",
    "ResponseCritic",
    "VariableExtractor",
]
