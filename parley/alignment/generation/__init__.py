"""Reply generation and composition."""

from parley.alignment.generation.composer import MessageComposer, resolve_mode, scoped_responses
from parley.alignment.generation.generator import ResponseGenerator
from parley.alignment.generation.models import CompositionResult, GenerationResult, ResponseTrace
from parley.alignment.generation.prompt_builder import PromptBuilder
from parley.alignment.generation.signals import SignalMatch, SignalMatcher

__all__ = [
    "CompositionResult",
    "GenerationResult",
    "MessageComposer",
    "PromptBuilder",
    "ResponseGenerator",
    "ResponseTrace",
    "SignalMatch",
    "SignalMatcher",
    "resolve_mode",
    "scoped_responses",
]
