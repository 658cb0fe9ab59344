"""Turn context: history, glossary terms, facts and variables."""

from parley.alignment.context.builder import ContextBuilder, events_to_turns
from parley.alignment.context.field_extractor import (
    ExtractedFields,
    FieldExtractor,
    LLMFieldExtractor,
    PatternFieldExtractor,
)
from parley.alignment.context.glossary_matcher import GlossaryMatcher
from parley.alignment.context.models import Context, Turn

__all__ = [
    "Context",
    "ContextBuilder",
    "ExtractedFields",
    "FieldExtractor",
    "GlossaryMatcher",
    "LLMFieldExtractor",
    "PatternFieldExtractor",
    "Turn",
    "events_to_turns",
]
