"""Guideline and journey condition matching."""

from parley.alignment.matching.conflicts import (
    ConflictResolution,
    ConflictResolver,
    SuppressedGuideline,
)
from parley.alignment.matching.evaluator import ConditionEvaluation, ConditionEvaluator
from parley.alignment.matching.guideline_matcher import GuidelineMatcher
from parley.alignment.matching.llm_evaluator import LLMConditionEvaluator
from parley.alignment.matching.mock import MockConditionEvaluator
from parley.alignment.matching.models import GuidelineMatchResult, MatchedJourney

__all__ = [
    "ConditionEvaluation",
    "ConditionEvaluator",
    "ConflictResolution",
    "ConflictResolver",
    "GuidelineMatchResult",
    "GuidelineMatcher",
    "LLMConditionEvaluator",
    "MatchedJourney",
    "MockConditionEvaluator",
    "SuppressedGuideline",
]
