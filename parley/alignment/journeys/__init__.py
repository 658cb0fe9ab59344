"""Journey navigation for alignment pipeline."""

from parley.alignment.journeys.engine import JourneyEngine
from parley.alignment.journeys.models import JourneyAction, JourneyDecision

__all__ = ["JourneyAction", "JourneyDecision", "JourneyEngine"]
