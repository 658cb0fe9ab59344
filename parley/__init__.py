"""Parley: guideline matching and journey orchestration for conversational agents."""

__version__ = "0.1.0"
