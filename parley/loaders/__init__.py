"""Loaders for authored agent definitions."""

from parley.loaders.agent_loader import AgentDefinition, AgentDefinitionLoader

__all__ = ["AgentDefinition", "AgentDefinitionLoader"]
