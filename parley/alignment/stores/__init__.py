"""Agent configuration stores."""

from parley.alignment.stores.config_store import AgentConfigStore
from parley.alignment.stores.inmemory import InMemoryAgentConfigStore

__all__ = ["AgentConfigStore", "InMemoryAgentConfigStore"]
