"""Session store implementations."""

from parley.conversation.stores.inmemory import InMemorySessionStore

__all__ = ["InMemorySessionStore"]
