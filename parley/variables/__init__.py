"""Context variables: keyed per customer or tag, refreshed by tools."""

from parley.variables.inmemory import InMemoryContextVariableStore
from parley.variables.refresher import VariableRefresher, VariableSnapshot
from parley.variables.store import ContextVariableStore

__all__ = [
    "ContextVariableStore",
    "InMemoryContextVariableStore",
    "VariableRefresher",
    "VariableSnapshot",
]
