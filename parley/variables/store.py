"""ContextVariableStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from parley.alignment.models import ContextVariableValue


class ContextVariableStore(ABC):
    """Keyed storage for context variable values.

    Values are keyed by (variable name, key) within an agent, where the
    key is a customer id or a tag depending on the variable's scope.
    """

    @abstractmethod
    async def get_value(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        variable_name: str,
        key: str,
    ) -> ContextVariableValue | None:
        """Get one value."""
        pass

    @abstractmethod
    async def list_values(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        keys: list[str],
    ) -> list[ContextVariableValue]:
        """Get every value stored under any of the given keys."""
        pass

    @abstractmethod
    async def set_values(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        values: list[ContextVariableValue],
    ) -> None:
        """Write a batch of values; either all are stored or none."""
        pass

    @abstractmethod
    async def delete_value(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        variable_name: str,
        key: str,
    ) -> bool:
        """Delete one value."""
        pass
