"""In-memory implementation of ContextVariableStore."""

from uuid import UUID

from parley.alignment.models import ContextVariableValue
from parley.variables.store import ContextVariableStore

_Key = tuple[UUID, UUID, str, str]


class InMemoryContextVariableStore(ContextVariableStore):
    """In-memory ContextVariableStore for testing and development."""

    def __init__(self) -> None:
        self._values: dict[_Key, ContextVariableValue] = {}

    async def get_value(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        variable_name: str,
        key: str,
    ) -> ContextVariableValue | None:
        value = self._values.get((tenant_id, agent_id, variable_name, key))
        return value.model_copy(deep=True) if value else None

    async def list_values(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        keys: list[str],
    ) -> list[ContextVariableValue]:
        wanted = set(keys)
        return [
            value.model_copy(deep=True)
            for (tenant, agent, _, key), value in self._values.items()
            if tenant == tenant_id and agent == agent_id and key in wanted
        ]

    async def set_values(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        values: list[ContextVariableValue],
    ) -> None:
        # Build the whole batch before touching storage
        staged = {
            (tenant_id, agent_id, v.variable_name, v.key): v.model_copy(deep=True)
            for v in values
        }
        self._values.update(staged)

    async def delete_value(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        variable_name: str,
        key: str,
    ) -> bool:
        return self._values.pop((tenant_id, agent_id, variable_name, key), None) is not None
