"""Tests for InMemoryAgentConfigStore."""

from uuid import uuid4

import pytest

from parley.alignment.stores import InMemoryAgentConfigStore
from tests.factories.alignment import GuidelineFactory, create_agent


@pytest.fixture
def store() -> InMemoryAgentConfigStore:
    """Create a fresh store for each test."""
    return InMemoryAgentConfigStore()


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def agent_id():
    return uuid4()


class TestAgentOperations:
    """Tests for agent lookup."""

    @pytest.mark.asyncio
    async def test_save_and_get_agent(self, store, tenant_id):
        agent = create_agent(tenant_id=tenant_id)
        await store.save_agent(agent)

        assert await store.get_agent(tenant_id, agent.id) == agent

    @pytest.mark.asyncio
    async def test_tenant_isolation(self, store, tenant_id):
        """Should not return agents from other tenants."""
        agent = create_agent(tenant_id=tenant_id)
        await store.save_agent(agent)

        assert await store.get_agent(uuid4(), agent.id) is None


class TestGuidelineOperations:
    """Tests for guideline listing and deletion."""

    @pytest.mark.asyncio
    async def test_definition_order_preserved(self, store, tenant_id, agent_id):
        first = GuidelineFactory.create(tenant_id=tenant_id, agent_id=agent_id, name="first")
        second = GuidelineFactory.create(tenant_id=tenant_id, agent_id=agent_id, name="second")
        await store.save_guideline(first)
        await store.save_guideline(second)
        await store.save_guideline(first.model_copy(update={"action": "Updated"}))

        names = [g.name for g in await store.get_guidelines(tenant_id, agent_id)]

        assert names == ["first", "second"]

    @pytest.mark.asyncio
    async def test_disabled_filtered_by_default(self, store, tenant_id, agent_id):
        guideline = GuidelineFactory.create(tenant_id=tenant_id, agent_id=agent_id, enabled=False)
        await store.save_guideline(guideline)

        assert await store.get_guidelines(tenant_id, agent_id) == []
        assert await store.get_guidelines(tenant_id, agent_id, enabled_only=False) == [guideline]

    @pytest.mark.asyncio
    async def test_other_agent_not_listed(self, store, tenant_id, agent_id):
        await store.save_guideline(GuidelineFactory.create(tenant_id=tenant_id, agent_id=uuid4()))

        assert await store.get_guidelines(tenant_id, agent_id) == []

    @pytest.mark.asyncio
    async def test_soft_delete(self, store, tenant_id, agent_id):
        guideline = GuidelineFactory.create(tenant_id=tenant_id, agent_id=agent_id)
        await store.save_guideline(guideline)

        assert await store.delete_guideline(tenant_id, guideline.id) is True
        assert await store.get_guidelines(tenant_id, agent_id, enabled_only=False) == []
        assert await store.delete_guideline(tenant_id, guideline.id) is False

    @pytest.mark.asyncio
    async def test_delete_wrong_tenant(self, store, tenant_id, agent_id):
        guideline = GuidelineFactory.create(tenant_id=tenant_id, agent_id=agent_id)
        await store.save_guideline(guideline)

        assert await store.delete_guideline(uuid4(), guideline.id) is False
        assert len(await store.get_guidelines(tenant_id, agent_id)) == 1
