"""Per-customer turn mutex.

Turn processing for one customer is strictly sequential. The engine holds
the customer's mutex for the whole turn; a second turn for the same
customer waits up to the blocking timeout and is then rejected.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import LockError

from parley.observability.logging import get_logger

logger = get_logger(__name__)


class CustomerMutex(ABC):
    """Mutual exclusion for turns of the same customer."""

    @abstractmethod
    def acquire(
        self,
        key: str,
        blocking_timeout: float | None = None,
    ) -> AbstractAsyncContextManager[bool]:
        """Acquire the lock for a customer key.

        Used as an async context manager yielding True when the lock was
        acquired and False when the wait timed out.
        """
        pass


class InMemoryCustomerMutex(CustomerMutex):
    """asyncio lock per customer key, for a single process."""

    def __init__(self, blocking_timeout: float = 5.0) -> None:
        self._blocking_timeout = blocking_timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def acquire(
        self,
        key: str,
        blocking_timeout: float | None = None,
    ) -> AsyncGenerator[bool, None]:
        timeout = self._blocking_timeout if blocking_timeout is None else blocking_timeout
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1

        try:
            if timeout <= 0:
                # Single attempt, no waiting
                acquired = not lock.locked()
                if acquired:
                    await lock.acquire()
            else:
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=timeout)
                    acquired = True
                except TimeoutError:
                    acquired = False

            try:
                yield acquired
            finally:
                if acquired:
                    lock.release()
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()


class RedisCustomerMutex(CustomerMutex):
    """Redis-backed distributed lock for multi-process deployments.

    Lock key format: custlock:{tenant}:{agent}:{customer}
    """

    def __init__(
        self,
        redis: Redis,
        lock_timeout: int = 30,
        blocking_timeout: float = 5.0,
    ) -> None:
        """Initialize customer mutex.

        Args:
            redis: Redis client instance
            lock_timeout: How long the lock is held before auto-release (seconds)
            blocking_timeout: How long to wait when trying to acquire (seconds)
        """
        self._redis = redis
        self._lock_timeout = lock_timeout
        self._blocking_timeout = blocking_timeout

    def _key(self, key: str) -> str:
        return f"custlock:{key}"

    @asynccontextmanager
    async def acquire(
        self,
        key: str,
        blocking_timeout: float | None = None,
    ) -> AsyncGenerator[bool, None]:
        """Acquire exclusive lock for a customer.

        Usage:
            async with mutex.acquire("tenant:agent:customer") as acquired:
                if acquired:
                    # Safe to process
        """
        timeout = self._blocking_timeout if blocking_timeout is None else blocking_timeout

        lock = self._redis.lock(
            self._key(key),
            timeout=self._lock_timeout,
            blocking_timeout=timeout,
        )

        acquired = await lock.acquire()
        try:
            yield acquired
        finally:
            if acquired:
                try:
                    await lock.release()
                except LockError as e:
                    # Expired before release; the turn outlived lock_timeout
                    logger.warning("customer_lock_release_failed", key=key, error=str(e))

    async def is_locked(self, key: str) -> bool:
        """Check if a customer is currently locked."""
        return await self._redis.exists(self._key(key)) > 0


def build_customer_key(tenant_id: UUID, agent_id: UUID, customer_id: str) -> str:
    """Build composite customer key for the mutex.

    Format: {tenant_id}:{agent_id}:{customer_id}
    """
    return f"{tenant_id}:{agent_id}:{customer_id}"
