"""Turn runtime: customer mutex and turn transactions."""

from parley.runtime.mutex import (
    CustomerMutex,
    InMemoryCustomerMutex,
    RedisCustomerMutex,
    build_customer_key,
)
from parley.runtime.transaction import TurnTransaction

__all__ = [
    "CustomerMutex",
    "InMemoryCustomerMutex",
    "RedisCustomerMutex",
    "TurnTransaction",
    "build_customer_key",
]
