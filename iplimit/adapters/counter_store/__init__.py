"""Counter store adapters.

Policies depend on :class:`AbstractCounterStore` only. Redis is the shared
store used in production; the in-memory store keeps the same semantics for a
single process, and the disabled store marks "no store configured".
"""

from iplimit.adapters.counter_store.base import (
    AbstractCounterStore,
    CounterResult,
    DisabledCounterStore,
)
from iplimit.adapters.counter_store.in_memory import InMemoryCounterStore
from iplimit.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "CounterResult",
    "DisabledCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
]
