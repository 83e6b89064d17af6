"""In-memory fixed-window counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from iplimit.adapters.counter_store.base import (
    AbstractCounterStore,
    CounterResult,
    validate_counter_args,
)


@dataclass
class _CounterRecord:
    count: int
    expires_at: float


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store mirroring the Redis record semantics inside one process.

    A record is created on the first call for a key and expires
    ``window_seconds`` later, regardless of how many calls follow. This is the
    same TTL behaviour as the Redis script, so policies behave identically
    against either store.

    Important:
        This store is per-process only. If the API runs with multiple workers,
        each worker enforces its own independent limits.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning seconds; must be monotonic.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, _CounterRecord] = {}

    def _live_record(self, key: str, now: float) -> _CounterRecord | None:
        """Return the record for key, dropping it if its TTL elapsed."""
        record = self._records.get(key)
        if record is not None and record.expires_at <= now:
            del self._records[key]
            return None
        return record

    def ttl(self, key: str) -> int | None:
        """Remaining whole seconds for key, or None if there is no live record."""
        now = self._clock()
        with self._lock:
            record = self._live_record(key, now)
            if record is None:
                return None
            return int(math.ceil(record.expires_at - now))

    async def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> CounterResult:
        validate_counter_args(key, limit, window_seconds)

        now = self._clock()
        with self._lock:
            record = self._live_record(key, now)

            if record is None:
                self._records[key] = _CounterRecord(count=1, expires_at=now + window_seconds)
                return CounterResult.admit(1)

            if record.count < limit:
                record.count += 1
                return CounterResult.admit(record.count)

            return CounterResult.reject(int(math.ceil(record.expires_at - now)))
