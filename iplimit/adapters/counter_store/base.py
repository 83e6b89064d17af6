"""Counter store interfaces.

Policies should depend on this abstraction (not the concrete implementation)
so the backing store can be swapped without touching the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from iplimit.core.errors import StoreUnconfiguredError


@dataclass(frozen=True)
class CounterResult:
    """Outcome of a single check-and-increment.

    Attributes:
        admitted: Whether the call was counted against the window.
        count: Counter value after the increment (admitted results only).
        retry_after_seconds: Remaining window TTL reported by the store
            (rejected results only). Zero, negative or None means the store
            could not report a usable countdown.
    """

    admitted: bool
    count: int | None = None
    retry_after_seconds: int | None = None

    @classmethod
    def admit(cls, count: int) -> "CounterResult":
        return cls(admitted=True, count=count)

    @classmethod
    def reject(cls, retry_after_seconds: int | None) -> "CounterResult":
        return cls(admitted=False, retry_after_seconds=retry_after_seconds)


def validate_counter_args(key: str, limit: int, window_seconds: int) -> None:
    """Reject arguments no store could honour.

    Raises:
        ValueError: If key is empty, or limit/window_seconds are below 1.
    """
    if not key:
        raise ValueError("key must be a non-empty string")
    if limit < 1:
        raise ValueError("limit must be >= 1")
    if window_seconds < 1:
        raise ValueError("window_seconds must be >= 1")


class AbstractCounterStore(ABC):
    """Interface for fixed-window counter stores."""

    #: False only for the store standing in for "no store configured".
    enabled: bool = True

    @abstractmethod
    async def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> CounterResult:
        """Atomically admit-and-count or reject a call for ``key``.

        - No record: create it with value 1 and TTL ``window_seconds``.
        - Value below ``limit``: increment it, leaving the TTL running.
        - Otherwise: reject with the record's remaining TTL.

        Args:
            key: Rate limit key.
            limit: Maximum admissions per window.
            window_seconds: Window length; the record TTL on creation.

        Returns:
            CounterResult describing the decision.

        Raises:
            StoreError: If the store operation fails.
            ValueError: If the arguments are invalid.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release store connections. No-op by default."""


class DisabledCounterStore(AbstractCounterStore):
    """Store used when no counter store is configured for the process."""

    enabled = False

    async def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> CounterResult:
        raise StoreUnconfiguredError(
            code="store_unconfigured",
            message="No counter store is configured",
        )
