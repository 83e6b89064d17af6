"""Application-level exception types.

This module defines domain errors used across policies and store adapters,
enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    retry_after: int
    limit: int
    window_s: int
    key_hash: str
    error_type: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class RateLimitExceededError(AppError):
    """Raised when a caller exhausted its admissions for the current window.

    ``retry_after`` is the remaining window in seconds, or None when the store
    could not report a positive TTL.
    """

    @property
    def retry_after(self) -> int | None:
        if not self.details:
            return None
        value = self.details.get("retry_after")
        return value if value and value > 0 else None


class StoreError(AppError):
    """Raised when the counter store operation fails.

    The underlying client exception is chained as ``__cause__``.
    """


class StoreUnconfiguredError(StoreError):
    """Raised by the disabled store: no counter store is set up for the process."""
