"""Limiter policies: how to identify a caller and how to admit or reject it.

A policy pairs a key derivation with a decision strategy plus the window
parameters. Policies hold no mutable state; every counter lives in the
counter store, so one policy instance serves all in-flight requests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from starlette.requests import Request

from iplimit.adapters.counter_store.base import AbstractCounterStore
from iplimit.core.errors import RateLimitExceededError, StoreError, StoreUnconfiguredError
from iplimit.core.logging import hash_key

logger = logging.getLogger(__name__)

RATE_LIMITED_CODE = "rate_limited"


def format_retry_message(retry_after_seconds: int | None) -> str:
    """Build the user-facing rejection message.

    The countdown is computed from the numeric TTL; a TTL that is unknown,
    zero or negative yields the generic message.

    Examples:
        >>> format_retry_message(5)
        'Request too frequent, please try again in 5 seconds'
        >>> format_retry_message(1)
        'Request too frequent, please try again in 1 second'
        >>> format_retry_message(-2)
        'Request too frequent, please try again later'
    """
    if retry_after_seconds is None or retry_after_seconds <= 0:
        return "Request too frequent, please try again later"
    unit = "second" if retry_after_seconds == 1 else "seconds"
    return f"Request too frequent, please try again in {retry_after_seconds} {unit}"


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class LimiterPolicy(ABC):
    """Key derivation plus admit/reject decision for one mounted limiter.

    Every policy counts against a counter store; the app reports the
    limiter as enabled and closes the store on shutdown through the policy.
    Subclasses override :meth:`derive_key` to limit by something other than
    the client address, or :meth:`decide` to swap the counting algorithm.
    """

    def __init__(
        self, store: AbstractCounterStore, *, expire_seconds: int, limit_count: int
    ) -> None:
        if expire_seconds < 1:
            raise ValueError("expire_seconds must be >= 1")
        if limit_count < 1:
            raise ValueError("limit_count must be >= 1")
        self._store = store
        self._expire_seconds = expire_seconds
        self._limit_count = limit_count

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    @property
    def enabled(self) -> bool:
        """False when the policy runs against the disabled store."""
        return self._store.enabled

    @property
    def expire_seconds(self) -> int:
        return self._expire_seconds

    @property
    def limit_count(self) -> int:
        return self._limit_count

    @abstractmethod
    def derive_key(self, request: Request) -> str:
        """Map a request to its rate limit key."""

    @abstractmethod
    async def decide(self, key: str) -> None:
        """Admit (return) or reject (raise) one call for ``key``.

        Raises:
            RateLimitExceededError: When the caller is over its limit.
            StoreError: When the store failed and the policy does not admit.
        """

    async def evaluate(self, request: Request) -> None:
        await self.decide(self.derive_key(request))

    async def close(self) -> None:
        await self._store.close()


class FixedWindowPolicy(LimiterPolicy):
    """Client-address key and fixed-window counting against a counter store.

    Store outcomes are resolved here:

    - ``StoreUnconfiguredError``: rate limiting is switched off, admit.
    - ``StoreError``: logged at error level; re-raised so the request is
      rejected, unless ``fail_open_on_store_error`` admits it instead.
    """

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        expire_seconds: int,
        limit_count: int,
        key_prefix: str = "ip_limit:",
        fail_open_on_store_error: bool = False,
    ) -> None:
        super().__init__(store, expire_seconds=expire_seconds, limit_count=limit_count)
        self._key_prefix = key_prefix
        self._fail_open_on_store_error = fail_open_on_store_error

    def derive_key(self, request: Request) -> str:
        """Key on the peer address Starlette reports.

        Forwarded headers are not read here. Behind a reverse proxy, run
        uvicorn with ``--proxy-headers --forwarded-allow-ips=<proxy ips>`` so
        the peer address is the real client; otherwise every caller shares
        the proxy's counter.
        """
        return f"{self._key_prefix}{client_address(request)}"

    async def decide(self, key: str) -> None:
        try:
            result = await self._store.check_and_increment(
                key, self.limit_count, self.expire_seconds
            )
        except StoreUnconfiguredError:
            logger.debug("rate_limit.skipped", extra={"reason": "store_unconfigured"})
            return
        except StoreError as exc:
            logger.error(
                "rate_limit.store_error",
                extra={
                    "key_hash": hash_key(key),
                    "error_code": exc.code,
                    "error_message": exc.message,
                    "cause": repr(exc.__cause__) if exc.__cause__ else None,
                    "fail_open": self._fail_open_on_store_error,
                },
            )
            if self._fail_open_on_store_error:
                return
            raise

        if result.admitted:
            return

        retry_after = result.retry_after_seconds
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_hash": hash_key(key),
                "limit": self.limit_count,
                "window_s": self.expire_seconds,
                "retry_after_s": retry_after,
            },
        )
        raise RateLimitExceededError(
            code=RATE_LIMITED_CODE,
            message=format_retry_message(retry_after),
            details={
                "retry_after": retry_after if retry_after and retry_after > 0 else 0,
                "limit": self.limit_count,
                "window_s": self.expire_seconds,
            },
        )
