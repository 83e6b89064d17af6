"""Ready-made limiter: client address key, fixed window, configured limits."""

from __future__ import annotations

from iplimit.adapters.counter_store.base import AbstractCounterStore
from iplimit.core.config import LimitSettings, parse_csv, settings
from iplimit.core.redis import build_counter_store
from iplimit.limiting.middleware import RateLimitMiddleware
from iplimit.limiting.policy import FixedWindowPolicy


def default_policy(
    store: AbstractCounterStore | None = None,
    limit_settings: LimitSettings | None = None,
) -> FixedWindowPolicy:
    """Build the default policy from configuration.

    Without an explicit store one is built from the Redis settings; if Redis
    is not enabled that is the disabled store and every request is admitted.
    """

    cfg = limit_settings or settings.limit
    return FixedWindowPolicy(
        store if store is not None else build_counter_store(),
        expire_seconds=cfg.limit_time_ip,
        limit_count=cfg.limit_count_ip,
        key_prefix=cfg.key_prefix,
        fail_open_on_store_error=cfg.fail_open_on_store_error,
    )


def default_limit(
    store: AbstractCounterStore | None = None,
    limit_settings: LimitSettings | None = None,
) -> RateLimitMiddleware:
    """Middleware wrapping :func:`default_policy`, honouring exempt paths."""

    cfg = limit_settings or settings.limit
    return RateLimitMiddleware(
        default_policy(store, cfg),
        exempt_paths=parse_csv(cfg.exempt_paths),
    )
