"""Counter store construction from settings.

The process holds at most one Redis client. When Redis is disabled the
disabled store is returned instead, which the default policy treats as
"rate limiting off".

**Security Note**: use a ``rediss://`` URL when Redis is reached over an
untrusted network. The URL is logged with credentials stripped.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from iplimit.adapters.counter_store import (
    AbstractCounterStore,
    DisabledCounterStore,
    RedisCounterStore,
)
from iplimit.core.config import RedisSettings, settings
from iplimit.core.logging import redact_url

logger = logging.getLogger(__name__)


def build_redis_client(redis_settings: RedisSettings) -> Redis:
    """Create an asyncio Redis client that never retries commands.

    A failed rate limit decision is surfaced once; retrying would multiply
    store load exactly when the store is struggling.
    """

    return Redis.from_url(
        redis_settings.url,
        socket_timeout=redis_settings.socket_timeout,
        socket_connect_timeout=redis_settings.socket_connect_timeout,
        retry=Retry(NoBackoff(), 0),
        retry_on_timeout=False,
        decode_responses=True,
    )


def build_counter_store(redis_settings: RedisSettings | None = None) -> AbstractCounterStore:
    """Build the counter store described by configuration.

    Args:
        redis_settings: Optional Redis settings; defaults to global settings.

    Returns:
        RedisCounterStore when Redis is enabled, DisabledCounterStore otherwise.
    """

    cfg = redis_settings or settings.redis
    if not cfg.enabled:
        logger.info("counter_store.disabled", extra={"reason": "redis_not_enabled"})
        return DisabledCounterStore()

    logger.info(
        "counter_store.redis",
        extra={
            "url": redact_url(cfg.url),
            "socket_timeout_s": cfg.socket_timeout,
        },
    )
    return RedisCounterStore(build_redis_client(cfg))
