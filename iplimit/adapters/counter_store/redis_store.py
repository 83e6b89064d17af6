"""Redis-backed fixed-window counter store.

The read, compare and increment run inside one Lua script, so concurrent
callers on any number of processes can never both observe "under limit" and
both increment past it.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from iplimit.adapters.counter_store.base import (
    AbstractCounterStore,
    CounterResult,
    validate_counter_args,
)
from iplimit.core.errors import StoreError
from iplimit.core.logging import hash_key

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = "Rate limit store unavailable, please try again later"

# KEYS[1] = counter key
# ARGV[1] = limit, ARGV[2] = window seconds
# Returns {1, count} when admitted, {0, ttl} when rejected.
CHECK_AND_INCREMENT_LUA = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window = tonumber(ARGV[2])

local current = redis.call('GET', key)
if current == false then
  redis.call('SET', key, 1, 'EX', window)
  return {1, 1}
end

current = tonumber(current)
if current < limit then
  return {1, redis.call('INCR', key)}
end

return {0, redis.call('TTL', key)}
"""


class RedisCounterStore(AbstractCounterStore):
    """Counter store shared across processes through Redis.

    The script is registered once and invoked with EVALSHA; redis-py falls
    back to EVAL when the server's script cache was flushed.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client
        self._script = client.register_script(CHECK_AND_INCREMENT_LUA)

    @property
    def client(self) -> Redis:
        return self._client

    async def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> CounterResult:
        validate_counter_args(key, limit, window_seconds)

        try:
            reply = await self._script(keys=[key], args=[limit, window_seconds])
        except RedisError as exc:
            raise StoreError(
                code="store_error",
                message=STORE_UNAVAILABLE_MESSAGE,
                details={"error_type": type(exc).__name__, "key_hash": hash_key(key)},
            ) from exc

        try:
            flag, value = int(reply[0]), int(reply[1])
        except (TypeError, ValueError, IndexError) as exc:
            logger.error(
                "redis.unexpected_reply",
                extra={"key_hash": hash_key(key), "reply": repr(reply)},
            )
            raise StoreError(
                code="store_protocol_error",
                message=STORE_UNAVAILABLE_MESSAGE,
                details={"error_type": type(exc).__name__, "key_hash": hash_key(key)},
            ) from exc

        if flag == 1:
            return CounterResult.admit(value)
        return CounterResult.reject(value)

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("redis.closed")
