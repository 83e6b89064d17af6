"""Tests for the Redis counter store.

The Lua script runs for real inside fakeredis (Lua support via lupa).
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import fakeredis
import pytest

from iplimit.adapters.counter_store.redis_store import STORE_UNAVAILABLE_MESSAGE, RedisCounterStore
from iplimit.core.errors import StoreError


def _store(server: fakeredis.FakeServer | None = None) -> RedisCounterStore:
    client = fakeredis.FakeAsyncRedis(server=server or fakeredis.FakeServer())
    return RedisCounterStore(client)


def test_sequential_calls_admit_limit_then_reject() -> None:
    async def scenario():
        store = _store()
        results = [await store.check_and_increment("k", 3, 60) for _ in range(4)]
        return results

    results = asyncio.run(scenario())

    assert [r.admitted for r in results] == [True, True, True, False]
    assert [r.count for r in results[:3]] == [1, 2, 3]
    assert 0 < results[3].retry_after_seconds <= 60


def test_first_call_sets_ttl_and_increments_keep_it() -> None:
    async def scenario():
        store = _store()
        await store.check_and_increment("k", 5, 30)
        first_ttl = await store.client.ttl("k")
        await store.check_and_increment("k", 5, 30)
        value = await store.client.get("k")
        second_ttl = await store.client.ttl("k")
        return first_ttl, second_ttl, value

    first_ttl, second_ttl, value = asyncio.run(scenario())

    assert 0 < first_ttl <= 30
    assert 0 < second_ttl <= first_ttl
    assert int(value) == 2


def test_concurrent_calls_admit_exactly_limit() -> None:
    limit = 10

    async def scenario():
        store = _store()
        return await asyncio.gather(
            *(store.check_and_increment("k", limit, 60) for _ in range(2 * limit))
        )

    results = asyncio.run(scenario())

    admitted = [r for r in results if r.admitted]
    rejected = [r for r in results if not r.admitted]
    assert len(admitted) == limit
    assert len(rejected) == limit
    assert sorted(r.count for r in admitted) == list(range(1, limit + 1))


def test_concurrent_stores_sharing_one_server_admit_exactly_limit() -> None:
    # Several clients model several worker processes on one Redis
    server = fakeredis.FakeServer()
    limit = 4

    async def scenario():
        stores = [_store(server) for _ in range(4)]
        calls = [
            stores[i % len(stores)].check_and_increment("shared", limit, 60)
            for i in range(3 * limit)
        ]
        return await asyncio.gather(*calls)

    results = asyncio.run(scenario())
    assert sum(r.admitted for r in results) == limit


def test_window_reset_starts_count_over() -> None:
    async def scenario():
        store = _store()
        await store.check_and_increment("k", 1, 1)
        blocked = await store.check_and_increment("k", 1, 1)
        await asyncio.sleep(1.1)
        again = await store.check_and_increment("k", 1, 1)
        return blocked, again

    blocked, again = asyncio.run(scenario())

    assert blocked.admitted is False
    assert again.admitted is True
    assert again.count == 1


def test_keys_are_isolated() -> None:
    async def scenario():
        store = _store()
        a1 = await store.check_and_increment("ip_limit:10.0.0.1", 1, 60)
        a2 = await store.check_and_increment("ip_limit:10.0.0.1", 1, 60)
        b1 = await store.check_and_increment("ip_limit:10.0.0.2", 1, 60)
        return a1, a2, b1

    a1, a2, b1 = asyncio.run(scenario())

    assert a1.admitted is True
    assert a2.admitted is False
    assert b1.admitted is True
    assert b1.count == 1


def test_key_without_ttl_rejects_without_countdown() -> None:
    async def scenario():
        store = _store()
        await store.client.set("k", 5)
        return await store.check_and_increment("k", 5, 60)

    result = asyncio.run(scenario())

    assert result.admitted is False
    assert result.retry_after_seconds is not None
    assert result.retry_after_seconds <= 0


def test_end_to_end_window_scenario() -> None:
    async def scenario():
        store = _store()
        first = [await store.check_and_increment("k", 3, 60) for _ in range(3)]
        fourth = await store.check_and_increment("k", 3, 60)
        # Let the rest of the 60s window elapse
        await store.client.pexpire("k", 1)
        await asyncio.sleep(0.05)
        fifth = await store.check_and_increment("k", 3, 60)
        return first, fourth, fifth

    first, fourth, fifth = asyncio.run(scenario())

    assert [r.count for r in first] == [1, 2, 3]
    assert fourth.admitted is False
    assert 58 <= fourth.retry_after_seconds <= 60
    assert fifth.admitted is True
    assert fifth.count == 1


def test_unreachable_store_raises_store_error() -> None:
    server = fakeredis.FakeServer()
    server.connected = False

    async def scenario():
        store = _store(server)
        await store.check_and_increment("k", 3, 60)

    with pytest.raises(StoreError) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.code == "store_error"
    assert exc_info.value.__cause__ is not None


def test_invalid_args_rejected_before_reaching_redis() -> None:
    async def scenario():
        store = _store()
        await store.check_and_increment("k", 0, 60)

    with pytest.raises(ValueError):
        asyncio.run(scenario())


def test_malformed_script_reply_is_not_echoed_to_clients() -> None:
    client = Mock()
    client.register_script.return_value = AsyncMock(return_value=["internal-detail"])
    store = RedisCounterStore(client)

    with pytest.raises(StoreError) as exc_info:
        asyncio.run(store.check_and_increment("k", 3, 60))

    assert exc_info.value.code == "store_protocol_error"
    assert exc_info.value.message == STORE_UNAVAILABLE_MESSAGE
    assert "internal-detail" not in exc_info.value.message
