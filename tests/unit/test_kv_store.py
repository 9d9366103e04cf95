"""Unit tests for the typed key/value adapter."""

from __future__ import annotations

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from updown.errors import StoreUnavailable
from updown.kv import KVStore

pytestmark = pytest.mark.asyncio


class _BrokenRedis:
    """Every command fails the way a dropped connection does."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise RedisConnectionError("connection refused")

        return fail


class _SlowRedis:
    def __getattr__(self, name):
        async def hang(*args, **kwargs):
            await asyncio.sleep(5)

        return hang


class TestStrings:
    async def test_missing_key_is_none(self, kv: KVStore):
        assert await kv.get("nope") is None

    async def test_set_json_roundtrip(self, kv: KVStore):
        await kv.set("doc", {"a": 1})
        assert await kv.get("doc") == '{"a":1}'
        assert await kv.get_json("doc") == {"a": 1}

    async def test_bad_json_reads_as_none(self, kv: KVStore):
        await kv.set("doc", "{not json")
        assert await kv.get_json("doc") is None

    async def test_set_nx_is_conditional(self, kv: KVStore):
        assert await kv.set("claim", "1", nx=True) is True
        assert await kv.set("claim", "2", nx=True) is False
        assert await kv.get("claim") == "1"

    async def test_set_with_ttl(self, kv: KVStore, redis_client):
        await kv.set("temp", "x", ttl_seconds=60)
        assert 0 < await redis_client.ttl("temp") <= 60

    async def test_incr_by_creates_counter(self, kv: KVStore):
        assert await kv.incr_by("n", 5) == 5
        assert await kv.incr_by("n", -7) == -2

    async def test_mget_empty(self, kv: KVStore):
        assert await kv.mget([]) == []


class TestSortedSets:
    async def test_zrange_ascending_with_negative_indices(self, kv: KVStore):
        await kv.zadd("z", {"a": 1, "b": 3, "c": 2})
        assert await kv.zrange("z", 0, -1) == ["a", "c", "b"]
        assert await kv.zrange_withscores("z", -2, -1) == [("c", 2.0), ("b", 3.0)]

    async def test_zrangebyscore_infinite_bounds(self, kv: KVStore):
        await kv.zadd("z", {"10": 10, "11": 11, "12": 12})
        assert await kv.zrangebyscore("z", "-inf", 11) == ["10", "11"]
        assert await kv.zrangebyscore("z", 11, "+inf") == ["11", "12"]

    async def test_zrevrank(self, kv: KVStore):
        await kv.zadd("z", {"a": 1, "b": 3})
        assert await kv.zrevrank("z", "b") == 0
        assert await kv.zrevrank("z", "missing") is None

    async def test_zremrangebyrank_trims_oldest(self, kv: KVStore):
        await kv.zadd("z", {str(i): i for i in range(5)})
        await kv.zremrangebyrank("z", 0, -4)
        assert await kv.zrange("z", 0, -1) == ["2", "3", "4"]

    async def test_empty_mapping_is_noop(self, kv: KVStore):
        assert await kv.zadd("z", {}) == 0
        assert await kv.zcard("z") == 0


class TestFailures:
    """Transport errors and timeouts surface as StoreUnavailable."""

    async def test_connection_error(self):
        kv = KVStore(_BrokenRedis(), timeout_seconds=1.0)
        with pytest.raises(StoreUnavailable):
            await kv.get("x")

    async def test_timeout(self):
        kv = KVStore(_SlowRedis(), timeout_seconds=0.05)
        with pytest.raises(StoreUnavailable):
            await kv.incr_by("x", 1)


class TestBatches:
    """Queued writes go out in one MULTI/EXEC round trip."""

    async def test_results_in_queue_order(self, kv: KVStore):
        batch = kv.pipeline()
        batch.incr_by("n", 3).set("s", {"a": 1}).zincrby("z", 2, "w").zincrby("z", -5, "w")
        assert len(batch) == 4
        results = await batch.execute()
        assert int(results[0]) == 3
        assert float(results[3]) == -3.0
        assert await kv.get_json("s") == {"a": 1}
        assert await kv.zscore("z", "w") == -3.0

    async def test_ttl_and_trim_queued(self, kv: KVStore, redis_client):
        await kv.zadd("h", {str(i): i for i in range(4)})
        await kv.pipeline().set("t", "x", ttl_seconds=60).expire("h", 60).zremrangebyrank("h", 0, -3).execute()
        assert 0 < await redis_client.ttl("t") <= 60
        assert 0 < await redis_client.ttl("h") <= 60
        assert await kv.zrange("h", 0, -1) == ["2", "3"]

    async def test_empty_batch_is_noop(self, kv: KVStore):
        assert await kv.pipeline().execute() == []

    async def test_command_error_is_store_unavailable(self, kv: KVStore):
        await kv.zadd("z", {"a": 1})
        with pytest.raises(StoreUnavailable):
            await kv.pipeline().incr_by("z", 1).execute()
