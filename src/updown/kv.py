"""Typed key/value + sorted-set adapter over redis.asyncio.

Every call is bounded by an explicit timeout. Transport failures and
timeouts surface as ``StoreUnavailable``; a missing key is ``None`` (or an
empty list), never an exception, so callers can tell "no data" apart from
"store down".
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Mapping, Sequence
from typing import Any, TypeVar

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from updown.errors import StoreUnavailable

logger = structlog.get_logger()

T = TypeVar("T")


class KVStore:
    """Async key/value store with Redis semantics.

    Sorted-set ranges use Redis inclusive start/stop indices in ascending
    score order; negative indices count from the end.
    """

    def __init__(self, redis: Redis, timeout_seconds: float = 2.0) -> None:
        self.redis = redis
        self.timeout_seconds = timeout_seconds

    async def _call(self, op: str, key: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except (RedisError, asyncio.TimeoutError, OSError) as exc:
            logger.warning("kv_call_failed", op=op, key=key, error=str(exc) or type(exc).__name__)
            raise StoreUnavailable(f"kv {op} {key} failed") from exc

    # --- Strings / counters ---

    async def get(self, key: str) -> str | None:
        return await self._call("get", key, self.redis.get(key))

    async def get_json(self, key: str) -> Any:
        """GET and JSON-decode. Undecodable values are logged and read as ``None``."""
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("kv_bad_json", key=key)
            return None

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        if not keys:
            return []
        return list(await self._call("mget", keys[0], self.redis.mget(list(keys))))

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: int | None = None,
        nx: bool = False,
    ) -> bool:
        """SET a value (non-strings are JSON-encoded).

        With ``nx=True`` this is a conditional write: returns False when the
        key already exists and nothing was written.
        """
        result = await self._call(
            "set", key, self.redis.set(key, _encode(value), ex=ttl_seconds, nx=nx),
        )
        return bool(result)

    async def incr_by(self, key: str, amount: int) -> int:
        return int(await self._call("incrby", key, self.redis.incrby(key, amount)))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._call("delete", keys[0], self.redis.delete(*keys)))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self._call("expire", key, self.redis.expire(key, ttl_seconds)))

    # --- Sorted sets ---

    async def zadd(self, key: str, members: Mapping[str, float]) -> int:
        if not members:
            return 0
        return int(await self._call("zadd", key, self.redis.zadd(key, dict(members))))

    async def zrange(self, key: str, start: int, stop: int) -> list[str]:
        return list(await self._call("zrange", key, self.redis.zrange(key, start, stop)))

    async def zrange_withscores(self, key: str, start: int, stop: int) -> list[tuple[str, float]]:
        rows = await self._call(
            "zrange", key, self.redis.zrange(key, start, stop, withscores=True),
        )
        return [(member, float(score)) for member, score in rows]

    async def zrangebyscore(self, key: str, min_score: float | str, max_score: float | str) -> list[str]:
        return list(await self._call(
            "zrangebyscore", key, self.redis.zrangebyscore(key, min_score, max_score),
        ))

    async def zrem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return int(await self._call("zrem", key, self.redis.zrem(key, *members)))

    async def zremrangebyrank(self, key: str, start: int, stop: int) -> int:
        return int(await self._call(
            "zremrangebyrank", key, self.redis.zremrangebyrank(key, start, stop),
        ))

    async def zscore(self, key: str, member: str) -> float | None:
        score = await self._call("zscore", key, self.redis.zscore(key, member))
        return None if score is None else float(score)

    async def zrevrank(self, key: str, member: str) -> int | None:
        rank = await self._call("zrevrank", key, self.redis.zrevrank(key, member))
        return None if rank is None else int(rank)

    async def zcard(self, key: str) -> int:
        return int(await self._call("zcard", key, self.redis.zcard(key)))

    async def ping(self) -> bool:
        return bool(await self._call("ping", "-", self.redis.ping()))

    # --- Batches ---

    def pipeline(self, transaction: bool = True) -> KVBatch:
        """Queue several writes and send them in one round trip."""
        return KVBatch(self, transaction=transaction)


def _encode(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value, separators=(",", ":"))


class KVBatch:
    """Queued commands over a redis pipeline (``MULTI/EXEC`` by default).

    Builder methods return ``self``; ``execute()`` returns one result per
    queued command in order, under the same timeout and failure mapping as
    single calls.
    """

    def __init__(self, kv: KVStore, transaction: bool = True) -> None:
        self._kv = kv
        self._pipe = kv.redis.pipeline(transaction=transaction)
        self._keys: list[str] = []

    def __len__(self) -> int:
        return len(self._keys)

    def incr_by(self, key: str, amount: int) -> KVBatch:
        self._pipe.incrby(key, amount)
        self._keys.append(key)
        return self

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> KVBatch:
        self._pipe.set(key, _encode(value), ex=ttl_seconds)
        self._keys.append(key)
        return self

    def expire(self, key: str, ttl_seconds: int) -> KVBatch:
        self._pipe.expire(key, ttl_seconds)
        self._keys.append(key)
        return self

    def zadd(self, key: str, members: Mapping[str, float]) -> KVBatch:
        self._pipe.zadd(key, dict(members))
        self._keys.append(key)
        return self

    def zincrby(self, key: str, amount: float, member: str) -> KVBatch:
        self._pipe.zincrby(key, amount, member)
        self._keys.append(key)
        return self

    def zremrangebyrank(self, key: str, start: int, stop: int) -> KVBatch:
        self._pipe.zremrangebyrank(key, start, stop)
        self._keys.append(key)
        return self

    async def execute(self) -> list[Any]:
        if not self._keys:
            return []
        return list(await self._kv._call("pipeline", self._keys[0], self._pipe.execute()))
