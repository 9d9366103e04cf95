"""Redis connection pool."""

import redis.asyncio as redis

from updown.kv import KVStore

_pool: redis.Redis | None = None
_timeout: float = 2.0


async def init_redis(url: str, timeout_seconds: float = 2.0) -> None:
    """Initialize the Redis connection pool with bounded socket timeouts."""
    global _pool, _timeout  # noqa: PLW0603
    _timeout = timeout_seconds
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the raw Redis client."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_kv() -> KVStore:
    """Get the typed key/value adapter over the shared pool (FastAPI dependency)."""
    return KVStore(get_redis(), timeout_seconds=_timeout)
