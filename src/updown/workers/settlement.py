"""arq worker for round settlement and weekly snapshots.

Runs as a separate process. Every minute it settles ended rounds that
still hold open bets; once a week it snapshots the week that just closed.
"""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog

from updown.admin.service import snapshot_week
from updown.config import get_settings
from updown.kv import KVStore
from updown.leaderboard.week_utils import get_previous_week_id
from updown.middleware.logging import setup_logging
from updown.prices.client import CoinGeckoPriceFeed
from updown.rounds.clock import now_ms
from updown.scoring.settlement import settle_due_rounds

logger = structlog.get_logger()


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize Redis and the price feed on worker startup."""
    settings = get_settings()
    setup_logging(settings)

    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
        socket_timeout=settings.redis_timeout_seconds,
        socket_connect_timeout=settings.redis_timeout_seconds,
    )
    ctx["redis"] = redis_client
    ctx["kv"] = KVStore(redis_client, timeout_seconds=settings.redis_timeout_seconds)
    ctx["price_feed"] = CoinGeckoPriceFeed(
        settings.price_feed_url,
        settings.asset_ids,
        timeout_seconds=settings.price_feed_timeout_seconds,
    )
    ctx["settings"] = settings
    logger.info("settlement_worker_started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    price_feed: CoinGeckoPriceFeed | None = ctx.get("price_feed")
    if price_feed:
        await price_feed.aclose()

    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()

    logger.info("settlement_worker_stopped")


async def settle_rounds(ctx: dict) -> int:  # type: ignore[type-arg]
    """Settle every ended round with open bets. Returns the number of bets scored."""
    reports = await settle_due_rounds(ctx["kv"], ctx["settings"], ctx["price_feed"], now_ms())
    resolved = sum(len(r.resolved) for r in reports)
    if reports:
        logger.info(
            "settlement_pass_done",
            rounds=len(reports),
            resolved=resolved,
            incomplete=sum(1 for r in reports if not r.complete),
        )
    return resolved


async def weekly_snapshot(ctx: dict) -> str:  # type: ignore[type-arg]
    """Snapshot the top wallets of the week that just ended."""
    now = now_ms()
    week_id = get_previous_week_id(now)
    await snapshot_week(ctx["kv"], ctx["settings"], now, week_id)
    return week_id
