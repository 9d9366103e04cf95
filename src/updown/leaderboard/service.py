"""Leaderboard service: ranked views over the points sorted sets.

Three windows:
- ``days == 0``: all-time, global ranking + all-time stats
- ``days == 7``: current Friday-aligned week, weekly ranking + weekly stats
- other ``days``: global ranking filtered by ``lastTs >= now - days``

Ranked sets are read ascending and reversed. Entries are ordered by points
descending with ties broken by wallet ascending. Store failures on the read
path degrade to an empty page (ranking) or zero stats (hydration).
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

import structlog

from updown import keys
from updown.config import Settings
from updown.errors import StoreUnavailable, ValidationError
from updown.kv import KVStore
from updown.leaderboard.week_utils import DAY_MS, get_week_id
from updown.rounds.ledger import normalize_wallet

logger = structlog.get_logger()

ALLTIME = 0
WEEKLY = 7


@dataclass
class LeaderboardEntry:
    wallet: str
    points: int
    wins: int = 0
    losses: int = 0
    streak: int = 0
    best: int = 0


@dataclass
class WalletStats:
    points: int = 0
    wins: int = 0
    losses: int = 0
    rounds: int = 0
    streak: int = 0
    best: int = 0
    last_ts: int | None = None


def _num(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return int(float(raw))
    except ValueError:
        return 0


def fetch_size(limit: int, settings: Settings) -> int:
    """How many ranked members to read before filtering down to ``limit``."""
    return min(settings.leaderboard_fetch_cap, max(limit * 5, limit + 50))


def order_entries(pairs: list[tuple[str, float]]) -> list[tuple[str, int]]:
    """Points descending, wallet ascending on ties."""
    return sorted(((m, int(s)) for m, s in pairs), key=lambda p: (-p[1], p[0]))


async def read_ranking(kv: KVStore, key: str, count: int) -> list[tuple[str, int]]:
    """Top ``count`` members of a ranked set, best first. Empty when the store is down."""
    try:
        pairs = await kv.zrange_withscores(key, -count, -1)
    except StoreUnavailable:
        logger.warning("ranking_read_degraded", key=key)
        return []
    return order_entries(pairs)


async def _hydrate(
    kv: KVStore, wallet: str, points: int, field_key: Callable[[str], str],
) -> LeaderboardEntry:
    entry = LeaderboardEntry(wallet=wallet, points=points)
    try:
        wins, losses, streak, best = await kv.mget([field_key(f) for f in ("wins", "losses", "streak", "best")])
    except StoreUnavailable:
        logger.warning("leaderboard_hydrate_degraded", wallet=wallet)
        return entry
    entry.wins, entry.losses, entry.streak, entry.best = _num(wins), _num(losses), _num(streak), _num(best)
    return entry


async def get_weekly_ranking(
    kv: KVStore, week_id: str, limit: int, settings: Settings,
) -> list[LeaderboardEntry]:
    """Top ``limit`` wallets of a week scope with weekly stats."""
    ranked = await read_ranking(kv, keys.weekly_ranking(week_id), fetch_size(limit, settings))
    return [
        await _hydrate(kv, w, p, lambda f, w=w: keys.weekly_key(week_id, w, f))
        for w, p in ranked[:limit]
    ]


async def _alltime(kv: KVStore, limit: int, settings: Settings) -> list[LeaderboardEntry]:
    ranked = await read_ranking(kv, keys.GLOBAL_RANKING, fetch_size(limit, settings))
    return [
        await _hydrate(kv, w, p, lambda f, w=w: keys.wallet_key(w, f))
        for w, p in ranked[:limit]
    ]


async def _rolling(kv: KVStore, limit: int, days: int, now: int, settings: Settings) -> list[LeaderboardEntry]:
    cutoff = now - days * DAY_MS
    ranked = await read_ranking(kv, keys.GLOBAL_RANKING, fetch_size(limit, settings))
    if not ranked:
        return []

    try:
        last_seen = await kv.mget([keys.wallet_key(w, "lastTs") for w, _ in ranked])
    except StoreUnavailable:
        logger.warning("leaderboard_last_ts_degraded")
        return []

    rows: list[LeaderboardEntry] = []
    for (wallet, points), raw in zip(ranked, last_seen):
        if len(rows) >= limit:
            break
        last_ts = _num(raw)
        if not last_ts or last_ts < cutoff:
            continue
        rows.append(await _hydrate(kv, wallet, points, lambda f, w=wallet: keys.wallet_key(w, f)))
    return rows


async def get_leaderboard(
    kv: KVStore, limit: int, days: int, now: int, settings: Settings,
) -> list[LeaderboardEntry]:
    """Ranked page for a window; length <= limit, points descending."""
    if limit <= 0:
        raise ValidationError("limit must be positive")
    if days < 0:
        raise ValidationError("days must not be negative")
    limit = min(limit, settings.leaderboard_max_limit)

    if days == ALLTIME:
        return await _alltime(kv, limit, settings)
    if days == WEEKLY:
        return await get_weekly_ranking(kv, get_week_id(now), limit, settings)
    return await _rolling(kv, limit, days, now, settings)


async def get_history(kv: KVStore, wallet: str, limit: int) -> list[dict[str, Any]]:
    """A wallet's resolved results, newest first. Undecodable entries are skipped."""
    w = normalize_wallet(wallet)
    try:
        rows = await kv.zrange(keys.history_key(w), -limit, -1)
    except StoreUnavailable:
        logger.warning("history_read_degraded", wallet=w)
        return []

    entries = []
    for member in reversed(rows):
        try:
            entries.append(json.loads(member))
        except json.JSONDecodeError:
            continue
    return entries


async def _read_stats(kv: KVStore, field_key: Callable[[str], str], with_rounds: bool) -> WalletStats:
    fields = ["points", "wins", "losses", "streak", "best"] + (["rounds", "lastTs"] if with_rounds else [])
    values = dict(zip(fields, await kv.mget([field_key(f) for f in fields])))
    return WalletStats(
        points=_num(values["points"]),
        wins=_num(values["wins"]),
        losses=_num(values["losses"]),
        streak=_num(values["streak"]),
        best=_num(values["best"]),
        rounds=_num(values.get("rounds")),
        last_ts=_num(values.get("lastTs")) or None,
    )


async def get_wallet_stats(kv: KVStore, wallet: str, now: int) -> dict[str, Any]:
    """All-time and current-week stats with 1-based ranks (0 when unranked)."""
    w = normalize_wallet(wallet)
    week_id = get_week_id(now)

    alltime = await _read_stats(kv, lambda f: keys.wallet_key(w, f), with_rounds=True)
    weekly = await _read_stats(kv, lambda f: keys.weekly_key(week_id, w, f), with_rounds=False)
    alltime_rank = await kv.zrevrank(keys.GLOBAL_RANKING, w)
    weekly_rank = await kv.zrevrank(keys.weekly_ranking(week_id), w)

    return {
        "wallet": w,
        "week_id": week_id,
        "alltime": {**asdict(alltime), "rank": 0 if alltime_rank is None else alltime_rank + 1},
        "weekly": {**asdict(weekly), "rank": 0 if weekly_rank is None else weekly_rank + 1},
    }
