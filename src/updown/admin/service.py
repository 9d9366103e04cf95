"""Admin maintenance: weekly snapshots, lastTs backfill and a KV debug view."""

from __future__ import annotations

import secrets
from dataclasses import asdict
from typing import Any

import structlog

from updown import keys
from updown.config import Settings
from updown.errors import NotFound, Unauthorized, ValidationError
from updown.kv import KVStore
from updown.leaderboard.service import get_weekly_ranking
from updown.leaderboard.week_utils import DAY_MS, get_week_id, parse_week_id
from updown.rounds.ledger import normalize_wallet

logger = structlog.get_logger()

DEBUG_SAMPLE_SIZE = 200
DEBUG_WINDOWS_DAYS = (1, 7, 30)


def check_admin_token(provided: str | None, expected: str) -> None:
    """Constant-time token check. An unset server secret rejects every caller."""
    if not expected or not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise Unauthorized("unauthorized")


async def snapshot_week(
    kv: KVStore, settings: Settings, now: int, week_id: str | None = None,
) -> dict[str, Any]:
    """Persist the top-N of a week's ranking; re-running overwrites that week's record."""
    if week_id is None:
        week_id = get_week_id(now)
    else:
        try:
            parse_week_id(week_id)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    winners = await get_weekly_ranking(kv, week_id, settings.snapshot_top_n, settings)
    snapshot = {"week_id": week_id, "ts": now, "winners": [asdict(w) for w in winners]}

    await kv.set(keys.snapshot_key(week_id), snapshot)
    await kv.zadd(keys.SNAPSHOT_INDEX, {week_id: now})
    logger.info("week_snapshot_saved", week_id=week_id, winners=len(winners))
    return snapshot


async def list_snapshots(kv: KVStore) -> list[dict[str, Any]]:
    """Snapshot index, newest first."""
    rows = await kv.zrange_withscores(keys.SNAPSHOT_INDEX, 0, -1)
    return [{"week_id": week_id, "ts": int(ts)} for week_id, ts in reversed(rows)]


async def get_snapshot(kv: KVStore, week_id: str) -> dict[str, Any]:
    snapshot = await kv.get_json(keys.snapshot_key(week_id))
    if not snapshot:
        raise NotFound(f"no snapshot for week {week_id}")
    return snapshot


async def _ranked_members(kv: KVStore) -> list[tuple[str, float]]:
    return await kv.zrange_withscores(keys.GLOBAL_RANKING, 0, -1)


async def backfill_last_ts(
    kv: KVStore,
    now: int,
    updates: list[dict[str, Any]] | None = None,
    default_days_ago: int | None = None,
) -> list[dict[str, Any]]:
    """Write missing last-activity timestamps.

    Explicit ``updates`` (``[{"wallet", "last_ts"}]``) are applied as given;
    otherwise every ranked wallet without a ``lastTs`` gets
    ``now - default_days_ago`` days.
    """
    applied: list[dict[str, Any]] = []

    if updates:
        for update in updates:
            try:
                wallet = normalize_wallet(update.get("wallet"))
            except ValidationError:
                continue
            last_ts = update.get("last_ts")
            if not isinstance(last_ts, int) or last_ts <= 0:
                continue
            await kv.set(keys.wallet_key(wallet, "lastTs"), str(last_ts))
            applied.append({"wallet": wallet, "last_ts": last_ts})
    elif default_days_ago is not None:
        ts = now - max(0, int(default_days_ago)) * DAY_MS
        members = [m.lower() for m, _ in await _ranked_members(kv) if m]
        existing = await kv.mget([keys.wallet_key(m, "lastTs") for m in members])
        for wallet, value in zip(members, existing):
            if value:
                continue
            await kv.set(keys.wallet_key(wallet, "lastTs"), str(ts))
            applied.append({"wallet": wallet, "last_ts": ts})
    else:
        raise ValidationError("nothing to do; provide updates or default_days_ago")

    logger.info("last_ts_backfilled", applied=len(applied))
    return applied


async def debug_kv(kv: KVStore, now: int) -> dict[str, Any]:
    """Sample ranked wallets and report lastTs presence per rolling window."""
    members = [(m.lower(), int(s)) for m, s in await _ranked_members(kv) if m]
    sample = members[:DEBUG_SAMPLE_SIZE]
    cutoffs = {str(d): now - d * DAY_MS for d in DEBUG_WINDOWS_DAYS}

    raw_values = await kv.mget([keys.wallet_key(w, "lastTs") for w, _ in sample])
    checks = []
    for (wallet, score), raw in zip(sample, raw_values):
        try:
            last_ts = int(raw) if raw is not None else None
        except ValueError:
            last_ts = None
        checks.append({
            "wallet": wallet,
            "score": score,
            "last_ts": last_ts,
            "included": {d: last_ts is not None and last_ts >= c for d, c in cutoffs.items()},
        })

    return {
        "now": now,
        "cutoffs": cutoffs,
        "members_count": len(members),
        "sample_count": len(checks),
        "missing_in_sample": sum(1 for c in checks if c["last_ts"] is None),
        "sample": checks,
    }
