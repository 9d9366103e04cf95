"""Result resolver: settle a round's open bets into wallet and weekly aggregates.

Resolution is idempotent. Before any delta is applied the resolver claims
``lb:resolved:{round}:{wallet}:{asset}`` with ``SET NX``; a bet whose
marker already exists was settled by an earlier or concurrent run and is
only cleared. A bet's aggregate writes (all-time and weekly) go out as one
``MULTI/EXEC`` transaction. A store failure on that transaction or on any
other write does not abort the round; it is collected in the
``ResolutionReport`` returned to the caller.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, TypeVar

import structlog

from updown import keys
from updown.config import Settings
from updown.errors import StoreUnavailable
from updown.kv import KVBatch, KVStore
from updown.leaderboard.week_utils import get_week_id
from updown.rounds.clock import round_for_id
from updown.rounds.ledger import Bet, clear_bet, close_round, open_bets_for_round
from updown.scoring.points import Outcome, StreakState, is_win, score_bet

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class BetResult:
    wallet: str
    asset: str
    side: str
    round_id: int
    win: bool
    delta: int
    weekly_delta: int
    streak: int
    best: int
    price_at_bet: float
    settlement_price: float
    points: int | None
    receipt_id: str | None = None


@dataclass
class WriteFailure:
    wallet: str
    asset: str
    op: str
    error: str


@dataclass
class ResolutionReport:
    round_id: int
    resolved: list[BetResult] = field(default_factory=list)
    pending: list[Bet] = field(default_factory=list)
    skipped: list[Bet] = field(default_factory=list)
    expired: list[Bet] = field(default_factory=list)
    failures: list[WriteFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.pending and not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "round_id": self.round_id,
            "complete": self.complete,
            "resolved": [asdict(r) for r in self.resolved],
            "pending": [asdict(b) for b in self.pending],
            "skipped": [asdict(b) for b in self.skipped],
            "expired": [asdict(b) for b in self.expired],
            "failures": [asdict(f) for f in self.failures],
        }


@dataclass
class _ScopeState:
    streak: StreakState
    last_ts: int | None = None


def _to_int(raw: str | None) -> int:
    try:
        return int(float(raw)) if raw is not None else 0
    except ValueError:
        return 0


async def _attempt(
    report: ResolutionReport, bet: Bet, op: str, awaitable: Awaitable[T],
) -> T | None:
    """Await one store write, recording a failure instead of raising."""
    try:
        return await awaitable
    except StoreUnavailable as exc:
        report.failures.append(WriteFailure(bet.wallet, bet.asset, op, str(exc)))
        return None


async def _load_alltime(kv: KVStore, wallet: str) -> _ScopeState:
    streak, best, last_ts = await kv.mget([
        keys.wallet_key(wallet, "streak"),
        keys.wallet_key(wallet, "best"),
        keys.wallet_key(wallet, "lastTs"),
    ])
    return _ScopeState(
        streak=StreakState(streak=_to_int(streak), best=_to_int(best)),
        last_ts=_to_int(last_ts) or None,
    )


async def _load_weekly(kv: KVStore, week_id: str, wallet: str) -> _ScopeState:
    streak, best = await kv.mget([
        keys.weekly_key(week_id, wallet, "streak"),
        keys.weekly_key(week_id, wallet, "best"),
    ])
    return _ScopeState(streak=StreakState(streak=_to_int(streak), best=_to_int(best)))


def _queue_alltime(
    batch: KVBatch,
    settings: Settings,
    bet: Bet,
    outcome: Outcome,
    state: _ScopeState,
    settlement_price: float,
    event_ts: int,
) -> int:
    """Queue the all-time writes for one bet; returns the batch index of the points counter."""
    w = bet.wallet
    ttl = settings.stats_ttl_seconds

    points_index = len(batch)
    batch.incr_by(keys.wallet_key(w, "points"), outcome.delta)
    batch.incr_by(keys.wallet_key(w, "wins" if outcome.win else "losses"), 1)
    batch.incr_by(keys.wallet_key(w, "rounds"), 1)
    batch.set(keys.wallet_key(w, "streak"), str(outcome.streak), ttl)
    batch.set(keys.wallet_key(w, "best"), str(outcome.best), ttl)

    if state.last_ts is None or event_ts > state.last_ts:
        state.last_ts = event_ts
        batch.set(keys.wallet_key(w, "lastTs"), str(event_ts))
        batch.set(keys.wallet_key(w, "last"), {"ts": event_ts}, ttl)

    record = {
        "roundId": bet.round_id,
        "asset": bet.asset,
        "side": bet.side,
        "win": outcome.win,
        "delta": outcome.delta,
        "streak": outcome.streak,
        "priceAtBet": bet.price_at_bet,
        "settlementPrice": settlement_price,
        "ts": event_ts,
        "receiptId": bet.receipt_id,
    }
    batch.set(keys.wallet_key(w, "lastRec"), record, ttl)

    history = keys.history_key(w)
    member = json.dumps(record, separators=(",", ":"), sort_keys=True)
    batch.zadd(history, {member: event_ts})
    batch.zremrangebyrank(history, 0, -(settings.history_max_entries + 1))

    # Same transaction as the counter, so the ranked score tracks lb:{w}:points.
    batch.zincrby(keys.GLOBAL_RANKING, outcome.delta, w)
    return points_index


def _queue_weekly(batch: KVBatch, settings: Settings, bet: Bet, outcome: Outcome, week_id: str) -> None:
    w = bet.wallet
    ttl = settings.stats_ttl_seconds

    batch.incr_by(keys.weekly_key(week_id, w, "points"), outcome.delta)
    batch.incr_by(keys.weekly_key(week_id, w, "wins" if outcome.win else "losses"), 1)
    batch.set(keys.weekly_key(week_id, w, "streak"), str(outcome.streak), ttl)
    batch.set(keys.weekly_key(week_id, w, "best"), str(outcome.best), ttl)
    batch.zincrby(keys.weekly_ranking(week_id), outcome.delta, w)


async def _resolve_wallet(
    kv: KVStore,
    settings: Settings,
    report: ResolutionReport,
    wallet_bets: list[Bet],
    prices: Mapping[str, float | None],
    event_ts: int,
    expire_pending: bool,
) -> None:
    wallet = wallet_bets[0].wallet
    week_id = get_week_id(event_ts)

    try:
        alltime = await _load_alltime(kv, wallet)
        weekly = await _load_weekly(kv, week_id, wallet)
    except StoreUnavailable as exc:
        # Without the prior streak a delta would be wrong; leave the bets open for retry.
        for bet in wallet_bets:
            report.failures.append(WriteFailure(wallet, bet.asset, "load_state", str(exc)))
        return

    day_count = 0
    for bet in wallet_bets:
        settlement_price = prices.get(bet.asset)
        if settlement_price is None or bet.price_at_bet is None:
            if expire_pending:
                await _attempt(report, bet, "clear_bet", clear_bet(kv, bet))
                report.expired.append(bet)
            else:
                report.pending.append(bet)
            continue

        marker = keys.resolved_marker(bet.round_id, wallet, bet.asset)
        try:
            claimed = await kv.set(marker, str(event_ts), settings.resolved_marker_ttl_seconds, nx=True)
        except StoreUnavailable as exc:
            report.failures.append(WriteFailure(wallet, bet.asset, "claim", str(exc)))
            continue
        if not claimed:
            await _attempt(report, bet, "clear_bet", clear_bet(kv, bet))
            report.skipped.append(bet)
            continue

        day_count += 1
        win = is_win(bet.side, bet.price_at_bet, settlement_price)
        outcome = score_bet(win, alltime.streak, day_count)
        weekly_outcome = score_bet(win, weekly.streak, day_count)

        batch = kv.pipeline()
        points_index = _queue_alltime(batch, settings, bet, outcome, alltime, settlement_price, event_ts)
        _queue_weekly(batch, settings, bet, weekly_outcome, week_id)
        results = await _attempt(report, bet, "apply_scores", batch.execute())
        points = int(results[points_index]) if results else None
        await _attempt(report, bet, "clear_bet", clear_bet(kv, bet))

        report.resolved.append(BetResult(
            wallet=wallet,
            asset=bet.asset,
            side=bet.side,
            round_id=bet.round_id,
            win=win,
            delta=outcome.delta,
            weekly_delta=weekly_outcome.delta,
            streak=outcome.streak,
            best=outcome.best,
            price_at_bet=bet.price_at_bet,
            settlement_price=settlement_price,
            points=points,
            receipt_id=bet.receipt_id,
        ))


async def resolve_bets(
    kv: KVStore,
    settings: Settings,
    round_id: int,
    bets: list[Bet],
    prices: Mapping[str, float | None],
    expire_pending: bool = False,
) -> ResolutionReport:
    """Settle ``bets`` of one round against ``prices`` (asset -> settlement price).

    Bets whose asset has no price stay open and are reported as pending,
    unless ``expire_pending`` is set, in which case they are dropped unscored.
    """
    report = ResolutionReport(round_id=round_id)
    event_ts = round_for_id(round_id, settings.round_duration_ms).end_ts

    by_wallet: dict[str, list[Bet]] = {}
    for bet in sorted(bets, key=lambda b: b.ts):
        by_wallet.setdefault(bet.wallet, []).append(bet)

    for wallet_bets in by_wallet.values():
        await _resolve_wallet(kv, settings, report, wallet_bets, prices, event_ts, expire_pending)

    still_open = report.pending or any(f.op in ("claim", "load_state") for f in report.failures)
    if not still_open:
        try:
            await close_round(kv, round_id)
        except StoreUnavailable as exc:
            logger.warning("close_round_failed", round_id=round_id, error=str(exc))

    logger.info(
        "round_resolved",
        round_id=round_id,
        resolved=len(report.resolved),
        pending=len(report.pending),
        skipped=len(report.skipped),
        expired=len(report.expired),
        failures=len(report.failures),
    )
    return report


async def resolve_round(
    kv: KVStore,
    settings: Settings,
    round_id: int,
    prices: Mapping[str, float | None],
    expire_pending: bool = False,
) -> ResolutionReport:
    """Load a round's open bets and settle them."""
    bets = await open_bets_for_round(kv, round_id)
    return await resolve_bets(kv, settings, round_id, bets, prices, expire_pending)
