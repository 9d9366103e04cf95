"""Bet ledger: one open bet per (wallet, asset, round).

Uniqueness is enforced with a conditional write (``SET NX``) on the bet
key, so two concurrent placements for the same triple cannot both win.
Bets are indexed by round (placement order) for settlement and by wallet
for display.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog

from updown import keys
from updown.config import Settings
from updown.errors import BettingClosedError, DuplicateBetError, StoreUnavailable, ValidationError
from updown.kv import KVStore
from updown.rounds.clock import current_round, is_betting_locked

logger = structlog.get_logger()

SIDES = ("UP", "DOWN")
_WALLET_RE = re.compile(r"^0x[0-9a-f]+$")


@dataclass
class Bet:
    wallet: str
    asset: str
    side: str
    round_id: int
    ts: int
    price_at_bet: float | None
    receipt_id: str | None = None
    stake: dict[str, Any] | None = field(default=None)

    @property
    def key(self) -> str:
        return keys.bet_key(self.round_id, self.wallet, self.asset)

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> Bet:
        data = json.loads(raw)
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__})


def normalize_wallet(wallet: str | None) -> str:
    """Lowercase and validate a 0x-prefixed hex address."""
    w = (wallet or "").strip().lower()
    if not _WALLET_RE.match(w):
        raise ValidationError("wallet must be a 0x-prefixed hex address")
    return w


def normalize_asset(asset: str | None, settings: Settings) -> str:
    a = (asset or "").strip().upper()
    if not a:
        raise ValidationError("asset is required")
    if a not in settings.asset_ids:
        raise ValidationError(f"unsupported asset {a}")
    return a


def normalize_side(side: str | None) -> str:
    s = (side or "").strip().upper()
    if s not in SIDES:
        raise ValidationError("side must be UP or DOWN")
    return s


def check_quoted_price(quoted: float | None, spot: float, tolerance: float) -> float:
    """Entry price for a new bet: always the server spot.

    A client-quoted price is only a staleness check; one further than
    ``tolerance`` (relative) from spot is rejected.
    """
    if spot <= 0:
        raise ValidationError("spot price must be positive")
    if quoted is not None and abs(quoted - spot) > spot * tolerance:
        raise ValidationError(f"quoted price {quoted} is too far from spot {spot}")
    return spot


async def place_bet(
    kv: KVStore,
    settings: Settings,
    *,
    wallet: str,
    asset: str,
    side: str,
    round_id: int,
    price_at_bet: float | None,
    now: int,
    receipt_id: str | None = None,
    stake: dict[str, Any] | None = None,
) -> Bet:
    """Record a wager for the open round.

    Raises BettingClosedError when ``round_id`` is not the current round or
    the lock window has started, DuplicateBetError when the triple exists.
    """
    bet = Bet(
        wallet=normalize_wallet(wallet),
        asset=normalize_asset(asset, settings),
        side=normalize_side(side),
        round_id=round_id,
        ts=now,
        price_at_bet=price_at_bet,
        receipt_id=receipt_id,
        stake=stake,
    )
    if price_at_bet is not None and price_at_bet <= 0:
        raise ValidationError("price_at_bet must be positive")

    rnd = current_round(now, settings.round_duration_ms)
    if round_id != rnd.round_id:
        raise BettingClosedError(f"round {round_id} is not open (current round {rnd.round_id})")
    if is_betting_locked(now, rnd, settings.bet_lock_ms):
        raise BettingClosedError("betting is closed for this round")

    created = await kv.set(bet.key, bet.to_json(), ttl_seconds=settings.bet_ttl_seconds, nx=True)
    if not created:
        raise DuplicateBetError(f"bet already placed on {bet.asset} for round {round_id}")

    try:
        await _index_bet(kv, bet, settings)
    except StoreUnavailable:
        # Unindexed bets would never settle; drop the claim so the caller can retry.
        await kv.delete(bet.key)
        raise

    logger.info("bet_placed", wallet=bet.wallet, asset=bet.asset, side=bet.side, round_id=round_id)
    return bet


async def _index_bet(kv: KVStore, bet: Bet, settings: Settings) -> None:
    round_index = keys.round_bets(bet.round_id)
    await kv.zadd(round_index, {f"{bet.wallet}:{bet.asset}": bet.ts})
    await kv.expire(round_index, settings.bet_ttl_seconds)
    await kv.zadd(keys.wallet_bets(bet.wallet), {f"{bet.round_id}:{bet.asset}": bet.round_id})
    await kv.expire(keys.wallet_bets(bet.wallet), settings.bet_ttl_seconds)
    await kv.zadd(keys.OPEN_ROUNDS, {str(bet.round_id): bet.round_id})


async def attach_receipt(kv: KVStore, bet: Bet, receipt_id: str, settings: Settings) -> Bet:
    """Store the audit-trail receipt id on an open bet."""
    bet.receipt_id = receipt_id
    await kv.set(bet.key, bet.to_json(), ttl_seconds=settings.bet_ttl_seconds)
    return bet


async def _load_bets(kv: KVStore, bet_keys: list[str]) -> list[Bet | None]:
    bets: list[Bet | None] = []
    for raw in await kv.mget(bet_keys):
        if raw is None:
            bets.append(None)
            continue
        try:
            bets.append(Bet.from_json(raw))
        except (json.JSONDecodeError, TypeError):
            logger.warning("bet_decode_failed")
            bets.append(None)
    return bets


async def open_bets_for_round(kv: KVStore, round_id: int) -> list[Bet]:
    """Open bets of a round in placement order. Expired index entries are pruned."""
    index = keys.round_bets(round_id)
    members = await kv.zrange(index, 0, -1)
    bet_keys = []
    for member in members:
        wallet, _, asset = member.rpartition(":")
        bet_keys.append(keys.bet_key(round_id, wallet, asset))

    bets = await _load_bets(kv, bet_keys)
    stale = [m for m, b in zip(members, bets) if b is None]
    if stale:
        await kv.zrem(index, *stale)
    return [b for b in bets if b is not None]


async def open_bets_for_wallet(kv: KVStore, wallet: str, round_id: int | None = None) -> list[Bet]:
    """A wallet's open bets, optionally limited to one round, oldest round first."""
    w = normalize_wallet(wallet)
    index = keys.wallet_bets(w)
    if round_id is None:
        members = await kv.zrange(index, 0, -1)
    else:
        members = await kv.zrangebyscore(index, round_id, round_id)

    bet_keys = []
    for member in members:
        rid, _, asset = member.partition(":")
        bet_keys.append(keys.bet_key(int(rid), w, asset))

    bets = await _load_bets(kv, bet_keys)
    stale = [m for m, b in zip(members, bets) if b is None]
    if stale:
        await kv.zrem(index, *stale)
    return [b for b in bets if b is not None]


async def clear_bet(kv: KVStore, bet: Bet) -> None:
    """Remove a settled (or expired) bet and its index entries."""
    await kv.delete(bet.key)
    await kv.zrem(keys.round_bets(bet.round_id), f"{bet.wallet}:{bet.asset}")
    await kv.zrem(keys.wallet_bets(bet.wallet), f"{bet.round_id}:{bet.asset}")


async def open_round_ids(kv: KVStore, before_round: int | None = None) -> list[int]:
    """Round ids that still hold open bets, ascending."""
    upper: int | str = "+inf" if before_round is None else before_round - 1
    return [int(m) for m in await kv.zrangebyscore(keys.OPEN_ROUNDS, "-inf", upper)]


async def close_round(kv: KVStore, round_id: int) -> None:
    await kv.zrem(keys.OPEN_ROUNDS, str(round_id))
