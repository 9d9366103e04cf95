"""Round settlement: fetch settlement prices and run the resolver.

Pending policy: a round whose bets could not be priced stays in the open
rounds index and is retried on every settlement pass with the live spot
price. Once a round is more than ``pending_max_age_rounds`` old its
remaining bets are expired unscored.
"""

from __future__ import annotations

import structlog

from updown.config import Settings
from updown.errors import PriceUnavailable, StoreUnavailable, ValidationError
from updown.kv import KVStore
from updown.prices.client import PriceFeed
from updown.rounds.clock import current_round, has_ended, round_for_id
from updown.rounds.ledger import open_bets_for_round, open_round_ids
from updown.scoring.resolver import ResolutionReport, resolve_bets

logger = structlog.get_logger()


async def fetch_settlement_prices(price_feed: PriceFeed, assets: set[str]) -> dict[str, float | None]:
    """Settlement price per asset; ``None`` for assets the feed could not price."""
    if not assets:
        return {}
    try:
        quotes = await price_feed.get_spot_prices(assets)
    except PriceUnavailable:
        logger.warning("settlement_prices_unavailable", assets=sorted(assets))
        quotes = {}
    return {asset: (quotes[asset].usd if asset in quotes else None) for asset in assets}


async def settle_round(
    kv: KVStore,
    settings: Settings,
    price_feed: PriceFeed,
    round_id: int,
    now: int,
) -> ResolutionReport:
    """Settle one ended round at the current spot price."""
    rnd = round_for_id(round_id, settings.round_duration_ms)
    if not has_ended(now, rnd):
        raise ValidationError(f"round {round_id} has not ended")

    bets = await open_bets_for_round(kv, round_id)
    prices = await fetch_settlement_prices(price_feed, {b.asset for b in bets})
    return await resolve_bets(kv, settings, round_id, bets, prices)


async def expire_round(kv: KVStore, settings: Settings, round_id: int) -> ResolutionReport:
    """Drop every remaining bet of a round without scoring it."""
    bets = await open_bets_for_round(kv, round_id)
    return await resolve_bets(kv, settings, round_id, bets, {}, expire_pending=True)


async def settle_due_rounds(
    kv: KVStore,
    settings: Settings,
    price_feed: PriceFeed,
    now: int,
) -> list[ResolutionReport]:
    """Settle every ended round that still holds open bets, oldest first."""
    current = current_round(now, settings.round_duration_ms).round_id
    horizon = current - settings.pending_max_age_rounds

    reports = []
    for round_id in await open_round_ids(kv, before_round=current):
        try:
            if round_id < horizon:
                report = await expire_round(kv, settings, round_id)
            else:
                report = await settle_round(kv, settings, price_feed, round_id, now)
        except StoreUnavailable as exc:
            # The round stays indexed and is retried on the next pass.
            logger.warning("round_settlement_failed", round_id=round_id, error=str(exc))
            continue
        reports.append(report)
    return reports
