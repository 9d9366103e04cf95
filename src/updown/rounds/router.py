"""Round API: time sync, bet placement and round settlement."""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends, Query

from updown.config import Settings, get_settings
from updown.dependencies import get_kv, get_now_ms, get_price_feed, get_receipt_service
from updown.kv import KVStore
from updown.prices.client import PriceFeed
from updown.receipts.client import ReceiptService
from updown.rounds.clock import current_round, time_info
from updown.rounds.ledger import (
    Bet,
    attach_receipt,
    check_quoted_price,
    normalize_asset,
    open_bets_for_wallet,
    place_bet,
)
from updown.rounds.schemas import (
    BetResponse,
    OpenBetsResponse,
    PlaceBetRequest,
    ResolutionReportResponse,
    TimeResponse,
)
from updown.scoring.settlement import settle_round

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Rounds"])


def _bet_response(bet: Bet, receipts: ReceiptService | None = None) -> BetResponse:
    data = asdict(bet)
    if receipts and bet.receipt_id:
        data["receipt_url"] = receipts.gateway_link(bet.receipt_id)
    return BetResponse(**data)


@router.get("/time", response_model=TimeResponse)
async def get_time(
    now: int = Depends(get_now_ms),
    settings: Settings = Depends(get_settings),
) -> TimeResponse:
    """Server clock and current round, for client offset sync."""
    return TimeResponse(**time_info(now, settings.round_duration_ms, settings.bet_lock_ms))


@router.post("/bets", response_model=BetResponse, status_code=201)
async def create_bet(
    body: PlaceBetRequest,
    kv: KVStore = Depends(get_kv),
    now: int = Depends(get_now_ms),
    settings: Settings = Depends(get_settings),
    price_feed: PriceFeed = Depends(get_price_feed),
    receipts: ReceiptService | None = Depends(get_receipt_service),
) -> BetResponse:
    """Place a bet on the open round. One bet per wallet, asset and round."""
    round_id = body.round_id
    if round_id is None:
        round_id = current_round(now, settings.round_duration_ms).round_id

    asset = normalize_asset(body.asset, settings)
    spot = (await price_feed.get_spot_price(asset)).usd
    price = check_quoted_price(body.price_at_bet, spot, settings.bet_price_tolerance)

    bet = await place_bet(
        kv,
        settings,
        wallet=body.wallet,
        asset=body.asset,
        side=body.side,
        round_id=round_id,
        price_at_bet=price,
        now=now,
        stake=body.stake,
    )

    if receipts:
        payload = {
            "type": "prediction",
            "wallet": bet.wallet,
            "asset": bet.asset,
            "side": bet.side,
            "reason": body.reason or "",
            "round_id": bet.round_id,
            "ts": bet.ts,
            "price_at_bet": bet.price_at_bet,
        }
        tags = {
            "type": "prediction",
            "asset": bet.asset,
            "side": bet.side,
            "round-id": str(bet.round_id),
            "wallet": bet.wallet,
            "timestamp": str(bet.ts),
        }
        receipt_id = await receipts.upload(payload, tags)
        if receipt_id:
            bet = await attach_receipt(kv, bet, receipt_id, settings)

    return _bet_response(bet, receipts)


@router.get("/bets", response_model=OpenBetsResponse)
async def list_open_bets(
    wallet: str = Query(..., min_length=3),
    round_id: int | None = Query(None, description="Defaults to the current round"),
    all_rounds: bool = Query(False, description="Include unsettled bets from earlier rounds"),
    kv: KVStore = Depends(get_kv),
    now: int = Depends(get_now_ms),
    settings: Settings = Depends(get_settings),
    receipts: ReceiptService | None = Depends(get_receipt_service),
) -> OpenBetsResponse:
    """A wallet's open bets."""
    if all_rounds:
        round_id = None
    elif round_id is None:
        round_id = current_round(now, settings.round_duration_ms).round_id

    bets = await open_bets_for_wallet(kv, wallet, round_id)
    return OpenBetsResponse(
        wallet=wallet.lower(),
        round_id=round_id,
        bets=[_bet_response(b, receipts) for b in bets],
    )


@router.post("/rounds/{round_id}/resolve", response_model=ResolutionReportResponse)
async def resolve(
    round_id: int,
    kv: KVStore = Depends(get_kv),
    now: int = Depends(get_now_ms),
    settings: Settings = Depends(get_settings),
    price_feed: PriceFeed = Depends(get_price_feed),
) -> ResolutionReportResponse:
    """Settle an ended round at the live spot price. Safe to call repeatedly."""
    report = await settle_round(kv, settings, price_feed, round_id, now)
    return ResolutionReportResponse(**report.to_dict())
