"""Leaderboard API: ranked pages, wallet history and wallet stats."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from updown.config import Settings, get_settings
from updown.dependencies import get_kv, get_now_ms
from updown.kv import KVStore
from updown.leaderboard.schemas import (
    HistoryResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    WalletStatsResponse,
)
from updown.leaderboard.service import get_history, get_leaderboard, get_wallet_stats

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int = Query(100, ge=1, le=200),
    days: int = Query(7, ge=0, description="0 = all-time, 7 = current week, other = rolling window"),
    kv: KVStore = Depends(get_kv),
    now: int = Depends(get_now_ms),
    settings: Settings = Depends(get_settings),
) -> LeaderboardResponse:
    """Ranked wallets by points for the requested window."""
    entries = await get_leaderboard(kv, limit, days, now, settings)
    return LeaderboardResponse(
        days=days,
        limit=limit,
        rows=[LeaderboardEntryResponse(rank=i + 1, **asdict(e)) for i, e in enumerate(entries)],
    )


@router.get("/history", response_model=HistoryResponse)
async def history(
    wallet: str = Query(..., min_length=3),
    limit: int = Query(50, ge=1, le=200),
    kv: KVStore = Depends(get_kv),
) -> HistoryResponse:
    """A wallet's resolved bets, newest first."""
    entries = await get_history(kv, wallet, limit)
    return HistoryResponse(wallet=wallet.lower(), entries=entries)


@router.get("/wallets/{wallet}/stats", response_model=WalletStatsResponse)
async def wallet_stats(
    wallet: str,
    kv: KVStore = Depends(get_kv),
    now: int = Depends(get_now_ms),
) -> WalletStatsResponse:
    """All-time and current-week counters for one wallet."""
    return WalletStatsResponse(**await get_wallet_stats(kv, wallet, now))
