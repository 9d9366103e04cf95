"""Request/response schemas for round timing, bets and settlement."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class TimeResponse(BaseModel):
    now: int
    round_id: int
    round_ms: int
    round_start: int
    round_end: int
    ms_remaining: int
    ms_elapsed: int
    bet_lock_ms: int
    betting_open: bool


class PlaceBetRequest(BaseModel):
    wallet: str = Field(..., min_length=3, max_length=64)
    asset: str = Field(..., min_length=1, max_length=16)
    side: str = Field(..., min_length=2, max_length=4)
    round_id: int | None = None
    price_at_bet: float | None = Field(
        None, gt=0, description="Client-seen spot; rejected when too far from the server price, which is recorded"
    )
    reason: str | None = Field(None, max_length=280)
    stake: dict[str, Any] | None = None


class BetResponse(BaseModel):
    wallet: str
    asset: str
    side: str
    round_id: int
    ts: int
    price_at_bet: float | None
    receipt_id: str | None = None
    receipt_url: str | None = None
    stake: dict[str, Any] | None = None


class OpenBetsResponse(BaseModel):
    wallet: str
    round_id: int | None
    bets: list[BetResponse]


class BetResultResponse(BaseModel):
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


class WriteFailureResponse(BaseModel):
    wallet: str
    asset: str
    op: str
    error: str


class ResolutionReportResponse(BaseModel):
    round_id: int
    complete: bool
    resolved: list[BetResultResponse]
    pending: list[BetResponse]
    skipped: list[BetResponse]
    expired: list[BetResponse]
    failures: list[WriteFailureResponse]
