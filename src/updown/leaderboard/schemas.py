"""Pydantic response models for leaderboard endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class LeaderboardEntryResponse(BaseModel):
    rank: int
    wallet: str
    points: int
    wins: int
    losses: int
    streak: int
    best: int


class LeaderboardResponse(BaseModel):
    days: int
    limit: int
    rows: list[LeaderboardEntryResponse]


class HistoryResponse(BaseModel):
    wallet: str
    entries: list[dict[str, Any]]


class ScopeStatsResponse(BaseModel):
    points: int
    wins: int
    losses: int
    rounds: int
    streak: int
    best: int
    last_ts: int | None
    rank: int


class WalletStatsResponse(BaseModel):
    wallet: str
    week_id: str
    alltime: ScopeStatsResponse
    weekly: ScopeStatsResponse
