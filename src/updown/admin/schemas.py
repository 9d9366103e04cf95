"""Request/response schemas for admin endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SnapshotWinner(BaseModel):
    wallet: str
    points: int
    wins: int
    losses: int
    streak: int
    best: int


class SnapshotResponse(BaseModel):
    week_id: str
    ts: int
    winners: list[SnapshotWinner]


class SnapshotRequest(BaseModel):
    week_id: str | None = Field(None, description="Friday date YYYY-MM-DD; defaults to the current week")


class SnapshotIndexEntry(BaseModel):
    week_id: str
    ts: int


class SnapshotListResponse(BaseModel):
    snapshots: list[SnapshotIndexEntry]


class LastTsUpdate(BaseModel):
    wallet: str
    last_ts: int


class BackfillRequest(BaseModel):
    updates: list[LastTsUpdate] | None = None
    default_days_ago: int | None = Field(None, ge=0)


class BackfillResponse(BaseModel):
    applied: int
    updates: list[LastTsUpdate]
