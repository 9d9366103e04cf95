"""Admin API: snapshots, backfill and debug. Every route requires X-Admin-Token."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from updown.admin.schemas import (
    BackfillRequest,
    BackfillResponse,
    SnapshotListResponse,
    SnapshotRequest,
    SnapshotResponse,
)
from updown.admin.service import backfill_last_ts, debug_kv, get_snapshot, list_snapshots, snapshot_week
from updown.config import Settings, get_settings
from updown.dependencies import get_kv, get_now_ms, require_admin
from updown.kv import KVStore

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.post("/snapshots", response_model=SnapshotResponse)
async def create_snapshot(
    body: SnapshotRequest | None = None,
    kv: KVStore = Depends(get_kv),
    now: int = Depends(get_now_ms),
    settings: Settings = Depends(get_settings),
) -> SnapshotResponse:
    """Capture the top wallets of a week (current week by default)."""
    week_id = body.week_id if body else None
    return SnapshotResponse(**await snapshot_week(kv, settings, now, week_id))


@router.get("/snapshots", response_model=SnapshotListResponse)
async def snapshots(kv: KVStore = Depends(get_kv)) -> SnapshotListResponse:
    return SnapshotListResponse(snapshots=await list_snapshots(kv))


@router.get("/snapshots/{week_id}", response_model=SnapshotResponse)
async def snapshot_detail(week_id: str, kv: KVStore = Depends(get_kv)) -> SnapshotResponse:
    return SnapshotResponse(**await get_snapshot(kv, week_id))


@router.post("/backfill-last-ts", response_model=BackfillResponse)
async def backfill(
    body: BackfillRequest,
    kv: KVStore = Depends(get_kv),
    now: int = Depends(get_now_ms),
) -> BackfillResponse:
    """Fill missing last-activity timestamps, explicitly or with a uniform age."""
    updates = [u.model_dump() for u in body.updates] if body.updates else None
    applied = await backfill_last_ts(kv, now, updates=updates, default_days_ago=body.default_days_ago)
    return BackfillResponse(applied=len(applied), updates=applied)


@router.get("/debug-kv")
async def debug(kv: KVStore = Depends(get_kv), now: int = Depends(get_now_ms)) -> dict[str, Any]:
    """lastTs coverage of ranked wallets across 1/7/30-day windows."""
    return await debug_kv(kv, now)
