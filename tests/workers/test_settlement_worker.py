"""Tests for the arq settlement and weekly snapshot jobs."""

from __future__ import annotations

import pytest
from conftest import ROUND_ID, ROUND_MS, ROUND_START, WALLET_A, StubPriceFeed

from updown import keys
from updown.kv import KVStore
from updown.leaderboard.week_utils import DAY_MS, get_previous_week_id
from updown.rounds.ledger import open_round_ids, place_bet
from updown.workers import settlement
from updown.workers.settings import WorkerSettings

pytestmark = pytest.mark.asyncio


@pytest.fixture
def ctx(kv: KVStore, settings) -> dict:
    return {"kv": kv, "settings": settings, "price_feed": StubPriceFeed({"BTC": 101.0})}


class TestSettleRoundsJob:
    async def test_settles_ended_round(self, ctx, kv: KVStore, settings, monkeypatch):
        await place_bet(
            kv, settings,
            wallet=WALLET_A, asset="BTC", side="UP", round_id=ROUND_ID, price_at_bet=100.0, now=ROUND_START + 1000,
        )
        monkeypatch.setattr(settlement, "now_ms", lambda: ROUND_START + ROUND_MS + 5000)

        assert await settlement.settle_rounds(ctx) == 1
        assert await open_round_ids(kv) == []
        assert await kv.get(keys.wallet_key(WALLET_A, "points")) == "12"

    async def test_idle_pass(self, ctx, monkeypatch):
        monkeypatch.setattr(settlement, "now_ms", lambda: ROUND_START)
        assert await settlement.settle_rounds(ctx) == 0


class TestWeeklySnapshotJob:
    async def test_snapshots_previous_week(self, ctx, kv: KVStore, monkeypatch):
        now = ROUND_START + 7 * DAY_MS
        week_id = get_previous_week_id(now)
        await kv.zadd(keys.weekly_ranking(week_id), {WALLET_A: 40})
        monkeypatch.setattr(settlement, "now_ms", lambda: now)

        assert await settlement.weekly_snapshot(ctx) == week_id
        snapshot = await kv.get_json(keys.snapshot_key(week_id))
        assert snapshot["winners"][0]["wallet"] == WALLET_A


class TestWorkerSettings:
    async def test_cron_jobs_registered(self):
        jobs = {job.coroutine for job in WorkerSettings.cron_jobs}
        assert jobs == {settlement.settle_rounds, settlement.weekly_snapshot}
