"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterable, Iterator

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from updown.config import Settings, get_settings
from updown.errors import PriceUnavailable
from updown.kv import KVStore
from updown.prices.client import SpotPrice

ADMIN_TOKEN = "test-admin-token"  # noqa: S105

# Thursday 2025-10-09 08:55:00 UTC, the start of round 5_866_667.
ROUND_MS = 5 * 60 * 1000
ROUND_ID = 5_866_667
ROUND_START = ROUND_ID * ROUND_MS

WALLET_A = "0x" + "a" * 40
WALLET_B = "0x" + "b" * 40
WALLET_C = "0x" + "c" * 40


class StubPriceFeed:
    """In-memory price feed. Set ``prices[asset] = None`` to simulate an outage for that asset."""

    def __init__(self, prices: dict[str, float | None] | None = None) -> None:
        self.prices: dict[str, float | None] = dict(prices or {"BTC": 100.0, "ETH": 2000.0, "SOL": 150.0})
        self.down = False
        self.calls = 0

    async def get_spot_prices(self, assets: Iterable[str]) -> dict[str, SpotPrice]:
        self.calls += 1
        if self.down:
            raise PriceUnavailable("feed down")
        return {a: SpotPrice(usd=p) for a in assets if (p := self.prices.get(a)) is not None}

    async def get_spot_price(self, asset: str) -> SpotPrice:
        prices = await self.get_spot_prices([asset])
        if asset not in prices:
            raise PriceUnavailable(f"no price for {asset}")
        return prices[asset]


class Clock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[Settings]:
    """Settings with a known admin token and a small rate limit."""
    monkeypatch.setenv("UPDOWN_ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.setenv("UPDOWN_RATE_LIMIT_REQUESTS", "30")
    monkeypatch.setenv("UPDOWN_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """In-memory Redis, flushed after use."""
    rc = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield rc
    await rc.flushall()
    await rc.aclose()


@pytest_asyncio.fixture
async def kv(redis_client: fakeredis.FakeAsyncRedis) -> KVStore:
    return KVStore(redis_client, timeout_seconds=1.0)


@pytest.fixture
def price_feed() -> StubPriceFeed:
    return StubPriceFeed()


@pytest.fixture
def clock() -> Clock:
    """Server clock pinned 10 seconds into the test round."""
    return Clock(ROUND_START + 10_000)


@pytest_asyncio.fixture
async def client(
    settings: Settings,
    redis_client: fakeredis.FakeAsyncRedis,
    price_feed: StubPriceFeed,
    clock: Clock,
    monkeypatch: pytest.MonkeyPatch,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client over the app with in-memory Redis and a stub price feed."""
    from updown import dependencies
    from updown.main import create_app

    monkeypatch.setattr("updown.redis_client._pool", redis_client)

    app = create_app()
    app.dependency_overrides[dependencies.get_now_ms] = clock
    app.dependency_overrides[dependencies.get_price_feed] = lambda: price_feed
    app.dependency_overrides[dependencies.get_receipt_service] = lambda: None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Token": ADMIN_TOKEN}
