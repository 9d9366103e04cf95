"""Unit tests for the spot price client, with httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from updown.errors import PriceUnavailable
from updown.prices.client import CoinGeckoPriceFeed

pytestmark = pytest.mark.asyncio

ASSET_IDS = {"BTC": "bitcoin", "ETH": "ethereum"}


def _feed(handler) -> CoinGeckoPriceFeed:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://feed.test")
    return CoinGeckoPriceFeed("https://feed.test", ASSET_IDS, client=client, retry_delay_seconds=0)


class TestSpotPrices:
    async def test_maps_symbols_to_feed_ids(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json={
                "bitcoin": {"usd": 65000.5, "usd_24h_change": -1.2},
                "ethereum": {"usd": 2500},
            })

        feed = _feed(handler)
        prices = await feed.get_spot_prices(["btc", "ETH"])
        await feed.aclose()

        assert seen["ids"] == "bitcoin,ethereum"
        assert seen["vs_currencies"] == "usd"
        assert prices["BTC"].usd == 65000.5
        assert prices["BTC"].usd_24h_change == -1.2
        assert prices["ETH"].usd == 2500.0

    async def test_unknown_asset_skips_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert await _feed(handler).get_spot_prices(["DOGE"]) == {}

    async def test_missing_quote_omitted(self):
        feed = _feed(lambda request: httpx.Response(200, json={"bitcoin": {"usd": 0}}))
        assert await feed.get_spot_prices(["BTC"]) == {}
        with pytest.raises(PriceUnavailable):
            await feed.get_spot_price("BTC")

    async def test_retries_once_on_429(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429)
            return httpx.Response(200, json={"bitcoin": {"usd": 1.0}})

        price = await _feed(handler).get_spot_price("BTC")
        assert price.usd == 1.0
        assert len(calls) == 2

    async def test_server_error_is_unavailable(self):
        feed = _feed(lambda request: httpx.Response(502))
        with pytest.raises(PriceUnavailable):
            await feed.get_spot_prices(["BTC"])

    async def test_bad_json_is_unavailable(self):
        feed = _feed(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(PriceUnavailable):
            await feed.get_spot_prices(["BTC"])
