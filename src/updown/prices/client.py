"""Spot price client for a CoinGecko-compatible ``/simple/price`` API.

The same quote is used for display at bet time and as the settlement
price when a round is resolved.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from updown.errors import PriceUnavailable

logger = structlog.get_logger()

USER_AGENT = "UpDownPredict/0.1"


@dataclass(frozen=True)
class SpotPrice:
    usd: float
    usd_24h_change: float = 0.0


class PriceFeed(Protocol):
    async def get_spot_prices(self, assets: Iterable[str]) -> dict[str, SpotPrice]: ...

    async def get_spot_price(self, asset: str) -> SpotPrice: ...


class CoinGeckoPriceFeed:
    """Fetch USD spot prices by asset symbol.

    Symbols map to feed ids through ``asset_ids`` (``{"BTC": "bitcoin"}``).
    A 429 response is retried once after a short jittered pause.
    """

    def __init__(
        self,
        base_url: str,
        asset_ids: Mapping[str, str],
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
        retry_delay_seconds: float = 0.7,
    ) -> None:
        self.asset_ids = {k.upper(): v for k, v in asset_ids.items()}
        self.retry_delay_seconds = retry_delay_seconds
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"accept": "application/json", "user-agent": USER_AGENT},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _fetch(self, ids: list[str]) -> dict:
        params = {"ids": ",".join(ids), "vs_currencies": "usd", "include_24hr_change": "true"}
        try:
            response = await self._client.get("/simple/price", params=params)
            if response.status_code == 429:
                await asyncio.sleep(self.retry_delay_seconds + random.random() * 0.3)  # noqa: S311
                response = await self._client.get("/simple/price", params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("price_fetch_failed", ids=ids, error=str(exc))
            raise PriceUnavailable(f"price feed error for {','.join(ids)}") from exc

    async def get_spot_prices(self, assets: Iterable[str]) -> dict[str, SpotPrice]:
        """Quotes for every known asset the feed answered for; unknown assets are omitted."""
        wanted = {a.upper(): self.asset_ids[a.upper()] for a in assets if a.upper() in self.asset_ids}
        if not wanted:
            return {}

        data = await self._fetch(sorted(set(wanted.values())))
        prices: dict[str, SpotPrice] = {}
        for symbol, feed_id in wanted.items():
            quote = data.get(feed_id) or {}
            usd = quote.get("usd")
            if not isinstance(usd, (int, float)) or usd <= 0:
                continue
            change = quote.get("usd_24h_change", quote.get("usd_24hr_change", 0.0))
            prices[symbol] = SpotPrice(usd=float(usd), usd_24h_change=float(change or 0.0))
        return prices

    async def get_spot_price(self, asset: str) -> SpotPrice:
        prices = await self.get_spot_prices([asset])
        if asset.upper() not in prices:
            raise PriceUnavailable(f"no price for {asset}")
        return prices[asset.upper()]
