"""Shared FastAPI dependencies and outbound client lifecycle."""

from __future__ import annotations

from fastapi import Depends, Header

from updown.admin.service import check_admin_token
from updown.config import Settings, get_settings
from updown.prices.client import CoinGeckoPriceFeed, PriceFeed
from updown.receipts.client import ReceiptService
from updown.redis_client import get_kv as _get_kv
from updown.rounds.clock import now_ms

get_kv = _get_kv

_price_feed: CoinGeckoPriceFeed | None = None
_receipts: ReceiptService | None = None


async def init_clients(settings: Settings) -> None:
    """Create the price feed and (when configured) receipt clients."""
    global _price_feed, _receipts  # noqa: PLW0603
    _price_feed = CoinGeckoPriceFeed(
        settings.price_feed_url,
        settings.asset_ids,
        timeout_seconds=settings.price_feed_timeout_seconds,
    )
    if settings.receipt_gateway_url:
        _receipts = ReceiptService(
            settings.receipt_gateway_url,
            settings.receipt_app_tag,
            timeout_seconds=settings.receipt_timeout_seconds,
        )


async def close_clients() -> None:
    global _price_feed, _receipts  # noqa: PLW0603
    if _price_feed:
        await _price_feed.aclose()
        _price_feed = None
    if _receipts:
        await _receipts.aclose()
        _receipts = None


def get_price_feed() -> PriceFeed:
    if _price_feed is None:
        msg = "Price feed not initialized. Call init_clients() first."
        raise RuntimeError(msg)
    return _price_feed


def get_receipt_service() -> ReceiptService | None:
    """Receipt uploader, or None when no gateway is configured."""
    return _receipts


def get_now_ms() -> int:
    """Server clock in epoch milliseconds (overridable in tests)."""
    return now_ms()


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> None:
    """Reject the request unless X-Admin-Token matches the server secret."""
    check_admin_token(x_admin_token, settings.admin_token)
