"""Unit tests for receipt uploads."""

from __future__ import annotations

import json

import httpx
import pytest

from updown.receipts.client import ReceiptService

pytestmark = pytest.mark.asyncio


def _service(handler) -> ReceiptService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://gw.test/")
    return ReceiptService("https://gw.test", "updown-test", client=client)


class TestReceiptService:
    async def test_upload_returns_id(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "abc123"})

        service = _service(handler)
        receipt_id = await service.upload({"side": "UP"}, {"asset": "BTC"})

        assert receipt_id == "abc123"
        [body] = bodies
        assert body["data"] == {"side": "UP"}
        assert {"name": "app", "value": "updown-test"} in body["tags"]
        assert {"name": "asset", "value": "BTC"} in body["tags"]

    async def test_gateway_failure_returns_none(self):
        service = _service(lambda request: httpx.Response(500))
        assert await service.upload({}, {}) is None

    async def test_missing_id_returns_none(self):
        service = _service(lambda request: httpx.Response(200, json={}))
        assert await service.upload({}, {}) is None

    async def test_gateway_link(self):
        service = _service(lambda request: httpx.Response(200))
        assert service.gateway_link("abc123") == "https://gw.test/abc123"
