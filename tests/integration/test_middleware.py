"""Middleware tests: request id, rate limiting, CORS, error handling."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

pytestmark = pytest.mark.asyncio


async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36  # UUID format


async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


async def test_rate_limit_headers(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.headers["x-ratelimit-limit"] == "30"
    assert response.headers["x-ratelimit-remaining"] == "29"


async def test_rate_limit_blocks_excess(client: AsyncClient) -> None:
    """31st request in the window returns 429 with Retry-After."""
    for _ in range(30):
        await client.get("/version")
    response = await client.get("/version")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert response.json()["code"] == "rate_limited"


async def test_time_sync_exempt_from_rate_limit(client: AsyncClient) -> None:
    for _ in range(40):
        response = await client.get("/api/v1/time")
        assert response.status_code == 200


async def test_rate_limit_skipped_without_store(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("updown.redis_client._pool", None)
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/api/v1/leaderboard",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json()["detail"] == "Not Found"


async def test_500_returns_json(settings, redis_client, monkeypatch: pytest.MonkeyPatch) -> None:
    """Unhandled exceptions are rendered as JSON by the catch-all handler."""
    from updown.main import create_app

    monkeypatch.setattr("updown.redis_client._pool", redis_client)
    app = create_app()

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("kaboom")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/boom")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
