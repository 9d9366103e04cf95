"""Content-addressed receipt uploads.

Every accepted bet can be mirrored to an immutable store as an audit
trail. The gateway accepts ``{"data": <json>, "tags": [{"name", "value"}]}``
and answers with ``{"id": <content id>}``. Receipts never influence
settlement.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class ReceiptService:
    """Upload JSON payloads with string tags to a receipt gateway."""

    def __init__(
        self,
        gateway_url: str,
        app_tag: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.app_tag = app_tag
        self._client = client or httpx.AsyncClient(base_url=gateway_url.rstrip("/"), timeout=timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def upload(self, payload: dict[str, Any], tags: dict[str, str]) -> str | None:
        """Upload and return the content id, or None when the gateway fails."""
        body = {
            "data": payload,
            "tags": [{"name": "app", "value": self.app_tag}]
            + [{"name": k, "value": v} for k, v in tags.items()]
            + [{"name": "content-type", "value": "application/json"}],
        }
        try:
            response = await self._client.post("/upload", json=body)
            response.raise_for_status()
            receipt_id = response.json().get("id")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("receipt_upload_failed", error=str(exc))
            return None

        if not isinstance(receipt_id, str) or not receipt_id:
            logger.warning("receipt_upload_no_id")
            return None
        return receipt_id

    def gateway_link(self, receipt_id: str) -> str:
        return f"{str(self._client.base_url).rstrip('/')}/{receipt_id}"
