"""
Webhook delivery function.

Posts one mail record as JSON to a single preconfigured URL. Any 2xx answer
acknowledges the item; anything else raises so the retry loop counts it as a
failed attempt.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from loguru import logger

from .errors import WebhookStatusError, map_transport_error
from .models import InboundEmail

DEFAULT_USER_AGENT = "Cloudflare-Email-Worker/1.0"


class WebhookSender:
    """Async delivery function backed by ``httpx.AsyncClient``.

    Example:
        sender = WebhookSender("https://example.com/hooks/mail")
        await sender.start()
        await sender(email)   # raises on failure
        await sender.stop()
    """

    def __init__(
        self,
        endpoint: str,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float | None = 10.0,
    ):
        if not endpoint:
            raise ValueError("endpoint required")
        self.endpoint = endpoint
        self.user_agent = user_agent
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def started(self) -> bool:
        return self._client is not None

    async def start(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "Content-Type": "application/json",
                "User-Agent": self.user_agent,
            },
        )
        logger.info(f"Webhook sender started: {self.endpoint}")

    async def stop(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        logger.info("Webhook sender stopped")

    async def __aenter__(self) -> "WebhookSender":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def __call__(self, item: InboundEmail | Mapping[str, Any]) -> bool:
        if self._client is None:
            await self.start()

        payload = item.payload() if isinstance(item, InboundEmail) else dict(item)
        try:
            response = await self._client.post(self.endpoint, json=payload)
        except Exception as exc:
            raise map_transport_error(exc) from exc

        if not 200 <= response.status_code < 300:
            raise WebhookStatusError(response.status_code, response.text)

        logger.debug(f"Webhook accepted item ({response.status_code})")
        return True
