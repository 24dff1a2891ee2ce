from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class LogNotifier:
    async def notify(self, subject: str, body: str) -> None:
        logger.info("NOTIFY %s: %s", subject, body)


class WebhookNotifier:
    """Posts {"subject", "body"} as JSON to a webhook (ntfy, Home Assistant, ...)."""

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self._url = url
        self._timeout = timeout

    async def notify(self, subject: str, body: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._url, json={"subject": subject, "body": body})
                resp.raise_for_status()
            logger.info("Sent notification '%s' to %s", subject, self._url)
        except httpx.HTTPError:
            logger.warning("Unable to send notification '%s'", subject, exc_info=True)
