"""Webhook payload formatting and delivery."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import aiohttp
from loguru import logger

from shell_hook.config import RunConfig, WebhookFormat
from shell_hook.errors import DeliveryError

REQUEST_TIMEOUT_SECONDS = 30
ERROR_BODY_PREVIEW = 200
USER_AGENT = "shell-hook/1.0"

Payload = dict[str, Any]


def _google_chat_payload(message: str) -> Payload:
    return {"text": message}


def _slack_payload(message: str) -> Payload:
    return {"text": message}


_FORMATTERS: dict[WebhookFormat, Callable[[str], Payload]] = {
    WebhookFormat.GOOGLE_CHAT: _google_chat_payload,
    WebhookFormat.SLACK: _slack_payload,
}


def format_payload(message: str, fmt: WebhookFormat = WebhookFormat.GOOGLE_CHAT) -> Payload:
    """Build the JSON payload for ``message`` in the given webhook format."""
    return _FORMATTERS[WebhookFormat(fmt)](message)


class Notifier:
    """Deliver messages to one webhook endpoint.

    The HTTP session is created lazily on the first real delivery and shared by
    every later call until :meth:`close`. In dry-run mode payloads are printed
    instead and no session is ever created.

    Example:
        async with Notifier("https://chat.example/hook") as notifier:
            await notifier.send("build finished")
    """

    def __init__(
        self,
        webhook_url: str | None,
        *,
        fmt: WebhookFormat = WebhookFormat.GOOGLE_CHAT,
        dry_run: bool = False,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.fmt = WebhookFormat(fmt)
        self.dry_run = dry_run
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: RunConfig) -> Notifier:
        return cls(config.webhook_url, fmt=config.webhook_format, dry_run=config.dry_run)

    async def __aenter__(self) -> Notifier:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this notifier created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def format(self, message: str) -> Payload:
        return format_payload(message, self.fmt)

    async def deliver(self, payload: Payload) -> None:
        """Send one payload.

        Raises:
            DeliveryError: The request failed or the endpoint answered with an
                error status.
        """
        if self.dry_run:
            print(f"[DRY RUN] Would send: {json.dumps(payload, ensure_ascii=False)}", flush=True)
            return
        if not self.webhook_url:
            return

        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with session.post(self.webhook_url, json=payload, timeout=timeout) as response:
                if response.status >= 400:
                    body = await response.text(errors="replace")
                    raise DeliveryError(f"webhook returned HTTP {response.status}: {body[:ERROR_BODY_PREVIEW]}")
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise DeliveryError(f"webhook request failed: {exc!s}") from exc

    async def send(self, message: str) -> bool:
        """Format and deliver ``message``. Failures are logged, never raised."""
        try:
            await self.deliver(self.format(message))
        except DeliveryError as exc:
            logger.error("notifier.deliver.error {}", exc)
            return False
        except Exception:
            logger.exception("notifier.deliver.error")
            return False
        return True
