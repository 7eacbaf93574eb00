from __future__ import annotations

from typing import Any

import pytest

from shell_hook.errors import DeliveryError
from shell_hook.notifier import Notifier

WEBHOOK_URL = "http://hook.invalid/webhook"


class RecordingNotifier(Notifier):
    """Notifier that records payloads instead of posting them."""

    def __init__(self, *, fail: bool = False, **kwargs: Any) -> None:
        super().__init__(kwargs.pop("webhook_url", WEBHOOK_URL), **kwargs)
        self.payloads: list[dict[str, Any]] = []
        self.fail = fail

    async def deliver(self, payload: dict[str, Any]) -> None:
        self.payloads.append(payload)
        if self.fail:
            raise DeliveryError("webhook returned HTTP 500: boom")

    @property
    def texts(self) -> list[str]:
        return [payload["text"] for payload in self.payloads]


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "WEBHOOK_URL",
        "SHELL_HOOK_WEBHOOK_URL",
        "SHELL_HOOK_TITLE",
        "SHELL_HOOK_FORMAT",
        "SHELL_HOOK_BUFFER_SIZE",
        "SHELL_HOOK_BUFFER_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
