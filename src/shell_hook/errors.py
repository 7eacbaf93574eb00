"""Application-level exception types for shell-hook."""

from __future__ import annotations


class ShellHookError(Exception):
    """Base exception for shell-hook."""


class ConfigurationError(ShellHookError):
    """Base exception for configuration and startup validation errors."""


class MissingWebhookUrlError(ConfigurationError):
    """Raised when neither a webhook URL nor dry-run mode is configured."""

    def __init__(self) -> None:
        super().__init__("Missing Webhook URL: Set --webhook-url or the WEBHOOK_URL environment variable.")


class SpawnError(ShellHookError):
    """Raised when the subprocess could not be started."""

    def __init__(self, argv: list[str], cause: OSError) -> None:
        self.argv = argv
        self.cause = cause
        super().__init__(cause.strerror or str(cause))


class DeliveryError(ShellHookError):
    """Raised when the webhook endpoint rejects or fails a request."""


class ChannelClosedError(ShellHookError):
    """Raised when sending on a channel whose receiver is gone."""
