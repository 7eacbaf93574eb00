"""Configuration management for shell-hook."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shell_hook.channel import DEFAULT_CAPACITY

DEFAULT_BUFFER_SIZE = 10
DEFAULT_BUFFER_TIMEOUT = 2.0


class WebhookFormat(StrEnum):
    """Supported webhook payload shapes."""

    GOOGLE_CHAT = "google-chat"
    SLACK = "slack"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SHELL_HOOK_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Webhook Configuration
    webhook_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("WEBHOOK_URL", "SHELL_HOOK_WEBHOOK_URL"),
        description="Webhook URL to send messages to",
    )
    title: Optional[str] = Field(None, description="Title prepended to every message as '[title] '")
    format: WebhookFormat = Field(default=WebhookFormat.GOOGLE_CHAT, description="Webhook payload format")

    # Batching Configuration
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, gt=0, description="Max lines per streamed message")
    buffer_timeout: float = Field(default=DEFAULT_BUFFER_TIMEOUT, gt=0, description="Seconds before a partial batch is flushed")

    # Logging Configuration
    log_level: str = Field(default="WARNING", description="Log level")

    def to_run_config(self, command: Sequence[str] = (), *, dry_run: bool = False, **options: Any) -> RunConfig:
        """Build the frozen per-invocation config from these settings.

        ``options`` sets the remaining ``RunConfig`` fields (quiet mode and
        the status overrides).
        """
        return RunConfig(
            command=tuple(command),
            webhook_url=self.webhook_url,
            title=self.title,
            webhook_format=self.format,
            buffer_size=self.buffer_size,
            buffer_timeout=self.buffer_timeout,
            dry_run=dry_run,
            **options,
        )


@dataclass(frozen=True)
class RunConfig:
    """Read-only configuration of one command invocation."""

    command: tuple[str, ...]
    webhook_url: str | None = None
    title: str | None = None
    webhook_format: WebhookFormat = WebhookFormat.GOOGLE_CHAT
    buffer_size: int = DEFAULT_BUFFER_SIZE
    buffer_timeout: float = DEFAULT_BUFFER_TIMEOUT
    quiet: bool = False
    dry_run: bool = False
    on_success: str | None = None
    on_failure: str | None = None
    on_signal: str | None = None
    on_spawn_failure: str | None = None
    shell: bool = False
    channel_capacity: int = field(default=DEFAULT_CAPACITY, repr=False)

    def __post_init__(self) -> None:
        if self.buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        if self.buffer_timeout <= 0:
            raise ValueError("buffer_timeout must be positive")

    @property
    def title_prefix(self) -> str:
        return f"[{self.title}] " if self.title else ""

    @property
    def command_line(self) -> str:
        return " ".join(self.command)

    def for_command(self, command: Sequence[str], *, shell: bool = False) -> RunConfig:
        """Return a per-command copy with every status override cleared."""
        return replace(
            self,
            command=tuple(command),
            shell=shell,
            quiet=False,
            on_success=None,
            on_failure=None,
            on_signal=None,
            on_spawn_failure=None,
        )


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        **overrides: Values that take precedence over the environment. None
            values are ignored so unset CLI options fall through.

    Returns:
        Settings instance
    """
    # pydantic-settings loads the rest from the environment and .env file
    return Settings(**{key: value for key, value in overrides.items() if value is not None})
