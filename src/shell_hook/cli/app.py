"""CLI entry point for shell-hook."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import NoReturn

import typer
from pydantic import ValidationError

from shell_hook import __version__
from shell_hook.app import run_invocation, validate
from shell_hook.cli.shell import InteractiveShell
from shell_hook.config import RunConfig, Settings, WebhookFormat, get_settings
from shell_hook.errors import ConfigurationError
from shell_hook.logging_utils import configure_logging

app = typer.Typer(
    name="shell-hook",
    help="Stream command output to webhooks with buffering and custom messages.",
    add_completion=False,
    no_args_is_help=True,
)


@dataclass
class _State:
    settings: Settings
    dry_run: bool


def _exit_with_error(message: str) -> NoReturn:
    typer.echo(f"[shell_hook] Error: {message}", err=True)
    raise typer.Exit(1)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"shell-hook {__version__}")
        raise typer.Exit()


def _base_config(ctx: typer.Context, command: list[str] | None = None, **options: object) -> RunConfig:
    state: _State = ctx.obj
    return state.settings.to_run_config(command or (), dry_run=state.dry_run, **options)


@app.callback()
def main_callback(
    ctx: typer.Context,
    webhook_url: str | None = typer.Option(
        None, "--webhook-url", metavar="URL", help="Webhook URL. Defaults to the WEBHOOK_URL environment variable."
    ),
    title: str | None = typer.Option(None, "--title", "-t", help="Title to prepend to all messages, e.g. 'My Project'."),
    fmt: WebhookFormat | None = typer.Option(None, "--format", help="Webhook payload format."),
    buffer_size: int | None = typer.Option(None, "--buffer-size", metavar="COUNT", help="Max lines per message."),
    buffer_timeout: float | None = typer.Option(
        None, "--buffer-timeout", metavar="SECONDS", help="Max seconds before buffered lines are sent."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print payloads instead of sending them."),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
) -> None:
    try:
        settings = get_settings(
            webhook_url=webhook_url,
            title=title,
            format=fmt,
            buffer_size=buffer_size,
            buffer_timeout=buffer_timeout,
            log_level=log_level,
        )
    except ValidationError as exc:
        _exit_with_error(f"invalid configuration: {exc}")
    configure_logging(settings.log_level)
    ctx.obj = _State(settings=settings, dry_run=dry_run)


@app.command(context_settings={"allow_interspersed_args": False})
def run(
    ctx: typer.Context,
    command: list[str] = typer.Argument(..., metavar="COMMAND...", help="The command to execute and stream."),
    on_success: str | None = typer.Option(None, "--on-success", metavar="MESSAGE", help="Message sent on success."),
    on_failure: str | None = typer.Option(
        None, "--on-failure", metavar="MESSAGE", help="Message sent on a non-zero exit. '{code}' expands to the exit code."
    ),
    on_signal: str | None = typer.Option(
        None, "--on-signal", metavar="MESSAGE", help="Message sent when the command is killed by a signal."
    ),
    on_start_failure: str | None = typer.Option(
        None, "--on-start-failure", metavar="MESSAGE", help="Message sent when the command cannot be started."
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only send the start and finish messages."),
) -> None:
    """Run a single command and stream its output."""
    config = _base_config(
        ctx,
        command,
        quiet=quiet,
        on_success=on_success,
        on_failure=on_failure,
        on_signal=on_signal,
        on_spawn_failure=on_start_failure,
    )
    try:
        exit_code = asyncio.run(run_invocation(config))
    except ConfigurationError as exc:
        _exit_with_error(str(exc))
    raise typer.Exit(exit_code)


@app.command()
def shell(ctx: typer.Context) -> None:
    """Start an interactive shell session."""
    config = _base_config(ctx)
    try:
        validate(config)
        asyncio.run(InteractiveShell(config).run())
    except ConfigurationError as exc:
        _exit_with_error(str(exc))
