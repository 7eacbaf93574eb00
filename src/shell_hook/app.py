"""Run one command invocation end to end."""

from __future__ import annotations

import asyncio
import contextlib
import errno
import signal
import sys
from collections.abc import Iterator
from dataclasses import dataclass

from loguru import logger

from shell_hook.channel import Sender, open_channel
from shell_hook.config import RunConfig
from shell_hook.dispatcher import BatchDispatcher
from shell_hook.errors import MissingWebhookUrlError, SpawnError
from shell_hook.events import Flush
from shell_hook.notifier import Notifier
from shell_hook.runner import run_command

EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126
EXIT_FAILURE = 1

FLUSH_SIGNAL = getattr(signal, "SIGUSR1", None)

DEFAULT_SUCCESS = "✅ Command finished successfully."
DEFAULT_FAILURE = "❌ Command failed with exit code {code}."
DEFAULT_SIGNAL = "❌ Command was terminated by a signal."
DEFAULT_SPAWN_FAILURE = "❌ Command failed to start: {error}."


@dataclass(frozen=True)
class Outcome:
    """Final status of one invocation."""

    exit_code: int
    message: str
    is_error: bool


def validate(config: RunConfig) -> None:
    if not config.webhook_url and not config.dry_run:
        raise MissingWebhookUrlError()


def start_message(config: RunConfig) -> str:
    return f"{config.title_prefix}🚀 Starting command: `{config.command_line}`"


def spawn_exit_code(error: SpawnError) -> int:
    if error.cause.errno == errno.ENOENT:
        return EXIT_NOT_FOUND
    if error.cause.errno == errno.EACCES:
        return EXIT_NOT_EXECUTABLE
    return EXIT_FAILURE


def resolve_outcome(config: RunConfig, returncode: int | None, error: SpawnError | None = None) -> Outcome:
    """Map the runner result to the exit code and final status message.

    Each outcome has its own override: ``on_success``, ``on_failure`` (non-zero
    exit), ``on_signal`` and ``on_spawn_failure``. ``{code}`` in a failure
    override is replaced by the exit code.
    """
    prefix = config.title_prefix
    if error is not None or returncode is None:
        code = spawn_exit_code(error) if error is not None else EXIT_FAILURE
        text = config.on_spawn_failure or DEFAULT_SPAWN_FAILURE.format(error=error)
        return Outcome(code, prefix + text.replace("{code}", str(code)), True)
    if returncode == 0:
        return Outcome(0, prefix + (config.on_success or DEFAULT_SUCCESS), False)
    if returncode < 0:
        text = config.on_signal or DEFAULT_SIGNAL
        return Outcome(EXIT_FAILURE, prefix + text.replace("{code}", str(EXIT_FAILURE)), True)
    text = config.on_failure or DEFAULT_FAILURE
    return Outcome(returncode, prefix + text.replace("{code}", str(returncode)), True)


@contextlib.contextmanager
def flush_on_signal(sender: Sender) -> Iterator[bool]:
    """Queue a ``Flush`` event whenever the flush signal arrives.

    Yields whether the handler could be installed. ``sender`` is closed on exit.
    """
    installed = False
    loop = asyncio.get_running_loop()
    if FLUSH_SIGNAL is not None:
        try:
            loop.add_signal_handler(FLUSH_SIGNAL, sender.try_send, Flush())
            installed = True
        except (NotImplementedError, RuntimeError, ValueError) as exc:
            logger.debug("app.flush_signal.unavailable error={}", exc)
    try:
        yield installed
    finally:
        if installed:
            loop.remove_signal_handler(FLUSH_SIGNAL)
        sender.close()


async def run_invocation(config: RunConfig, notifier: Notifier | None = None) -> int:
    """Run ``config.command``, stream its output and return the exit code.

    Raises:
        MissingWebhookUrlError: Neither a webhook URL nor dry-run is set.
            Nothing is spawned or sent in that case.
    """
    validate(config)
    if notifier is not None:
        return await _run(config, notifier)
    async with Notifier.from_config(config) as owned:
        return await _run(config, owned)


async def _run(config: RunConfig, notifier: Notifier) -> int:
    sender, receiver = open_channel(config.channel_capacity)
    dispatcher = BatchDispatcher.from_config(receiver, notifier, config)
    dispatcher_task = asyncio.create_task(dispatcher.run())
    # Producers must not block on a full channel once the consumer is gone.
    dispatcher_task.add_done_callback(lambda _task: receiver.close())

    returncode: int | None = None
    error: SpawnError | None = None
    try:
        message = start_message(config)
        print(message, flush=True)
        await notifier.send(message)

        with flush_on_signal(sender.clone()):
            try:
                returncode = await run_command(config.command, sender, quiet=config.quiet, shell=config.shell)
            except SpawnError as exc:
                error = exc
        try:
            await dispatcher_task
        except Exception:
            logger.exception("app.dispatcher.error")
    finally:
        if not dispatcher_task.done():
            dispatcher_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await dispatcher_task
        receiver.close()

    outcome = resolve_outcome(config, returncode, error)
    logger.info("app.finished exit_code={} flushes={}", outcome.exit_code, dispatcher.flushes)
    print(outcome.message, file=sys.stderr if outcome.is_error else sys.stdout, flush=True)
    await notifier.send(outcome.message)
    return outcome.exit_code
