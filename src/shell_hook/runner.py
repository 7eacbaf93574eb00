"""Subprocess runner that streams both output pipes into a channel."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from typing import TextIO

from loguru import logger

from shell_hook.channel import Sender
from shell_hook.errors import ChannelClosedError, SpawnError
from shell_hook.events import Finished
from shell_hook.reader import read_lines

# StreamReader buffer limit; a single line longer than this ends that reader.
STREAM_LIMIT = 1024 * 1024
SHELL = "sh"


def build_argv(command: Sequence[str], *, shell: bool = False) -> list[str]:
    """Return the argv to execute, wrapping ``command`` in ``sh -c`` when ``shell`` is set."""
    if shell:
        return [SHELL, "-c", " ".join(command)]
    return list(command)


async def _read_into(stream: asyncio.StreamReader, echo: TextIO, sender: Sender | None, name: str) -> int:
    try:
        return await read_lines(stream, echo, sender, name=name)
    finally:
        if sender is not None:
            sender.close()


async def run_command(
    command: Sequence[str],
    sender: Sender,
    *,
    quiet: bool = False,
    shell: bool = False,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Run ``command`` to completion and stream its output as ``Line`` events.

    Exactly one ``Finished`` event is sent on every path, after both readers
    have drained, and ``sender`` is closed on return.

    Returns:
        The process return code. Negative values mean termination by signal.

    Raises:
        SpawnError: The process could not be started.
    """
    argv = build_argv(command, shell=shell)
    readers: list[asyncio.Task[int]] = []
    try:
        if not argv:
            raise ValueError("command must not be empty")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT,
            )
        except OSError as exc:
            logger.info("runner.spawn.error argv={} error={}", argv, exc)
            raise SpawnError(argv, exc) from exc

        logger.debug("runner.spawn pid={} argv={}", process.pid, argv)
        pipes = (
            ("stdout", process.stdout, stdout or sys.stdout),
            ("stderr", process.stderr, stderr or sys.stderr),
        )
        for name, stream, echo in pipes:
            if stream is None:
                continue
            reader_sender = None if quiet else sender.clone()
            readers.append(asyncio.create_task(_read_into(stream, echo, reader_sender, name)))

        returncode = await process.wait()
        logger.debug("runner.exit pid={} returncode={}", process.pid, returncode)
        return returncode
    finally:
        # Pipes can still hold output after exit; drain before signalling the end.
        results = await asyncio.gather(*readers, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.opt(exception=result).warning("runner.reader.error")
        try:
            await sender.send(Finished())
        except ChannelClosedError:
            logger.debug("runner.finished.dropped")
        sender.close()
