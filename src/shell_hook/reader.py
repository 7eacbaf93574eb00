"""Line reader for one subprocess output pipe."""

from __future__ import annotations

import asyncio
from typing import TextIO

from loguru import logger

from shell_hook.channel import Sender
from shell_hook.errors import ChannelClosedError
from shell_hook.events import Line


def decode_line(raw: bytes) -> str:
    """Decode one raw line and strip its terminator."""
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw.decode("utf-8", errors="replace")


async def read_lines(
    stream: asyncio.StreamReader,
    echo: TextIO,
    sender: Sender | None = None,
    *,
    name: str = "stdout",
) -> int:
    """Echo every line of ``stream`` to ``echo`` and forward it on ``sender``.

    ``sender`` is None in quiet mode: lines are still echoed locally but
    nothing is queued for delivery. A final line without a terminator is
    treated as a regular line. Reading stops early on a stream error. Once
    the channel's receiver is gone, lines are only echoed so the pipe keeps
    draining and the process can exit.

    Returns:
        The number of lines read.
    """
    count = 0
    while True:
        try:
            raw = await stream.readline()
        except (OSError, ValueError) as exc:
            # ValueError is how StreamReader reports a line over its buffer limit.
            logger.warning("reader.error stream={} lines={} error={}", name, count, exc)
            break
        if not raw:
            break
        count += 1
        text = decode_line(raw)
        echo.write(text + "\n")
        echo.flush()
        if sender is None:
            continue
        try:
            await sender.send(Line(text))
        except ChannelClosedError:
            logger.debug("reader.channel_closed stream={} lines={}", name, count)
            sender = None
    logger.debug("reader.done stream={} lines={}", name, count)
    return count
