"""Batch dispatcher: the single consumer of the event channel."""

from __future__ import annotations

import asyncio

from loguru import logger

from shell_hook.channel import Receiver
from shell_hook.config import RunConfig
from shell_hook.events import Finished, Flush, Line
from shell_hook.notifier import Notifier


class BatchDispatcher:
    """Accumulate captured lines and deliver them in batches.

    A batch is delivered when it reaches ``max_size`` lines, when no event
    arrives within ``timeout`` seconds, on an explicit ``Flush`` event, and
    once more when the channel ends. The wait restarts on every loop
    iteration, so ``timeout`` behaves as a polling interval.
    """

    def __init__(
        self,
        receiver: Receiver,
        notifier: Notifier,
        *,
        max_size: int,
        timeout: float,
        title: str | None = None,
    ) -> None:
        self._receiver = receiver
        self._notifier = notifier
        self.max_size = max_size
        self.timeout = timeout
        self.title = title
        self._batch: list[str] = []
        self.flushes = 0

    @classmethod
    def from_config(cls, receiver: Receiver, notifier: Notifier, config: RunConfig) -> BatchDispatcher:
        return cls(
            receiver,
            notifier,
            max_size=config.buffer_size,
            timeout=config.buffer_timeout,
            title=config.title,
        )

    @property
    def pending(self) -> int:
        return len(self._batch)

    def render(self, lines: list[str]) -> str:
        message = "\n".join(lines)
        if self.title:
            return f"[{self.title}] {message}"
        return message

    async def flush(self, reason: str = "manual") -> bool:
        """Deliver and clear the current batch. Returns False when it was empty."""
        if not self._batch:
            return False
        lines, self._batch = self._batch, []
        self.flushes += 1
        logger.debug("dispatcher.flush reason={} lines={}", reason, len(lines))
        # Delivery failures are logged, the lines are not requeued.
        try:
            await self._notifier.send(self.render(lines))
        except Exception:
            logger.exception("dispatcher.flush.error reason={} lines={}", reason, len(lines))
        return True

    async def run(self) -> int:
        """Consume events until ``Finished`` or end of channel.

        Returns:
            The number of batches delivered.
        """
        while True:
            try:
                event = await asyncio.wait_for(self._receiver.receive(), timeout=self.timeout)
            except TimeoutError:
                await self.flush("timeout")
                continue

            if isinstance(event, Line):
                self._batch.append(event.text)
                if len(self._batch) >= self.max_size:
                    await self.flush("size")
            elif isinstance(event, Flush):
                await self.flush("requested")
            elif event is None or isinstance(event, Finished):
                await self.flush("finished")
                break

        logger.debug("dispatcher.done flushes={}", self.flushes)
        return self.flushes
