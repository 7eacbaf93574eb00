"""Bounded multi-producer, single-consumer event channel."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from shell_hook.errors import ChannelClosedError
from shell_hook.events import Event

DEFAULT_CAPACITY = 100


class _Closed:
    """End-of-channel marker queued when the last sender closes."""


_CLOSED = _Closed()


@dataclass
class _ChannelState:
    queue: asyncio.Queue[Event | _Closed]
    senders: int = 0
    receiver_closed: bool = False


class Sender:
    """Producer handle. Clone it per producer and close it when done."""

    def __init__(self, state: _ChannelState) -> None:
        self._state = state
        self._closed = False
        state.senders += 1

    @property
    def closed(self) -> bool:
        return self._closed or self._state.receiver_closed

    def clone(self) -> Sender:
        if self._closed:
            raise ChannelClosedError("cannot clone a closed sender")
        return Sender(self._state)

    async def send(self, event: Event) -> None:
        """Queue ``event``, suspending while the channel is full."""
        if self.closed:
            raise ChannelClosedError("channel is closed")
        await self._state.queue.put(event)
        if self._state.receiver_closed:
            raise ChannelClosedError("channel is closed")

    def try_send(self, event: Event) -> bool:
        """Queue ``event`` without waiting. Returns False when full or closed."""
        if self.closed:
            return False
        try:
            self._state.queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        state = self._state
        state.senders -= 1
        if state.senders == 0 and not state.receiver_closed:
            # Wake a receiver parked on an empty queue; a full queue is
            # detected as drained-and-closed on the next receive.
            try:
                state.queue.put_nowait(_CLOSED)
            except asyncio.QueueFull:
                pass

    def __enter__(self) -> Sender:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Receiver:
    """The single consumer handle of a channel."""

    def __init__(self, state: _ChannelState) -> None:
        self._state = state

    @property
    def closed(self) -> bool:
        return self._state.receiver_closed

    async def receive(self) -> Event | None:
        """Return the next event, or None once every sender is closed and the queue is drained."""
        state = self._state
        while True:
            if state.receiver_closed:
                return None
            if state.senders == 0 and state.queue.empty():
                return None
            item = await state.queue.get()
            if isinstance(item, _Closed):
                continue
            return item

    def close(self) -> None:
        """Drop the receiving end. Pending events are discarded and blocked senders released."""
        state = self._state
        if state.receiver_closed:
            return
        state.receiver_closed = True
        while True:
            try:
                state.queue.get_nowait()
            except asyncio.QueueEmpty:
                break


def open_channel(capacity: int = DEFAULT_CAPACITY) -> tuple[Sender, Receiver]:
    """Create a bounded channel and return its first sender and its receiver."""
    if capacity <= 0:
        raise ValueError("channel capacity must be positive")
    state = _ChannelState(queue=asyncio.Queue(maxsize=capacity))
    return Sender(state), Receiver(state)
