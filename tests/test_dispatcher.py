import asyncio

import pytest

from shell_hook.channel import open_channel
from shell_hook.config import RunConfig
from shell_hook.dispatcher import BatchDispatcher
from shell_hook.events import Finished, Flush, Line


def _dispatcher(receiver, notifier, *, max_size: int = 10, timeout: float = 5.0, title: str | None = None):
    return BatchDispatcher(receiver, notifier, max_size=max_size, timeout=timeout, title=title)


@pytest.mark.asyncio
async def test_size_flushes_then_remainder_on_finish(notifier) -> None:
    sender, receiver = open_channel()
    for index in range(25):
        await sender.send(Line(f"line {index}"))
    await sender.send(Finished())

    flushes = await _dispatcher(receiver, notifier).run()

    assert flushes == 3
    assert [len(text.split("\n")) for text in notifier.texts] == [10, 10, 5]
    assert notifier.texts[0].startswith("line 0\nline 1")
    assert notifier.texts[-1].endswith("line 24")


@pytest.mark.asyncio
async def test_exact_multiple_of_batch_size_has_no_extra_flush(notifier) -> None:
    sender, receiver = open_channel()
    for index in range(4):
        await sender.send(Line(str(index)))
    await sender.send(Finished())

    assert await _dispatcher(receiver, notifier, max_size=2).run() == 2
    assert notifier.texts == ["0\n1", "2\n3"]


@pytest.mark.asyncio
async def test_title_is_prefixed_to_each_batch(notifier) -> None:
    sender, receiver = open_channel()
    await sender.send(Line("a"))
    await sender.send(Line("b"))
    await sender.send(Finished())

    await _dispatcher(receiver, notifier, title="ci").run()

    assert notifier.texts == ["[ci] a\nb"]


@pytest.mark.asyncio
async def test_flush_on_empty_batch_sends_nothing(notifier) -> None:
    _sender, receiver = open_channel()
    dispatcher = _dispatcher(receiver, notifier)

    assert await dispatcher.flush() is False
    assert notifier.payloads == []
    assert dispatcher.flushes == 0


@pytest.mark.asyncio
async def test_quiescence_timeout_flushes_partial_batch(notifier) -> None:
    sender, receiver = open_channel()
    task = asyncio.create_task(_dispatcher(receiver, notifier, timeout=0.05).run())

    await sender.send(Line("slow"))
    await asyncio.sleep(0.3)
    assert notifier.texts == ["slow"]

    await sender.send(Finished())
    assert await asyncio.wait_for(task, timeout=1) == 1
    assert notifier.texts == ["slow"]


@pytest.mark.asyncio
async def test_flush_event_delivers_without_stopping(notifier) -> None:
    sender, receiver = open_channel()
    for event in (Line("a"), Flush(), Flush(), Line("b"), Finished()):
        await sender.send(event)

    assert await _dispatcher(receiver, notifier).run() == 2
    assert notifier.texts == ["a", "b"]


@pytest.mark.asyncio
async def test_closed_channel_without_output_exits_cleanly(notifier) -> None:
    sender, receiver = open_channel()
    sender.close()

    assert await asyncio.wait_for(_dispatcher(receiver, notifier).run(), timeout=1) == 0
    assert notifier.payloads == []


@pytest.mark.asyncio
async def test_channel_closed_without_sentinel_flushes_remainder(notifier) -> None:
    sender, receiver = open_channel()
    await sender.send(Line("tail"))
    sender.close()

    await _dispatcher(receiver, notifier).run()

    assert notifier.texts == ["tail"]


@pytest.mark.asyncio
async def test_failed_delivery_still_clears_batch(failing_notifier) -> None:
    notifier = failing_notifier
    sender, receiver = open_channel()
    dispatcher = _dispatcher(receiver, notifier, max_size=2)
    for text in ("a", "b", "c"):
        await sender.send(Line(text))
    await sender.send(Finished())

    assert await dispatcher.run() == 2
    assert dispatcher.pending == 0
    assert notifier.texts == ["a\nb", "c"]


@pytest.mark.asyncio
async def test_unexpected_send_error_does_not_stop_the_dispatcher(notifier, monkeypatch) -> None:
    async def _explode(_message: str) -> bool:
        raise RuntimeError("send exploded")

    monkeypatch.setattr(notifier, "send", _explode)
    sender, receiver = open_channel()
    dispatcher = _dispatcher(receiver, notifier, max_size=1)
    for text in ("a", "b"):
        await sender.send(Line(text))
    await sender.send(Finished())

    assert await dispatcher.run() == 2
    assert dispatcher.pending == 0

def test_from_config_reads_batching_settings(notifier) -> None:
    _sender, receiver = open_channel()
    config = RunConfig(command=("true",), buffer_size=3, buffer_timeout=0.5, title="job")

    dispatcher = BatchDispatcher.from_config(receiver, notifier, config)

    assert (dispatcher.max_size, dispatcher.timeout, dispatcher.title) == (3, 0.5, "job")
