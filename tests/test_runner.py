import io
import shutil

import pytest

from shell_hook.channel import open_channel
from shell_hook.errors import SpawnError
from shell_hook.events import Finished, Line
from shell_hook.runner import build_argv, run_command

pytestmark = pytest.mark.skipif(shutil.which("sh") is None, reason="requires a POSIX shell")


async def _drain(receiver) -> list:
    events = []
    while (event := await receiver.receive()) is not None:
        events.append(event)
    return events


def test_build_argv_wraps_shell_commands() -> None:
    assert build_argv(["echo", "hi"]) == ["echo", "hi"]
    assert build_argv(["echo hi | tr a-z A-Z"], shell=True) == ["sh", "-c", "echo hi | tr a-z A-Z"]


@pytest.mark.asyncio
async def test_run_command_streams_both_pipes_and_finishes_last() -> None:
    sender, receiver = open_channel()
    out, err = io.StringIO(), io.StringIO()

    code = await run_command(
        ["sh", "-c", "printf 'out1\\nout2\\n'; printf 'err1\\n' >&2; exit 3"],
        sender,
        stdout=out,
        stderr=err,
    )
    events = await _drain(receiver)

    assert code == 3
    assert out.getvalue() == "out1\nout2\n"
    assert err.getvalue() == "err1\n"
    assert events[-1] == Finished()
    assert events.count(Finished()) == 1
    lines = [event.text for event in events if isinstance(event, Line)]
    assert sorted(lines) == ["err1", "out1", "out2"]
    assert [line for line in lines if line.startswith("out")] == ["out1", "out2"]


@pytest.mark.asyncio
async def test_run_command_waits_for_output_written_after_exit() -> None:
    sender, receiver = open_channel()
    out = io.StringIO()

    code = await run_command(
        ["sh", "-c", "(sleep 0.2; echo late) & echo early"],
        sender,
        stdout=out,
        stderr=io.StringIO(),
    )
    events = await _drain(receiver)

    assert code == 0
    assert events == [Line("early"), Line("late"), Finished()]


@pytest.mark.asyncio
async def test_quiet_run_echoes_without_forwarding() -> None:
    sender, receiver = open_channel()
    out = io.StringIO()

    code = await run_command(["echo", "hello"], sender, quiet=True, stdout=out, stderr=io.StringIO())

    assert code == 0
    assert out.getvalue() == "hello\n"
    assert await _drain(receiver) == [Finished()]


@pytest.mark.asyncio
async def test_unterminated_final_line_is_forwarded() -> None:
    sender, receiver = open_channel()

    await run_command(["sh", "-c", "printf 'no newline'"], sender, stdout=io.StringIO(), stderr=io.StringIO())

    assert await _drain(receiver) == [Line("no newline"), Finished()]


@pytest.mark.asyncio
async def test_shell_mode_runs_through_sh() -> None:
    sender, receiver = open_channel()

    code = await run_command(["echo a && exit 5"], sender, shell=True, stdout=io.StringIO(), stderr=io.StringIO())

    assert code == 5
    assert await _drain(receiver) == [Line("a"), Finished()]


@pytest.mark.asyncio
async def test_signal_termination_reports_negative_code() -> None:
    sender, receiver = open_channel()

    code = await run_command(["sh", "-c", "kill -TERM $$"], sender, stdout=io.StringIO(), stderr=io.StringIO())

    assert code < 0
    assert await _drain(receiver) == [Finished()]


@pytest.mark.asyncio
async def test_spawn_failure_raises_and_still_finishes() -> None:
    sender, receiver = open_channel()

    with pytest.raises(SpawnError) as exc_info:
        await run_command(["nonexistent_binary_xyz"], sender)

    assert isinstance(exc_info.value.cause, FileNotFoundError)
    assert exc_info.value.argv == ["nonexistent_binary_xyz"]
    assert await _drain(receiver) == [Finished()]
