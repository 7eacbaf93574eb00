"""Interactive shell: one streamed invocation per entered line."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console

from shell_hook.app import run_invocation, validate
from shell_hook.config import RunConfig
from shell_hook.notifier import Notifier

HISTORY_FILE = ".shell_hook_history"
EXIT_COMMANDS = frozenset({"exit", "quit"})
PROMPT = "> "


class LineSource(Protocol):
    async def prompt_async(self, message: str) -> str: ...


def default_history_path() -> Path:
    return Path.home() / HISTORY_FILE


class InteractiveShell:
    """Read commands with line editing and history, and stream each one.

    Every line runs through ``sh -c`` with the session's webhook, title and
    batching settings. Per-command success/failure overrides never carry over
    between lines. One notifier, and so one HTTP session, serves the whole
    session.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        prompt_session: LineSource | None = None,
        notifier: Notifier | None = None,
        console: Console | None = None,
        history_path: Path | None = None,
    ) -> None:
        self.config = config
        self.console = console or Console()
        self._notifier = notifier or Notifier.from_config(config)
        if prompt_session is None:
            history = FileHistory(str(history_path or default_history_path()))
            prompt_session = PromptSession(history=history)
        self._prompt_session = prompt_session
        self.last_exit_code: int | None = None
        self.commands_run = 0

    async def _read_line(self) -> str:
        if not isinstance(self._prompt_session, PromptSession):
            return await self._prompt_session.prompt_async(PROMPT)
        with patch_stdout(raw=True):
            return await self._prompt_session.prompt_async(PROMPT)

    async def run_line(self, line: str) -> int:
        config = self.config.for_command([line], shell=True)
        exit_code = await run_invocation(config, self._notifier)
        self.last_exit_code = exit_code
        self.commands_run += 1
        if exit_code != 0:
            self.console.print(f"[dim]exit code {exit_code}[/dim]")
        return exit_code

    async def run(self) -> None:
        validate(self.config)
        self.console.print("[bold]shell-hook[/bold] interactive session. Type 'exit' or press Ctrl-D to quit.")
        async with self._notifier:
            while True:
                try:
                    line = await self._read_line()
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    break
                line = line.strip()
                if not line:
                    continue
                if line.lower() in EXIT_COMMANDS:
                    break
                await self.run_line(line)
        self.console.print("Goodbye!")
