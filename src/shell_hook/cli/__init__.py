"""Command-line interface for shell-hook."""

from shell_hook.cli.app import app

__all__ = ["app"]
