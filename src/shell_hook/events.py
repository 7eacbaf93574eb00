"""Pipeline event models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Line:
    """One line of captured output, without its terminator."""

    text: str


@dataclass(frozen=True)
class Flush:
    """Request to deliver the current batch without stopping."""


@dataclass(frozen=True)
class Finished:
    """The subprocess exited and both readers drained."""


Event = Line | Flush | Finished
