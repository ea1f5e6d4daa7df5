"""Console output gated by a process-wide verbosity level."""

from __future__ import annotations

import enum
import io
import sys
from typing import TextIO


class Verbosity(enum.IntEnum):
    """How much is written to standard output."""

    INFO = 0
    DEBUG = 1


class _NullStream(io.TextIOBase):
    """A text stream that discards everything written to it."""

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        return len(text)


class ConsoleLevel:
    """Chooses between standard output and a discarding stream."""

    def __init__(self, level: Verbosity = Verbosity.INFO) -> None:
        self.level = Verbosity(level)
        self._null = _NullStream()

    def stream(self, level: Verbosity) -> TextIO:
        """Return stdout if ``level`` is enabled, otherwise a null stream."""
        if Verbosity(level) <= self.level:
            return sys.stdout
        return self._null  # type: ignore[return-value]

    def enable(self) -> None:
        """Let debug output through."""
        self.level = Verbosity.DEBUG

    def disable(self) -> None:
        """Keep only informational output."""
        self.level = Verbosity.INFO


_CONSOLE_LEVEL = ConsoleLevel()


def console_level() -> ConsoleLevel:
    """Return the process-wide console level."""
    return _CONSOLE_LEVEL


def debug_stream() -> TextIO:
    """Stream for debug output."""
    return _CONSOLE_LEVEL.stream(Verbosity.DEBUG)


def info_stream() -> TextIO:
    """Stream for informational output."""
    return _CONSOLE_LEVEL.stream(Verbosity.INFO)