"""Buffered event log that is flushed to a file in the background."""

from __future__ import annotations

import enum
import os
import sys
import threading
import time
from types import TracebackType

from flowinspector.console import debug_stream
from flowinspector.packet import Packet
from flowinspector.rules import Alert, LogEntry

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogLevel(enum.IntEnum):
    """Severity threshold for what the logger records."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


def current_time() -> int:
    """Seconds since the epoch."""
    return int(time.time())


def format_timestamp(timestamp: int) -> str:
    """Local time as ``YYYY-MM-DD HH:MM:SS``."""
    return time.strftime(_TIMESTAMP_FORMAT, time.localtime(timestamp))


def _format_entry(entry: LogEntry) -> str:
    parts = [format_timestamp(entry.timestamp) + " "]
    if entry.packet is not None:
        parts.append(f"Packet: {entry.packet.to_short_string()} ")
    if entry.alert is not None:
        parts.append(f"Alert: {entry.alert.to_string()} ")
    if entry.message is not None:
        parts.append(f"Message: {entry.message} ")
    parts.append("\n")
    return "".join(parts)


class Logger:
    """Collects log entries and writes them to a file.

    A background thread writes the buffer out once it holds
    ``max_log_entries`` entries; ``close`` writes whatever is left.
    """

    DEFAULT_MAX_LOG_ENTRIES = 2000
    _ROTATION_CHECK_SECONDS = 10.0

    def __init__(
        self,
        output_filename: str | os.PathLike[str] = "",
        max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES,
    ) -> None:
        self._entries: list[LogEntry] = []
        self._condition = threading.Condition()
        self._level = LogLevel.DEBUG
        self._file_lock = threading.Lock()
        self._output_filename = os.fspath(output_filename)
        self._file_opened = False
        self._done = False
        self._closed = False
        self._should_rotate = False
        self._max_entries = max_log_entries
        self._rotator = threading.Thread(
            target=self._rotate_logs, name="log-rotator", daemon=True
        )
        self._rotator.start()

    @property
    def level(self) -> LogLevel:
        return self._level

    def set_level(self, level: LogLevel) -> None:
        self._level = LogLevel(level)

    def log_event(self, entry: LogEntry) -> None:
        """Append an entry regardless of the level."""
        with self._condition:
            self._entries.append(entry)
            if len(self._entries) >= self._max_entries:
                self._should_rotate = True
            self._condition.notify()

    def log_packet(self, packet: Packet) -> None:
        if self._level <= LogLevel.INFO:
            self.log_event(LogEntry(timestamp=current_time(), packet=packet))

    def log_alert(self, alert: Alert) -> None:
        if self._level <= LogLevel.WARNING:
            self.log_event(LogEntry(timestamp=current_time(), alert=alert))

    def log_debug(self, message: str) -> None:
        if self._level <= LogLevel.DEBUG:
            self.log_message(message)

    def log_message(self, message: str) -> None:
        if self._level <= LogLevel.INFO:
            stream = debug_stream()
            stream.write(message + "\n")
            stream.flush()
            self.log_event(LogEntry(timestamp=current_time(), message=message))

    def export_logs(self) -> str:
        """Take all buffered entries and return them as text."""
        with self._condition:
            entries, self._entries = self._entries, []
            self._should_rotate = False
        return "".join(_format_entry(entry) for entry in entries)

    def export_logs_to_file(self) -> bool:
        """Write buffered entries to the output file.

        The first write after the file name is set truncates the file, later
        ones append. Returns False, leaving the buffer intact, if the file
        cannot be opened.
        """
        with self._file_lock:
            mode = "a" if self._file_opened else "w"
            self._file_opened = True
            try:
                handle = open(
                    self._output_filename, mode,
                    encoding="utf-8", errors="backslashreplace",
                )
            except OSError:
                print(f"Error opening file: {self._output_filename}", file=sys.stderr)
                return False
            with handle:
                handle.write(self.export_logs())
            return True

    def set_output_filename(self, filename: str | os.PathLike[str]) -> None:
        with self._file_lock:
            self._output_filename = os.fspath(filename)
            self._file_opened = False

    def close(self) -> None:
        """Stop the background writer and flush what remains to the file."""
        if self._closed:
            return
        self._closed = True
        print("Logger shutting down...", flush=True)
        with self._condition:
            self._done = True
            self._condition.notify_all()
        self._rotator.join()
        self.export_logs_to_file()

    def __enter__(self) -> Logger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _rotate_logs(self) -> None:
        while True:
            with self._condition:
                if self._done:
                    return
                self._condition.wait_for(
                    lambda: self._done or self._should_rotate,
                    timeout=self._ROTATION_CHECK_SECONDS,
                )
                rotate = self._should_rotate or len(self._entries) >= self._max_entries
            if rotate and not self.export_logs_to_file():
                with self._condition:
                    self._should_rotate = False