"""Writing packets to a pcap file."""

from __future__ import annotations

import os
import struct
import threading
from types import TracebackType
from typing import BinaryIO

from flowinspector.packet import Packet

_MAGIC = 0xA1B2C3D4
_VERSION = (2, 4)
_SNAPLEN = 65535
_FILE_HEADER = struct.Struct("<IHHiIII")
_RECORD_HEADER = struct.Struct("<IIII")


class PcapWriter:
    """Appends packets to a microsecond pcap file opened on first use."""

    DEFAULT_FILENAME = "default.pcap"

    def __init__(
        self, link_type: int, filename: str | os.PathLike[str] = DEFAULT_FILENAME
    ) -> None:
        self._lock = threading.Lock()
        self._filename = os.fspath(filename)
        self._link_type = int(link_type)
        self._handle: BinaryIO | None = None

    @property
    def filename(self) -> str:
        return self._filename

    def set_output_filename(self, filename: str | os.PathLike[str]) -> None:
        """Switch to a new file; an open file is closed and the new one opened."""
        filename = os.fspath(filename)
        with self._lock:
            if filename == self._filename:
                return
            self._filename = filename
            if self._handle is not None:
                self._close()
                self._open()

    def save_packet(self, packet: Packet) -> None:
        """Write one packet; raises OSError if the file cannot be opened."""
        with self._lock:
            if self._handle is None:
                self._open()
            seconds, nanos = divmod(packet.timestamp, 1_000_000_000)
            length = len(packet.data)
            self._handle.write(
                _RECORD_HEADER.pack(seconds, nanos // 1000, length, length)
            )
            self._handle.write(packet.data)

    def close(self) -> None:
        """Close the file if it is open."""
        with self._lock:
            self._close()

    def __enter__(self) -> PcapWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _open(self) -> None:
        self._close()
        try:
            handle = open(self._filename, "wb")
        except OSError as exc:
            raise OSError(f"Error opening pcap file: {self._filename}") from exc
        handle.write(
            _FILE_HEADER.pack(_MAGIC, *_VERSION, 0, 0, _SNAPLEN, self._link_type)
        )
        self._handle = handle

    def _close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None