"""Sources of packets that feed a processing function."""

from __future__ import annotations

import abc
import threading
from collections.abc import Callable

from flowinspector.console import debug_stream
from flowinspector.packet import Packet

PacketProcessor = Callable[[Packet], None]


class PacketOrigin(abc.ABC):
    """Something that reads packets and hands each one to a processor."""

    def __init__(self) -> None:
        self._processor: PacketProcessor | None = None
        self._done = threading.Event()

    def set_processor(self, processor: PacketProcessor) -> None:
        """Set the function that receives every packet read."""
        self._processor = processor

    def process_packet(self, packet: Packet) -> None:
        """Pass ``packet`` to the processor."""
        if self._processor is None:
            raise RuntimeError("no packet processor has been set")
        self._processor(packet)

    @abc.abstractmethod
    def start_reading(self) -> None:
        """Read packets until the source is exhausted or reading is stopped."""

    @abc.abstractmethod
    def link_type(self) -> int:
        """The link-layer type of the packets this source produces."""

    def stop_reading(self) -> None:
        """Ask the source to stop reading."""
        stream = debug_stream()
        stream.write("Stopping reading\n")
        stream.flush()
        self._done.set()
        self._internal_stop_reading()

    def is_done_reading(self) -> bool:
        """True once reading has been stopped."""
        return self._done.is_set()

    @abc.abstractmethod
    def _internal_stop_reading(self) -> None:
        """Source-specific work for stopping."""