"""Worker threads that parse queued packets and pass them to callbacks."""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from types import TracebackType

from flowinspector.analyzer import Analyzer
from flowinspector.console import debug_stream
from flowinspector.packet import Packet

Callback = Callable[[Packet], None]


def _debug(message: str) -> None:
    stream = debug_stream()
    stream.write(message + "\n")
    stream.flush()


class PacketProcessorsPool:
    """Runs queued packets through the analyzer and any extra callbacks.

    ``finish`` lets the workers drain the queue and then joins them.
    """

    _SLEEP_SECONDS = 0.01

    def __init__(self, analyzer: Analyzer, num_packet_processors: int) -> None:
        if num_packet_processors < 0:
            raise ValueError(
                f"number of processors must not be negative, got {num_packet_processors}"
            )
        self._analyzer = analyzer
        self._packets: queue.SimpleQueue[Packet] = queue.SimpleQueue()
        self._callbacks: list[Callback] = [analyzer.detect_threats]
        self._done = threading.Event()
        self._finish_lock = threading.Lock()
        self._processors: list[threading.Thread] = []
        for index in range(num_packet_processors):
            _debug("thread initialization started")
            thread = threading.Thread(
                target=self._process_packets,
                name=f"packet-processor-{index}",
                daemon=True,
            )
            thread.start()
            self._processors.append(thread)
            _debug("thread initialized")

    def add_callback(self, callback: Callback) -> None:
        self._callbacks.append(callback)

    def add_packet(self, packet: Packet) -> None:
        self._packets.put(packet)

    def get_packet(self) -> Packet | None:
        """Wait for the next packet; None once finished and the queue is empty."""
        while True:
            try:
                return self._packets.get_nowait()
            except queue.Empty:
                pass
            if self._done.is_set():
                return None
            try:
                return self._packets.get(timeout=self._SLEEP_SECONDS)
            except queue.Empty:
                continue

    def finish(self) -> None:
        """Process what is queued, then stop the workers."""
        with self._finish_lock:
            if self._done.is_set():
                return
            _debug("finish called")
            self._done.set()
            _debug("done stored")
            for thread in self._processors:
                thread.join()

    def __enter__(self) -> PacketProcessorsPool:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.finish()

    def _process_packets(self) -> None:
        _debug("thread started")
        while (packet := self.get_packet()) is not None:
            packet.parse()
            for callback in tuple(self._callbacks):
                callback(packet)
        _debug("thread ended")