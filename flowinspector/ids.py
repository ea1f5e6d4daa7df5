"""The intrusion detection system: a packet source wired to the analyzer."""

from __future__ import annotations

import os
from types import TracebackType

from flowinspector.analyzer import Analyzer, load_file
from flowinspector.console import info_stream
from flowinspector.events import EventsHandler
from flowinspector.logger import Logger, LogLevel
from flowinspector.origin import PacketOrigin
from flowinspector.pcap_writer import PcapWriter
from flowinspector.pool import PacketProcessorsPool
from flowinspector.rules import Event, EventType


class IDS:
    """Reads packets from an origin and checks them against loaded rules.

    Packets are queued to a pool of worker threads. Rules raising
    ``SaveToPcap`` events have their packets written to a pcap file.
    """

    def __init__(self, num_packet_processors: int, origin: PacketOrigin) -> None:
        self._logger = Logger()
        self._events = EventsHandler(self._logger)
        self._analyzer = Analyzer(self._logger, self._events)
        self._pcap_writer = PcapWriter(origin.link_type())
        self._pool = PacketProcessorsPool(self._analyzer, num_packet_processors)
        self._origin = origin
        self._closed = False
        origin.set_processor(self._pool.add_packet)
        self._events.add_event_callback(EventType.SAVE_TO_PCAP, self._save_packet)

    def _save_packet(self, event: Event) -> None:
        self._pcap_writer.save_packet(event.packet)

    def start(self) -> None:
        """Read packets from the origin until it is exhausted or stopped."""
        stream = info_stream()
        stream.write("Starting reading packets\n")
        stream.flush()
        self._origin.start_reading()

    def stop(self) -> None:
        """Ask the origin to stop reading."""
        self._origin.stop_reading()

    def load_rules(self, filename: str | os.PathLike[str]) -> int:
        """Replace the rules with those in ``filename``; return how many there are.

        Raises RuleError for a malformed rule and OSError if the file cannot
        be read.
        """
        return load_file(self._analyzer, filename)

    def set_log_level(self, level: LogLevel) -> None:
        self._logger.set_level(level)

    def set_stat_speed(self, interval: int) -> None:
        """Print throughput every ``interval`` seconds; 0 turns it off."""
        self._analyzer.set_stat_speed(interval)

    def set_output_filename(self, filename: str | os.PathLike[str]) -> None:
        """Set the file the event log is written to."""
        self._logger.set_output_filename(filename)

    def set_pcap_output_filename(self, filename: str | os.PathLike[str]) -> None:
        """Set the pcap file saved packets are written to."""
        self._pcap_writer.set_output_filename(filename)

    def close(self) -> None:
        """Process what is queued, then release files and threads."""
        if self._closed:
            return
        self._closed = True
        try:
            self._pool.finish()
            self._logger.log_message("IDS stopped.")
        finally:
            try:
                self._pcap_writer.close()
                self._analyzer.close()
            finally:
                self._logger.close()

    def __enter__(self) -> IDS:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()