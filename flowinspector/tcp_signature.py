"""Signatures that match TCP source and destination ports."""

from __future__ import annotations

from dataclasses import dataclass

from flowinspector.ip_signature import _bracketed_segments, _extracted_int
from flowinspector.packet import Packet
from flowinspector.rules import Signature

_PORT_MASK = 0xFFFF


def _port(text: str) -> int:
    text = text.strip(" \t")
    if not text or text == "any":
        return 0
    return _extracted_int(text) & _PORT_MASK


@dataclass(frozen=True)
class TCPSignature(Signature):
    """Matches TCP segments on source and destination; zero on a side is a wildcard."""

    src_port: int = 0
    dst_port: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "src_port", int(self.src_port) & _PORT_MASK)
        object.__setattr__(self, "dst_port", int(self.dst_port) & _PORT_MASK)

    def check(self, packet: Packet) -> bool:
        tcp = packet.parsed().tcp
        if tcp is None:
            return False
        src_match = self.src_port == 0 or tcp.src_port == self.src_port
        dst_match = self.dst_port == 0 or tcp.dst_port == self.dst_port
        return src_match and dst_match

    @staticmethod
    def create(init_string: str) -> TCPSignature:
        """Build from ``[source], [destination]``; ``any`` or empty matches anything."""
        src_segment, dst_segment = _bracketed_segments(init_string)
        return TCPSignature(_port(src_segment), _port(dst_segment))