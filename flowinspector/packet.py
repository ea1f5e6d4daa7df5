"""Captured packets and a small decoder for link, IPv4, TCP and UDP layers."""

from __future__ import annotations

import enum
import ipaddress
import struct
import time
from dataclasses import InitVar, dataclass, field

_WHITESPACE = " \t\n\v\f\r"

_ETHERTYPE_IPV4 = 0x0800
_ETHERTYPE_IPV6 = 0x86DD
_ETHERTYPE_VLAN = (0x8100, 0x88A8, 0x9100)

_PROTO_TCP = 6
_PROTO_UDP = 17

_IPV6_EXTENSIONS = (0, 43, 60)
_IPV6_FRAGMENT = 44


def trim(text: str) -> str:
    """Remove leading and trailing ASCII whitespace."""
    return text.strip(_WHITESPACE)


class LinkType(enum.IntEnum):
    """Link-layer header types as numbered in capture files."""

    NULL = 0
    ETHERNET = 1
    DLT_RAW1 = 12
    DLT_RAW2 = 14
    RAW = 101
    LOOP = 108
    LINUX_SLL = 113
    IPV4 = 228
    LINUX_SLL2 = 276


_RAW_LINK_TYPES = (LinkType.DLT_RAW1, LinkType.DLT_RAW2, LinkType.RAW, LinkType.IPV4)


@dataclass(frozen=True)
class IPv4Header:
    """Decoded IPv4 header; addresses are numbers in network order."""

    src: int
    dst: int
    protocol: int
    header_length: int
    total_length: int

    @property
    def src_address(self) -> str:
        return str(ipaddress.IPv4Address(self.src))

    @property
    def dst_address(self) -> str:
        return str(ipaddress.IPv4Address(self.dst))


@dataclass(frozen=True)
class TcpHeader:
    """Decoded TCP ports and the segment payload."""

    src_port: int
    dst_port: int
    payload: bytes


@dataclass(frozen=True)
class UdpHeader:
    """Decoded UDP ports and the datagram payload."""

    src_port: int
    dst_port: int
    payload: bytes


@dataclass(frozen=True)
class ParsedPacket:
    """The layers found in a packet; missing layers are None."""

    link_type: int
    ipv4: IPv4Header | None = None
    tcp: TcpHeader | None = None
    udp: UdpHeader | None = None


def _network_start(data: bytes, link_type: int) -> tuple[int, int] | None:
    """Return (offset, ethertype) of the network layer, or None."""
    if link_type == LinkType.ETHERNET:
        if len(data) < 14:
            return None
        offset = 12
        (ethertype,) = struct.unpack_from("!H", data, offset)
        while ethertype in _ETHERTYPE_VLAN:
            offset += 4
            if len(data) < offset + 2:
                return None
            (ethertype,) = struct.unpack_from("!H", data, offset)
        return offset + 2, ethertype
    if link_type == LinkType.LINUX_SLL:
        if len(data) < 16:
            return None
        return 16, struct.unpack_from("!H", data, 14)[0]
    if link_type == LinkType.LINUX_SLL2:
        if len(data) < 20:
            return None
        return 20, struct.unpack_from("!H", data, 0)[0]
    if link_type in (LinkType.NULL, LinkType.LOOP):
        if len(data) < 4:
            return None
        big = struct.unpack_from("!I", data, 0)[0]
        little = struct.unpack_from("<I", data, 0)[0]
        families = (big,) if link_type == LinkType.LOOP else (big, little)
        if 2 in families:
            return 4, _ETHERTYPE_IPV4
        if any(family in (24, 28, 30) for family in families):
            return 4, _ETHERTYPE_IPV6
        return None
    if link_type in _RAW_LINK_TYPES:
        if not data:
            return None
        version = data[0] >> 4
        if version == 4:
            return 0, _ETHERTYPE_IPV4
        if version == 6:
            return 0, _ETHERTYPE_IPV6
        return None
    return None


def _transport(
    segment: bytes, protocol: int
) -> tuple[TcpHeader | None, UdpHeader | None]:
    if protocol == _PROTO_TCP and len(segment) >= 20:
        src_port, dst_port = struct.unpack_from("!HH", segment, 0)
        header_length = (segment[12] >> 4) * 4
        if 20 <= header_length <= len(segment):
            return TcpHeader(src_port, dst_port, bytes(segment[header_length:])), None
    elif protocol == _PROTO_UDP and len(segment) >= 8:
        src_port, dst_port = struct.unpack_from("!HH", segment, 0)
        return None, UdpHeader(src_port, dst_port, bytes(segment[8:]))
    return None, None


def _parse_ipv4(data: bytes, offset: int, link_type: int) -> ParsedPacket:
    packet = data[offset:]
    if len(packet) < 20 or packet[0] >> 4 != 4:
        return ParsedPacket(link_type)
    header_length = (packet[0] & 0x0F) * 4
    if header_length < 20 or header_length > len(packet):
        return ParsedPacket(link_type)
    total_length, flags_fragment = struct.unpack_from("!H2xH", packet, 2)
    protocol = packet[9]
    src, dst = struct.unpack_from("!II", packet, 12)
    header = IPv4Header(src, dst, protocol, header_length, total_length)
    end = total_length if header_length <= total_length <= len(packet) else len(packet)
    more_fragments = bool(flags_fragment & 0x2000)
    fragment_offset = flags_fragment & 0x1FFF
    if more_fragments or fragment_offset:
        return ParsedPacket(link_type, header)
    tcp, udp = _transport(packet[header_length:end], protocol)
    return ParsedPacket(link_type, header, tcp, udp)


def _parse_ipv6(data: bytes, offset: int, link_type: int) -> ParsedPacket:
    packet = data[offset:]
    if len(packet) < 40 or packet[0] >> 4 != 6:
        return ParsedPacket(link_type)
    (payload_length,) = struct.unpack_from("!H", packet, 4)
    next_header = packet[6]
    end = 40 + payload_length if 40 + payload_length <= len(packet) else len(packet)
    position = 40
    while next_header in _IPV6_EXTENSIONS:
        if position + 2 > end:
            return ParsedPacket(link_type)
        next_header, length = packet[position], (packet[position + 1] + 1) * 8
        position += length
    if next_header == _IPV6_FRAGMENT or position > end:
        return ParsedPacket(link_type)
    tcp, udp = _transport(packet[position:end], next_header)
    return ParsedPacket(link_type, None, tcp, udp)


def parse_layers(data: bytes, link_type: int) -> ParsedPacket:
    """Decode the layers of ``data`` captured with the given link type."""
    start = _network_start(data, link_type)
    if start is None:
        return ParsedPacket(link_type)
    offset, ethertype = start
    if ethertype == _ETHERTYPE_IPV4:
        return _parse_ipv4(data, offset, link_type)
    if ethertype == _ETHERTYPE_IPV6:
        return _parse_ipv6(data, offset, link_type)
    return ParsedPacket(link_type)


@dataclass(eq=False)
class Packet:
    """Raw packet bytes with a capture timestamp in nanoseconds since the epoch."""

    data: bytes
    timestamp: int = 0
    link_type: int = LinkType.ETHERNET
    parse_at_init: InitVar[bool] = False
    _parsed: ParsedPacket | None = field(default=None, init=False, repr=False)

    def __post_init__(self, parse_at_init: bool) -> None:
        self.data = bytes(self.data)
        if parse_at_init:
            self.parse()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Packet):
            return NotImplemented
        return self.data == other.data

    def __hash__(self) -> int:
        return hash(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def to_string(self) -> str:
        """Bytes as decimal numbers in brackets, e.g. ``[1 2 3]``."""
        return "[" + " ".join(str(b) for b in self.data) + "]"

    def to_short_string(self) -> str:
        """The full string for packets under 10 bytes, otherwise empty."""
        if len(self.data) < 10:
            return self.to_string()
        return ""

    def parse(self) -> None:
        """Decode the packet's layers once and keep the result."""
        if self._parsed is None:
            self._parsed = parse_layers(self.data, self.link_type)

    def copy(self) -> Packet:
        """A new, unparsed packet with the same bytes and metadata."""
        return Packet(self.data, self.timestamp, self.link_type)

    def parsed(self) -> ParsedPacket:
        """The decoded layers; the packet must have been parsed."""
        if self._parsed is None:
            raise RuntimeError("packet has not been parsed")
        return self._parsed


def raw_packet(
    data: bytes, timestamp: int = 0, link_type: int = LinkType.ETHERNET
) -> Packet:
    """Build a packet from bytes; a zero timestamp means the current time."""
    if timestamp == 0:
        timestamp = time.time_ns() // 1000 * 1000
    return Packet(bytes(data), timestamp, link_type)