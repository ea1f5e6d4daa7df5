"""Reading packets from pcap and pcapng capture files."""

from __future__ import annotations

import contextlib
import os
import struct
import sys
from collections.abc import Callable, Iterator
from typing import BinaryIO

from flowinspector.origin import PacketOrigin
from flowinspector.packet import LinkType, Packet

_PCAP_MAGICS = {
    b"\xd4\xc3\xb2\xa1": ("<", 1000),
    b"\xa1\xb2\xc3\xd4": (">", 1000),
    b"\x4d\x3c\xb2\xa1": ("<", 1),
    b"\xa1\xb2\x3c\x4d": (">", 1),
}
_PCAPNG_MAGIC = b"\x0a\x0d\x0d\x0a"
_BYTE_ORDER_MAGICS = {b"\x4d\x3c\x2b\x1a": "<", b"\x1a\x2b\x3c\x4d": ">"}

_SECTION_HEADER = 0x0A0D0D0A
_INTERFACE_DESCRIPTION = 1
_SIMPLE_PACKET = 3
_ENHANCED_PACKET = 6

_OPTION_END = 0
_OPTION_TSRESOL = 9
_DEFAULT_TSRESOL = 6


class PcapFormatError(ValueError):
    """A capture file is malformed or of an unknown format."""


def _read(handle: BinaryIO, size: int, what: str, eof_ok: bool = False) -> bytes | None:
    data = handle.read(size)
    if eof_ok and not data:
        return None
    if len(data) < size:
        raise PcapFormatError(f"truncated {what}")
    return data


def _as_link_type(value: int) -> int:
    try:
        return LinkType(value)
    except ValueError:
        return value


def _classic_header(handle: BinaryIO, magic: bytes) -> tuple[str, int, int]:
    order, scale = _PCAP_MAGICS[magic]
    rest = _read(handle, 20, "file header")
    *_, network = struct.unpack(order + "HHiIII", rest)
    return order, scale, _as_link_type(network & 0x0FFFFFFF)


def _classic_packets(
    handle: BinaryIO, order: str, scale: int, link_type: int
) -> Iterator[Packet]:
    record = struct.Struct(order + "IIII")
    while (header := _read(handle, record.size, "record header", eof_ok=True)) is not None:
        seconds, fraction, captured, _original = record.unpack(header)
        data = _read(handle, captured, "packet data")
        yield Packet(data, seconds * 1_000_000_000 + fraction * scale, link_type)


def _timestamp_scale(tsresol: int) -> Callable[[int], int]:
    exponent = tsresol & 0x7F
    if tsresol & 0x80:
        return lambda ticks: (ticks * 1_000_000_000) >> exponent
    if exponent <= 9:
        factor = 10 ** (9 - exponent)
        return lambda ticks: ticks * factor
    divisor = 10 ** (exponent - 9)
    return lambda ticks: ticks // divisor


def _interface_tsresol(options: bytes, order: str) -> int:
    position = 0
    while position + 4 <= len(options):
        code, length = struct.unpack_from(order + "HH", options, position)
        if code == _OPTION_END:
            break
        if code == _OPTION_TSRESOL and length >= 1:
            return options[position + 4]
        position += 4 + (length + 3) // 4 * 4
    return _DEFAULT_TSRESOL


def _pcapng_blocks(handle: BinaryIO) -> Iterator[tuple[str, int, bytes]]:
    """Yield (byte order, block type, body) for every block."""
    order = "<"
    while (head := _read(handle, 8, "block header", eof_ok=True)) is not None:
        if head[:4] == _PCAPNG_MAGIC:
            bom = _read(handle, 4, "byte-order magic")
            if bom not in _BYTE_ORDER_MAGICS:
                raise PcapFormatError("bad pcapng byte-order magic")
            order = _BYTE_ORDER_MAGICS[bom]
            (total,) = struct.unpack(order + "I", head[4:])
            if total < 16 or total % 4:
                raise PcapFormatError(f"bad block length {total}")
            rest = _read(handle, total - 12, "section header block")
            yield order, _SECTION_HEADER, bom + rest[:-4]
            continue
        block_type, total = struct.unpack(order + "II", head)
        if total < 12 or total % 4:
            raise PcapFormatError(f"bad block length {total}")
        rest = _read(handle, total - 8, "block")
        yield order, block_type, rest[:-4]


def _pcapng_packets(blocks: Iterator[tuple[str, int, bytes]]) -> Iterator[Packet]:
    interfaces: list[tuple[int, Callable[[int], int]]] = []

    def interface(index: int) -> tuple[int, Callable[[int], int]]:
        try:
            return interfaces[index]
        except IndexError:
            raise PcapFormatError(f"packet refers to unknown interface {index}") from None

    for order, block_type, body in blocks:
        if block_type == _SECTION_HEADER:
            interfaces = []
        elif block_type == _INTERFACE_DESCRIPTION:
            if len(body) < 8:
                raise PcapFormatError("truncated interface description block")
            (link,) = struct.unpack_from(order + "H", body, 0)
            scale = _timestamp_scale(_interface_tsresol(body[8:], order))
            interfaces.append((_as_link_type(link), scale))
        elif block_type == _ENHANCED_PACKET:
            if len(body) < 20:
                raise PcapFormatError("truncated enhanced packet block")
            index, high, low, captured, _original = struct.unpack_from(
                order + "IIIII", body, 0
            )
            if 20 + captured > len(body):
                raise PcapFormatError("truncated packet data")
            link, scale = interface(index)
            yield Packet(body[20:20 + captured], scale((high << 32) | low), link)
        elif block_type == _SIMPLE_PACKET:
            if len(body) < 4:
                raise PcapFormatError("truncated simple packet block")
            (original,) = struct.unpack_from(order + "I", body, 0)
            link, _scale = interface(0)
            yield Packet(body[4:4 + original], 0, link)


def read_pcap(filename: str | os.PathLike[str]) -> Iterator[Packet]:
    """Yield the packets of a pcap or pcapng file in file order."""
    with open(filename, "rb") as handle:
        magic = _read(handle, 4, "file header")
        if magic in _PCAP_MAGICS:
            order, scale, link_type = _classic_header(handle, magic)
            yield from _classic_packets(handle, order, scale, link_type)
        elif magic == _PCAPNG_MAGIC:
            handle.seek(0)
            yield from _pcapng_packets(_pcapng_blocks(handle))
        else:
            raise PcapFormatError(f"unknown capture file format: {magic.hex()}")


def _file_link_type(filename: str) -> int:
    with open(filename, "rb") as handle:
        magic = _read(handle, 4, "file header")
        if magic in _PCAP_MAGICS:
            return _classic_header(handle, magic)[2]
        if magic != _PCAPNG_MAGIC:
            raise PcapFormatError(f"unknown capture file format: {magic.hex()}")
        handle.seek(0)
        for order, block_type, body in _pcapng_blocks(handle):
            if block_type == _INTERFACE_DESCRIPTION and len(body) >= 2:
                return _as_link_type(struct.unpack_from(order + "H", body, 0)[0])
    raise PcapFormatError("capture file describes no interface")


class PcapReader(PacketOrigin):
    """Reads packets from a capture file."""

    def __init__(self, filename: str | os.PathLike[str] = "") -> None:
        super().__init__()
        self._filename = os.fspath(filename)

    @property
    def filename(self) -> str:
        return self._filename

    def set_filename(self, filename: str | os.PathLike[str]) -> None:
        self._filename = os.fspath(filename)

    def start_reading(self) -> None:
        """Feed every packet of the file to the processor.

        Raises OSError if the file cannot be opened and PcapFormatError if it
        is malformed.
        """
        with contextlib.closing(read_pcap(self._filename)) as packets:
            for packet in packets:
                if self.is_done_reading():
                    break
                self.process_packet(packet)

    def link_type(self) -> int:
        """The file's link type, or DLT_RAW1 if it cannot be read."""
        try:
            return _file_link_type(self._filename)
        except (OSError, PcapFormatError):
            print(f"Error opening pcap file: {self._filename}", file=sys.stderr)
            print(f"Current directory is {os.getcwd()}", file=sys.stderr)
            return LinkType.DLT_RAW1

    def _internal_stop_reading(self) -> None:
        """Nothing to release; the read loop checks the done flag."""