"""Signatures that match a byte sequence anywhere in a packet or at an offset."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from flowinspector.console import debug_stream
from flowinspector.packet import Packet
from flowinspector.rules import Signature

_STREAM_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_UINT32_MASK = 0xFFFFFFFF


def _stream_ints(text: str) -> Iterator[int]:
    """Yield whitespace-separated integers, stopping at the first non-integer."""
    position = 0
    while (match := _STREAM_INT.match(text, position)) is not None:
        value = int(match.group(1))
        if not _INT_MIN <= value <= _INT_MAX:
            return
        yield value
        position = match.end()


def _string_to_int(text: str) -> int:
    """Read a leading integer, ignoring what follows it; raise if there is none."""
    match = _STREAM_INT.match(text)
    if match is None:
        raise ValueError(f"expected an integer, got {text!r}")
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


@dataclass(frozen=True)
class RawBytesSignature(Signature):
    """Matches packets containing ``payload``, optionally at a fixed ``offset``."""

    payload: bytes
    offset: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", bytes(self.payload))
        if self.offset is not None:
            object.__setattr__(self, "offset", int(self.offset) & _UINT32_MASK)
        debug_stream().write("".join(f"{b} " for b in self.payload) + "\n")

    def check(self, packet: Packet) -> bool:
        data = packet.data
        if self.offset is not None:
            end = self.offset + len(self.payload)
            return end <= len(data) and data[self.offset:end] == self.payload
        index = data.find(self.payload)
        result = index != -1 and index < len(data)
        debug_stream().write(f"Result is: {int(result)}\n")
        return result

    @staticmethod
    def create(init_string: str) -> RawBytesSignature:
        """Build from ``[b1 b2 ...]`` or ``[b1 b2 ...], offset``."""
        data_string, separator, rest = init_string.partition(",")
        data_string = data_string[data_string.find("[") + 1:]
        close = data_string.find("]")
        if close == -1:
            raise ValueError(f"raw_bytes payload lacks ']': {init_string!r}")
        payload = bytes(value & 0xFF for value in _stream_ints(data_string[:close]))
        offset = None
        if separator and rest:
            offset = _string_to_int(rest.partition(",")[0]) & _UINT32_MASK
        return RawBytesSignature(payload, offset)