"""Signatures that match IPv4 source and destination addresses against masks."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Iterable
from dataclasses import dataclass

from flowinspector.packet import Packet, trim
from flowinspector.rules import Signature

HOME_NET_ADDRESS = "192.168.0.0/24"

_UINT32_MASK = 0xFFFFFFFF
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1


def _extracted_int(text: str) -> int:
    """The integer a stream extraction leaves: 0 if none, clamped to 32 bits."""
    match = _LEADING_INT.match(text)
    if match is None:
        return 0
    return max(_INT_MIN, min(_INT_MAX, int(match.group(1))))


def _getline_fields(text: str, delimiter: str) -> list[str]:
    """Split like repeated line reads: no trailing empty field."""
    if not text:
        return []
    fields = text.split(delimiter)
    if fields[-1] == "":
        fields.pop()
    return fields


def _bracketed_segments(text: str) -> tuple[str, str]:
    """The contents of the first two ``[...]`` groups, empty where missing."""
    segments = []
    position = 0
    for _ in range(2):
        start = text.find("[", position)
        if start == -1:
            segments.append("")
            position = len(text)
            continue
        end = text.find("]", start + 1)
        if end == -1:
            segments.append(text[start + 1:])
            position = len(text)
        else:
            segments.append(text[start + 1:end])
            position = end + 1
    return segments[0], segments[1]


def swap_octets(ip: int) -> int:
    """Reverse the byte order of a 32-bit value."""
    return int.from_bytes((ip & _UINT32_MASK).to_bytes(4, "big"), "little")


def mask_by_length(mask_length: int) -> int:
    """The netmask with ``mask_length`` leading one bits."""
    if not 0 <= mask_length <= 32:
        raise ValueError(f"mask length must be between 0 and 32, got {mask_length}")
    return (_UINT32_MASK << (32 - mask_length)) & _UINT32_MASK


def network_address(ip: int, mask_length: int) -> int:
    """``ip`` with its host bits cleared."""
    return ip & mask_by_length(mask_length)


def ip_to_int(text: str) -> int:
    """Dotted-quad address to its numeric value."""
    return int(ipaddress.IPv4Address(text))


def address_to_string(ip: int, mask_length: int) -> str:
    """Numeric address and mask length as ``a.b.c.d/n``."""
    octets = ".".join(str((ip >> shift) & 0xFF) for shift in (24, 16, 8, 0))
    return f"{octets}/{mask_length}"


def _normalise(masks: Iterable[tuple[int, int]]) -> frozenset[tuple[int, int]]:
    return frozenset((ip & _UINT32_MASK, mask & _UINT32_MASK) for ip, mask in masks)


def _matches(ip: int, masks: frozenset[tuple[int, int]]) -> bool:
    return not masks or any((ip & mask) == network for network, mask in masks)


def _parse_masks(segment: str) -> set[tuple[int, int]]:
    masks = set()
    for item in _getline_fields(segment, ","):
        item = trim(item)
        if item == "$HOME_NET":
            item = HOME_NET_ADDRESS
        if item == "any":
            continue
        ip_part, separator, mask_part = item.partition("/")
        mask_length = _extracted_int(mask_part) if separator else 32
        masks.add((ip_to_int(ip_part), mask_by_length(mask_length)))
    return masks


@dataclass(frozen=True)
class IPSignature(Signature):
    """Matches IPv4 packets whose addresses fit the (address, mask) pairs.

    An empty set of pairs accepts any address.
    """

    src_ip_masks: frozenset[tuple[int, int]] = frozenset()
    dst_ip_masks: frozenset[tuple[int, int]] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "src_ip_masks", _normalise(self.src_ip_masks))
        object.__setattr__(self, "dst_ip_masks", _normalise(self.dst_ip_masks))

    def check(self, packet: Packet) -> bool:
        ipv4 = packet.parsed().ipv4
        if ipv4 is None:
            return False
        return _matches(ipv4.src, self.src_ip_masks) and _matches(
            ipv4.dst, self.dst_ip_masks
        )

    @staticmethod
    def create(init_string: str) -> IPSignature:
        """Build from ``[src, ...], [dst, ...]`` with ``any`` and ``$HOME_NET``."""
        src_segment, dst_segment = _bracketed_segments(init_string)
        return IPSignature(
            frozenset(_parse_masks(src_segment)), frozenset(_parse_masks(dst_segment))
        )