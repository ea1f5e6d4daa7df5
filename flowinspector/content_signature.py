"""Signatures that look for a string in a TCP or UDP payload."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from flowinspector.packet import Packet, trim
from flowinspector.rules import Signature


class Protocol(enum.Enum):
    """Payload a content signature inspects."""

    TCP = "tcp"
    UDP = "udp"
    HTTP = "http"


@dataclass(frozen=True)
class ContentSignature(Signature):
    """Matches packets whose payload for ``protocol`` contains ``content``.

    HTTP signatures are accepted but never match.
    """

    protocol: Protocol
    content: str
    flags: frozenset[str] = frozenset()

    def __init__(
        self, protocol: Protocol | str, content: str, flags: Iterable[str] = ()
    ) -> None:
        object.__setattr__(self, "protocol", Protocol(protocol))
        object.__setattr__(self, "content", content)
        object.__setattr__(self, "flags", frozenset(flags))

    def check(self, packet: Packet) -> bool:
        parsed = packet.parsed()
        if self.protocol is Protocol.TCP:
            layer = parsed.tcp
        elif self.protocol is Protocol.UDP:
            layer = parsed.udp
        else:
            return False
        if layer is None:
            return False
        return self.content.encode("utf-8") in layer.payload

    @staticmethod
    def create(init_string: str) -> ContentSignature:
        """Build from ``protocol, content, flag, ...``."""
        fields = init_string.split(",")
        protocol = trim(fields[0])
        content = trim(fields[1]) if len(fields) > 1 else ""
        flags = {flag for flag in map(trim, fields[2:]) if flag}
        return ContentSignature(protocol, content, flags)