"""Alerts, log entries, events, signatures and detection rules."""

from __future__ import annotations

import abc
import enum
import re
from dataclasses import dataclass

from flowinspector.packet import Packet

_INT_PATTERN = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1


@dataclass(frozen=True)
class Alert:
    """A security alert carrying a message."""

    message: str

    def to_string(self) -> str:
        return self.message

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class LogEntry:
    """One log record: a timestamp and any of a packet, alert or message."""

    timestamp: int
    packet: Packet | None = None
    alert: Alert | None = None
    message: str | None = None


class Signature(abc.ABC):
    """A condition a packet can satisfy; subclasses define equality and hashing."""

    @abc.abstractmethod
    def check(self, packet: Packet) -> bool:
        """Return True if ``packet`` matches."""


class EventType(enum.Enum):
    """Kinds of event a rule can raise."""

    ALERT = "Alert"
    NOTIFY = "Notify"
    SAVE_TO_PCAP = "SaveToPcap"
    TEST_EVENT = "TestEvent"
    TEST_EVENT1 = "TestEvent1"
    TEST_EVENT2 = "TestEvent2"
    INVALID = "InvalidEventType"

    @staticmethod
    def from_string(text: str) -> EventType:
        """Map a rule-file name to its event type, or INVALID."""
        if is_valid_event_type(text):
            return EventType(text)
        return EventType.INVALID


_VALID_EVENT_NAMES = frozenset(
    member.value for member in EventType if member is not EventType.INVALID
)


def is_valid_event_type(text: str) -> bool:
    """True if ``text`` names an event type usable in rules."""
    return text in _VALID_EVENT_NAMES


class Rule:
    """A named set of signatures; a packet matches when all signatures do."""

    def __init__(self, name: str, event_type: EventType) -> None:
        self._name = name
        self._event_type = EventType(event_type)
        self._signatures: list[Signature] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def event_type(self) -> EventType:
        return self._event_type

    @property
    def signatures(self) -> tuple[Signature, ...]:
        return tuple(self._signatures)

    def add_signature(self, signature: Signature) -> None:
        self._signatures.append(signature)

    def check(self, packet: Packet) -> bool:
        return all(signature.check(packet) for signature in self._signatures)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rule):
            return NotImplemented
        return (
            self._name == other._name
            and len(self._signatures) == len(other._signatures)
            and all(a is b for a, b in zip(self._signatures, other._signatures))
        )

    def __hash__(self) -> int:
        result = hash(self._name)
        for signature in self._signatures:
            result ^= hash(signature)
        return result

    def __repr__(self) -> str:
        return (
            f"Rule(name={self._name!r}, event_type={self._event_type}, "
            f"signatures={self._signatures!r})"
        )


@dataclass(frozen=True)
class Event:
    """An event raised by a rule for a packet."""

    event_type: EventType
    rule: Rule
    packet: Packet


def safe_string_to_int(text: str) -> int | None:
    """Parse a whole string as a 32-bit integer; None if it is not one."""
    match = _INT_PATTERN.fullmatch(text)
    if match is None:
        return None
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        return None
    return value