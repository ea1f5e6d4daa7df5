"""Matching packets against rules loaded from rule text."""

from __future__ import annotations

import os
import threading
from types import TracebackType

from flowinspector.console import debug_stream, info_stream
from flowinspector.content_signature import ContentSignature
from flowinspector.events import EventsHandler
from flowinspector.ip_signature import IPSignature
from flowinspector.logger import Logger
from flowinspector.packet import Packet, trim
from flowinspector.raw_bytes_signature import RawBytesSignature
from flowinspector.rules import (
    Event,
    EventType,
    Rule,
    Signature,
    is_valid_event_type,
)
from flowinspector.signature_factory import SignatureFactory, default_factory
from flowinspector.tcp_signature import TCPSignature


class RuleError(ValueError):
    """A rule, or a line of a rules file, could not be parsed."""


def _fields(text: str, delimiter: str) -> list[str]:
    """Split like repeated delimited line reads: no trailing empty field."""
    if not text:
        return []
    parts = text.split(delimiter)
    if parts[-1] == "":
        parts.pop()
    return parts


def _rule_error(message: str) -> RuleError:
    stream = debug_stream()
    stream.write(message + "\n")
    stream.flush()
    return RuleError(message)


class Analyzer:
    """Checks packets against rules and raises their events.

    A rule is written ``event;name;type(args);type(args);...``. Equal
    signatures are shared between rules.
    """

    def __init__(
        self,
        logger: Logger,
        events_handler: EventsHandler,
        factory: SignatureFactory | None = None,
    ) -> None:
        self._logger = logger
        self._events = events_handler
        self._factory = default_factory() if factory is None else factory
        self._factory.register("raw_bytes", RawBytesSignature.create)
        self._factory.register("ip", IPSignature.create)
        self._factory.register("tcp", TCPSignature.create)
        self._factory.register("content", ContentSignature.create)

        self._rules_lock = threading.Lock()
        self._rules: dict[Rule, Rule] = {}
        self._signatures: dict[Signature, Signature] = {}
        self._snapshot: tuple[Rule, ...] = ()

        self._count_lock = threading.Lock()
        self._packets_count = 0
        self._stat_interval = 0
        self._stop_stats = threading.Event()
        self._stats_thread: threading.Thread | None = None

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._snapshot

    def detect_threats(self, packet: Packet) -> None:
        """Raise an event for every rule that ``packet`` matches."""
        with self._count_lock:
            self._packets_count += 1
        for rule in self._snapshot:
            if rule.check(packet):
                self._events.add_event(Event(rule.event_type, rule, packet))
                self._logger.log_debug("Threat detected")

    def parse_rule(self, rule: str) -> Rule:
        """Add one rule to the current set; raise RuleError if it is malformed."""
        with self._rules_lock:
            try:
                return self._parse_into(rule, self._rules, self._signatures)
            finally:
                self._snapshot = tuple(self._rules)

    def signature_count(self) -> int:
        """Number of distinct signatures loaded."""
        with self._rules_lock:
            return len(self._signatures)

    def set_stat_speed(self, interval: int) -> None:
        """Print the packet count every ``interval`` seconds; 0 turns it off."""
        if interval < 0:
            raise ValueError(f"interval must not be negative, got {interval}")
        self._stop_stats_thread()
        self._stat_interval = interval
        if interval:
            self._stop_stats = threading.Event()
            self._stats_thread = threading.Thread(
                target=self._print_stats,
                args=(self._stop_stats, interval),
                name="analyzer-stats",
                daemon=True,
            )
            self._stats_thread.start()

    def update_rules_from_file(self, filename: str | os.PathLike[str]) -> int:
        """Replace all rules with those in ``filename``; return how many there are.

        Raises RuleError for a malformed rule and OSError if the file cannot
        be read; the current rules are then kept.
        """
        name = os.fspath(filename)
        self._logger.log_message(f"Updating rules from file: {name}")
        rules: dict[Rule, Rule] = {}
        signatures: dict[Signature, Signature] = {}
        try:
            self._parse_rules_file(name, rules, signatures)
        except (OSError, RuleError):
            self._logger.log_message(f"Failed to parse rules file: {name}")
            raise
        with self._rules_lock:
            self._rules = rules
            self._signatures = signatures
            self._snapshot = tuple(rules)
        self._logger.log_message(
            f"Rules successfully updated. Total rules: {len(rules)}"
        )
        return len(rules)

    def close(self) -> None:
        """Stop printing statistics."""
        self._stop_stats_thread()

    def __enter__(self) -> Analyzer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _stop_stats_thread(self) -> None:
        self._stop_stats.set()
        if self._stats_thread is not None:
            self._stats_thread.join()
            self._stats_thread = None

    def _print_stats(self, stop: threading.Event, interval: int) -> None:
        while not stop.is_set():
            with self._count_lock:
                count, self._packets_count = self._packets_count, 0
            stream = info_stream()
            stream.write(f"Current speed: {count} packets per second\n")
            stream.flush()
            stop.wait(interval)

    def _parse_rules_file(
        self,
        filename: str,
        rules: dict[Rule, Rule],
        signatures: dict[Signature, Signature],
    ) -> None:
        stream = info_stream()
        stream.write(f"Starting reading rules from {filename}\n")
        stream.flush()
        with open(filename, encoding="utf-8", errors="surrogateescape", newline="") as f:
            text = f.read()
        count = 0
        for line in _fields(text, "\n"):
            if not line or line.startswith("#"):
                continue
            self._parse_into(line, rules, signatures)
            count += 1
        stream = info_stream()
        stream.write(f"Successfully read {count} rules\n")
        stream.flush()

    def _parse_into(
        self,
        rule: str,
        rules: dict[Rule, Rule],
        signatures: dict[Signature, Signature],
    ) -> Rule:
        fields = _fields(rule, ";")
        if not fields:
            raise _rule_error(f"{rule} rule doesn't contain event")
        if len(fields) < 2:
            raise _rule_error(f"{rule} rule doesn't contain name")
        event_name, name, *signature_texts = fields
        if not is_valid_event_type(event_name):
            raise _rule_error(f"{rule} rule contains invalid event")

        result = Rule(name, EventType.from_string(event_name))
        for text in signature_texts:
            text = trim(text)
            if not text:
                continue
            open_bracket = text.find("(")
            close_bracket = text.find(")", open_bracket) if open_bracket != -1 else -1
            if close_bracket == -1:
                raise _rule_error(f'{rule} "{text}" signature contains wrong brackets')
            type_name = trim(text[:open_bracket])
            init_string = text[open_bracket + 1:close_bracket]
            if type_name not in self._factory:
                raise _rule_error(
                    f'{rule} "{text}" unsupported signature type "{type_name}"'
                )
            try:
                signature = self._factory.create(type_name, init_string)
            except (ValueError, KeyError, IndexError) as exc:
                raise _rule_error(f'{rule} "{text}" invalid signature: {exc}') from exc
            result.add_signature(signatures.setdefault(signature, signature))
        return rules.setdefault(result, result)


def load_file(analyzer: Analyzer, filename: str | os.PathLike[str]) -> int:
    """Load the rules in ``filename`` into ``analyzer``; return how many there are."""
    return analyzer.update_rules_from_file(filename)