"""Dispatch of rule events to registered callbacks."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable

from flowinspector.logger import Logger, current_time
from flowinspector.rules import Alert, Event, EventType, LogEntry

EventCallback = Callable[[Event], None]


class EventsHandler:
    """Calls the callbacks registered for an event's type.

    Alert events are always written to the logger.
    """

    def __init__(self, logger: Logger) -> None:
        self._logger = logger
        self._callbacks: defaultdict[EventType, list[EventCallback]] = defaultdict(list)
        self.add_event_callback(EventType.ALERT, self._log_alert)

    def _log_alert(self, event: Event) -> None:
        self._logger.log_event(
            LogEntry(
                timestamp=current_time(),
                packet=event.packet.copy(),
                alert=Alert(event.rule.name),
            )
        )

    def add_event_callback(self, event_type: EventType, callback: EventCallback) -> None:
        self._callbacks[EventType(event_type)].append(callback)

    def add_event(self, event: Event) -> None:
        for callback in tuple(self._callbacks.get(event.event_type, ())):
            callback(event)