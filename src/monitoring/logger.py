# Console/status helpers and logging sink for the EventBus
"""
Publishing helpers and a stdlib-logging mirror for relay events.

Provides:
- emit_console: build and publish a console line
- emit_status: publish a BotStatus snapshot
- LoggingConsoleSink: subscribes to an EventBus and mirrors console lines
  into the `minebuddy.console` logger

Usage:

    bus = EventBus()
    LoggingConsoleSink(bus)

    emit_console(bus, "Bot spawned in the world", ConsoleSeverity.SUCCESS)
"""

from __future__ import annotations

import logging
from typing import Dict

from shared.types import BotStatus, ConsoleMessage, ConsoleSeverity
from .bus import EventBus
from .events import RelayEvent, RelayEventType


CONSOLE_LOGGER_NAME = "minebuddy.console"

_LEVELS: Dict[ConsoleSeverity, int] = {
    ConsoleSeverity.ERROR: logging.ERROR,
    ConsoleSeverity.WARN: logging.WARNING,
}


# ============================================================
# Convenience helpers for emitting events
# ============================================================

def emit_console(
    bus: EventBus,
    message: str,
    severity: ConsoleSeverity = ConsoleSeverity.INFO,
) -> ConsoleMessage:
    """
    Publish one console line to every subscriber.

    Returns the ConsoleMessage so callers can assert on it in tests.
    """
    line = ConsoleMessage(message=message, severity=severity)
    bus.publish(RelayEvent.console(line))
    return line


def emit_status(bus: EventBus, status: BotStatus) -> None:
    """Publish a full status snapshot."""
    bus.publish(RelayEvent.status(status))


# ============================================================
# Logging sink
# ============================================================

class LoggingConsoleSink:
    """
    Mirrors console events into the standard logging module.

    Status events are ignored; they arrive every second while connected.
    """

    def __init__(self, bus: EventBus, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(CONSOLE_LOGGER_NAME)
        self._bus = bus
        bus.subscribe(self._on_event)

    def _on_event(self, event: RelayEvent) -> None:
        if event.event_type is not RelayEventType.CONSOLE:
            return
        line = event.data
        assert isinstance(line, ConsoleMessage)
        level = _LEVELS.get(line.severity, logging.INFO)
        self._logger.log(level, "[%s] %s", line.severity.value, line.message)

    def close(self) -> None:
        self._bus.unsubscribe(self._on_event)
