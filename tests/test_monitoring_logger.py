#tests/test_monitoring_logger.py
"""
Tests for monitoring.logger

Covers:
- emit_console / emit_status publish the right events
- LoggingConsoleSink mirrors console lines at severity-derived levels
- close() detaches the sink
"""

from __future__ import annotations

import logging

import pytest

from monitoring.bus import EventBus
from monitoring.events import RelayEventType
from monitoring.logger import CONSOLE_LOGGER_NAME, LoggingConsoleSink, emit_console, emit_status
from shared.types import BotStatus, ConsoleSeverity


def test_emit_console_returns_line(bus, recorder):
    line = emit_console(bus, "Bot spawned in the world", ConsoleSeverity.SUCCESS)

    assert line.message == "Bot spawned in the world"
    assert line.severity is ConsoleSeverity.SUCCESS
    assert line.timestamp > 0
    assert recorder.console() == ["Bot spawned in the world"]


def test_emit_status(bus, recorder):
    status = BotStatus(connected=True, health=12)
    emit_status(bus, status)

    assert recorder.statuses() == [status]
    assert recorder.events[0].event_type is RelayEventType.STATUS


@pytest.mark.parametrize(
    "severity,level",
    [
        (ConsoleSeverity.ERROR, logging.ERROR),
        (ConsoleSeverity.WARN, logging.WARNING),
        (ConsoleSeverity.BOT, logging.INFO),
        (ConsoleSeverity.SERVER, logging.INFO),
    ],
)
def test_logging_sink_levels(caplog, severity, level):
    bus = EventBus()
    LoggingConsoleSink(bus)

    with caplog.at_level(logging.DEBUG, logger=CONSOLE_LOGGER_NAME):
        emit_console(bus, "a line", severity)

    (record,) = [r for r in caplog.records if r.name == CONSOLE_LOGGER_NAME]
    assert record.levelno == level
    assert record.getMessage() == f"[{severity.value}] a line"


def test_logging_sink_ignores_status_and_closes(caplog):
    bus = EventBus()
    sink = LoggingConsoleSink(bus)

    with caplog.at_level(logging.DEBUG, logger=CONSOLE_LOGGER_NAME):
        emit_status(bus, BotStatus())
        sink.close()
        emit_console(bus, "after close")

    assert [r for r in caplog.records if r.name == CONSOLE_LOGGER_NAME] == []
    assert bus.subscriber_count == 0
