# src/monitoring/__init__.py
"""
Relay monitoring: event bus, relay events, console/logging helpers and
the terminal dashboard.
"""

from __future__ import annotations

from .bus import EventBus
from .events import RelayEvent, RelayEventType
from .logger import LoggingConsoleSink, emit_console, emit_status

__all__ = [
    "EventBus",
    "LoggingConsoleSink",
    "RelayEvent",
    "RelayEventType",
    "emit_console",
    "emit_status",
]
