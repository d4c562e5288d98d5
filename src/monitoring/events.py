# path: src/monitoring/events.py
"""
Relay event schemas.

This module defines:
- RelayEventType enum (STATUS, CONSOLE)
- RelayEvent, the unit published on monitoring.bus.EventBus

Every event serialises to the exact shape pushed to dashboard clients:

    {"type": "status",  "data": <BotStatus>}
    {"type": "console", "data": {"message": ..., "type": ..., "timestamp": ...}}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

from shared.types import BotStatus, ConsoleMessage


# ============================================================
# Event Types
# ============================================================

class RelayEventType(Enum):
    """Kinds of events fanned out to subscribers."""

    # Full BotStatus snapshot; consumers treat it as latest truth, not a delta
    STATUS = "status"

    # One operator console line
    CONSOLE = "console"


# ============================================================
# Relay Event Structure
# ============================================================

@dataclass
class RelayEvent:
    """
    Event published by the lifecycle manager, scheduler, or dispatcher.

    `data` is a BotStatus for STATUS and a ConsoleMessage for CONSOLE.
    """

    event_type: RelayEventType
    data: Union[BotStatus, ConsoleMessage]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON-safe wire shape."""
        return {"type": self.event_type.value, "data": self.data.to_dict()}

    @staticmethod
    def status(status: BotStatus) -> "RelayEvent":
        return RelayEvent(RelayEventType.STATUS, status)

    @staticmethod
    def console(message: ConsoleMessage) -> "RelayEvent":
        return RelayEvent(RelayEventType.CONSOLE, message)
