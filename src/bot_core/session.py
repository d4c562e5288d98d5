# src/bot_core/session.py
"""
Explicitly owned state for one bot connection.

A BotSession lives from connect() until end/kick/disconnect. It bundles
the single adapter instance, the config it was launched with, the event
queue the adapter feeds, and every timer the session started. The
lifecycle manager owns it; the scheduler and dispatcher only borrow it.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from env.schema import AntiDetectionPreset
from shared.game_client import GameClient, GameEvent
from shared.types import BotConfig
from .timers import SessionTimers

if TYPE_CHECKING:  # pragma: no cover
    from .anti_afk import AntiAfkScheduler


class LifecycleState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class BotSession:
    client: GameClient
    config: BotConfig
    preset: AntiDetectionPreset
    events: "asyncio.Queue[GameEvent]"
    timers: SessionTimers
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: LifecycleState = LifecycleState.CONNECTING
    pump_task: Optional["asyncio.Task[Any]"] = None
    scheduler: Optional["AntiAfkScheduler"] = None
    closed: bool = False

    @property
    def connected(self) -> bool:
        return not self.closed and self.state is LifecycleState.CONNECTED
