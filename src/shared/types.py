# src/shared/types.py
"""
Shared data model for the MineBuddy relay.

This module defines:
- BotConfig / BotConfigPatch: the user-editable bot profile (pydantic,
  camelCase on the wire, snake_case in Python)
- BotAction: a discrete command issued from the dashboard
- BotStatus, InventoryItem, NearbyEntity: the derived status snapshot
- ConsoleSeverity / ConsoleMessage: one line of the operator console
- AntiAfkState: the scheduler's coordination state

Every type here is JSON-safe via `.to_dict()` or pydantic's
`model_dump(by_alias=True)`.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


AntiDetectionLevel = Literal["minimal", "balanced", "careful", "paranoid"]
ActionType = Literal["move", "attack", "use", "jump", "sneak", "stop", "command"]

DEFAULT_CHAT_TEMPLATE = "Hi {player}, I'm a bot!"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class BotConfig(BaseModel):
    """
    Connection and behaviour profile for the bot.

    `afk_interval` is only required to be positive here; the 10-300 second
    range is enforced by the dashboard form, not by the server.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    server_address: str = Field(alias="serverAddress")
    server_port: int = Field(default=25565, alias="serverPort", ge=1, le=65535)
    username: str = Field(min_length=1)
    version: str = Field(min_length=1)
    movement_speed: int = Field(default=3, alias="movementSpeed", ge=1, le=5)
    anti_detection_level: AntiDetectionLevel = Field(
        default="balanced", alias="antiDetectionLevel"
    )
    afk_interval: int = Field(default=30, alias="afkInterval", gt=0)
    chat_template: Optional[str] = Field(
        default=DEFAULT_CHAT_TEMPLATE, alias="chatTemplate"
    )
    anti_afk_enabled: bool = Field(default=False, alias="antiAfkEnabled")
    auto_respawn_enabled: bool = Field(default=True, alias="autoRespawnEnabled")
    chat_response_enabled: bool = Field(default=False, alias="chatResponseEnabled")

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys)."""
        return self.model_dump(by_alias=True)


class BotConfigPatch(BaseModel):
    """Partial BotConfig used by PATCH and by connect-time overrides."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    server_address: Optional[str] = Field(default=None, alias="serverAddress")
    server_port: Optional[int] = Field(default=None, alias="serverPort", ge=1, le=65535)
    username: Optional[str] = Field(default=None, min_length=1)
    version: Optional[str] = Field(default=None, min_length=1)
    movement_speed: Optional[int] = Field(default=None, alias="movementSpeed", ge=1, le=5)
    anti_detection_level: Optional[AntiDetectionLevel] = Field(
        default=None, alias="antiDetectionLevel"
    )
    afk_interval: Optional[int] = Field(default=None, alias="afkInterval", gt=0)
    chat_template: Optional[str] = Field(default=None, alias="chatTemplate")
    anti_afk_enabled: Optional[bool] = Field(default=None, alias="antiAfkEnabled")
    auto_respawn_enabled: Optional[bool] = Field(default=None, alias="autoRespawnEnabled")
    chat_response_enabled: Optional[bool] = Field(default=None, alias="chatResponseEnabled")

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent, keyed by python name."""
        return self.model_dump(exclude_unset=True)


class BotAction(BaseModel):
    """A user-issued control request."""

    type: ActionType
    direction: Optional[str] = None
    command: Optional[str] = None


# ---------------------------------------------------------------------------
# Status snapshot
# ---------------------------------------------------------------------------


@dataclass
class InventoryItem:
    name: str
    count: int
    slot: int


@dataclass
class NearbyEntity:
    name: str
    distance: int
    type: str


@dataclass
class BotStatus:
    """
    Derived snapshot of the bot, rebuilt from the adapter on every update.

    Never patched field-by-field; the lifecycle manager replaces the whole
    object and broadcasts it.
    """

    connected: bool = False
    position: Dict[str, int] = field(default_factory=lambda: {"x": 0, "y": 0, "z": 0})
    health: float = 0
    food: float = 0
    dimension: str = "Overworld"
    inventory: List[InventoryItem] = field(default_factory=list)
    nearby_entities: List[NearbyEntity] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["nearbyEntities"] = data.pop("nearby_entities")
        return data


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------


class ConsoleSeverity(str, Enum):
    """Tag shown next to each console line in the dashboard."""

    INFO = "info"
    ERROR = "error"
    SUCCESS = "success"
    WARN = "warn"
    SYSTEM = "system"
    BOT = "bot"
    SERVER = "server"


@dataclass
class ConsoleMessage:
    message: str
    severity: ConsoleSeverity
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "type": self.severity.value,
            "timestamp": self.timestamp,
        }


# ---------------------------------------------------------------------------
# Anti-AFK
# ---------------------------------------------------------------------------


class AntiAfkState(str, Enum):
    """
    What the anti-AFK scheduler is currently busy with.

    Only IDLE allows a new walk/mine/return behaviour to start.
    FARMING and CRAFTING are reserved for behaviours the scheduler does not
    run yet; nothing transitions into them.
    """

    IDLE = "idle"
    EXPLORING = "exploring"
    MINING = "mining"
    FARMING = "farming"
    CRAFTING = "crafting"
    RETURNING = "returning"
