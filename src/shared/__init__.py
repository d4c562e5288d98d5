# src/shared/__init__.py
"""
Shared types and the game-client capability interface.
"""

from __future__ import annotations

from .types import (
    AntiAfkState,
    BotAction,
    BotConfig,
    BotConfigPatch,
    BotStatus,
    ConsoleMessage,
    ConsoleSeverity,
    InventoryItem,
    NearbyEntity,
)
from .game_client import (
    Block,
    ConnectParams,
    EntityView,
    GameClient,
    GameClientFactory,
    GameEvent,
    ItemStack,
    MovementSettings,
    Vec3,
)

__all__ = [
    "AntiAfkState",
    "BotAction",
    "BotConfig",
    "BotConfigPatch",
    "BotStatus",
    "ConsoleMessage",
    "ConsoleSeverity",
    "InventoryItem",
    "NearbyEntity",
    "Block",
    "ConnectParams",
    "EntityView",
    "GameClient",
    "GameClientFactory",
    "GameEvent",
    "ItemStack",
    "MovementSettings",
    "Vec3",
]
