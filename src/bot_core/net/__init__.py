# bot_core.net package
# src/bot_core/net/__init__.py
"""
Adapter layer for bot_core.

This package provides:
- BridgeGameClient: GameClient backed by a JSON-lines helper process
- create_game_client_factory: factory wired to the server.yaml client
  profile
"""

from __future__ import annotations

from .bridge_client import BridgeError, BridgeGameClient
from .client import create_game_client_factory

__all__ = [
    "BridgeError",
    "BridgeGameClient",
    "create_game_client_factory",
]
