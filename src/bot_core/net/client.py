# game-client factory wired to the YAML environment
# src/bot_core/net/client.py
"""
Adapter construction for bot_core.

The lifecycle manager only sees a GameClientFactory: a callable that
takes ConnectParams plus the session's event queue and returns a fresh
GameClient. This module builds that factory from the `client` section
of server.yaml (ClientProfile).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from env.schema import ClientProfile
from ..errors import BotCoreError
from shared.game_client import GameClientFactory

if TYPE_CHECKING:  # pragma: no cover
    import asyncio

    from shared.game_client import ConnectParams, GameClient, GameEvent

log = logging.getLogger(__name__)


def create_game_client_factory(profile: ClientProfile) -> GameClientFactory:
    """
    Return a factory for the adapter kind named in the profile.

    Supported kinds:
      - "bridge": BridgeGameClient, a helper process spoken to over
        JSON lines
    """
    if profile.kind == "bridge":
        # Lazy import to keep env -> net free of cycles.
        from .bridge_client import BridgeGameClient

        command = list(profile.command)

        def _factory(
            params: "ConnectParams", events: "asyncio.Queue[GameEvent]"
        ) -> "GameClient":
            log.debug("Creating bridge client with command %r", command)
            return BridgeGameClient(params, events, command)

        return _factory

    raise BotCoreError(
        "unknown_client_kind",
        f"Unknown client kind in server.yaml: {profile.kind!r}",
        {"kind": profile.kind},
    )
