# src/shared/game_client.py
"""
Capability interface for the external game-protocol client.

The protocol handshake, world model, physics and pathfinding all live in
the game-client library. The relay only needs the surface declared here:

- lifecycle: start() / quit() / close()
- controls: look, set/get/clear control states, swing_arm, activate_item,
  attack, chat, dig, set_goal
- read-only state: entity, health, food, dimension, inventory_slots,
  entities
- events: GameEvent objects pushed onto the queue handed to the factory

Adapters expose optional fields as explicit Optional attributes instead
of ad-hoc dict lookups. Display names resolve in a single place,
`EntityView.display`.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from .types import BotConfig


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Vec3:
    x: float
    y: float
    z: float

    def distance_to(self, other: "Vec3") -> float:
        return math.sqrt(
            (self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2
        )

    def floored(self) -> Dict[str, int]:
        return {"x": math.floor(self.x), "y": math.floor(self.y), "z": math.floor(self.z)}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Vec3":
        return cls(float(data.get("x", 0.0)), float(data.get("y", 0.0)), float(data.get("z", 0.0)))


@dataclass
class EntityView:
    """
    An entity as reported by the adapter.

    `kind` is the adapter's entity type ("player", "mob", "object", ...).
    """

    entity_id: int
    kind: str
    position: Vec3
    yaw: float = 0.0
    pitch: float = 0.0
    username: Optional[str] = None
    name: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def display(self) -> str:
        """Resolve a label: username, then name, then display_name, then kind."""
        return self.username or self.name or self.display_name or self.kind


@dataclass
class ItemStack:
    name: str
    count: int
    slot: int


@dataclass
class Block:
    name: str
    position: Vec3


@dataclass
class MovementSettings:
    """Pathfinder tuning applied once the bot has spawned."""

    can_dig: bool = False
    max_drop_down: int = 3
    blocks_cant_break: Tuple[str, ...] = ("bedrock",)


@dataclass
class ConnectParams:
    """
    Parameters handed to the game-client library.

    Timeouts are generous because hosted servers are often slow to answer
    keep-alives while they are still waking up.
    """

    host: str
    port: int
    username: str
    version: str
    respawn: bool = True
    hide_errors: bool = False
    check_timeout_interval_ms: int = 120_000
    no_pong_timeout_ms: int = 60_000
    close_timeout_ms: int = 30_000
    chat_length_limit: int = 100
    view_distance: str = "far"
    physics_enabled: bool = True
    auto_eat: bool = False

    @classmethod
    def from_config(cls, config: BotConfig) -> "ConnectParams":
        return cls(
            host=config.server_address,
            port=config.server_port,
            username=config.username,
            version=config.version,
            respawn=config.auto_respawn_enabled,
        )


@dataclass
class GameEvent:
    """
    One lifecycle event from the adapter.

    kind is one of: spawn, health, move, message, kicked, error, end.
    Payload keys per kind:
        message: text, is_private, sender
        kicked:  reason
        error:   message, code
    """

    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Adapter protocol
# ---------------------------------------------------------------------------


class GameClient(Protocol):
    """Everything the relay requires from a game-client adapter."""

    @property
    def entity(self) -> Optional[EntityView]:
        """The bot's own entity, or None before spawn."""
        ...

    @property
    def health(self) -> Optional[float]:
        ...

    @property
    def food(self) -> Optional[float]:
        ...

    @property
    def dimension(self) -> Optional[str]:
        ...

    @property
    def inventory_slots(self) -> List[Optional[ItemStack]]:
        ...

    @property
    def entities(self) -> Mapping[int, EntityView]:
        ...

    @property
    def has_pathfinder(self) -> bool:
        ...

    def start(self) -> None:
        """Launch the asynchronous connect. Must not block."""
        ...

    def quit(self) -> None:
        """Leave the server gracefully."""
        ...

    def close(self) -> None:
        """Release local resources without a quit handshake. Idempotent."""
        ...

    def look(self, yaw: float, pitch: float, force: bool = False) -> None:
        ...

    def set_control_state(self, control: str, state: bool) -> None:
        ...

    def get_control_state(self, control: str) -> bool:
        ...

    def clear_control_states(self) -> None:
        ...

    def swing_arm(self) -> None:
        ...

    def activate_item(self) -> None:
        ...

    def attack(self, entity: EntityView) -> None:
        ...

    def nearest_entity(self) -> Optional[EntityView]:
        ...

    def chat(self, text: str) -> None:
        ...

    async def dig(self, block: Block) -> None:
        ...

    async def block_at_cursor(self, max_distance: float) -> Optional[Block]:
        ...

    def configure_movements(self, settings: MovementSettings) -> None:
        ...

    def set_goal(self, x: float, y: float, z: float, reach: float = 1.0) -> None:
        ...


GameClientFactory = Callable[[ConnectParams, "asyncio.Queue[GameEvent]"], GameClient]


def other_entities(client: GameClient) -> Iterable[EntityView]:
    """Entities known to the adapter, excluding the bot itself."""
    me = client.entity
    for ent in client.entities.values():
        if me is not None and ent.entity_id == me.entity_id:
            continue
        yield ent
