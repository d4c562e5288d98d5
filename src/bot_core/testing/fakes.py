# src/bot_core/testing/fakes.py
"""
Test helpers for bot_core.

Provides:
- FakeGameClient: in-memory GameClient that records control calls and
  lets tests inject adapter events.
- FakeClientFactory: GameClientFactory that remembers every client it
  built, so tests can assert the single-adapter invariant.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from shared.game_client import (
    Block,
    ConnectParams,
    EntityView,
    GameEvent,
    ItemStack,
    MovementSettings,
    Vec3,
)


@dataclass
class ClientCall:
    """Record of one control call made on FakeGameClient."""

    name: str
    args: Tuple[Any, ...] = ()


class FakeGameClient:
    """
    In-memory GameClient used for unit and integration tests.

    Features:
    - Records every control call in `calls`.
    - State (entity, health, ...) is plain attributes tests can set.
    - emit() pushes a GameEvent onto the session queue.
    - No network, no helper process.
    """

    def __init__(
        self,
        params: Optional[ConnectParams] = None,
        events: Optional["asyncio.Queue[GameEvent]"] = None,
    ) -> None:
        self.params = params
        self.events: "asyncio.Queue[GameEvent]" = events if events is not None else asyncio.Queue()
        self.calls: List[ClientCall] = []

        self.started = False
        self.quit_called = False
        self.closed = False

        self.entity: Optional[EntityView] = EntityView(
            entity_id=1, kind="player", position=Vec3(0.0, 64.0, 0.0), username="MineBuddy_Bot"
        )
        self.health: Optional[float] = 20
        self.food: Optional[float] = 20
        self.dimension: Optional[str] = "overworld"
        self.inventory_slots: List[Optional[ItemStack]] = []
        self.entities: Dict[int, EntityView] = {}
        self.has_pathfinder = True

        self.controls: Dict[str, bool] = {}
        self.cursor_block: Optional[Block] = None
        self.dig_error: Optional[BaseException] = None
        self.fail_on: Dict[str, BaseException] = {}

    # ------------------------------------------------------------------
    # GameClient protocol
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._record("start")
        self.started = True

    def quit(self) -> None:
        self._record("quit")
        self.quit_called = True

    def close(self) -> None:
        self._record("close")
        self.closed = True

    def look(self, yaw: float, pitch: float, force: bool = False) -> None:
        self._record("look", yaw, pitch, force)
        if self.entity is not None:
            self.entity.yaw = yaw
            self.entity.pitch = pitch

    def set_control_state(self, control: str, state: bool) -> None:
        self._record("set_control_state", control, state)
        self.controls[control] = state

    def get_control_state(self, control: str) -> bool:
        return self.controls.get(control, False)

    def clear_control_states(self) -> None:
        self._record("clear_control_states")
        self.controls.clear()

    def swing_arm(self) -> None:
        self._record("swing_arm")

    def activate_item(self) -> None:
        self._record("activate_item")

    def attack(self, entity: EntityView) -> None:
        self._record("attack", entity.entity_id)

    def nearest_entity(self) -> Optional[EntityView]:
        if self.entity is None:
            return None
        others = [e for e in self.entities.values() if e.entity_id != self.entity.entity_id]
        if not others:
            return None
        return min(others, key=lambda e: self.entity.position.distance_to(e.position))

    def chat(self, text: str) -> None:
        self._record("chat", text)

    async def dig(self, block: Block) -> None:
        self._record("dig", block.name)
        if self.dig_error is not None:
            raise self.dig_error

    async def block_at_cursor(self, max_distance: float) -> Optional[Block]:
        self._record("block_at_cursor", max_distance)
        return self.cursor_block

    def configure_movements(self, settings: MovementSettings) -> None:
        self._record("configure_movements", settings)

    def set_goal(self, x: float, y: float, z: float, reach: float = 1.0) -> None:
        self._record("set_goal", x, y, z, reach)

    # ------------------------------------------------------------------
    # Test-only helpers
    # ------------------------------------------------------------------

    def emit(self, kind: str, **payload: Any) -> None:
        """Push an adapter event as the real library would."""
        self.events.put_nowait(GameEvent(kind, dict(payload)))

    def add_entity(
        self, entity_id: int, kind: str, position: Tuple[float, float, float], **names: Any
    ) -> EntityView:
        ent = EntityView(entity_id=entity_id, kind=kind, position=Vec3(*position), **names)
        self.entities[entity_id] = ent
        return ent

    def move_to(self, x: float, y: float, z: float) -> None:
        if self.entity is not None:
            self.entity.position = Vec3(x, y, z)

    def called(self, name: str) -> List[ClientCall]:
        return [c for c in self.calls if c.name == name]

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append(ClientCall(name, args))
        exc = self.fail_on.get(name)
        if exc is not None:
            raise exc


class FakeClientFactory:
    """GameClientFactory that keeps every client it created."""

    def __init__(self, fail_with: Optional[BaseException] = None) -> None:
        self.clients: List[FakeGameClient] = []
        self.fail_with = fail_with

    def __call__(
        self, params: ConnectParams, events: "asyncio.Queue[GameEvent]"
    ) -> FakeGameClient:
        if self.fail_with is not None:
            raise self.fail_with
        client = FakeGameClient(params, events)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeGameClient:
        return self.clients[-1]

