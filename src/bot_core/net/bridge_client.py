# Game-client adapter backed by a helper process
# src/bot_core/net/bridge_client.py
"""
JSON-lines bridge to an out-of-process game-client library.

The protocol handshake, world model, physics and pathfinding live in a
helper process (typically a small node script hosting mineflayer). This
adapter launches it, writes commands to its stdin and reads events from
its stdout.

Message format (one UTF-8 JSON object per line):

  relay -> helper
    {"op": "connect", "params": {...ConnectParams...}}
    {"op": "look", "yaw": 1.2, "pitch": 0.0, "force": false}
    {"op": "control", "control": "forward", "state": true}
    {"op": "clear_controls"} / {"op": "swing_arm"} / {"op": "activate_item"}
    {"op": "attack", "entity_id": 42}
    {"op": "chat", "text": "..."}
    {"op": "movements", "settings": {...}}
    {"op": "goal", "x": .., "y": .., "z": .., "reach": 1.0}
    {"op": "dig", "id": 7, "position": {...}}           (expects reply)
    {"op": "block_at_cursor", "id": 8, "max_distance": 5}  (expects reply)
    {"op": "quit"}

  helper -> relay
    {"type": "state", ...}       mirror update, no event
    {"type": "spawn" | "health" | "move", "state": {...}}
    {"type": "message", "text": .., "is_private": .., "sender": ..}
    {"type": "kicked", "reason": ..}
    {"type": "error", "message": .., "code": ..}
    {"type": "end", "reason": ..}
    {"type": "reply", "id": 7, "ok": true, "result": {...}, "error": ..}

State pushes carry any subset of: entity, health, food, dimension,
inventory, entities, has_pathfinder. The adapter mirrors them locally so
every read-only property is a plain attribute lookup.

After quit (or close, when the connection is already gone) stdin is
closed; a helper still running QUIT_GRACE_S later is terminated.
"""

from __future__ import annotations

import asyncio
import dataclasses
import itertools
import json
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from shared.game_client import (
    Block,
    ConnectParams,
    EntityView,
    GameEvent,
    ItemStack,
    MovementSettings,
    Vec3,
)

log = logging.getLogger(__name__)

LIFECYCLE_EVENTS = ("spawn", "health", "move", "message", "kicked", "error", "end")
REQUEST_TIMEOUT_S = 15.0
QUIT_GRACE_S = 2.0
READ_LIMIT = 1 << 20


class BridgeError(RuntimeError):
    """A bridge request failed or the helper process went away."""


def parse_entity(data: Mapping[str, Any]) -> EntityView:
    return EntityView(
        entity_id=int(data.get("id", 0)),
        kind=str(data.get("type") or "object"),
        position=Vec3.from_mapping(data.get("position") or {}),
        yaw=float(data.get("yaw") or 0.0),
        pitch=float(data.get("pitch") or 0.0),
        username=data.get("username") or None,
        name=data.get("name") or None,
        display_name=data.get("displayName") or None,
    )


def parse_inventory(slots: Sequence[Any]) -> List[Optional[ItemStack]]:
    items: List[Optional[ItemStack]] = []
    for raw in slots:
        if not raw:
            items.append(None)
            continue
        items.append(
            ItemStack(name=str(raw["name"]), count=int(raw.get("count", 1)), slot=int(raw["slot"]))
        )
    return items


class BridgeGameClient:
    """GameClient implementation that drives a helper process over stdio."""

    def __init__(
        self,
        params: ConnectParams,
        events: "asyncio.Queue[GameEvent]",
        command: Sequence[str],
    ) -> None:
        self._params = params
        self._events = events
        self._command = list(command)

        self._proc: Optional[asyncio.subprocess.Process] = None
        self._reader_task: Optional["asyncio.Task[None]"] = None
        self._reaper_task: Optional["asyncio.Task[None]"] = None
        self._pending: Dict[int, "asyncio.Future[Any]"] = {}
        self._ids = itertools.count(1)
        self._ended = False
        self._quitting = False

        # mirrored state
        self._entity: Optional[EntityView] = None
        self._health: Optional[float] = None
        self._food: Optional[float] = None
        self._dimension: Optional[str] = None
        self._inventory: List[Optional[ItemStack]] = []
        self._entities: Dict[int, EntityView] = {}
        self._has_pathfinder = False
        self._controls: Dict[str, bool] = {}

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def entity(self) -> Optional[EntityView]:
        return self._entity

    @property
    def health(self) -> Optional[float]:
        return self._health

    @property
    def food(self) -> Optional[float]:
        return self._food

    @property
    def dimension(self) -> Optional[str]:
        return self._dimension

    @property
    def inventory_slots(self) -> List[Optional[ItemStack]]:
        return self._inventory

    @property
    def entities(self) -> Mapping[int, EntityView]:
        return self._entities

    @property
    def has_pathfinder(self) -> bool:
        return self._has_pathfinder

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Spawn the helper process in the background and send connect."""
        self._reader_task = asyncio.get_running_loop().create_task(
            self._run(), name="bridge-client"
        )

    def quit(self) -> None:
        """Ask the helper to leave the server, then release the process."""
        self._release(send_quit=True)

    def close(self) -> None:
        """Release the process without a quit op (connection already gone)."""
        self._release(send_quit=False)

    def _release(self, *, send_quit: bool) -> None:
        if self._quitting:
            return
        self._quitting = True
        if send_quit:
            self._send({"op": "quit"})
        self._close_stdin()
        self._fail_pending(BridgeError("client quit"))
        # before launch, _run sees _quitting and reaps the process itself
        if self._proc is not None:
            self._start_reaper()

    def _close_stdin(self) -> None:
        proc = self._proc
        if proc is not None and proc.stdin is not None and not proc.stdin.is_closing():
            proc.stdin.close()

    def _start_reaper(self) -> None:
        if self._reaper_task is None:
            self._reaper_task = asyncio.get_running_loop().create_task(
                self._reap(), name="bridge-reaper"
            )

    async def _reap(self) -> None:
        """Wait for the helper to exit; terminate, then kill, if it lingers."""
        proc = self._proc
        if proc is None or proc.returncode is not None:
            return
        try:
            await asyncio.wait_for(proc.wait(), QUIT_GRACE_S)
            return
        except asyncio.TimeoutError:
            log.warning("Bridge process %s still running after quit, terminating", proc.pid)

        try:
            proc.terminate()
            await asyncio.wait_for(proc.wait(), QUIT_GRACE_S)
        except ProcessLookupError:
            return
        except asyncio.TimeoutError:
            log.warning("Bridge process %s ignored SIGTERM, killing", proc.pid)
            try:
                proc.kill()
            except ProcessLookupError:
                return
            await proc.wait()

    async def _run(self) -> None:
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                limit=READ_LIMIT,
            )
        except OSError as exc:
            log.error("Could not launch bridge %r: %s", self._command, exc)
            code = "ENOENT" if isinstance(exc, FileNotFoundError) else None
            self._push("error", message=f"Could not launch game client: {exc}", code=code)
            self._push_end("game client process failed to start")
            return

        log.info("Bridge process started (pid=%s)", self._proc.pid)
        if self._quitting:
            # quit()/close() arrived while the process was launching
            log.info("Bridge released before connect, stopping pid=%s", self._proc.pid)
            self._close_stdin()
            self._start_reaper()
        else:
            self._send({"op": "connect", "params": dataclasses.asdict(self._params)})

        assert self._proc.stdout is not None
        try:
            while True:
                line = await self._proc.stdout.readline()
                if not line:
                    break
                self.handle_line(line)
        finally:
            returncode = await self._proc.wait()
            log.info("Bridge process exited with code %s", returncode)
            self._fail_pending(BridgeError("game client process exited"))
            self._push_end(f"game client process exited ({returncode})")

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def look(self, yaw: float, pitch: float, force: bool = False) -> None:
        if self._entity is not None:
            self._entity.yaw = yaw
            self._entity.pitch = pitch
        self._send({"op": "look", "yaw": yaw, "pitch": pitch, "force": force})

    def set_control_state(self, control: str, state: bool) -> None:
        self._controls[control] = state
        self._send({"op": "control", "control": control, "state": state})

    def get_control_state(self, control: str) -> bool:
        return self._controls.get(control, False)

    def clear_control_states(self) -> None:
        self._controls.clear()
        self._send({"op": "clear_controls"})

    def swing_arm(self) -> None:
        self._send({"op": "swing_arm"})

    def activate_item(self) -> None:
        self._send({"op": "activate_item"})

    def attack(self, entity: EntityView) -> None:
        self._send({"op": "attack", "entity_id": entity.entity_id})

    def nearest_entity(self) -> Optional[EntityView]:
        me = self._entity
        if me is None:
            return None
        best: Optional[EntityView] = None
        best_dist = math.inf
        for ent in self._entities.values():
            if ent.entity_id == me.entity_id:
                continue
            dist = me.position.distance_to(ent.position)
            if dist < best_dist:
                best, best_dist = ent, dist
        return best

    def chat(self, text: str) -> None:
        self._send({"op": "chat", "text": text})

    def configure_movements(self, settings: MovementSettings) -> None:
        self._send({"op": "movements", "settings": dataclasses.asdict(settings)})

    def set_goal(self, x: float, y: float, z: float, reach: float = 1.0) -> None:
        self._send({"op": "goal", "x": x, "y": y, "z": z, "reach": reach})

    async def dig(self, block: Block) -> None:
        await self._request(
            {"op": "dig", "position": dataclasses.asdict(block.position), "name": block.name}
        )

    async def block_at_cursor(self, max_distance: float) -> Optional[Block]:
        result = await self._request({"op": "block_at_cursor", "max_distance": max_distance})
        if not result:
            return None
        return Block(name=str(result["name"]), position=Vec3.from_mapping(result["position"]))

    # ------------------------------------------------------------------
    # Incoming messages
    # ------------------------------------------------------------------

    def handle_line(self, line: Any) -> None:
        """Decode one line from the helper and apply it."""
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        line = line.strip()
        if not line:
            return

        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            # helper libraries sometimes print plain text to stdout
            log.debug("Bridge non-JSON output: %s", line)
            return
        if not isinstance(msg, dict):
            log.warning("Bridge message is not an object: %r", msg)
            return

        kind = msg.get("type")
        if kind == "state":
            self._apply_state(msg)
        elif kind == "reply":
            self._resolve(msg)
        elif kind in LIFECYCLE_EVENTS:
            state = msg.get("state")
            if isinstance(state, Mapping):
                self._apply_state(state)
            payload = {k: v for k, v in msg.items() if k not in ("type", "state")}
            if kind == "end":
                self._push_end(payload.get("reason"))
            else:
                self._push(kind, **payload)
        else:
            log.debug("Bridge message with unknown type: %r", kind)

    def _apply_state(self, state: Mapping[str, Any]) -> None:
        if "entity" in state:
            raw = state["entity"]
            self._entity = parse_entity(raw) if raw else None
        if "health" in state:
            self._health = state["health"]
        if "food" in state:
            self._food = state["food"]
        if "dimension" in state:
            self._dimension = state["dimension"]
        if "inventory" in state:
            self._inventory = parse_inventory(state["inventory"] or [])
        if "entities" in state:
            parsed = (parse_entity(e) for e in state["entities"] or [])
            self._entities = {e.entity_id: e for e in parsed}
        if "has_pathfinder" in state:
            self._has_pathfinder = bool(state["has_pathfinder"])

    def _resolve(self, msg: Mapping[str, Any]) -> None:
        future = self._pending.pop(msg.get("id"), None)
        if future is None or future.done():
            return
        if msg.get("ok", True):
            future.set_result(msg.get("result"))
        else:
            future.set_exception(BridgeError(str(msg.get("error") or "request failed")))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _send(self, msg: Mapping[str, Any]) -> None:
        proc = self._proc
        if proc is None or proc.stdin is None or proc.stdin.is_closing():
            log.debug("Bridge not writable, dropping %s", msg.get("op"))
            return
        proc.stdin.write(json.dumps(msg, separators=(",", ":")).encode("utf-8") + b"\n")

    async def _request(self, msg: Dict[str, Any]) -> Any:
        if self._proc is None or self._ended:
            raise BridgeError("game client is not running")
        request_id = next(self._ids)
        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        self._send({**msg, "id": request_id})
        try:
            return await asyncio.wait_for(future, REQUEST_TIMEOUT_S)
        finally:
            self._pending.pop(request_id, None)

    def _fail_pending(self, exc: BaseException) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(exc)

    def _push(self, kind: str, **payload: Any) -> None:
        self._events.put_nowait(GameEvent(kind, payload))

    def _push_end(self, reason: Any) -> None:
        if self._ended:
            return
        self._ended = True
        self._push("end", reason=reason)
