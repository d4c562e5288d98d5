# src/bot_core/anti_afk.py
"""
Anti-detection behaviour scheduler.

While a session is connected and anti-AFK is enabled, one behaviour is
picked every `afkInterval` seconds from a single uniform draw:

    roll            behaviour          guard
    [0.00, 0.15)    look around        -
    [0.15, 0.25)    jump               -
    [0.25, 0.35)    swing arm          -
    [0.35, 0.45)    slow 360 turn      -
    [0.45, 0.65)    walk 3-8 s         state == idle
    [0.65, 0.80)    mine block ahead   state == idle
    [0.80, 0.90)    chat (10% of band) -
    [0.90, 1.00)    return to start    state == idle and > 20 blocks away

AntiAfkState is the only coordination between behaviours: walk, mine and
return claim it before touching the controls and release it when their
own timer, dig, or arrival completes. Every action leaves a `bot` console
line behind so the operator can audit what the bot did on its own.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from typing import Callable, Dict, Optional, Sequence, Tuple

from monitoring.bus import EventBus
from monitoring.logger import emit_console
from shared.game_client import GameClient, MovementSettings, Vec3
from shared.types import AntiAfkState, ConsoleSeverity
from .session import BotSession

log = logging.getLogger(__name__)


BEHAVIOR_BANDS: Sequence[Tuple[float, str]] = (
    (0.15, "look_around"),
    (0.25, "jump"),
    (0.35, "swing_arm"),
    (0.45, "turn_around"),
    (0.65, "walk"),
    (0.80, "mine"),
    (0.90, "chat"),
    (1.00, "return_to_start"),
)

WALK_DIRECTIONS: Sequence[Tuple[str, str]] = (
    ("forward", "forward"),
    ("back", "backward"),
    ("left", "left"),
    ("right", "right"),
)

CHAT_MESSAGES: Sequence[str] = (
    "Just mining some resources",
    "Anyone else online?",
    "The weather is nice today",
    "I like this server",
    "Just exploring",
)

CHAT_CHANCE = 0.1
JUMP_HOLD_S = 0.5
WALK_MIN_MS = 3000
WALK_MAX_MS = 7999
TURN_STEP_RAD = 0.2
MINE_REACH = 5.0
UNMINEABLE_BLOCKS = ("air", "bedrock")
RETURN_RADIUS = 20.0
ARRIVAL_RADIUS = 1.5
RETURN_TIMEOUT_S = 30.0
RETURN_FALLBACK_WALK_S = 5.0


def select_behavior(roll: float) -> str:
    """Map a uniform draw in [0, 1) to a behaviour name."""
    for upper, name in BEHAVIOR_BANDS:
        if roll < upper:
            return name
    return BEHAVIOR_BANDS[-1][1]


class AntiAfkScheduler:
    """
    Timer-driven idle behaviour for one session.

    Never creates an adapter: it only borrows `session.client`, and every
    timer it starts is registered with `session.timers`.
    """

    def __init__(
        self,
        session: BotSession,
        bus: EventBus,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._session = session
        self._bus = bus
        self._rng = rng or random.Random()

        self.state: AntiAfkState = AntiAfkState.IDLE
        self.start_position: Optional[Vec3] = None
        self.target: Optional[Vec3] = None

        self._tick_task: Optional["asyncio.Task[None]"] = None
        self._task_timer: Optional[asyncio.TimerHandle] = None
        self._stopped = True

        self._behaviors: Dict[str, Callable[[GameClient], None]] = {
            "look_around": self._look_around,
            "jump": self._jump,
            "swing_arm": self._swing_arm,
            "turn_around": self._turn_around,
            "walk": self._walk,
            "mine": self._mine,
            "chat": self._chat,
            "return_to_start": self._return_to_start,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return not self._stopped

    def start(self) -> None:
        """Reset state, remember the home position, and begin ticking."""
        self.stop()
        self._stopped = False
        self.state = AntiAfkState.IDLE
        self.target = None

        me = self._session.client.entity
        self.start_position = me.position if me is not None else None

        interval = float(self._session.config.afk_interval)
        self._tick_task = self._session.timers.every(interval, self.tick)
        log.info(
            "Anti-AFK started (session=%s interval=%.0fs level=%s)",
            self._session.session_id,
            interval,
            self._session.config.anti_detection_level,
        )

    def stop(self) -> None:
        """Cancel the repeating tick and any behaviour timer in flight."""
        timers = self._session.timers
        timers.cancel(self._tick_task)
        timers.cancel(self._task_timer)
        self._tick_task = None
        self._task_timer = None
        self.state = AntiAfkState.IDLE
        self.target = None
        self._stopped = True

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Run one scheduler step. A no-op when the adapter is gone."""
        client = self._live_client()
        if client is None:
            return

        name = select_behavior(self._rng.random())
        try:
            self._behaviors[name](client)
        except Exception as exc:
            log.exception("Anti-AFK behaviour %s failed", name)
            self.state = AntiAfkState.IDLE
            self._console(f"Anti-AFK: {name.replace('_', ' ')} failed: {exc}", ConsoleSeverity.ERROR)

    def on_position_changed(self) -> None:
        """Release the RETURNING state once the bot is back home."""
        if self.state is not AntiAfkState.RETURNING or self.start_position is None:
            return
        client = self._live_client()
        if client is None or client.entity is None:
            return
        if client.entity.position.distance_to(self.start_position) > ARRIVAL_RADIUS:
            return

        self._session.timers.cancel(self._task_timer)
        self._task_timer = None
        client.clear_control_states()
        self.state = AntiAfkState.IDLE
        self.target = None
        self._console("Anti-AFK: Arrived back at starting position")

    # ------------------------------------------------------------------
    # Stateless behaviours
    # ------------------------------------------------------------------

    def _look_around(self, client: GameClient) -> None:
        yaw = self._rng.random() * math.pi * 2
        pitch = self._rng.random() * math.pi - math.pi / 2
        client.look(yaw, pitch, False)
        self._console("Anti-AFK: Looking around")

    def _jump(self, client: GameClient) -> None:
        client.set_control_state("jump", True)
        self._session.timers.call_later(JUMP_HOLD_S, self._release_jump)
        self._console("Anti-AFK: Jumping")

    def _release_jump(self) -> None:
        client = self._live_client()
        if client is not None:
            client.set_control_state("jump", False)

    def _swing_arm(self, client: GameClient) -> None:
        client.swing_arm()
        self._console("Anti-AFK: Swinging arm")

    def _turn_around(self, client: GameClient) -> None:
        if client.entity is None:
            return
        self._session.timers.spawn(self._slow_turn(client.entity.yaw), label="turn")
        self._console("Anti-AFK: Turning around")

    async def _slow_turn(self, start_yaw: float) -> None:
        delay = self._session.preset.move_delay_ms / 1000.0
        yaw = start_yaw
        while yaw < start_yaw + math.pi * 2:
            await asyncio.sleep(delay)
            client = self._live_client()
            if client is None or client.entity is None:
                return
            yaw += TURN_STEP_RAD
            client.look(yaw, client.entity.pitch, False)

    def _chat(self, client: GameClient) -> None:
        if self._rng.random() >= CHAT_CHANCE:
            return
        message = self._rng.choice(CHAT_MESSAGES)
        client.chat(message)
        self._console(f"Anti-AFK: Sent chat message: {message}")

    # ------------------------------------------------------------------
    # State-changing behaviours
    # ------------------------------------------------------------------

    def _walk(self, client: GameClient) -> None:
        if self.state is not AntiAfkState.IDLE:
            return

        self.state = AntiAfkState.EXPLORING
        client.clear_control_states()

        control, label = self._rng.choice(WALK_DIRECTIONS)
        client.set_control_state(control, True)
        self._console(f"Anti-AFK: Walking {label}")

        walk_s = self._rng.randint(WALK_MIN_MS, WALK_MAX_MS) / 1000.0
        self._task_timer = self._session.timers.call_later(walk_s, self._stop_walking)

    def _stop_walking(self) -> None:
        self._task_timer = None
        client = self._live_client()
        if client is None:
            return
        client.clear_control_states()
        self.state = AntiAfkState.IDLE
        self._console("Anti-AFK: Stopped walking")

    def _mine(self, client: GameClient) -> None:
        if self.state is not AntiAfkState.IDLE or client.entity is None:
            return

        self.state = AntiAfkState.MINING
        client.clear_control_states()
        # look slightly down to find a block in front
        client.look(client.entity.yaw, math.pi / 4, False)
        self._session.timers.spawn(self._dig_block_at_cursor(), label="mine")

    async def _dig_block_at_cursor(self) -> None:
        try:
            client = self._live_client()
            if client is None:
                return
            block = await client.block_at_cursor(MINE_REACH)
            if block is None or block.name in UNMINEABLE_BLOCKS:
                self._console("Anti-AFK: No suitable block to mine")
                return

            self.target = block.position
            self._console(f"Anti-AFK: Mining {block.name}")
            try:
                await client.dig(block)
            except Exception as exc:
                log.info("Anti-AFK dig of %s failed: %r", block.name, exc)
                self._console(f"Anti-AFK: Could not mine {block.name}")
                return
            self._console(f"Anti-AFK: Finished mining {block.name}")
        finally:
            if self.state is AntiAfkState.MINING:
                self.state = AntiAfkState.IDLE
            self.target = None

    def _return_to_start(self, client: GameClient) -> None:
        if self.state is not AntiAfkState.IDLE:
            return
        if self.start_position is None or client.entity is None:
            return

        home = self.start_position
        if client.entity.position.distance_to(home) <= RETURN_RADIUS:
            return

        self.state = AntiAfkState.RETURNING
        self.target = home
        client.clear_control_states()
        self._console("Anti-AFK: Returning to starting position")

        if client.has_pathfinder:
            try:
                client.configure_movements(MovementSettings())
                client.set_goal(home.x, home.y, home.z, reach=1.0)
            except Exception as exc:
                log.warning("Anti-AFK pathfinding failed to start: %r", exc)
                self.state = AntiAfkState.IDLE
                self.target = None
                self._console("Anti-AFK: Failed to start pathfinding", ConsoleSeverity.ERROR)
                return
            self._task_timer = self._session.timers.call_later(
                RETURN_TIMEOUT_S, self._return_timed_out
            )
            return

        # No pathfinder: head straight for home for a fixed time.
        dx = home.x - client.entity.position.x
        dz = home.z - client.entity.position.z
        client.look(math.atan2(-dx, -dz), 0, True)
        client.set_control_state("forward", True)
        self._task_timer = self._session.timers.call_later(
            RETURN_FALLBACK_WALK_S, self._stop_returning
        )

    def _return_timed_out(self) -> None:
        self._task_timer = None
        if self.state is not AntiAfkState.RETURNING:
            return
        self.state = AntiAfkState.IDLE
        self.target = None
        self._console("Anti-AFK: Timeout while returning, resetting state")

    def _stop_returning(self) -> None:
        self._task_timer = None
        client = self._live_client()
        if client is None:
            return
        client.clear_control_states()
        self.state = AntiAfkState.IDLE
        self.target = None
        self._console("Anti-AFK: Stopped returning")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _live_client(self) -> Optional[GameClient]:
        if self._stopped or not self._session.connected:
            return None
        return self._session.client

    def _console(self, message: str, severity: ConsoleSeverity = ConsoleSeverity.BOT) -> None:
        emit_console(self._bus, message, severity)
