# src/bot_core/dispatcher.py
"""
Action dispatch for dashboard commands.

This module translates a BotAction into game-client control calls.

Design constraints:
- One dispatch(...) call per user action.
- Explicit, structured results (ActionResult) instead of exceptions:
    - not connected
    - invalid direction / empty command
    - unknown action type
    - adapter error
- Every outcome leaves exactly one console line behind.
- The dispatcher never owns an adapter; it borrows the one held by the
  lifecycle manager's current session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from monitoring.bus import EventBus
from monitoring.logger import emit_console
from shared.game_client import GameClient
from shared.types import BotAction, ConsoleSeverity
from .lifecycle import BotLifecycleManager
from .session import BotSession

log = logging.getLogger(__name__)


JUMP_RELEASE_S = 0.25

# direction -> (control, console label)
MOVE_DIRECTIONS: Dict[str, tuple] = {
    "forward": ("forward", "forward"),
    "backward": ("back", "backward"),
    "back": ("back", "backward"),
    "left": ("left", "left"),
    "right": ("right", "right"),
}


@dataclass
class ActionResult:
    """Result of dispatching one BotAction."""

    success: bool
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class ActionError(Exception):
    """Raised inside a handler for a rejected (not failed) action."""


class ActionDispatcher:
    """
    Translate BotActions into adapter calls.

    Public contract:
      dispatch(action) -> ActionResult
    """

    def __init__(self, lifecycle: BotLifecycleManager, bus: EventBus) -> None:
        self._lifecycle = lifecycle
        self._bus = bus
        self._handlers: Dict[str, Callable[[BotSession, BotAction], str]] = {
            "move": self._move,
            "stop": self._stop,
            "attack": self._attack,
            "use": self._use,
            "jump": self._jump,
            "sneak": self._sneak,
            "command": self._command,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def dispatch(self, action: Union[BotAction, Mapping[str, Any]]) -> ActionResult:
        """Execute a single action against the live adapter."""
        session = self._lifecycle.session
        if session is None or not session.connected:
            return self._reject("Cannot perform action: Bot is not connected")

        if not isinstance(action, BotAction):
            action_type = action.get("type") if isinstance(action, Mapping) else None
            try:
                action = BotAction.model_validate(action)
            except ValidationError:
                log.info("Rejected malformed action payload: %r", action)
                return self._reject(f"Unknown action type: {action_type}")

        handler = self._handlers.get(action.type)
        if handler is None:
            return self._reject(f"Unknown action type: {action.type}")

        log.debug("dispatch type=%s direction=%s", action.type, action.direction)
        try:
            message = handler(session, action)
        except ActionError as exc:
            return self._reject(str(exc))
        except Exception as exc:
            log.exception("Action %s failed", action.type)
            return self._reject(f"Error performing action: {exc}")

        emit_console(self._bus, message, ConsoleSeverity.BOT)
        return ActionResult(success=True, details={"type": action.type, "message": message})

    # ------------------------------------------------------------------
    # Handlers (return the console line on success)
    # ------------------------------------------------------------------

    def _move(self, session: BotSession, action: BotAction) -> str:
        entry = MOVE_DIRECTIONS.get((action.direction or "").lower())
        if entry is None:
            raise ActionError(f"Invalid move direction: {action.direction}")

        control, label = entry
        client = session.client
        client.clear_control_states()
        client.set_control_state(control, True)
        return f"Moving {label}"

    def _stop(self, session: BotSession, action: BotAction) -> str:
        session.client.clear_control_states()
        return "Movement stopped"

    def _attack(self, session: BotSession, action: BotAction) -> str:
        client = session.client
        target = client.nearest_entity()
        if target is None:
            client.swing_arm()
            return "No target found, swinging arm"
        client.attack(target)
        return f"Attacking {target.display}"

    def _use(self, session: BotSession, action: BotAction) -> str:
        session.client.activate_item()
        return "Using item in hand"

    def _jump(self, session: BotSession, action: BotAction) -> str:
        session.client.set_control_state("jump", True)
        session.timers.call_later(JUMP_RELEASE_S, _release_jump, session)
        return "Jumping"

    def _sneak(self, session: BotSession, action: BotAction) -> str:
        client = session.client
        sneaking = client.get_control_state("sneak")
        client.set_control_state("sneak", not sneaking)
        return "Stopped sneaking" if sneaking else "Started sneaking"

    def _command(self, session: BotSession, action: BotAction) -> str:
        if not action.command:
            raise ActionError("No command provided")
        # slash commands and plain chat go through the same channel
        session.client.chat(action.command)
        return f"Executed command: {action.command}"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reject(self, message: str) -> ActionResult:
        emit_console(self._bus, message, ConsoleSeverity.ERROR)
        return ActionResult(success=False, error=message)


def _release_jump(session: BotSession) -> None:
    if session.connected:
        client: GameClient = session.client
        client.set_control_state("jump", False)
