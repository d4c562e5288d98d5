# src/bot_core/lifecycle.py
"""
Bot lifecycle manager.

Owns at most one BotSession (and therefore at most one game-client
adapter) at a time:

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED

Public surface:
    connect(config) -> bool        launch a connection attempt
    disconnect() -> bool           graceful quit, False if idle
    refresh_status() -> BotStatus  rebuild + broadcast the snapshot
    status / state / session       read-only views
    shutdown()                     disconnect and wait for the pump

All adapter events for a session go through one asyncio.Queue consumed by
a single pump task, so every status-affecting transition is handled in
one place. Teardown always cancels the session's timers before the
adapter reference is dropped.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import random
from typing import Callable, Dict, Mapping, Optional

from env.schema import DEFAULT_PRESETS, AntiDetectionPreset
from monitoring.bus import EventBus
from monitoring.logger import emit_console, emit_status
from shared.game_client import ConnectParams, GameClientFactory, GameEvent, MovementSettings
from shared.types import BotConfig, BotStatus, ConsoleSeverity
from .anti_afk import AntiAfkScheduler
from .diagnostics import (
    AUTH_NOTE,
    detect_auth_prompt,
    diagnose_kick,
    error_guidance,
    reason_text,
    render_chat_reply,
)
from .errors import BotCoreError
from .session import BotSession, LifecycleState
from .status import build_status
from .timers import SessionTimers

log = logging.getLogger(__name__)


class BotLifecycleManager:
    """Enforces the single live connection and reacts to adapter events."""

    def __init__(
        self,
        bus: EventBus,
        client_factory: GameClientFactory,
        *,
        presets: Optional[Mapping[str, AntiDetectionPreset]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._bus = bus
        self._factory = client_factory
        self._presets: Dict[str, AntiDetectionPreset] = dict(presets or DEFAULT_PRESETS)
        self._rng = rng
        self._session: Optional[BotSession] = None
        self._status = BotStatus()

        self._handlers: Dict[str, Callable[[BotSession, Mapping], None]] = {
            "spawn": self._on_spawn,
            "health": self._on_health,
            "move": self._on_move,
            "message": self._on_message,
            "kicked": self._on_kicked,
            "error": self._on_error,
            "end": self._on_end,
        }

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[BotSession]:
        return self._session

    @property
    def state(self) -> LifecycleState:
        if self._session is None:
            return LifecycleState.DISCONNECTED
        return self._session.state

    @property
    def connected(self) -> bool:
        return self._session is not None and self._session.connected

    @property
    def status(self) -> BotStatus:
        """Latest snapshot, exactly what was last broadcast."""
        return self._status

    # ------------------------------------------------------------------
    # Connect / disconnect
    # ------------------------------------------------------------------

    def connect(self, config: BotConfig) -> bool:
        """
        Launch a connection attempt.

        Returns True once the attempt is under way; spawn (or kick/end)
        arrives later through the event pump. Returns False only when
        the adapter could not even be set up.
        """
        if self._session is not None:
            self.disconnect()

        self._console("Attempting to connect to server...", ConsoleSeverity.SYSTEM)

        session: Optional[BotSession] = None
        try:
            if not config.server_address.strip():
                raise BotCoreError("missing_server_address", "No server address configured")
            params = ConnectParams.from_config(config)
            events: "asyncio.Queue[GameEvent]" = asyncio.Queue()
            client = self._factory(params, events)
            session = BotSession(
                client=client,
                config=config,
                preset=self._preset_for(config.anti_detection_level),
                events=events,
                timers=SessionTimers(on_error=self._timer_failed),
            )
            self._session = session
            client.start()
            session.pump_task = asyncio.get_running_loop().create_task(
                self._pump(session), name=f"session:{session.session_id}:pump"
            )
        except Exception as exc:
            log.exception("Failed to launch bot connection")
            if session is not None:
                self._teardown(session, quit_client=False, broadcast=False)
            self._console(f"Error connecting bot: {exc}", ConsoleSeverity.ERROR)
            return False

        log.info(
            "Connecting session %s to %s:%d as %s (version %s)",
            session.session_id,
            params.host,
            params.port,
            params.username,
            params.version,
        )
        return True

    def disconnect(self) -> bool:
        """Gracefully quit the current session. False when nothing is connected."""
        session = self._session
        if session is None:
            return False

        self._console("Disconnecting bot...", ConsoleSeverity.SYSTEM)
        self._teardown(session, quit_client=True)
        return True

    async def shutdown(self) -> None:
        """Disconnect and wait for the session pump to finish."""
        session = self._session
        self.disconnect()
        if session is not None and session.pump_task is not None:
            try:
                await session.pump_task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def refresh_status(self) -> BotStatus:
        """Rebuild BotStatus from the live adapter and broadcast it."""
        session = self._session
        if session is None or session.closed:
            return self._status
        self._status = build_status(session.client, connected=session.connected)
        emit_status(self._bus, self._status)
        return self._status

    # ------------------------------------------------------------------
    # Event pump
    # ------------------------------------------------------------------

    async def _pump(self, session: BotSession) -> None:
        while not session.closed:
            event = await session.events.get()
            if session.closed:
                break
            self.handle_event(session, event)

    def handle_event(self, session: BotSession, event: GameEvent) -> None:
        """Apply one adapter event. Exceptions become console errors."""
        handler = self._handlers.get(event.kind)
        if handler is None:
            log.debug("Ignoring adapter event %r", event.kind)
            return
        try:
            handler(session, event.payload)
        except Exception as exc:
            log.exception("Handler for %s event failed", event.kind)
            self._console(
                f"Error handling {event.kind} event: {exc}", ConsoleSeverity.ERROR
            )

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_spawn(self, session: BotSession, payload: Mapping) -> None:
        session.state = LifecycleState.CONNECTED
        self._console("Bot spawned in the world", ConsoleSeverity.SUCCESS)
        self.refresh_status()

        try:
            session.client.configure_movements(MovementSettings())
        except Exception as exc:
            log.warning("Could not configure movements: %r", exc)
            self._console(f"Could not configure movements: {exc}", ConsoleSeverity.WARN)

        if session.config.anti_afk_enabled:
            # spawn fires again after a respawn; restart rather than stack
            if session.scheduler is not None:
                session.scheduler.stop()
            session.scheduler = AntiAfkScheduler(session, self._bus, rng=self._rng)
            session.scheduler.start()

    def _on_health(self, session: BotSession, payload: Mapping) -> None:
        if session.connected:
            self.refresh_status()

    def _on_move(self, session: BotSession, payload: Mapping) -> None:
        if not session.connected:
            return
        self.refresh_status()
        if session.scheduler is not None:
            session.scheduler.on_position_changed()

    def _on_message(self, session: BotSession, payload: Mapping) -> None:
        text = str(payload.get("text", ""))
        self._console(text, ConsoleSeverity.SERVER)

        if detect_auth_prompt(text):
            self._console(AUTH_NOTE, ConsoleSeverity.SYSTEM)

        config = session.config
        if config.chat_response_enabled and payload.get("is_private"):
            sender = payload.get("sender") or None
            reply = render_chat_reply(config.chat_template, sender)
            session.timers.call_later(
                session.preset.chat_delay_ms / 1000.0,
                self._send_reply,
                session,
                sender or "Unknown",
                reply,
            )

    def _send_reply(self, session: BotSession, sender: str, reply: str) -> None:
        if session.closed:
            return
        session.client.chat(reply)
        self._console(f"Sent response to {sender}: {reply}", ConsoleSeverity.BOT)

    def _on_kicked(self, session: BotSession, payload: Mapping) -> None:
        reason = reason_text(payload.get("reason"))
        self._console(f"Bot was kicked: {reason}", ConsoleSeverity.ERROR)

        diagnosis = diagnose_kick(reason)
        if diagnosis:
            self._console(diagnosis, ConsoleSeverity.ERROR)

        self._teardown(session, quit_client=False)

    def _on_error(self, session: BotSession, payload: Mapping) -> None:
        message = payload.get("message") or "unknown error"
        code = payload.get("code")
        log.error("Bot error: %s (code=%s)", message, code)
        self._console(
            f"Bot error: {message} (Code: {code or 'unknown'})", ConsoleSeverity.ERROR
        )

        guidance = error_guidance(code)
        if guidance:
            self._console(guidance, ConsoleSeverity.ERROR)

    def _on_end(self, session: BotSession, payload: Mapping) -> None:
        self._console("Bot disconnected from server", ConsoleSeverity.SYSTEM)
        self._teardown(session, quit_client=False)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _teardown(
        self, session: BotSession, *, quit_client: bool, broadcast: bool = True
    ) -> None:
        """Stop the scheduler, cancel timers, release the adapter."""
        if session.closed:
            return

        if session.scheduler is not None:
            session.scheduler.stop()
        session.closed = True
        session.timers.close()

        pump = session.pump_task
        if pump is not None and pump is not asyncio.current_task():
            pump.cancel()

        # kicked/end: the connection is already gone, only local resources remain
        try:
            if quit_client:
                session.client.quit()
            else:
                session.client.close()
        except Exception as exc:
            log.exception("Adapter release failed")
            self._console(f"Error while quitting: {exc}", ConsoleSeverity.ERROR)

        session.state = LifecycleState.DISCONNECTED
        if self._session is session:
            self._session = None

        log.info("Session %s closed", session.session_id)
        if broadcast:
            self._status = dataclasses.replace(self._status, connected=False)
            emit_status(self._bus, self._status)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _preset_for(self, level: str) -> AntiDetectionPreset:
        return self._presets.get(level) or self._presets["balanced"]

    def _timer_failed(self, label: str, exc: BaseException) -> None:
        self._console(f"Background task {label} failed: {exc}", ConsoleSeverity.ERROR)

    def _console(self, message: str, severity: ConsoleSeverity) -> None:
        emit_console(self._bus, message, severity)
