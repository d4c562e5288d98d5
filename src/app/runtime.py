# src/app/runtime.py
"""
Relay wiring.

build_app() turns an EnvProfile into an aiohttp Application holding the
process-wide components:

    EventBus ── RealtimeHub (WebSocket fan-out)
            └─ LoggingConsoleSink (console -> logging)
    ConfigStore (seeded from bot.yaml default_config)
    BotLifecycleManager ── ActionDispatcher

serve() runs that application until cancelled or interrupted.
"""

from __future__ import annotations

import asyncio
import logging
import random
import signal
from pathlib import Path
from typing import AsyncIterator, Optional

from aiohttp import web

from bot_core.dispatcher import ActionDispatcher
from bot_core.lifecycle import BotLifecycleManager
from bot_core.net import create_game_client_factory
from env.loader import PROJECT_ROOT
from env.schema import EnvProfile
from monitoring.bus import EventBus
from monitoring.logger import LoggingConsoleSink
from shared.game_client import GameClientFactory
from storage.config_store import ConfigStore
from .realtime import RealtimeHub
from .routes import (
    BUS_KEY,
    DISPATCHER_KEY,
    HUB_KEY,
    LIFECYCLE_KEY,
    STORE_KEY,
    setup_routes,
)

log = logging.getLogger(__name__)

ENV_KEY = web.AppKey("env", EnvProfile)


def build_app(
    env: EnvProfile,
    *,
    client_factory: Optional[GameClientFactory] = None,
    store: Optional[ConfigStore] = None,
    bus: Optional[EventBus] = None,
    rng: Optional[random.Random] = None,
) -> web.Application:
    """
    Assemble the relay application.

    Tests pass a FakeClientFactory and, when they need the "no config yet"
    state, an empty ConfigStore.
    """
    bus = bus or EventBus()
    factory = client_factory or create_game_client_factory(env.client)
    store = store if store is not None else ConfigStore(env.default_config)

    lifecycle = BotLifecycleManager(bus, factory, presets=env.presets, rng=rng)
    dispatcher = ActionDispatcher(lifecycle, bus)
    hub = RealtimeHub(bus, lambda: lifecycle.status)
    sink = LoggingConsoleSink(bus)

    app = web.Application()
    app[ENV_KEY] = env
    app[BUS_KEY] = bus
    app[STORE_KEY] = store
    app[LIFECYCLE_KEY] = lifecycle
    app[DISPATCHER_KEY] = dispatcher
    app[HUB_KEY] = hub

    setup_routes(app, env.server.ws_path)
    _setup_static(app, env.server.static_dir)

    async def _status_poller(app: web.Application) -> AsyncIterator[None]:
        task = asyncio.create_task(
            _poll_status(lifecycle, env.server.status_poll_interval_s), name="status-poller"
        )
        yield
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _on_shutdown(app: web.Application) -> None:
        await hub.close()

    async def _on_cleanup(app: web.Application) -> None:
        await lifecycle.shutdown()
        sink.close()

    app.cleanup_ctx.append(_status_poller)
    app.on_shutdown.append(_on_shutdown)
    app.on_cleanup.append(_on_cleanup)
    return app


async def _poll_status(lifecycle: BotLifecycleManager, interval_s: float) -> None:
    """Rebuild and broadcast status every interval while connected."""
    while True:
        await asyncio.sleep(interval_s)
        if not lifecycle.connected:
            continue
        try:
            lifecycle.refresh_status()
        except Exception:
            log.exception("Periodic status refresh failed")


def _setup_static(app: web.Application, static_dir: Optional[str]) -> None:
    """Serve a pre-built dashboard bundle, if one is configured."""
    if not static_dir:
        return
    root = Path(static_dir)
    if not root.is_absolute():
        root = PROJECT_ROOT / root
    if not root.is_dir():
        log.warning("static_dir %s does not exist; dashboard not served", root)
        return

    index = root / "index.html"

    async def _index(request: web.Request) -> web.FileResponse:
        return web.FileResponse(index)

    if index.exists():
        app.router.add_get("/", _index)
    app.router.add_static("/", root, show_index=False)
    log.info("Serving dashboard from %s", root)


async def serve(
    env: EnvProfile,
    *,
    host: Optional[str] = None,
    port: Optional[int] = None,
    tui: bool = False,
) -> None:
    """Run the relay until SIGINT/SIGTERM."""
    app = build_app(env)
    runner = web.AppRunner(app, access_log=None if tui else logging.getLogger("aiohttp.access"))
    await runner.setup()

    bind_host = host or env.server.host
    bind_port = port or env.server.port
    site = web.TCPSite(runner, bind_host, bind_port)
    await site.start()
    log.info("Relay listening on http://%s:%d (ws %s)", bind_host, bind_port, env.server.ws_path)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    dashboard_task = None
    if tui:
        from monitoring.dashboard_tui import TuiDashboard

        dashboard = TuiDashboard(app[BUS_KEY])
        dashboard_task = asyncio.create_task(dashboard.run(stop), name="tui")

    try:
        await stop.wait()
    finally:
        log.info("Shutting down relay")
        stop.set()
        if dashboard_task is not None:
            await dashboard_task
        await runner.cleanup()
