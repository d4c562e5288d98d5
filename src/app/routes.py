# src/app/routes.py
"""
HTTP and WebSocket routes for the dashboard.

    GET    /api/config          stored BotConfig, or {}
    POST   /api/config          replace the stored config
    PATCH  /api/config          merge into the stored config
    POST   /api/bot/connect     merge body into config, then connect
    POST   /api/bot/disconnect  graceful quit
    GET    /api/bot/status      latest BotStatus
    POST   /api/bot/action      dispatch one BotAction
    GET    <ws_path>            status/console stream, accepts actions

Errors are always JSON objects of the form {"error": "..."}.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from aiohttp import WSMsgType, web
from pydantic import ValidationError

from bot_core.dispatcher import ActionDispatcher
from bot_core.lifecycle import BotLifecycleManager
from monitoring.bus import EventBus
from monitoring.logger import emit_console
from shared.types import BotAction, BotConfig, BotConfigPatch, ConsoleSeverity
from storage.config_store import ConfigNotFoundError, ConfigStore
from .realtime import RealtimeHub

log = logging.getLogger(__name__)


BUS_KEY = web.AppKey("bus", EventBus)
STORE_KEY = web.AppKey("store", ConfigStore)
LIFECYCLE_KEY = web.AppKey("lifecycle", BotLifecycleManager)
DISPATCHER_KEY = web.AppKey("dispatcher", ActionDispatcher)
HUB_KEY = web.AppKey("hub", RealtimeHub)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def error_response(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def validation_message(exc: ValidationError) -> str:
    """One readable line per failing field."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg')}")
    return "Validation error: " + "; ".join(parts)


class BadRequest(Exception):
    pass


async def read_json(request: web.Request, *, allow_empty: bool = False) -> Dict[str, Any]:
    if allow_empty and not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise BadRequest("Invalid JSON payload") from exc
    if body is None and allow_empty:
        return {}
    if not isinstance(body, dict):
        raise BadRequest("Expected a JSON object")
    return body


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


async def get_config(request: web.Request) -> web.Response:
    config = request.app[STORE_KEY].get()
    return web.json_response(config.to_dict() if config is not None else {})


async def save_config(request: web.Request) -> web.Response:
    try:
        body = await read_json(request)
        config = BotConfig.model_validate(body)
    except BadRequest as exc:
        return error_response(str(exc), 400)
    except ValidationError as exc:
        return error_response(validation_message(exc), 400)

    saved = request.app[STORE_KEY].save(config)
    return web.json_response(saved.to_dict())


async def update_config(request: web.Request) -> web.Response:
    try:
        body = await read_json(request)
        updated = request.app[STORE_KEY].update(BotConfigPatch.model_validate(body))
    except BadRequest as exc:
        return error_response(str(exc), 400)
    except ValidationError as exc:
        return error_response(validation_message(exc), 400)
    except ConfigNotFoundError as exc:
        return error_response(str(exc), 500)
    return web.json_response(updated.to_dict())


# ---------------------------------------------------------------------------
# Bot control
# ---------------------------------------------------------------------------


async def connect_bot(request: web.Request) -> web.Response:
    app = request.app
    try:
        body = await read_json(request, allow_empty=True)
        config = app[STORE_KEY].update(BotConfigPatch.model_validate(body))
    except BadRequest as exc:
        return error_response(str(exc), 400)
    except ValidationError as exc:
        return error_response(validation_message(exc), 400)
    except ConfigNotFoundError as exc:
        return error_response(str(exc), 500)

    if app[LIFECYCLE_KEY].connect(config):
        return web.json_response({"message": "Bot connecting to server"})
    return error_response("Failed to connect bot", 500)


async def disconnect_bot(request: web.Request) -> web.Response:
    if request.app[LIFECYCLE_KEY].disconnect():
        return web.json_response({"message": "Bot disconnected from server"})
    return error_response("Bot was not connected", 400)


async def bot_status(request: web.Request) -> web.Response:
    return web.json_response(request.app[LIFECYCLE_KEY].status.to_dict())


async def bot_action(request: web.Request) -> web.Response:
    try:
        body = await read_json(request)
        action = BotAction.model_validate(body)
    except BadRequest as exc:
        return error_response(str(exc), 400)
    except ValidationError as exc:
        return error_response(validation_message(exc), 400)

    result = request.app[DISPATCHER_KEY].dispatch(action)
    if result.success:
        return web.json_response({"message": f"Action {action.type} executed successfully"})
    return error_response("Failed to execute action", 400)


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    hub = request.app[HUB_KEY]
    client = hub.attach(ws)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                handle_ws_message(request.app, msg.data)
            elif msg.type == WSMsgType.ERROR:
                log.warning("WebSocket closed with exception %r", ws.exception())
    finally:
        hub.detach(client)
    return ws


def handle_ws_message(app: web.Application, raw: str) -> None:
    """Apply one client message. Only {"type": "action"} is understood."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        log.warning("Ignoring non-JSON WebSocket message")
        return
    if not isinstance(data, dict) or data.get("type") != "action":
        log.debug("Ignoring WebSocket message %r", data)
        return

    try:
        app[DISPATCHER_KEY].dispatch(data.get("data") or {})
    except Exception as exc:
        log.exception("Error processing WebSocket message")
        emit_console(app[BUS_KEY], f"Error processing message: {exc}", ConsoleSeverity.ERROR)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def setup_routes(app: web.Application, ws_path: str) -> None:
    app.router.add_get("/api/config", get_config)
    app.router.add_post("/api/config", save_config)
    app.router.add_patch("/api/config", update_config)
    app.router.add_post("/api/bot/connect", connect_bot)
    app.router.add_post("/api/bot/disconnect", disconnect_bot)
    app.router.add_get("/api/bot/status", bot_status)
    app.router.add_post("/api/bot/action", bot_action)
    app.router.add_get(ws_path, websocket_handler)
