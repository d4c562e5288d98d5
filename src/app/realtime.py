# src/app/realtime.py
"""
WebSocket fan-out for relay events.

RealtimeHub subscribes to the EventBus and forwards every RelayEvent to
each attached WebSocket as JSON. Each client gets its own bounded outbox
and writer task, so a slow browser never blocks the publisher:

- on attach, the current BotStatus is queued before anything else
- closed clients are skipped
- a full outbox drops the event for that client only
- clients are removed when their socket closes
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from aiohttp import web

from monitoring.bus import EventBus
from monitoring.events import RelayEvent
from shared.types import BotStatus

log = logging.getLogger(__name__)

DEFAULT_OUTBOX_SIZE = 256


@dataclass(eq=False)
class RealtimeClient:
    ws: web.WebSocketResponse
    outbox: "asyncio.Queue[Dict[str, Any]]"
    writer: Optional["asyncio.Task[None]"] = None
    dropped: int = field(default=0)

    @property
    def closed(self) -> bool:
        return self.ws.closed


class RealtimeHub:
    """Per-client outboxes fed from the EventBus."""

    def __init__(
        self,
        bus: EventBus,
        status_provider: Callable[[], BotStatus],
        *,
        outbox_size: int = DEFAULT_OUTBOX_SIZE,
    ) -> None:
        self._bus = bus
        self._status_provider = status_provider
        self._outbox_size = outbox_size
        self._clients: List[RealtimeClient] = []
        bus.subscribe(self._on_event)

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def attach(self, ws: web.WebSocketResponse) -> RealtimeClient:
        """Register a prepared WebSocket and queue the current status."""
        client = RealtimeClient(ws=ws, outbox=asyncio.Queue(maxsize=self._outbox_size))
        client.outbox.put_nowait(RelayEvent.status(self._status_provider()).to_dict())
        client.writer = asyncio.get_running_loop().create_task(
            self._writer(client), name="realtime-writer"
        )
        self._clients.append(client)
        log.info("WebSocket client attached (%d total)", len(self._clients))
        return client

    def detach(self, client: RealtimeClient) -> None:
        if client in self._clients:
            self._clients.remove(client)
            log.info("WebSocket client detached (%d remaining)", len(self._clients))
        if client.writer is not None and client.writer is not asyncio.current_task():
            client.writer.cancel()

    async def close(self) -> None:
        """Detach every client and close its socket."""
        self._bus.unsubscribe(self._on_event)
        for client in list(self._clients):
            self.detach(client)
            if not client.ws.closed:
                await client.ws.close(code=1001, message=b"server shutdown")

    def _on_event(self, event: RelayEvent) -> None:
        payload = event.to_dict()
        for client in list(self._clients):
            if client.closed:
                continue
            try:
                client.outbox.put_nowait(payload)
            except asyncio.QueueFull:
                client.dropped += 1
                log.warning("WebSocket outbox full, dropping %s event", event.event_type.value)

    async def _writer(self, client: RealtimeClient) -> None:
        while True:
            payload = await client.outbox.get()
            if client.closed:
                break
            try:
                await client.ws.send_json(payload)
            except ConnectionResetError:
                log.info("WebSocket client went away")
                break
        self.detach(client)
