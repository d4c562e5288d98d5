# tests/test_bridge_client.py
"""
Tests for bot_core.net.bridge_client.BridgeGameClient

Most tests replace the helper process with an in-memory fake and feed
incoming lines through handle_line(). The release tests launch a real
Python helper that outlives its stdin.

Covers:
- state mirroring (entity, health, inventory, entities)
- lifecycle events pushed to the session queue
- request/reply correlation for block_at_cursor / dig
- end pushed once, pending requests failed on quit
- helper process released on quit/close, even mid-launch
- factory wiring from ClientProfile
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import List, Tuple

import pytest

from bot_core.errors import BotCoreError
from bot_core.net import bridge_client
from bot_core.net import BridgeError, BridgeGameClient, create_game_client_factory
from env.schema import ClientProfile
from shared.game_client import Block, ConnectParams, Vec3

from conftest import settle


class FakeStdin:
    def __init__(self) -> None:
        self.lines: List[dict] = []
        self.closed = False

    def write(self, data: bytes) -> None:
        self.lines.append(json.loads(data.decode("utf-8")))

    def is_closing(self) -> bool:
        return self.closed

    def close(self) -> None:
        self.closed = True


class FakeProcess:
    """Never exits on its own; terminate() ends it."""

    def __init__(self) -> None:
        self.stdin = FakeStdin()
        self.pid = 4242
        self.returncode = None
        self.terminated = False
        self._exited = asyncio.Event()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15
        self._exited.set()

    def kill(self) -> None:
        self.returncode = -9
        self._exited.set()


def make_client() -> BridgeGameClient:
    params = ConnectParams(host="play.example.net", port=25565, username="Bot", version="1.20.1")
    client = BridgeGameClient(params, asyncio.Queue(), ["node", "bridge.js"])
    client._proc = FakeProcess()
    return client


def feed(client: BridgeGameClient, **msg) -> None:
    client.handle_line(json.dumps(msg).encode("utf-8") + b"\n")


@pytest.mark.asyncio
async def test_state_push_is_mirrored():
    client = make_client()

    feed(
        client,
        type="state",
        entity={"id": 1, "type": "player", "position": {"x": 1.5, "y": 64, "z": -2}, "yaw": 0.5, "username": "Bot"},
        health=18,
        food=17,
        dimension="overworld",
        inventory=[None, {"name": "torch", "count": 12, "slot": 36}],
        entities=[
            {"id": 1, "type": "player", "position": {"x": 1.5, "y": 64, "z": -2}, "username": "Bot"},
            {"id": 9, "type": "mob", "position": {"x": 4, "y": 64, "z": -2}, "name": "zombie", "displayName": "Zombie"},
        ],
        has_pathfinder=True,
    )

    assert client.entity.position == Vec3(1.5, 64.0, -2.0)
    assert client.entity.yaw == 0.5
    assert client.health == 18
    assert client.food == 17
    assert client.dimension == "overworld"
    assert client.inventory_slots[0] is None
    assert client.inventory_slots[1].name == "torch"
    assert set(client.entities) == {1, 9}
    assert client.has_pathfinder
    assert client.nearest_entity().display == "zombie"
    # state pushes alone produce no lifecycle events
    assert client._events.empty()


@pytest.mark.asyncio
async def test_lifecycle_events_are_queued():
    client = make_client()

    feed(client, type="spawn", state={"health": 20})
    feed(client, type="message", text="hello", is_private=True, sender="Alex")
    feed(client, type="kicked", reason={"text": "bye"})

    events = [client._events.get_nowait() for _ in range(3)]
    assert [e.kind for e in events] == ["spawn", "message", "kicked"]
    assert events[1].payload == {"text": "hello", "is_private": True, "sender": "Alex"}
    assert events[2].payload == {"reason": {"text": "bye"}}
    assert client.health == 20


@pytest.mark.asyncio
async def test_end_is_pushed_once():
    client = make_client()

    feed(client, type="end", reason="socketClosed")
    feed(client, type="end", reason="again")

    assert client._events.qsize() == 1
    assert client._events.get_nowait().payload == {"reason": "socketClosed"}


def test_non_json_and_unknown_lines_are_ignored():
    client = make_client()

    client.handle_line(b"[mineflayer] some log output\n")
    client.handle_line(b"\n")
    client.handle_line(b"[1, 2, 3]\n")
    feed(client, type="mystery")

    assert client._events.empty()


def test_controls_are_written_as_json_lines():
    client = make_client()

    client.set_control_state("forward", True)
    client.look(1.0, -0.5, True)
    client.chat("/spawn")
    client.clear_control_states()

    ops = client._proc.stdin.lines
    assert ops[0] == {"op": "control", "control": "forward", "state": True}
    assert ops[1] == {"op": "look", "yaw": 1.0, "pitch": -0.5, "force": True}
    assert ops[2] == {"op": "chat", "text": "/spawn"}
    assert ops[3] == {"op": "clear_controls"}
    assert client.get_control_state("forward") is False


@pytest.mark.asyncio
async def test_block_at_cursor_reply_correlation():
    client = make_client()

    task = asyncio.create_task(client.block_at_cursor(5))
    await settle()
    request = client._proc.stdin.lines[-1]
    assert request["op"] == "block_at_cursor"
    assert request["max_distance"] == 5

    feed(client, type="reply", id=request["id"], ok=True, result={"name": "stone", "position": {"x": 1, "y": 63, "z": 0}})
    block = await asyncio.wait_for(task, timeout=1.0)

    assert block == Block("stone", Vec3(1.0, 63.0, 0.0))


@pytest.mark.asyncio
async def test_failed_reply_raises():
    client = make_client()

    task = asyncio.create_task(client.dig(Block("stone", Vec3(1, 63, 0))))
    await settle()
    request = client._proc.stdin.lines[-1]
    assert request["op"] == "dig"

    feed(client, type="reply", id=request["id"], ok=False, error="digging aborted")
    with pytest.raises(BridgeError, match="digging aborted"):
        await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_quit_fails_pending_requests_and_closes_stdin(monkeypatch):
    monkeypatch.setattr(bridge_client, "QUIT_GRACE_S", 0.01)
    client = make_client()

    task = asyncio.create_task(client.block_at_cursor(5))
    await settle()
    client.quit()

    with pytest.raises(BridgeError):
        await asyncio.wait_for(task, timeout=1.0)
    assert client._proc.stdin.lines[-1] == {"op": "quit"}
    assert client._proc.stdin.closed
    await asyncio.wait_for(client._reaper_task, timeout=1.0)


@pytest.mark.asyncio
async def test_missing_helper_reports_error_and_end():
    params = ConnectParams(host="h", port=1, username="u", version="v")
    events: asyncio.Queue = asyncio.Queue()
    client = BridgeGameClient(params, events, ["/nonexistent/minebuddy-bridge-helper"])

    client.start()
    first = await asyncio.wait_for(events.get(), timeout=5.0)
    second = await asyncio.wait_for(events.get(), timeout=5.0)

    assert first.kind == "error"
    assert first.payload["code"] == "ENOENT"
    assert second.kind == "end"


@pytest.mark.asyncio
async def test_lingering_helper_is_terminated_after_quit(monkeypatch):
    monkeypatch.setattr(bridge_client, "QUIT_GRACE_S", 0.01)
    client = make_client()

    client.quit()
    await asyncio.wait_for(client._reaper_task, timeout=1.0)

    assert client._proc.terminated
    assert client._proc.returncode is not None


@pytest.mark.asyncio
async def test_close_skips_quit_op_but_releases_process(monkeypatch):
    monkeypatch.setattr(bridge_client, "QUIT_GRACE_S", 0.01)
    client = make_client()

    client.close()
    client.quit()
    await asyncio.wait_for(client._reaper_task, timeout=1.0)

    assert client._proc.stdin.lines == []
    assert client._proc.stdin.closed
    assert client._proc.terminated


# ---------------------------------------------------------------------------
# Real helper processes
# ---------------------------------------------------------------------------

# Logs every stdin line, then keeps running after stdin closes.
LINGERING_HELPER = (
    "import sys, time\n"
    "with open(sys.argv[1], 'a') as out:\n"
    "    for line in sys.stdin:\n"
    "        out.write(line)\n"
    "        out.flush()\n"
    "time.sleep(60)\n"
)


def helper_client(tmp_path: Path) -> Tuple[BridgeGameClient, Path]:
    received = tmp_path / "received.jsonl"
    received.touch()
    params = ConnectParams(host="play.example.net", port=25565, username="Bot", version="1.20.1")
    command = [sys.executable, "-c", LINGERING_HELPER, str(received)]
    return BridgeGameClient(params, asyncio.Queue(), command), received


def received_ops(received: Path) -> List[str]:
    return [json.loads(line)["op"] for line in received.read_text().splitlines() if line]


@pytest.mark.asyncio
async def test_quit_during_launch_never_connects(tmp_path, monkeypatch):
    monkeypatch.setattr(bridge_client, "QUIT_GRACE_S", 0.2)
    client, received = helper_client(tmp_path)

    client.start()
    client.quit()
    await asyncio.wait_for(client._reader_task, timeout=10.0)

    assert received_ops(received) == []
    assert client._proc.returncode is not None


@pytest.mark.asyncio
async def test_close_after_connect_stops_helper(tmp_path, monkeypatch):
    monkeypatch.setattr(bridge_client, "QUIT_GRACE_S", 0.2)
    client, received = helper_client(tmp_path)

    client.start()
    for _ in range(200):
        if received_ops(received):
            break
        await asyncio.sleep(0.05)
    assert received_ops(received) == ["connect"]

    client.close()
    await asyncio.wait_for(client._reader_task, timeout=10.0)

    assert received_ops(received) == ["connect"]
    assert client._proc.returncode is not None
    assert client._events.get_nowait().kind == "end"


def test_factory_builds_bridge_clients():
    factory = create_game_client_factory(ClientProfile(kind="bridge", command=["node", "x.js"]))
    params = ConnectParams(host="h", port=1, username="u", version="v")

    client = factory(params, asyncio.Queue())

    assert isinstance(client, BridgeGameClient)


def test_factory_rejects_unknown_kind():
    with pytest.raises(BotCoreError):
        create_game_client_factory(ClientProfile(kind="telnet", command=[]))
