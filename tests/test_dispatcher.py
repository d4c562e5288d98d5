# tests/test_dispatcher.py
"""
Tests for bot_core.dispatcher.ActionDispatcher

Covers:
- rejection when not connected (adapter untouched)
- each action type's adapter calls and console line
- structured failures: bad direction, empty command, unknown type,
  adapter exceptions
"""

from __future__ import annotations

import pytest

from bot_core import dispatcher as dispatcher_mod
from bot_core.dispatcher import ActionDispatcher
from shared.types import BotAction, ConsoleSeverity

from conftest import make_config, settle


@pytest.fixture
def dispatcher(lifecycle, bus):
    return ActionDispatcher(lifecycle, bus)


async def spawned_client(lifecycle, factory):
    assert lifecycle.connect(make_config())
    client = factory.last
    client.emit("spawn")
    await settle()
    client.calls.clear()
    return client


def test_rejected_when_never_connected(dispatcher, recorder):
    result = dispatcher.dispatch(BotAction(type="jump"))

    assert result.success is False
    assert result.error == "Cannot perform action: Bot is not connected"
    (line,) = recorder.console_lines()
    assert line.message == "Cannot perform action: Bot is not connected"
    assert line.severity is ConsoleSeverity.ERROR


@pytest.mark.asyncio
async def test_rejected_before_spawn(dispatcher, lifecycle, factory):
    lifecycle.connect(make_config())

    result = dispatcher.dispatch(BotAction(type="use"))

    assert result.success is False
    assert [c.name for c in factory.last.calls] == ["start"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "direction,control,message",
    [
        ("forward", "forward", "Moving forward"),
        ("backward", "back", "Moving backward"),
        ("left", "left", "Moving left"),
        ("right", "right", "Moving right"),
    ],
)
async def test_move(dispatcher, lifecycle, factory, recorder, direction, control, message):
    client = await spawned_client(lifecycle, factory)
    client.controls["jump"] = True

    result = dispatcher.dispatch(BotAction(type="move", direction=direction))

    assert result.success
    assert client.calls[0].name == "clear_control_states"
    assert client.controls == {control: True}
    assert recorder.console()[-1] == message


@pytest.mark.asyncio
async def test_move_with_bad_direction(dispatcher, lifecycle, factory, recorder):
    client = await spawned_client(lifecycle, factory)

    result = dispatcher.dispatch(BotAction(type="move", direction="up"))

    assert result.success is False
    assert client.calls == []
    assert recorder.console()[-1] == "Invalid move direction: up"


@pytest.mark.asyncio
async def test_stop(dispatcher, lifecycle, factory, recorder):
    client = await spawned_client(lifecycle, factory)
    client.controls["forward"] = True

    assert dispatcher.dispatch({"type": "stop"}).success
    assert client.controls == {}
    assert recorder.console()[-1] == "Movement stopped"


@pytest.mark.asyncio
async def test_attack_nearest_entity(dispatcher, lifecycle, factory, recorder):
    client = await spawned_client(lifecycle, factory)
    client.add_entity(7, "mob", (5, 64, 0), name="zombie")
    client.add_entity(8, "player", (2, 64, 0), username="Alex", name="player")

    assert dispatcher.dispatch(BotAction(type="attack")).success
    assert [c.args for c in client.called("attack")] == [(8,)]
    assert recorder.console()[-1] == "Attacking Alex"


@pytest.mark.asyncio
async def test_attack_without_target_swings(dispatcher, lifecycle, factory, recorder):
    client = await spawned_client(lifecycle, factory)

    assert dispatcher.dispatch(BotAction(type="attack")).success
    assert len(client.called("swing_arm")) == 1
    assert recorder.console()[-1] == "No target found, swinging arm"


@pytest.mark.asyncio
async def test_use(dispatcher, lifecycle, factory, recorder):
    client = await spawned_client(lifecycle, factory)

    assert dispatcher.dispatch(BotAction(type="use")).success
    assert len(client.called("activate_item")) == 1
    assert recorder.console()[-1] == "Using item in hand"


@pytest.mark.asyncio
async def test_jump_released(dispatcher, lifecycle, factory, recorder, monkeypatch):
    monkeypatch.setattr(dispatcher_mod, "JUMP_RELEASE_S", 0.0)
    client = await spawned_client(lifecycle, factory)

    assert dispatcher.dispatch(BotAction(type="jump")).success
    assert client.controls["jump"] is True
    assert recorder.console()[-1] == "Jumping"

    await settle()
    assert client.controls["jump"] is False


@pytest.mark.asyncio
async def test_sneak_toggles(dispatcher, lifecycle, factory, recorder):
    client = await spawned_client(lifecycle, factory)

    dispatcher.dispatch(BotAction(type="sneak"))
    assert client.controls["sneak"] is True
    assert recorder.console()[-1] == "Started sneaking"

    dispatcher.dispatch(BotAction(type="sneak"))
    assert client.controls["sneak"] is False
    assert recorder.console()[-1] == "Stopped sneaking"


@pytest.mark.asyncio
@pytest.mark.parametrize("command", ["/spawn", "hello everyone"])
async def test_command_sent_verbatim(dispatcher, lifecycle, factory, recorder, command):
    client = await spawned_client(lifecycle, factory)

    assert dispatcher.dispatch(BotAction(type="command", command=command)).success
    assert [c.args for c in client.called("chat")] == [(command,)]
    assert recorder.console()[-1] == f"Executed command: {command}"


@pytest.mark.asyncio
async def test_empty_command_is_an_error(dispatcher, lifecycle, factory):
    client = await spawned_client(lifecycle, factory)

    result = dispatcher.dispatch(BotAction(type="command", command=""))

    assert result.success is False
    assert result.error == "No command provided"
    assert client.called("chat") == []


@pytest.mark.asyncio
async def test_unknown_type_from_mapping(dispatcher, lifecycle, factory, recorder):
    client = await spawned_client(lifecycle, factory)

    result = dispatcher.dispatch({"type": "dance"})

    assert result.success is False
    assert recorder.console()[-1] == "Unknown action type: dance"
    assert client.calls == []


@pytest.mark.asyncio
async def test_adapter_exception_is_reported(dispatcher, lifecycle, factory, recorder):
    client = await spawned_client(lifecycle, factory)
    client.fail_on["activate_item"] = RuntimeError("no item")

    result = dispatcher.dispatch(BotAction(type="use"))

    assert result.success is False
    assert result.error == "Error performing action: no item"
    assert recorder.console_lines()[-1].severity is ConsoleSeverity.ERROR


@pytest.mark.asyncio
async def test_console_lines_are_bot_severity(dispatcher, lifecycle, factory, recorder):
    await spawned_client(lifecycle, factory)
    recorder.clear()

    dispatcher.dispatch(BotAction(type="stop"))

    (line,) = recorder.console_lines()
    assert line.severity is ConsoleSeverity.BOT
