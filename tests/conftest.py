# tests/conftest.py

from __future__ import annotations

import asyncio
import random
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pytest

# Ensure src/ is on sys.path for test imports like `import env`, `import bot_core`.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"

if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from bot_core.lifecycle import BotLifecycleManager  # noqa: E402
from bot_core.testing import FakeClientFactory  # noqa: E402
from env.schema import AntiDetectionPreset  # noqa: E402
from monitoring.bus import EventBus  # noqa: E402
from monitoring.events import RelayEvent, RelayEventType  # noqa: E402
from shared.types import BotConfig  # noqa: E402


# Presets with zero delays so timer-driven paths finish within a few loop turns.
FAST_PRESETS: Dict[str, AntiDetectionPreset] = {
    level: AntiDetectionPreset(move_delay_ms=0, look_speed=1.0, chat_delay_ms=0, random_movement_chance=0.1)
    for level in ("minimal", "balanced", "careful", "paranoid")
}


class ScriptedRandom(random.Random):
    """random.Random whose random() returns queued values first."""

    def __init__(self, values: Sequence[float] = (), seed: int = 1234) -> None:
        super().__init__(seed)
        self.values: List[float] = list(values)

    # keep choice()/randint() on the bit generator, not on the script
    getrandbits = random.Random.getrandbits

    def push(self, *values: float) -> None:
        self.values.extend(values)

    def random(self) -> float:
        if self.values:
            return self.values.pop(0)
        return super().random()


class EventRecorder:
    """EventBus subscriber that keeps everything it sees."""

    def __init__(self, bus: EventBus) -> None:
        self.events: List[RelayEvent] = []
        bus.subscribe(self.events.append)

    def console(self) -> List[str]:
        return [e.data.message for e in self.events if e.event_type is RelayEventType.CONSOLE]

    def console_lines(self) -> List[Any]:
        return [e.data for e in self.events if e.event_type is RelayEventType.CONSOLE]

    def statuses(self) -> List[Any]:
        return [e.data for e in self.events if e.event_type is RelayEventType.STATUS]

    def clear(self) -> None:
        self.events.clear()


async def settle(turns: int = 10) -> None:
    """Let queued callbacks and the session pump run."""
    for _ in range(turns):
        await asyncio.sleep(0)


def make_config(**overrides: Any) -> BotConfig:
    data: Dict[str, Any] = {
        "serverAddress": "play.example.net",
        "serverPort": 25565,
        "username": "MineBuddy_Bot",
        "version": "1.20.1",
    }
    data.update(overrides)
    return BotConfig.model_validate(data)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    return EventRecorder(bus)


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def lifecycle(bus: EventBus, factory: FakeClientFactory, rng: ScriptedRandom) -> BotLifecycleManager:
    return BotLifecycleManager(bus, factory, presets=FAST_PRESETS, rng=rng)
