# ServerProfile, ClientProfile, AntiDetectionPreset, EnvProfile dataclasses
# src/env/schema.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from shared.types import BotConfig


@dataclass
class ServerProfile:
    """HTTP/WebSocket listener settings."""
    host: str = "0.0.0.0"
    port: int = 5000
    ws_path: str = "/ws-minebuddy"
    status_poll_interval_s: float = 1.0
    static_dir: Optional[str] = None  # pre-built dashboard, served at /
    log_level: str = "INFO"


@dataclass
class ClientProfile:
    """How to reach the game-client library."""
    kind: str = "bridge"             # only "bridge" is supported
    command: List[str] = field(default_factory=lambda: ["node", "bridge/mineflayer_bridge.js"])


@dataclass
class AntiDetectionPreset:
    """Timing knobs for one anti-detection level."""
    move_delay_ms: int
    look_speed: float
    chat_delay_ms: int
    random_movement_chance: float


DEFAULT_PRESETS: Dict[str, AntiDetectionPreset] = {
    "minimal": AntiDetectionPreset(50, 0.8, 300, 0.05),
    "balanced": AntiDetectionPreset(150, 0.5, 1000, 0.1),
    "careful": AntiDetectionPreset(300, 0.3, 2000, 0.15),
    "paranoid": AntiDetectionPreset(500, 0.2, 3000, 0.2),
}


@dataclass
class EnvProfile:
    """Resolved runtime configuration."""
    server: ServerProfile
    client: ClientProfile
    default_config: Optional[BotConfig]
    presets: Dict[str, AntiDetectionPreset] = field(
        default_factory=lambda: dict(DEFAULT_PRESETS)
    )

    def preset_for(self, level: str) -> AntiDetectionPreset:
        """Preset for `level`, falling back to balanced."""
        return self.presets.get(level) or self.presets["balanced"]
