# YAML environment loader (server.yaml, bot.yaml)
# src/env/loader.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from shared.types import BotConfig
from .schema import (
    AntiDetectionPreset,
    ClientProfile,
    DEFAULT_PRESETS,
    EnvProfile,
    ServerProfile,
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_ROOT = PROJECT_ROOT / "config"

# Points the loader at an alternate config/ directory (tests, deployments).
CONFIG_DIR_ENV = "MINEBUDDY_CONFIG_DIR"

REQUIRED_LEVELS = ("minimal", "balanced", "careful", "paranoid")


def _config_root(config_root: Optional[Path]) -> Path:
    if config_root is not None:
        return Path(config_root)
    override = os.getenv(CONFIG_DIR_ENV)
    return Path(override) if override else CONFIG_ROOT


def _load_yaml(root: Path, name: str) -> Dict[str, Any]:
    """Load a YAML config file from the config directory."""
    path = root / name
    if not path.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at top of {path}, got {type(data)}")
    return data


def _parse_server(raw: Dict[str, Any]) -> ServerProfile:
    server_raw = raw.get("server") or {}
    logging_raw = raw.get("logging") or {}
    defaults = ServerProfile()

    ws_path = str(server_raw.get("ws_path", defaults.ws_path))
    if not ws_path.startswith("/"):
        raise ValueError(f"server.ws_path must start with '/', got {ws_path!r}")

    poll = float(server_raw.get("status_poll_interval_s", defaults.status_poll_interval_s))
    if poll <= 0:
        raise ValueError("server.status_poll_interval_s must be positive")

    return ServerProfile(
        host=str(server_raw.get("host", defaults.host)),
        port=int(server_raw.get("port", defaults.port)),
        ws_path=ws_path,
        status_poll_interval_s=poll,
        static_dir=server_raw.get("static_dir"),
        log_level=str(logging_raw.get("level", defaults.log_level)).upper(),
    )


def _parse_client(raw: Dict[str, Any]) -> ClientProfile:
    client_raw = raw.get("client") or {}
    kind = client_raw.get("kind", "bridge")
    if kind != "bridge":
        raise ValueError(f"Invalid client.kind: {kind!r}")
    command = client_raw.get("command") or ClientProfile().command
    if not isinstance(command, list) or not all(isinstance(c, str) for c in command):
        raise ValueError("client.command must be a list of strings")
    return ClientProfile(kind=kind, command=list(command))


def _parse_presets(raw: Dict[str, Any]) -> Dict[str, AntiDetectionPreset]:
    presets_raw = raw.get("anti_detection")
    if not presets_raw:
        return dict(DEFAULT_PRESETS)

    presets: Dict[str, AntiDetectionPreset] = {}
    for level in REQUIRED_LEVELS:
        if level not in presets_raw:
            raise KeyError(f"Anti-detection level '{level}' not found in bot.yaml")
        cfg = presets_raw[level]
        presets[level] = AntiDetectionPreset(
            move_delay_ms=int(cfg["move_delay_ms"]),
            look_speed=float(cfg["look_speed"]),
            chat_delay_ms=int(cfg["chat_delay_ms"]),
            random_movement_chance=float(cfg["random_movement_chance"]),
        )
    return presets


def _parse_default_config(raw: Dict[str, Any]) -> Optional[BotConfig]:
    cfg = raw.get("default_config")
    if cfg is None:
        return None
    try:
        return BotConfig.model_validate(cfg)
    except ValidationError as exc:
        raise ValueError(f"Invalid default_config in bot.yaml: {exc}") from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_environment(config_root: Optional[Path] = None) -> EnvProfile:
    """Main entry point: returns a fully resolved EnvProfile."""
    root = _config_root(config_root)
    server_cfg = _load_yaml(root, "server.yaml")
    bot_cfg = _load_yaml(root, "bot.yaml")

    return EnvProfile(
        server=_parse_server(server_cfg),
        client=_parse_client(server_cfg),
        default_config=_parse_default_config(bot_cfg),
        presets=_parse_presets(bot_cfg),
    )
