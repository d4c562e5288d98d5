# src/storage/config_store.py
"""
Volatile single-record store for the bot configuration.

Exactly one BotConfig exists per process. It is seeded at startup (or
left empty), replaced wholesale by save(), merged by update(), and never
deleted. Writes are last-write-wins; nothing is persisted.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from shared.types import BotConfig, BotConfigPatch

log = logging.getLogger(__name__)


class ConfigNotFoundError(LookupError):
    """Raised when a merge is requested but no config record exists."""

    def __init__(self) -> None:
        super().__init__("No config exists to update")


class ConfigStore:
    """Holds the process-wide BotConfig singleton."""

    def __init__(self, initial: Optional[BotConfig] = None) -> None:
        self._config: Optional[BotConfig] = initial

    def get(self) -> Optional[BotConfig]:
        return self._config

    def save(self, config: BotConfig) -> BotConfig:
        """Replace the stored record with a fully validated config."""
        self._config = config
        log.info(
            "Bot config saved (server=%s:%d user=%s)",
            config.server_address,
            config.server_port,
            config.username,
        )
        return config

    def update(self, patch: BotConfigPatch | Mapping[str, Any]) -> BotConfig:
        """
        Merge a partial config into the stored record.

        Raises:
            ConfigNotFoundError: no record to merge into.
            pydantic.ValidationError: the patch carries invalid values.
        """
        if self._config is None:
            raise ConfigNotFoundError()

        if not isinstance(patch, BotConfigPatch):
            patch = BotConfigPatch.model_validate(dict(patch))

        merged = self._config.model_copy(update=patch.changes())
        # model_copy skips validation; round-trip to catch cross-field issues.
        self._config = BotConfig.model_validate(merged.model_dump())
        log.debug("Bot config merged: %s", sorted(patch.changes()))
        return self._config
