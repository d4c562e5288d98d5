# src/storage/__init__.py
"""
In-memory configuration storage.
"""

from __future__ import annotations

from .config_store import ConfigNotFoundError, ConfigStore

__all__ = ["ConfigNotFoundError", "ConfigStore"]
