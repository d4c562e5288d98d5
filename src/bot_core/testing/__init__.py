# src/bot_core/testing/__init__.py
"""In-memory doubles for bot_core tests."""

from __future__ import annotations

from .fakes import FakeClientFactory, FakeGameClient

__all__ = ["FakeClientFactory", "FakeGameClient"]
