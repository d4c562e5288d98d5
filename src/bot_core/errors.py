# src/bot_core/errors.py
"""Domain-level error type for bot_core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class BotCoreError(RuntimeError):
    """
    Raised for lifecycle setup faults.

    Examples:
        - no server address to connect to
        - unknown adapter kind in server.yaml

    Action dispatch does NOT raise this; ActionDispatcher returns an
    ActionResult with error set.
    """

    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message
