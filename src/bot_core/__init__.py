# bot_core package
# src/bot_core/__init__.py
"""
bot_core package.

Exports:
    - BotLifecycleManager: owns the single bot session and its adapter
    - AntiAfkScheduler: timer-driven idle behaviour
    - ActionDispatcher / ActionResult: dashboard command execution
    - BotSession / LifecycleState / SessionTimers: session plumbing
    - BotCoreError: domain-level error type for setup failures
"""

from __future__ import annotations

from .anti_afk import AntiAfkScheduler, select_behavior
from .dispatcher import ActionDispatcher, ActionResult
from .errors import BotCoreError
from .lifecycle import BotLifecycleManager
from .session import BotSession, LifecycleState
from .status import build_status
from .timers import SessionTimers

__all__ = [
    "ActionDispatcher",
    "ActionResult",
    "AntiAfkScheduler",
    "BotCoreError",
    "BotLifecycleManager",
    "BotSession",
    "LifecycleState",
    "SessionTimers",
    "build_status",
    "select_behavior",
]
