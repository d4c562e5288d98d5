# src/bot_core/timers.py
"""
Session-owned timed tasks.

Every delayed or repeating piece of work a bot session starts (anti-AFK
ticks, jump releases, walk stops, delayed chat replies, slow turns, digs)
is registered here so it can be cancelled as a unit when the session
ends. Once closed, a SessionTimers refuses new work; callers treat the
returned None as "session already gone".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set, Union

log = logging.getLogger(__name__)

ErrorHook = Callable[[str, BaseException], None]
TimerRef = Union[asyncio.TimerHandle, "asyncio.Task[Any]"]


class SessionTimers:
    """
    Registry of one-shot callbacks, repeating loops and background
    coroutines bound to a single bot session.

    Callback failures are logged and forwarded to `on_error`; they never
    propagate into the event loop.
    """

    def __init__(self, name: str = "session", on_error: Optional[ErrorHook] = None) -> None:
        self._name = name
        self._on_error = on_error
        self._handles: Set[asyncio.TimerHandle] = set()
        self._tasks: Set["asyncio.Task[Any]"] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of outstanding timers and tasks."""
        return len(self._handles) + len(self._tasks)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def call_later(
        self, delay_s: float, fn: Callable[..., Any], *args: Any
    ) -> Optional[asyncio.TimerHandle]:
        """Run `fn(*args)` once after `delay_s` seconds."""
        if self._closed:
            return None

        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._handles.discard(handle)
            self._run_callback(fn, *args)

        handle = loop.call_later(max(delay_s, 0.0), _fire)
        self._handles.add(handle)
        return handle

    def every(
        self, interval_s: float, fn: Callable[[], Any]
    ) -> Optional["asyncio.Task[Any]"]:
        """Run `fn()` every `interval_s` seconds until cancelled."""

        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval_s)
                self._run_callback(fn)

        return self.spawn(_loop(), label=getattr(fn, "__name__", "repeating"))

    def spawn(
        self, coro: Awaitable[Any], label: str = "task"
    ) -> Optional["asyncio.Task[Any]"]:
        """Run a coroutine as a tracked background task."""
        if self._closed:
            # Close the coroutine object so it is not reported as never awaited.
            close = getattr(coro, "close", None)
            if close is not None:
                close()
            return None

        task = asyncio.get_running_loop().create_task(coro, name=f"{self._name}:{label}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self, ref: Optional[TimerRef]) -> None:
        """Cancel one timer or task. None and already-finished refs are ignored."""
        if ref is None:
            return
        ref.cancel()
        if isinstance(ref, asyncio.TimerHandle):
            self._handles.discard(ref)
        else:
            self._tasks.discard(ref)

    def cancel_all(self) -> None:
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()

        current = asyncio.current_task() if _loop_running() else None
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
        self._tasks.clear()

    def close(self) -> None:
        """Cancel everything and refuse further scheduling."""
        self._closed = True
        self.cancel_all()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run_callback(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception as exc:
            log.exception("%s timer callback %r failed", self._name, fn)
            self._report(getattr(fn, "__name__", repr(fn)), exc)

    def _task_done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("%s task %s failed", self._name, task.get_name(), exc_info=exc)
            self._report(task.get_name(), exc)

    def _report(self, label: str, exc: BaseException) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(label, exc)
        except Exception:
            log.exception("%s error hook failed", self._name)


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
