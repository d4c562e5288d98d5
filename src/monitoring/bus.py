# EventBus for relay events
"""
Event bus for the status/console relay.

Provides a minimal, in-process pub/sub mechanism:

- Subscribers receive RelayEvent objects.
- Used by:
    - app.realtime.RealtimeHub (WebSocket fan-out)
    - monitoring.logger.LoggingConsoleSink
    - monitoring.dashboard_tui.TuiDashboard
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, List

from .events import RelayEvent

log = logging.getLogger(__name__)


# ============================================================
# Type aliases
# ============================================================

SubscriberFn = Callable[[RelayEvent], None]


# ============================================================
# Event Bus
# ============================================================

class EventBus:
    """
    Simple in-process event bus for relay events.

    - Subscribers list protected by a Lock.
    - Each publish iterates over a snapshot of subscribers.
    - Subscribers must not block; slow consumers queue internally.
    """

    def __init__(self) -> None:
        self._subscribers: List[SubscriberFn] = []
        self._lock = Lock()

    # --------------------------------------------------------
    # Subscription API
    # --------------------------------------------------------

    def subscribe(self, fn: SubscriberFn) -> None:
        """Register a subscriber to receive RelayEvent instances."""
        with self._lock:
            self._subscribers.append(fn)

    def unsubscribe(self, fn: SubscriberFn) -> None:
        """
        Remove a previously registered subscriber.

        Safe to call even if `fn` is not present.
        """
        with self._lock:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # --------------------------------------------------------
    # Publish API
    # --------------------------------------------------------

    def publish(self, event: RelayEvent) -> None:
        """
        Publish a RelayEvent to all subscribers.

        Takes a snapshot of subscribers under the lock, then iterates without
        holding the lock so subscribers may call back into the bus.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        for fn in subscribers:
            try:
                fn(event)
            except Exception:
                # One bad subscriber must not starve the others.
                log.exception("Relay subscriber %r failed", fn)

    # --------------------------------------------------------
    # Utility
    # --------------------------------------------------------

    def clear(self) -> None:
        """Drop all subscribers. Mostly useful for tests."""
        with self._lock:
            self._subscribers.clear()
