"""In-process fan-out of lucky draw events."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)

WINNER_EVENT = "lucky-draw:winner"

Subscriber = Callable[[str, Mapping[str, Any]], None]


class Broadcaster:
    """Deliver events to every registered subscriber, best effort.

    Delivery happens synchronously on the publishing thread. A subscriber that
    raises is logged and skipped; the remaining subscribers still receive the
    event and nothing is retried.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: str, payload: Mapping[str, Any]) -> int:
        """Send ``payload`` to all subscribers and return how many accepted it."""

        with self._lock:
            subscribers = list(self._subscribers)
        if not subscribers:
            logger.debug(f"No subscribers for {event}; event dropped")
            return 0

        delivered = 0
        for callback in subscribers:
            try:
                callback(event, payload)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed to handle {event}")
                continue
            delivered += 1
        return delivered


__all__ = ["Broadcaster", "Subscriber", "WINNER_EVENT"]
