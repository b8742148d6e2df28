"""Process-wide publish/subscribe channel for credential lifecycle events.

Delivery is synchronous and follows registration order. A listener that
raises is logged and skipped; the remaining listeners still run. Events are
not stored, so a listener added after a fire never sees it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from .telemetry import get_logger


class Events(StrEnum):
    LOGIN_STATE_CHANGED = "loginStateChanged"
    LOGIN_STATE_EXPIRED = "loginStateExpire"
    LOGIN_TYPE_CHANGED = "loginTypeChanged"
    ACCESS_TOKEN_REFRESHED = "accessTokenRefreshed"


@dataclass(frozen=True)
class CloudbaseEvent:
    name: str
    data: Any = None


Listener = Callable[[CloudbaseEvent], Any]


class EventBus:
    """Observer registry keyed by event name."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, name: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.setdefault(name, []).append(listener)
        return lambda: self.off(name, listener)

    def off(self, name: str, listener: Listener) -> None:
        listeners = self._listeners.get(name)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def fire(self, name: str, data: Any = None) -> CloudbaseEvent:
        event = CloudbaseEvent(name=str(name), data=data)
        # Snapshot so listeners may (un)register while being notified
        for listener in list(self._listeners.get(event.name, ())):
            try:
                listener(event)
            except Exception as e:  # noqa: BLE001
                get_logger().warning(
                    "Event listener failed",
                    event_name=event.name,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )
        return event

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, ()))

    def clear(self) -> None:
        self._listeners.clear()


event_bus = EventBus()
