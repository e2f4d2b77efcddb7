"""Event bus holding the current projection and a bounded event history.

Producers (the dashboard wiring) publish projections with ``set_state``
and domain events with ``emit``; viewers subscribe to either channel.
Everything runs on the event loop thread, so no locking is needed: the
bus is the only writer of the projection and the history.
"""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

from agent_office.adapters.events import OfficeEvent
from agent_office.shared.models.projection import OfficeProjection

logger = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 1000

StateListener = Callable[[OfficeProjection], None]
EventListener = Callable[[OfficeEvent], None]


class OfficeEventBus:
    """Publish/subscribe hub for projections and events."""

    def __init__(
        self,
        initial: OfficeProjection | None = None,
        history_size: int = MAX_HISTORY_SIZE,
    ) -> None:
        self._state = initial if initial is not None else OfficeProjection()
        self._state_listeners: list[StateListener] = []
        self._event_listeners: list[EventListener] = []
        self._history: deque[OfficeEvent] = deque(maxlen=history_size)

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        """Subscribe to projections. *listener* is called at once with the current one."""
        self._state_listeners.append(listener)
        self._notify(listener, self._state, "State")
        return lambda: self._discard(self._state_listeners, listener)

    def on_event(self, listener: EventListener) -> Callable[[], None]:
        self._event_listeners.append(listener)
        return lambda: self._discard(self._event_listeners, listener)

    def set_state(self, state: OfficeProjection) -> None:
        self._state = state
        for listener in list(self._state_listeners):
            self._notify(listener, state, "State")

    def emit(self, event: OfficeEvent) -> None:
        self._history.append(event)
        for listener in list(self._event_listeners):
            self._notify(listener, event, "Event")

    def get_state(self) -> OfficeProjection:
        return self._state

    def get_history(self) -> list[OfficeEvent]:
        return list(self._history)

    def replay(self, from_timestamp: int | float) -> list[OfficeEvent]:
        """Events at or after *from_timestamp* (ms), oldest first."""
        return [e for e in self._history if e.timestamp >= from_timestamp]

    def dispose(self) -> None:
        """Drop every listener and the history."""
        self._state_listeners.clear()
        self._event_listeners.clear()
        self._history.clear()

    @staticmethod
    def _notify(listener: Callable, payload: object, channel: str) -> None:
        try:
            listener(payload)
        except Exception:
            logger.exception("%s listener error", channel)

    @staticmethod
    def _discard(listeners: list, listener: Callable) -> None:
        try:
            listeners.remove(listener)
        except ValueError:
            pass
