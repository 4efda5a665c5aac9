"""Synchronous named-event dispatcher shared by records and collections.

Usage:
    bus = EventBus()

    def on_done_changed(record, value):
        print(f"{record.id} done={value}")

    sub = bus.on("change:done", on_done_changed)
    bus.emit("change:done", record, True)
    bus.off(sub)
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from ..exceptions import UnknownEventError
from .domain import EventKind, parse_event_name

LOGGER = logging.getLogger(__name__)

WILDCARD = EventKind.ALL.value

Handler = Callable[..., Any]


class Subscription:
    """Handle returned by :meth:`EventBus.on`; pass it to :meth:`EventBus.off`."""

    __slots__ = ("event_name", "handler", "active")

    def __init__(self, event_name: str, handler: Handler) -> None:
        self.event_name = event_name
        self.handler = handler
        self.active = True

    def __repr__(self) -> str:
        state = "active" if self.active else "detached"
        return f"<Subscription {self.event_name!r} {state}>"


class EventBus:
    """Dispatch named events to subscribed handlers.

    Handlers run synchronously in subscription order. Handlers registered under
    ``"all"`` run after the specific handlers and receive the event name as
    their first argument. Exceptions raised by handlers are not caught.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = {}

    @staticmethod
    def _normalize(event_name: str | EventKind) -> str:
        try:
            kind, attribute = parse_event_name(event_name)
        except ValueError as exc:
            raise UnknownEventError(f"Unknown event {event_name!r}: {exc}") from exc
        if attribute is not None:
            return str(event_name)
        return kind.value

    def on(self, event_name: str | EventKind, handler: Handler) -> Subscription:
        """Subscribe ``handler`` to ``event_name`` and return its handle."""
        if not callable(handler):
            raise TypeError("Event handler must be callable.")
        name = self._normalize(event_name)
        subscription = Subscription(name, handler)
        self._subscribers.setdefault(name, []).append(subscription)
        LOGGER.debug("Subscribed to event: %s", name)
        return subscription

    def off(
        self,
        target: Subscription | Handler | None,
        event_name: str | EventKind | None = None,
    ) -> int:
        """Detach a subscription handle, or every registration of a handler.

        When a handler is given, ``event_name`` narrows the removal to that
        event. Returns the number of subscriptions removed.
        """
        if target is None:
            raise ValueError("off() requires a subscription or a handler to remove.")

        if isinstance(target, Subscription):
            return int(self._detach(target))

        names = (
            [self._normalize(event_name)]
            if event_name is not None
            else list(self._subscribers)
        )
        removed = 0
        for name in names:
            for subscription in list(self._subscribers.get(name, ())):
                if subscription.handler == target:
                    removed += int(self._detach(subscription))
        return removed

    def _detach(self, subscription: Subscription) -> bool:
        subscribers = self._subscribers.get(subscription.event_name)
        subscription.active = False
        if not subscribers:
            return False
        try:
            subscribers.remove(subscription)
        except ValueError:
            return False
        if not subscribers:
            del self._subscribers[subscription.event_name]
        LOGGER.debug("Unsubscribed from event: %s", subscription.event_name)
        return True

    def emit(self, event_name: str | EventKind, *payload: Any) -> None:
        """Invoke every handler registered for ``event_name``, then ``"all"``."""
        name = self._normalize(event_name)
        if name == WILDCARD:
            raise UnknownEventError('"all" is reserved for subscriptions.')

        # Snapshot so that handlers may subscribe/unsubscribe while we iterate.
        specific = list(self._subscribers.get(name, ()))
        wildcard = list(self._subscribers.get(WILDCARD, ()))

        for subscription in specific:
            if subscription.active:
                subscription.handler(*payload)
        for subscription in wildcard:
            if subscription.active:
                subscription.handler(name, *payload)

    def has_listeners(self, event_name: str | EventKind | None = None) -> bool:
        """Return True if anything listens to ``event_name`` (or to anything)."""
        if event_name is None:
            return any(self._subscribers.values())
        return bool(self._subscribers.get(self._normalize(event_name)))

    def listener_count(self) -> int:
        """Return the total number of live subscriptions."""
        return sum(len(items) for items in self._subscribers.values())

    def clear(self) -> None:
        """Detach every subscription."""
        for subscribers in self._subscribers.values():
            for subscription in subscribers:
                subscription.active = False
        self._subscribers.clear()
