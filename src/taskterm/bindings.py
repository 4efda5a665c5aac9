"""View bindings: observers that re-render when a record or collection changes.

A binding subscribes to the events it needs when constructed and must be
disposed when its view goes away. Rendering itself is delegated to a callback,
so any widget technology can sit behind it.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any, Protocol

from .events import EventKind, Subscription

LOGGER = logging.getLogger(__name__)


class Observable(Protocol):
    def on(self, event_name: str | EventKind, handler: Callable[..., Any]) -> Subscription: ...

    def off(self, target: Any, event_name: str | EventKind | None = None) -> int: ...


class ViewBinding:
    """Own a set of subscriptions on ``source`` and release them together."""

    def __init__(self, source: Observable) -> None:
        self.source = source
        self._subscriptions: list[Subscription] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def listen(self, event_name: str | EventKind, handler: Callable[..., Any]) -> Subscription:
        if self._disposed:
            raise RuntimeError("Cannot listen on a disposed binding.")
        subscription = self.source.on(event_name, handler)
        self._subscriptions.append(subscription)
        return subscription

    def render(self) -> None:
        raise NotImplementedError

    def dispose(self) -> None:
        """Detach every subscription; safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        for subscription in self._subscriptions:
            self.source.off(subscription)
        self._subscriptions.clear()
        LOGGER.debug("Disposed %s", type(self).__name__)


class RecordBinding(ViewBinding):
    """Render a record on ``change``; dispose and notify on ``destroy``."""

    def __init__(
        self,
        record: Any,
        renderer: Callable[[Any], None],
        on_destroy: Callable[[Any], None] | None = None,
    ) -> None:
        super().__init__(record)
        self.record = record
        self._renderer = renderer
        self._on_destroy = on_destroy
        self.listen(EventKind.CHANGE, self._handle_change)
        self.listen(EventKind.DESTROY, self._handle_destroy)

    def render(self) -> None:
        if not self._disposed:
            self._renderer(self.record)

    def _handle_change(self, _record: Any, _attributes: dict[str, Any]) -> None:
        self.render()

    def _handle_destroy(self, record: Any) -> None:
        self.dispose()
        if self._on_destroy is not None:
            self._on_destroy(record)


class CollectionBinding(ViewBinding):
    """Render summary state on every collection event.

    ``on_add`` and ``on_remove`` receive the record that joined or left;
    ``on_reset`` receives the collection after a full reload.
    """

    def __init__(
        self,
        collection: Any,
        renderer: Callable[[Any], None],
        *,
        on_add: Callable[[Any], None] | None = None,
        on_remove: Callable[[Any], None] | None = None,
        on_reset: Callable[[Any], None] | None = None,
    ) -> None:
        super().__init__(collection)
        self.collection = collection
        self._renderer = renderer
        if on_add is not None:
            self.listen(EventKind.ADD, lambda record, _collection, _index: on_add(record))
        if on_remove is not None:
            self.listen(
                EventKind.REMOVE, lambda record, _collection, _index: on_remove(record)
            )
        if on_reset is not None:
            self.listen(EventKind.RESET, on_reset)
        self.listen(EventKind.ALL, self._handle_any)

    def render(self) -> None:
        if not self._disposed:
            self._renderer(self.collection)

    def _handle_any(self, event_name: str, *_payload: Any) -> None:
        self.render()
