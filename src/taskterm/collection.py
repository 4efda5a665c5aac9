"""Ordered observable collections of records."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Callable, Iterator, Mapping
from functools import partial
import itertools
import logging
from typing import Any, Generic, TypeVar

from .events import EventBus, EventKind, Subscription
from .events.domain import ATTRIBUTE_EVENT_PREFIX
from .model import Record, Todo
from .persistence import PersistenceAdapter

LOGGER = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

RecordFactory = Callable[..., R]
Comparator = Callable[[Any], Any]


class ObservableCollection(Generic[R]):
    """Deduplicated records kept in comparator order.

    Membership changes emit ``add``/``remove``/``reset``; every member event is
    relayed on the collection, so one listener can observe all records. A
    member's ``destroy`` removes it from the collection.
    """

    def __init__(
        self,
        record_factory: RecordFactory[R],
        adapter: PersistenceAdapter,
        comparator: Comparator | None = None,
    ) -> None:
        self.record_factory = record_factory
        self.adapter = adapter
        self.comparator = comparator
        self._records: list[R] = []
        self._sequence: dict[int, int] = {}
        self._relays: dict[int, Subscription] = {}
        self._counter = itertools.count()
        self._bus = EventBus()

    @property
    def namespace(self) -> str:
        return self.adapter.namespace

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[R]:
        return iter(list(self._records))

    def __getitem__(self, index: int) -> R:
        return self._records[index]

    def __contains__(self, record: object) -> bool:
        return self.index_of(record) is not None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.namespace!r} size={len(self)}>"

    def on(self, event_name: str | EventKind, handler: Callable[..., Any]) -> Subscription:
        return self._bus.on(event_name, handler)

    def off(self, target: Any, event_name: str | EventKind | None = None) -> int:
        return self._bus.off(target, event_name)

    def emit(self, event_name: str | EventKind, *payload: Any) -> None:
        self._bus.emit(event_name, *payload)

    def to_list(self) -> list[R]:
        return list(self._records)

    def index_of(self, record: object) -> int | None:
        """Return the position of ``record`` by identity, then by id."""
        for index, member in enumerate(self._records):
            if member is record:
                return index
        record_id = getattr(record, "id", None)
        if record_id is None:
            return None
        for index, member in enumerate(self._records):
            if member.id == record_id:
                return index
        return None

    def get(self, record_id: str) -> R | None:
        for member in self._records:
            if member.id == record_id:
                return member
        return None

    def last(self) -> R | None:
        return self._records[-1] if self._records else None

    def filter(self, predicate: Callable[[R], bool]) -> list[R]:
        return [member for member in self._records if predicate(member)]

    def without(self, *records: R) -> list[R]:
        excluded = {id(record) for record in records}
        return [member for member in self._records if id(member) not in excluded]

    def _sort_key(self, record: R) -> tuple[Any, ...]:
        sequence = self._sequence[id(record)]
        if self.comparator is None:
            return (sequence,)
        return (self.comparator(record), sequence)

    def sort(self) -> None:
        """Re-establish comparator order; ties keep insertion order."""
        self._records.sort(key=self._sort_key)

    def _attach(self, record: R) -> None:
        self._sequence[id(record)] = next(self._counter)
        if getattr(record, "adapter", None) is None:
            record.adapter = self.adapter
        self._relays[id(record)] = record.on(
            EventKind.ALL, partial(self._on_member_event, record)
        )

    def _detach(self, record: R) -> None:
        subscription = self._relays.pop(id(record), None)
        if subscription is not None:
            record.off(subscription)
        self._sequence.pop(id(record), None)

    def add(self, record: R) -> bool:
        """Insert ``record`` at its comparator position and emit ``add``.

        Returns False without emitting when the record (or one with the same
        id) is already a member. Raises :class:`ValidationError` if preparing
        the record for membership fails.
        """
        if record in self:
            LOGGER.debug(
                "collection.add.duplicate",
                extra={
                    "event": "collection.add.duplicate",
                    "namespace": self.namespace,
                    "record_id": record.id,
                },
            )
            return False
        self.prepare(record)
        self._attach(record)
        keys = [self._sort_key(member) for member in self._records]
        index = bisect_right(keys, self._sort_key(record))
        self._records.insert(index, record)
        self._bus.emit(EventKind.ADD, record, self, index)
        return True

    def prepare(self, record: R) -> None:
        """Fill in attributes a record needs before joining; no-op by default."""

    def remove(self, record: R) -> bool:
        """Drop ``record`` and emit ``remove`` with its prior index."""
        index = self.index_of(record)
        if index is None:
            return False
        member = self._records.pop(index)
        self._detach(member)
        self._bus.emit(EventKind.REMOVE, member, self, index)
        return True

    def reset(self, records: list[R] | None = None) -> None:
        """Replace the whole membership and emit a single ``reset``."""
        for member in self._records:
            self._detach(member)
        self._records = []
        for record in records or ():
            if record in self:
                continue
            self._attach(record)
            self._records.append(record)
        self.sort()
        self._bus.emit(EventKind.RESET, self)

    async def fetch(self) -> list[R]:
        """Load the namespace from storage and reset membership to it."""
        rows = await self.adapter.list()
        records = [
            self.record_factory(attributes, record_id=record_id, adapter=self.adapter)
            for record_id, attributes in rows
        ]
        self.reset(records)
        LOGGER.info(
            "collection.fetched",
            extra={
                "event": "collection.fetched",
                "namespace": self.namespace,
                "records": len(records),
            },
        )
        return self.to_list()

    def defaults(self) -> dict[str, Any]:
        """Attributes merged under caller-supplied ones by :meth:`create`."""
        return {}

    async def create(self, attributes: Mapping[str, Any] | None = None) -> R:
        """Build a record, add it, and persist it.

        Invalid attributes raise before the record joins the collection. The
        record stays a member if storage fails afterwards.
        """
        record = self.record_factory(
            {**self.defaults(), **dict(attributes or {})}, adapter=self.adapter
        )
        pending = record.save()
        self.add(record)
        await pending
        return record

    def next_order(self, attribute: str = "order") -> int:
        """Return 1 for an empty collection, else one past the last member's order."""
        last = self.last()
        if last is None:
            return 1
        return int(last.get(attribute, 0) or 0) + 1

    def _on_member_event(self, record: R, event_name: str, *payload: Any) -> None:
        if event_name == EventKind.DESTROY.value:
            self.remove(record)
        elif event_name == EventKind.CHANGE.value or event_name.startswith(
            ATTRIBUTE_EVENT_PREFIX
        ):
            self.sort()
        self._bus.emit(event_name, *payload)


def _by_order(todo: Todo) -> int:
    return todo.order if todo.order is not None else 0


class TodoList(ObservableCollection[Todo]):
    """Tasks sorted by their ``order`` attribute."""

    def __init__(self, adapter: PersistenceAdapter) -> None:
        super().__init__(Todo, adapter, comparator=_by_order)

    def defaults(self) -> dict[str, Any]:
        return {"done": False, "order": self.next_order()}

    def prepare(self, todo: Todo) -> None:
        if todo.order is None:
            todo.set({"order": self.next_order()})

    def done(self) -> list[Todo]:
        return self.filter(lambda todo: todo.done)

    def remaining(self) -> list[Todo]:
        return self.without(*self.done())

    async def clear_completed(self) -> int:
        """Destroy every finished task and return how many were removed."""
        completed = self.done()
        for todo in completed:
            await todo.destroy()
        LOGGER.info(
            "collection.cleared",
            extra={
                "event": "collection.cleared",
                "namespace": self.namespace,
                "records": len(completed),
            },
        )
        return len(completed)
