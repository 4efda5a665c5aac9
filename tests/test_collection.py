"""Tests for the ordered observable collection and the task list."""

from __future__ import annotations

from typing import Any
import unittest

from taskterm.collection import ObservableCollection, TodoList
from taskterm.exceptions import PersistenceError, ValidationError
from taskterm.model import AttributeStore, Todo
from taskterm.persistence import MemoryAdapter


class BrokenListAdapter(MemoryAdapter):
    async def list(self) -> list[tuple[str, dict[str, Any]]]:
        raise PersistenceError("storage offline")


def _names(records: list[Todo] | TodoList) -> list[str]:
    return [todo.text for todo in records]


def _record_events(collection: Any) -> list[tuple[Any, ...]]:
    events: list[tuple[Any, ...]] = []
    collection.on("all", lambda name, *payload: events.append((name,) + payload))
    return events


def _store_factory(attributes: Any = None, **kwargs: Any) -> AttributeStore:
    return AttributeStore(None, attributes, **kwargs)


class TodoListTests(unittest.IsolatedAsyncioTestCase):
    """Validate ordering, derived views, and membership events."""

    async def asyncSetUp(self) -> None:
        self.adapter = MemoryAdapter("todos")
        self.todos = TodoList(self.adapter)

    async def _create(self, *texts: str) -> list[Todo]:
        return [await self.todos.create({"text": text}) for text in texts]

    async def test_orders_start_at_one_and_increase(self) -> None:
        a, b, c = await self._create("a", "b", "c")
        self.assertEqual([a.order, b.order, c.order], [1, 2, 3])
        self.assertEqual(_names(self.todos), ["a", "b", "c"])
        self.assertTrue(all(todo.id for todo in self.todos))
        self.assertEqual(len(self.adapter), 3)

    async def test_added_records_get_increasing_orders(self) -> None:
        a, b, c = (Todo({"text": text}) for text in ("a", "b", "c"))
        for todo in (a, b, c):
            self.assertIsNone(todo.order)
            self.assertTrue(self.todos.add(todo))

        self.assertEqual([a.order, b.order, c.order], [1, 2, 3])
        self.assertEqual(_names(self.todos), ["a", "b", "c"])
        self.assertIs(a.adapter, self.adapter)

    async def test_add_keeps_an_explicit_order(self) -> None:
        self.todos.add(Todo({"text": "a"}))
        pinned = Todo({"text": "pinned", "order": 7})
        self.todos.add(pinned)
        self.todos.add(Todo({"text": "next"}))

        self.assertEqual(pinned.order, 7)
        self.assertEqual([todo.order for todo in self.todos], [1, 7, 8])

    async def test_add_rejects_record_without_text(self) -> None:
        events = _record_events(self.todos)
        with self.assertRaises(ValidationError):
            self.todos.add(Todo({}))
        self.assertEqual(len(self.todos), 0)
        self.assertEqual(events, [])

    async def test_next_order_on_empty_collection(self) -> None:
        self.assertEqual(self.todos.next_order(), 1)

    async def test_done_and_remaining_partition(self) -> None:
        _a, b, _c = await self._create("a", "b", "c")
        self.assertEqual(self.todos.done(), [])
        self.assertEqual(_names(self.todos.remaining()), ["a", "b", "c"])

        await b.toggle()

        self.assertEqual(self.todos.done(), [b])
        self.assertEqual(_names(self.todos.remaining()), ["a", "c"])
        combined = self.todos.done() + self.todos.remaining()
        self.assertEqual(len(combined), len(self.todos))
        self.assertEqual({id(todo) for todo in combined}, {id(todo) for todo in self.todos})

    async def test_clear_completed_destroys_done_records(self) -> None:
        _a, b, _c = await self._create("a", "b", "c")
        await b.toggle()
        b_id = b.id

        cleared = await self.todos.clear_completed()

        self.assertEqual(cleared, 1)
        self.assertEqual(_names(self.todos), ["a", "c"])
        stored = {record_id for record_id, _attrs in await self.adapter.list()}
        self.assertNotIn(b_id, stored)
        self.assertEqual(len(stored), 2)

    async def test_add_emits_with_insertion_index(self) -> None:
        events = _record_events(self.todos)
        first = Todo({"text": "later", "order": 5})
        second = Todo({"text": "sooner", "order": 2})

        self.assertTrue(self.todos.add(first))
        self.assertTrue(self.todos.add(second))

        self.assertEqual(events, [("add", first, self.todos, 0), ("add", second, self.todos, 0)])
        self.assertEqual(_names(self.todos), ["sooner", "later"])
        self.assertIs(first.adapter, self.adapter)

    async def test_ties_keep_insertion_order(self) -> None:
        for text in ("x", "y", "z"):
            self.todos.add(Todo({"text": text, "order": 1}))
        self.todos.add(Todo({"text": "first", "order": 0}))
        self.assertEqual(_names(self.todos), ["first", "x", "y", "z"])

    async def test_duplicate_add_is_a_noop(self) -> None:
        todo = await self.todos.create({"text": "a"})
        twin = Todo({"text": "copy"}, record_id=todo.id)
        events = _record_events(self.todos)

        self.assertFalse(self.todos.add(todo))
        self.assertFalse(self.todos.add(twin))

        self.assertEqual(len(self.todos), 1)
        self.assertEqual(events, [])

    async def test_remove_emits_prior_index_and_stops_relaying(self) -> None:
        a, b = await self._create("a", "b")
        events = _record_events(self.todos)

        self.assertTrue(self.todos.remove(b))
        self.assertFalse(self.todos.remove(b))
        b.set({"text": "detached"})

        self.assertEqual(events, [("remove", b, self.todos, 1)])
        self.assertEqual(list(self.todos), [a])

    async def test_member_events_are_relayed(self) -> None:
        (todo,) = await self._create("a")
        events = _record_events(self.todos)

        todo.set({"done": True})

        self.assertEqual([event[0] for event in events], ["change:done", "change"])
        self.assertIs(events[0][1], todo)

    async def test_destroy_removes_from_every_collection(self) -> None:
        other = TodoList(self.adapter)
        (todo,) = await self._create("a")
        other.add(todo)
        destroyed: list[Any] = []
        todo.on("destroy", destroyed.append)
        events = _record_events(self.todos)

        await todo.destroy()
        await todo.destroy()

        self.assertEqual(len(self.todos), 0)
        self.assertEqual(len(other), 0)
        self.assertEqual(destroyed, [todo])
        self.assertEqual([event[0] for event in events], ["remove", "destroy"])

    async def test_changed_order_resorts_members(self) -> None:
        a, b, c = await self._create("a", "b", "c")
        a.set({"order": 10})
        self.assertEqual(_names(self.todos), ["b", "c", "a"])
        self.assertEqual(self.todos.next_order(), 11)

    async def test_order_change_handlers_see_new_ordering(self) -> None:
        a, _b, _c = await self._create("a", "b", "c")
        seen: list[list[str]] = []
        self.todos.on("change:order", lambda *_payload: seen.append(_names(self.todos)))

        a.set({"order": 10})

        self.assertEqual(seen, [["b", "c", "a"]])

    async def test_unawaited_destroy_still_allows_removal(self) -> None:
        (todo,) = await self._create("a")
        dropped = todo.destroy()
        dropped.close()  # type: ignore[attr-defined]

        await todo.destroy()

        self.assertNotIn(todo, self.todos)
        self.assertEqual(len(self.adapter), 0)

    async def test_fetch_replaces_membership_with_single_reset(self) -> None:
        await self._create("a", "b")
        fresh = TodoList(self.adapter)
        fresh.add(Todo({"text": "local only", "order": 99}))
        events = _record_events(fresh)

        loaded = await fresh.fetch()

        self.assertEqual([event[0] for event in events], ["reset"])
        self.assertIs(events[0][1], fresh)
        self.assertEqual(_names(loaded), ["a", "b"])
        self.assertTrue(all(not todo.is_new for todo in fresh))

    async def test_fetch_failure_leaves_membership_untouched(self) -> None:
        todos = TodoList(BrokenListAdapter("todos"))
        todos.add(Todo({"text": "kept", "order": 1}))
        events = _record_events(todos)

        with self.assertRaises(PersistenceError):
            await todos.fetch()

        self.assertEqual(_names(todos), ["kept"])
        self.assertEqual(events, [])

    async def test_create_with_invalid_text_adds_nothing(self) -> None:
        events = _record_events(self.todos)
        with self.assertRaises(ValidationError):
            await self.todos.create({"text": ""})
        self.assertEqual(len(self.todos), 0)
        self.assertEqual(len(self.adapter), 0)
        self.assertEqual(events, [])

    async def test_create_emits_add_before_storage_completes(self) -> None:
        seen_ids: list[Any] = []
        self.todos.on("add", lambda record, _collection, _index: seen_ids.append(record.id))
        todo = await self.todos.create({"text": "a"})
        self.assertEqual(seen_ids, [None])
        self.assertIsNotNone(todo.id)

    async def test_generic_collection_without_comparator_keeps_insertion_order(self) -> None:
        collection: ObservableCollection[AttributeStore] = ObservableCollection(
            _store_factory, MemoryAdapter("notes")
        )
        first = await collection.create({"title": "one"})
        second = await collection.create({"title": "two"})
        self.assertEqual(list(collection), [first, second])
        self.assertEqual(collection.namespace, "notes")
        self.assertIs(collection.get(str(second.id)), second)
        self.assertEqual(collection.next_order(), 1)


if __name__ == "__main__":
    unittest.main()
