"""Tests for app-level binding configuration and runtime behavior."""

from __future__ import annotations

from copy import deepcopy
import unittest

from taskterm.config import DEFAULT_CONFIG

try:
    from textual.widgets import Input, Label

    from taskterm.app import TaskTermApp
    from taskterm.context import AppContext
    from taskterm.widgets.new_todo import NewTodoInput
    from taskterm.widgets.todo_item import TodoItem
except ModuleNotFoundError:
    Input = None  # type: ignore[assignment]
    Label = None  # type: ignore[assignment]
    TaskTermApp = None  # type: ignore[assignment]
    AppContext = None  # type: ignore[assignment]
    NewTodoInput = None  # type: ignore[assignment]
    TodoItem = None  # type: ignore[assignment]


def _memory_config() -> dict:
    config = deepcopy(DEFAULT_CONFIG)
    config["storage"]["backend"] = "memory"
    config["ui"]["hint_delay_seconds"] = 0.0
    return config


@unittest.skipIf(TaskTermApp is None, "textual is not installed")
class AppBindingTests(unittest.TestCase):
    """Validate binding derivation from config."""

    def test_binding_specs_created_from_keybinds(self) -> None:
        bindings = TaskTermApp._binding_specs_from_config(DEFAULT_CONFIG)  # type: ignore[union-attr]
        self.assertEqual(
            len(bindings), len(TaskTermApp.DEFAULT_ACTION_DESCRIPTIONS)  # type: ignore[union-attr]
        )
        by_action = {binding.action: binding.key for binding in bindings}
        self.assertEqual(by_action["clear_completed"], "ctrl+x")
        self.assertEqual(by_action["focus_new_todo"], "ctrl+n")
        self.assertEqual(by_action["quit"], "ctrl+q")

    def test_blank_keybind_is_not_registered(self) -> None:
        config = {
            **DEFAULT_CONFIG,
            "keybinds": {
                **DEFAULT_CONFIG["keybinds"],
                "clear_completed": " ",
            },
        }
        bindings = TaskTermApp._binding_specs_from_config(config)  # type: ignore[union-attr]
        actions = {binding.action for binding in bindings}
        self.assertNotIn("clear_completed", actions)


@unittest.skipIf(TaskTermApp is None, "textual is not installed")
class AppRuntimeTests(unittest.IsolatedAsyncioTestCase):
    """Drive the real app against in-memory storage."""

    def _build_app(self) -> TaskTermApp:
        return TaskTermApp(AppContext.from_config(_memory_config()))  # type: ignore[union-attr,misc]

    async def test_entering_text_creates_a_task_row(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            field = app.query_one("#new-todo", Input)
            self.assertTrue(field.has_focus)
            field.value = "  write tests  "
            await pilot.press("enter")
            await pilot.pause()

            self.assertEqual(len(app.todos), 1)
            self.assertEqual(app.todos[0].text, "write tests")
            self.assertEqual(len(app.query(TodoItem)), 1)
            self.assertEqual(field.value, "")

    async def test_blank_entry_is_ignored(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            app.query_one("#new-todo", Input).value = "   "
            await pilot.press("enter")
            await pilot.pause()
            self.assertEqual(len(app.todos), 0)

    async def test_clear_completed_removes_done_rows(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            first = await app.todos.create({"text": "first"})
            await app.todos.create({"text": "second"})
            await pilot.pause()
            self.assertEqual(len(app.query(TodoItem)), 2)

            await first.toggle()
            await pilot.pause()
            self.assertTrue(app.query_one("#stats_clear", Label).display)

            await app.action_clear_completed()
            await pilot.pause()

            self.assertEqual([todo.text for todo in app.todos], ["second"])
            self.assertEqual(len(app.query(TodoItem)), 1)
            self.assertFalse(app.query_one("#stats_clear", Label).display)
            self.assertEqual(app.sub_title, "Cleared 1 completed")

    async def test_removing_from_collection_unmounts_row(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            kept = await app.todos.create({"text": "kept"})
            dropped = await app.todos.create({"text": "dropped"})
            await pilot.pause()
            self.assertEqual(len(app.query(TodoItem)), 2)

            app.todos.remove(dropped)
            await pilot.pause()

            rows = list(app.query(TodoItem))
            self.assertEqual([row.todo for row in rows], [kept])
            self.assertEqual(dropped.store.listener_count(), 0)

    async def test_stored_tasks_load_on_mount(self) -> None:
        context = AppContext.from_config(_memory_config())  # type: ignore[union-attr]
        await context.adapter.create({"text": "later", "done": False, "order": 2})
        await context.adapter.create({"text": "sooner", "done": True, "order": 1})
        app = TaskTermApp(context)  # type: ignore[misc]
        async with app.run_test() as pilot:
            await pilot.pause()
            self.assertEqual([todo.text for todo in app.todos], ["sooner", "later"])
            rows = list(app.query(TodoItem))
            self.assertEqual([row.todo.text for row in rows], ["sooner", "later"])
            self.assertIn("done", rows[0].classes)

    async def test_on_unmount_cancels_pending_hint(self) -> None:
        config = _memory_config()
        config["ui"]["hint_delay_seconds"] = 30.0
        app = TaskTermApp(AppContext.from_config(config))  # type: ignore[misc,union-attr]
        async with app.run_test() as pilot:
            box = app.query_one("#new_todo_box", NewTodoInput)
            app.query_one("#new-todo", Input).value = "typing"
            await pilot.pause()
            self.assertTrue(box.hint.pending)
        self.assertFalse(box.hint.pending)


if __name__ == "__main__":
    unittest.main()
