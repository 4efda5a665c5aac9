"""Main Textual application for the task list."""

from __future__ import annotations

import logging
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, VerticalScroll
from textual.widgets import Footer, Header, Input

from .bindings import CollectionBinding
from .collection import TodoList
from .config import load_config
from .context import AppContext
from .exceptions import TaskTermError, ValidationError
from .logging_utils import configure_logging
from .model import Todo
from .state import ItemMode
from .widgets.new_todo import NewTodoInput
from .widgets.stats_bar import StatsBar
from .widgets.todo_item import TodoItem

LOGGER = logging.getLogger(__name__)


class TaskTermApp(App[None]):
    """Single-screen task list backed by an observable collection."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        layout: vertical;
        width: 100%;
        height: 1fr;
        background: $background;
    }

    Header {
        border-bottom: solid $panel;
        background: $surface;
    }

    Footer {
        border-top: solid $panel;
        background: $surface;
    }

    NewTodoInput {
        padding: 1 1 0 1;
    }

    #todo_list {
        height: 1fr;
        padding: 1;
    }

    #stats_bar {
        height: auto;
        padding: 0 1;
        border-top: solid $panel;
        background: $surface;
    }
    """

    DEFAULT_ACTION_DESCRIPTIONS: dict[str, str] = {
        "clear_completed": "Clear Done",
        "focus_new_todo": "New Task",
        "quit": "Quit",
    }

    def __init__(self, context: AppContext | None = None) -> None:
        if context is None:
            config = load_config()
            configure_logging(config["logging"])
            context = AppContext.from_config(config)
        self.app_context = context
        self.config = context.config
        self.window_title = str(self.config["app"]["title"])
        self._binding_specs = self._binding_specs_from_config(self.config)
        self._collection_binding: CollectionBinding | None = None
        super().__init__()

    @property
    def todos(self) -> TodoList:
        return self.app_context.todos

    @classmethod
    def _binding_specs_from_config(
        cls, config: dict[str, dict[str, Any]]
    ) -> list[Binding]:
        keybinds = config.get("keybinds", {})
        bindings: list[Binding] = []
        for action_name in cls.DEFAULT_ACTION_DESCRIPTIONS:
            binding_key = keybinds.get(action_name)
            if isinstance(binding_key, str) and binding_key.strip():
                bindings.append(
                    Binding(
                        key=binding_key.strip(),
                        action=action_name,
                        description=cls.DEFAULT_ACTION_DESCRIPTIONS[action_name],
                        show=True,
                    )
                )
        return bindings

    def compose(self) -> ComposeResult:
        """Compose app widgets."""
        yield Header()
        with Container(id="app-root"):
            yield NewTodoInput(
                hint_delay=float(self.config["ui"]["hint_delay_seconds"]),
                task_manager=self.app_context.tasks,
                id="new_todo_box",
            )
            yield VerticalScroll(id="todo_list")
            stats = StatsBar(id="stats_bar")
            stats.display = bool(self.config["ui"]["show_stats"])
            yield stats
        yield Footer()

    async def on_mount(self) -> None:
        """Register keybindings, bind the collection, and load stored tasks."""
        self.title = self.window_title
        for binding in self._binding_specs:
            self.bind(
                binding.key,
                binding.action,
                description=binding.description,
                show=binding.show,
            )
        self._collection_binding = CollectionBinding(
            self.todos,
            self._render_stats,
            on_add=self._add_one,
            on_remove=self._remove_one,
            on_reset=self._add_all,
        )
        self.query_one("#new-todo", Input).focus()
        await self.load_todos()

    async def on_unmount(self) -> None:
        if self._collection_binding is not None:
            self._collection_binding.dispose()
        await self.app_context.tasks.cancel_all()

    async def load_todos(self) -> None:
        try:
            await self.todos.fetch()
        except TaskTermError as exc:
            LOGGER.error(
                "app.fetch.failed",
                extra={"event": "app.fetch.failed", "error": str(exc)},
            )
            self.sub_title = f"Failed to load tasks: {exc}"

    def _render_stats(self, todos: TodoList) -> None:
        done = len(todos.done())
        self.query_one("#stats_bar", StatsBar).set_stats(
            total=len(todos), done=done, remaining=len(todos) - done
        )

    def _add_one(self, todo: Todo) -> None:
        todo_list = self.query_one("#todo_list", VerticalScroll)
        item = TodoItem(todo)
        index = self.todos.index_of(todo)
        siblings = list(todo_list.query(TodoItem))
        if index is not None and index < len(siblings):
            todo_list.mount(item, before=siblings[index])
        else:
            todo_list.mount(item)

    def _remove_one(self, todo: Todo) -> None:
        for item in self.query(TodoItem):
            if item.todo is todo and item.mode != ItemMode.DESTROYED:
                item.remove()

    def _add_all(self, todos: TodoList) -> None:
        todo_list = self.query_one("#todo_list", VerticalScroll)
        todo_list.remove_children()
        items = [TodoItem(todo) for todo in todos]
        if items:
            todo_list.mount(*items)

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Create a task from the new-task field."""
        if event.input.id != "new-todo":
            return
        event.stop()
        text = event.value.strip()
        if not text:
            return
        entry = self.query_one("#new_todo_box", NewTodoInput)
        try:
            await self.todos.create({"text": text})
        except ValidationError as exc:
            self.sub_title = str(exc)
            return
        except TaskTermError as exc:
            LOGGER.error(
                "app.create.failed",
                extra={"event": "app.create.failed", "error": str(exc)},
            )
            self.notify(f"Task kept locally but not saved: {exc}", severity="error")
        entry.clear()
        self.sub_title = ""

    async def on_stats_bar_clear_completed_requested(
        self, _message: StatsBar.ClearCompletedRequested
    ) -> None:
        await self.action_clear_completed()

    async def action_clear_completed(self) -> None:
        """Destroy every finished task."""
        try:
            cleared = await self.todos.clear_completed()
        except TaskTermError as exc:
            LOGGER.error(
                "app.clear.failed",
                extra={"event": "app.clear.failed", "error": str(exc)},
            )
            self.notify(f"Could not clear completed tasks: {exc}", severity="error")
            return
        self.sub_title = f"Cleared {cleared} completed" if cleared else ""

    def action_focus_new_todo(self) -> None:
        self.query_one("#new-todo", Input).focus()

    async def action_quit(self) -> None:
        """Exit the app."""
        self.exit()
