"""Single task row bound to a :class:`~taskterm.model.Todo`."""

from __future__ import annotations

import logging
from typing import Any

from rich.text import Text
from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Button, Checkbox, Input, Label

from ..bindings import RecordBinding
from ..exceptions import TaskTermError, ValidationError
from ..model import Todo
from ..state import ItemMode, ItemStateMachine

LOGGER = logging.getLogger(__name__)


class TodoItem(Horizontal):
    """Render a task with a done checkbox, inline editor and delete button."""

    DEFAULT_CSS = """
    TodoItem {
        height: auto;
        padding: 0 1;
    }
    TodoItem > #todo-text {
        width: 1fr;
        padding: 1 1 0 1;
    }
    TodoItem > #todo-input {
        width: 1fr;
        display: none;
    }
    TodoItem.editing > #todo-text {
        display: none;
    }
    TodoItem.editing > #todo-input {
        display: block;
    }
    TodoItem.done > #todo-text {
        color: $text-muted;
    }
    TodoItem Button {
        min-width: 6;
        margin-left: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel_edit", "Cancel", show=False)]

    def __init__(self, todo: Todo, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.todo = todo
        self.item_state = ItemStateMachine()
        self.record_binding = RecordBinding(
            todo, self._render_todo, on_destroy=self._on_destroyed
        )
        self.set_class(todo.done, "done")

    @property
    def mode(self) -> ItemMode:
        return self.item_state.mode

    @staticmethod
    def display_text(todo: Todo) -> Text:
        style = "strike" if todo.done else ""
        return Text(todo.text, style=style)

    def compose(self) -> ComposeResult:
        yield Checkbox(value=self.todo.done, id="todo-check")
        yield Label(self.display_text(self.todo), id="todo-text")
        yield Input(value=self.todo.text, id="todo-input")
        yield Button("Edit", id="todo-edit")
        yield Button("✕", id="todo-destroy", variant="error")

    def on_mount(self) -> None:
        self.record_binding.render()

    def on_unmount(self) -> None:
        self.record_binding.dispose()

    def _render_todo(self, todo: Todo) -> None:
        if not self.is_mounted:
            return
        self.query_one("#todo-text", Label).update(self.display_text(todo))
        checkbox = self.query_one("#todo-check", Checkbox)
        if checkbox.value != todo.done:
            checkbox.value = todo.done
        if not self.item_state.editing:
            self.query_one("#todo-input", Input).value = todo.text
        self.set_class(todo.done, "done")
        self.set_class(self.item_state.editing, "editing")

    def _on_destroyed(self, _todo: Todo) -> None:
        self.item_state.mark_destroyed()
        if self.is_mounted:
            self.remove()

    def begin_edit(self) -> None:
        if self.item_state.mode != ItemMode.VIEWING:
            return
        self.item_state.begin_edit()
        editor = self.query_one("#todo-input", Input)
        editor.value = self.todo.text
        self.set_class(True, "editing")
        editor.focus()

    def action_cancel_edit(self) -> None:
        if not self.item_state.editing:
            return
        self.item_state.finish_edit()
        self.record_binding.render()

    async def commit_edit(self, value: str) -> None:
        """Save the edited text and return to viewing mode."""
        if not self.item_state.editing:
            return
        try:
            pending = self.todo.save({"text": value})
        except ValidationError as exc:
            self.app.notify(str(exc), severity="warning")
            return
        self.item_state.finish_edit()
        self.record_binding.render()
        await self._await_storage(pending, "save")

    async def _await_storage(self, pending: Any, operation: str) -> None:
        try:
            await pending
        except TaskTermError as exc:
            LOGGER.warning(
                "item.storage.failed",
                extra={
                    "event": "item.storage.failed",
                    "operation": operation,
                    "record_id": self.todo.id,
                    "error": str(exc),
                },
            )
            self.app.notify(f"Could not {operation} task: {exc}", severity="error")

    async def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        event.stop()
        if event.value == self.todo.done or self.item_state.mode == ItemMode.DESTROYED:
            return
        await self._await_storage(self.todo.toggle(), "update")

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "todo-input":
            return
        event.stop()
        await self.commit_edit(event.value)

    async def on_descendant_blur(self, event: events.DescendantBlur) -> None:
        if event.widget.id != "todo-input" or not self.item_state.editing:
            return
        await self.commit_edit(self.query_one("#todo-input", Input).value)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "todo-edit":
            self.begin_edit()
        elif event.button.id == "todo-destroy":
            await self._await_storage(self.todo.destroy(), "delete")
