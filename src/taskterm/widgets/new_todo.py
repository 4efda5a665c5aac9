"""Input row for new tasks with a delayed "press Enter" hint."""

from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Input, Label

from ..task_manager import DelayedAction, TaskManager

HINT_TEXT = "Press Enter to save this task"
PLACEHOLDER = "What needs to be done?"


class NewTodoInput(Vertical):
    """Task entry field; shows a hint once typing pauses."""

    DEFAULT_CSS = """
    NewTodoInput {
        height: auto;
    }
    NewTodoInput > #todo-hint {
        color: $text-muted;
        padding: 0 1;
        display: none;
    }
    NewTodoInput > #todo-hint.visible {
        display: block;
    }
    """

    def __init__(
        self,
        hint_delay: float = 1.0,
        task_manager: TaskManager | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.hint = DelayedAction(
            hint_delay,
            self.show_hint,
            task_manager=task_manager,
            name=f"hint-{id(self)}",
        )

    def compose(self) -> ComposeResult:
        yield Input(placeholder=PLACEHOLDER, id="new-todo")
        yield Label(HINT_TEXT, id="todo-hint")

    @property
    def value(self) -> str:
        return self.query_one("#new-todo", Input).value

    def clear(self) -> None:
        self.query_one("#new-todo", Input).value = ""
        self.hide_hint()

    def show_hint(self) -> None:
        if self.is_mounted and self.value.strip():
            self.query_one("#todo-hint", Label).add_class("visible")

    def hide_hint(self) -> None:
        self.hint.cancel()
        if self.is_mounted:
            self.query_one("#todo-hint", Label).remove_class("visible")

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "new-todo":
            return
        self.query_one("#todo-hint", Label).remove_class("visible")
        if not event.value.strip():
            self.hint.cancel()
            return
        self.hint.schedule()

    def on_unmount(self) -> None:
        self.hint.cancel()
