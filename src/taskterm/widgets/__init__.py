"""Widget exports for the taskterm UI."""

from .new_todo import NewTodoInput
from .stats_bar import StatsBar
from .todo_item import TodoItem

__all__ = ["NewTodoInput", "StatsBar", "TodoItem"]
