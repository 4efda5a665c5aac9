"""Stats bar widget for task counts."""

from __future__ import annotations

from textual import events
from textual.app import ComposeResult
from textual.message import Message
from textual.widgets import Label, Static


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


class StatsBar(Static):
    """Render compact task counts.

    Segments (left to right):
        3 items left  |  5 total  |  Clear 2 completed items
    The clear segment is hidden when nothing is done.
    """

    DEFAULT_CSS = """
    StatsBar {
        layout: horizontal;
        height: auto;
    }
    StatsBar Label {
        margin-right: 1;
    }
    StatsBar #stats_clear {
        color: $warning;
    }
    """

    class ClearCompletedRequested(Message):
        """Posted when the clear segment is clicked."""

    def compose(self) -> ComposeResult:
        """Compose child labels for each stats segment."""
        yield Label("0 items left", id="stats_remaining")
        yield Label("|", id="stats_sep1")
        yield Label("0 total", id="stats_total")
        yield Label("|", id="stats_sep2")
        yield Label("", id="stats_clear")

    @staticmethod
    def describe(total: int, done: int, remaining: int) -> tuple[str, str, str]:
        """Return the remaining, total and clear segment texts."""
        clear_text = f"Clear {_plural(done, 'completed item')}" if done else ""
        return _plural(remaining, "item") + " left", f"{total} total", clear_text

    def set_stats(self, *, total: int, done: int, remaining: int) -> None:
        """Update all segment labels."""
        remaining_text, total_text, clear_text = self.describe(total, done, remaining)
        self.query_one("#stats_remaining", Label).update(remaining_text)
        self.query_one("#stats_total", Label).update(total_text)
        clear_label = self.query_one("#stats_clear", Label)
        clear_label.update(clear_text)
        visible = bool(clear_text)
        clear_label.display = visible
        self.query_one("#stats_sep2", Label).display = visible

    def on_click(self, event: events.Click) -> None:
        """Request clearing completed tasks from a stats bar click."""
        event.stop()
        if self.query_one("#stats_clear", Label).display:
            self.post_message(self.ClearCompletedRequested())
