"""UI mode state machine for a single task item."""

from __future__ import annotations

from enum import Enum
import logging

from .exceptions import InvalidTransitionError

LOGGER = logging.getLogger(__name__)


class ItemMode(str, Enum):
    """Finite state machine for a task item's view."""

    VIEWING = "VIEWING"
    EDITING = "EDITING"
    DESTROYED = "DESTROYED"


_ALLOWED: dict[ItemMode, frozenset[ItemMode]] = {
    ItemMode.VIEWING: frozenset({ItemMode.EDITING, ItemMode.DESTROYED}),
    ItemMode.EDITING: frozenset({ItemMode.VIEWING, ItemMode.DESTROYED}),
    ItemMode.DESTROYED: frozenset(),
}


class ItemStateMachine:
    """Track and validate view mode transitions."""

    def __init__(self) -> None:
        self._mode = ItemMode.VIEWING

    @property
    def mode(self) -> ItemMode:
        return self._mode

    @property
    def editing(self) -> bool:
        return self._mode == ItemMode.EDITING

    def can_transition(self, new_mode: ItemMode) -> bool:
        return new_mode in _ALLOWED[self._mode]

    def transition_to(self, new_mode: ItemMode) -> ItemMode:
        """Move to ``new_mode`` or raise :class:`InvalidTransitionError`."""
        if not self.can_transition(new_mode):
            raise InvalidTransitionError(
                f"Cannot move from {self._mode.value} to {new_mode.value}."
            )
        LOGGER.debug(
            "item.mode.transition",
            extra={
                "event": "item.mode.transition",
                "from_state": self._mode.value,
                "to_state": new_mode.value,
            },
        )
        self._mode = new_mode
        return self._mode

    def begin_edit(self) -> ItemMode:
        return self.transition_to(ItemMode.EDITING)

    def finish_edit(self) -> ItemMode:
        """Return to viewing after a commit or a cancel."""
        return self.transition_to(ItemMode.VIEWING)

    def mark_destroyed(self) -> ItemMode:
        """Enter the terminal mode; repeated calls are no-ops."""
        if self._mode == ItemMode.DESTROYED:
            return self._mode
        return self.transition_to(ItemMode.DESTROYED)
