from __future__ import annotations

from enum import Enum

ATTRIBUTE_EVENT_PREFIX = "change:"


class EventKind(str, Enum):
    """Closed set of events emitted by records and collections."""

    CHANGE = "change"
    DESTROY = "destroy"
    ADD = "add"
    REMOVE = "remove"
    RESET = "reset"
    ALL = "all"


def attribute_event(attribute: str) -> str:
    """Return the per-attribute change event name, e.g. ``change:done``."""
    return f"{ATTRIBUTE_EVENT_PREFIX}{attribute}"


def parse_event_name(name: str | EventKind) -> tuple[EventKind, str | None]:
    """Split an event name into its kind and optional attribute.

    Raises ``ValueError`` for names outside the known set; callers wrap it in
    their own error type.
    """
    if isinstance(name, EventKind):
        return name, None
    if not isinstance(name, str):
        raise ValueError(f"Event name must be a string, got {type(name).__name__}.")
    if name.startswith(ATTRIBUTE_EVENT_PREFIX):
        attribute = name[len(ATTRIBUTE_EVENT_PREFIX) :]
        if not attribute:
            raise ValueError("Attribute change event requires an attribute name.")
        return EventKind.CHANGE, attribute
    return EventKind(name), None
