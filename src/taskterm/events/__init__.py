"""Event dispatch shared by records, collections, and view bindings."""

from .bus import EventBus, Subscription
from .domain import EventKind, attribute_event

__all__ = ["EventBus", "EventKind", "Subscription", "attribute_event"]
