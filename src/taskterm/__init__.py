"""Top-level package for taskterm."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import TaskTermApp
    from .collection import ObservableCollection, TodoList
    from .config import ensure_config_dir, load_config
    from .context import AppContext
    from .events import EventBus, EventKind
    from .exceptions import (
        ConfigValidationError,
        NotFoundError,
        PersistenceError,
        TaskTermError,
        ValidationError,
    )
    from .model import AttributeStore, Todo
    from .persistence import JsonFileAdapter, MemoryAdapter

_EXPORTS: dict[str, str] = {
    "AppContext": ".context",
    "AttributeStore": ".model",
    "ConfigValidationError": ".exceptions",
    "EventBus": ".events",
    "EventKind": ".events",
    "JsonFileAdapter": ".persistence",
    "MemoryAdapter": ".persistence",
    "NotFoundError": ".exceptions",
    "ObservableCollection": ".collection",
    "PersistenceError": ".exceptions",
    "TaskTermApp": ".app",
    "TaskTermError": ".exceptions",
    "Todo": ".model",
    "TodoList": ".collection",
    "ValidationError": ".exceptions",
    "ensure_config_dir": ".config",
    "load_config": ".config",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep optional UI dependencies optional at import time."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(module_name, __name__), name)
