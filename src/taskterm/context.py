"""Application context: the objects built once at startup and shared by views."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from .collection import TodoList
from .config import DEFAULT_CONFIG
from .persistence import PersistenceAdapter, build_adapter
from .task_manager import TaskManager

LOGGER = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Config, storage and the task collection for one application run."""

    config: dict[str, dict[str, Any]]
    adapter: PersistenceAdapter
    todos: TodoList
    tasks: TaskManager = field(default_factory=TaskManager)

    @classmethod
    def from_config(cls, config: dict[str, dict[str, Any]]) -> AppContext:
        storage = config.get("storage", DEFAULT_CONFIG["storage"])
        adapter = build_adapter(storage)
        LOGGER.info(
            "app.context.created",
            extra={
                "event": "app.context.created",
                "backend": storage.get("backend"),
                "namespace": adapter.namespace,
            },
        )
        return cls(config=config, adapter=adapter, todos=TodoList(adapter))
