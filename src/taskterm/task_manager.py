"""Tracking, cancellation and debouncing for asyncio background work."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
import inspect
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class TaskManager:
    """Keep track of background tasks so the app can cancel them on exit.

    Tasks may be registered under a name (at most one live task per name) or
    anonymously. Failures of tasks started through :meth:`spawn` are logged.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, asyncio.Task[Any]] = {}
        self._unnamed: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return sum(1 for task in self._tracked() if not task.done())

    def _tracked(self) -> list[asyncio.Task[Any]]:
        return [*self._by_name.values(), *self._unnamed]

    def add(self, task: asyncio.Task[Any], name: str | None = None) -> None:
        """Track ``task``; a name replaces (without cancelling) any earlier holder."""
        if name is None:
            self._unnamed.add(task)
            task.add_done_callback(self._unnamed.discard)
        else:
            self._by_name[name] = task

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Run ``coro`` as a tracked task and log it if it fails."""
        task = asyncio.ensure_future(coro)
        task.add_done_callback(lambda done: self._report_failure(done, name))
        self.add(task, name=name)
        return task

    @staticmethod
    def _report_failure(task: asyncio.Task[Any], name: str | None) -> None:
        if task.cancelled() or task.exception() is None:
            return
        exc = task.exception()
        LOGGER.warning(
            "task.failed",
            extra={
                "event": "task.failed",
                "task": name or "anonymous",
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )

    def get(self, name: str) -> asyncio.Task[Any] | None:
        return self._by_name.get(name)

    def discard(self, name: str) -> None:
        """Stop tracking ``name`` but leave its task running."""
        self._by_name.pop(name, None)

    def cancel_nowait(self, name: str) -> bool:
        """Request cancellation of ``name``; True if a live task was cancelled."""
        task = self._by_name.pop(name, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def cancel(self, name: str) -> None:
        """Cancel ``name`` and wait until it has finished."""
        task = self._by_name.get(name)
        if self.cancel_nowait(name) and task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def cancel_all(self) -> None:
        """Cancel every tracked task and wait for all of them to settle."""
        tasks = self._tracked()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            LOGGER.debug("Cancelled %d background task(s)", len(tasks))
        self._by_name.clear()
        self._unnamed.clear()


class DelayedAction:
    """Debounced callback: scheduling again restarts the delay.

    At most one run is pending at a time; a pending run is cancelled when a
    new one is scheduled.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Any],
        *,
        task_manager: TaskManager | None = None,
        name: str = "delayed-action",
    ) -> None:
        self.delay = max(0.0, float(delay))
        self.callback = callback
        self.name = name
        self._tasks = task_manager if task_manager is not None else TaskManager()

    @property
    def pending(self) -> bool:
        task = self._tasks.get(self.name)
        return task is not None and not task.done()

    def schedule(self) -> asyncio.Task[Any]:
        """Cancel any pending run and start a fresh delay."""
        self._tasks.cancel_nowait(self.name)
        return self._tasks.spawn(self._run(), name=self.name)

    def cancel(self) -> bool:
        return self._tasks.cancel_nowait(self.name)

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        current = asyncio.current_task()
        if self._tasks.get(self.name) is current:
            self._tasks.discard(self.name)
        result = self.callback()
        if inspect.isawaitable(result):
            await result
