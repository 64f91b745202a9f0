"""
One-shot timer scheduling on the running asyncio loop.

Cooldown expiries, the cuepoint reset and the backoff re-enable are all
scheduled through a `Scheduler` so they execute on the loop thread, in
between alert-check steps, and can be replaced by a manual scheduler in tests.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything able to run a callback once after a delay in seconds."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by `loop.call_later`; coroutine callbacks become tasks."""

    def __init__(self, *, name: str = "nestwatch") -> None:
        self._name = name
        self._handles: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._handles)

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle

        def _fire() -> None:
            self._handles.discard(handle)
            self._invoke(callback)

        handle = loop.call_later(max(0.0, delay), _fire)
        self._handles.add(handle)
        return handle

    def cancel_all(self) -> None:
        """Drop every pending timer and running callback task."""
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def _invoke(self, callback: Callable[[], Any]) -> None:
        try:
            result = callback()
        except Exception:
            logger.exception("%s timer callback %s failed", self._name, callback)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s timer task failed", self._name, exc_info=exc)


__all__ = ["AsyncioScheduler", "Scheduler", "TimerHandle"]
