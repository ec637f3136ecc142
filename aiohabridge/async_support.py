# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Asyncio support for aiohabridge.

The Looper tracks background tasks and timers of one client so that both can be
cancelled explicitly and awaited on shutdown. Timers are plain event loop
handles: they never keep the process alive on their own.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Collection, Coroutine
import contextlib
import logging
import time
from typing import Any, Final

from aiohabridge.support import describe_exception

_LOGGER: Final = logging.getLogger(__name__)


class TimerToken:
    """Explicit cancel token of a scheduled timer."""

    __slots__ = ("_handle", "_name")

    def __init__(self, *, handle: asyncio.TimerHandle, name: str) -> None:
        """Initialize the token."""
        self._handle: Final = handle
        self._name: Final = name

    @property
    def cancelled(self) -> bool:
        """Return True if the timer was cancelled."""
        return self._handle.cancelled()

    @property
    def name(self) -> str:
        """Return the timer name."""
        return self._name

    @property
    def when(self) -> float:
        """Return the loop time the timer fires at."""
        return self._handle.when()

    def cancel(self) -> None:
        """Cancel the timer. Safe to call multiple times."""
        self._handle.cancel()


class Looper:
    """Helper class for tracked tasks and timers."""

    __slots__ = ("_tasks",)

    def __init__(self) -> None:
        """Init the loop helper."""
        self._tasks: Final[set[asyncio.Task[Any]]] = set()

    @property
    def pending_task_count(self) -> int:
        """Return the number of unfinished tracked tasks."""
        return len([task for task in self._tasks if not task.done()])

    async def block_till_done(self, *, wait_time: float | None = None) -> None:
        """Wait until all tracked tasks are done, or the deadline passed."""
        deadline = time.monotonic() + wait_time if wait_time is not None else None
        while pending := [task for task in self._tasks if not task.done()]:
            if (remaining := await self._await_and_log_pending(pending=pending, deadline=deadline)) and (
                deadline is not None and time.monotonic() >= deadline
            ):
                _LOGGER.warning(
                    "Shutdown timeout reached; %d task(s) still pending: %s",
                    len(remaining),
                    ", ".join(task.get_name() for task in remaining),
                )
                return

    def call_later(self, *, delay: float, target: Callable[[], None], name: str) -> TimerToken:
        """Schedule a callback on the running loop and return its cancel token."""
        handle = asyncio.get_running_loop().call_later(delay, self._run_timer, target, name)
        return TimerToken(handle=handle, name=name)

    def cancel_tasks(self) -> None:
        """Cancel all tracked tasks except the calling one."""
        current = asyncio.current_task()
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()

    def create_task(self, *, target: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        """Create a tracked task on the running loop."""
        task = asyncio.get_running_loop().create_task(target, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def _await_and_log_pending(
        self, *, pending: Collection[asyncio.Task[Any]], deadline: float | None
    ) -> set[asyncio.Task[Any]]:
        """Wait for the pending tasks up to the deadline and return the ones still running."""
        timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
        _, still_pending = await asyncio.wait(pending, timeout=timeout if timeout is None else min(timeout, 1.0))
        return still_pending

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        """Drop a finished task and log an unhandled exception."""
        self._tasks.discard(task)
        if task.cancelled():
            return
        if (exc := task.exception()) is not None:
            _LOGGER.error("Task %s failed: %s", task.get_name(), describe_exception(exc=exc))

    @staticmethod
    def _run_timer(target: Callable[[], None], name: str) -> None:
        """Run a timer callback and keep exceptions away from the event loop."""
        try:
            target()
        except Exception as exc:
            _LOGGER.error("Timer %s failed: %s", name, describe_exception(exc=exc))


async def cancel_and_wait(*, task: asyncio.Task[Any] | None) -> None:
    """Cancel a task and wait for it to finish, unless it is the calling task."""
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


__all__ = ["Looper", "TimerToken", "cancel_and_wait"]
