# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Reconnect supervisor of the hub client.

The supervisor is engaged only by an unexpected connection loss. It schedules
one connect attempt after a fixed delay and schedules the next one only when
that attempt failed. The attempt counter starts at 1 and is reset only after a
fully authenticated connection. Once the counter exceeds the configured
maximum, or when reconnecting is disabled, the supervisor stops for good and
reports exhaustion. An explicit close() disarms it.

A rejected access token will not become valid by retrying, so AuthFailure ends
the recovery immediately.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Final

from aiohabridge import i18n
from aiohabridge.async_support import Looper, TimerToken
from aiohabridge.const import INITIAL_RECONNECT_ATTEMPT
from aiohabridge.exceptions import AuthFailure, BaseHassException
from aiohabridge.support import extract_exc_args
from aiohabridge.type_aliases import AsyncConnectFactory

_LOGGER: Final = logging.getLogger(__name__)


class ReconnectSupervisor:
    """Bounded fixed-delay reconnect policy."""

    __slots__ = (
        "_attempt",
        "_connect",
        "_delay",
        "_disarmed",
        "_exhausted",
        "_handle",
        "_looper",
        "_max_attempts",
        "_on_exhausted",
        "_task",
    )

    def __init__(
        self,
        *,
        looper: Looper,
        delay: float,
        max_attempts: int,
        connect: AsyncConnectFactory,
        on_exhausted: Callable[[int, str], None],
    ) -> None:
        """Initialize the supervisor."""
        self._looper: Final = looper
        self._delay: Final = delay
        self._max_attempts: Final = max_attempts
        self._connect: Final = connect
        self._on_exhausted: Final = on_exhausted
        self._attempt = INITIAL_RECONNECT_ATTEMPT
        self._disarmed = False
        self._exhausted = False
        self._handle: TimerToken | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def attempt(self) -> int:
        """Return the number of the next attempt."""
        return self._attempt

    @property
    def is_busy(self) -> bool:
        """Return True if an attempt is scheduled or running."""
        return self._handle is not None or self._task is not None

    @property
    def is_exhausted(self) -> bool:
        """Return True if recovery stopped permanently."""
        return self._exhausted

    def arm(self) -> None:
        """Allow scheduling again. Called by an explicit connect()."""
        self._disarmed = False
        self._exhausted = False

    def disarm(self) -> None:
        """Cancel the scheduled attempt and the running one and refuse new ones."""
        self._disarmed = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if (task := self._task) is not None:
            self._task = None
            if task is not asyncio.current_task() and not task.done():
                task.cancel()

    def reset(self) -> None:
        """Reset the attempt counter after an authenticated connection."""
        self._attempt = INITIAL_RECONNECT_ATTEMPT

    def schedule(self) -> bool:
        """Schedule one attempt after the delay. Return False if nothing was scheduled."""
        if self._disarmed or self._exhausted:
            _LOGGER.debug("RECONNECT: Supervisor is disarmed, not scheduling")
            return False
        if self.is_busy:
            _LOGGER.debug("RECONNECT: Attempt %i pending, not scheduling another", self._attempt)
            return False
        if self._delay <= 0 or self._max_attempts <= 0:
            self._give_up(message=i18n.tr("exception.reconnect.disabled"))
            return False
        if self._attempt > self._max_attempts:
            self._give_up(message=i18n.tr("exception.reconnect.exhausted", attempts=self._max_attempts))
            return False
        _LOGGER.info("RECONNECT: Attempt %i of %i in %ss", self._attempt, self._max_attempts, self._delay)
        self._handle = self._looper.call_later(delay=self._delay, target=self._start_attempt, name="reconnect")
        return True

    def _give_up(self, *, message: str) -> None:
        self._exhausted = True
        _LOGGER.error("RECONNECT: %s", message)
        self._on_exhausted(self._attempt - INITIAL_RECONNECT_ATTEMPT, message)

    def _start_attempt(self) -> None:
        self._handle = None
        self._task = self._looper.create_task(target=self._run_attempt(), name=f"reconnect-{self._attempt}")

    async def _run_attempt(self) -> None:
        attempt = self._attempt
        self._attempt += 1
        try:
            await self._connect()
        except AuthFailure as auth_failure:
            self._task = None
            self._give_up(
                message=i18n.tr("exception.reconnect.auth_failed", reason=extract_exc_args(exc=auth_failure))
            )
            return
        except BaseHassException as bhexc:
            self._task = None
            _LOGGER.warning("RECONNECT: Attempt %i failed: %s", attempt, extract_exc_args(exc=bhexc))
            self.schedule()
            return
        self._task = None
        _LOGGER.info("RECONNECT: Attempt %i succeeded", attempt)
