# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Keepalive monitor of a ready hub connection.

Every interval the monitor sends a ping and arms the pong watchdog. Any pong
cancels the watchdog that is armed at that moment, no matter which ping it
answers. Only one watchdog exists at a time: while one is armed, later pings do
not re-arm it, so the deadline counts from the oldest unanswered ping. If the
watchdog fires, or a ping cannot be sent, the monitor stops and reports the
expiry exactly once.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import Final

from aiohabridge.async_support import Looper, TimerToken
from aiohabridge.const import KeepaliveState
from aiohabridge.exceptions import BaseHassException
from aiohabridge.support import extract_exc_args
from aiohabridge.type_aliases import ZeroArgHandler

_LOGGER: Final = logging.getLogger(__name__)


class KeepaliveMonitor:
    """Periodic ping with a bounded pong watchdog."""

    __slots__ = (
        "_interval",
        "_interval_timer",
        "_looper",
        "_on_expired",
        "_send_ping",
        "_state",
        "_timeout",
        "_watchdog",
    )

    def __init__(
        self,
        *,
        looper: Looper,
        interval: float,
        timeout: float,
        send_ping: Callable[[], Awaitable[None]],
        on_expired: ZeroArgHandler,
    ) -> None:
        """Initialize the keepalive monitor."""
        self._looper: Final = looper
        self._interval: Final = interval
        self._timeout: Final = timeout
        self._send_ping: Final = send_ping
        self._on_expired: Final = on_expired
        self._interval_timer: TimerToken | None = None
        self._watchdog: TimerToken | None = None
        self._state = KeepaliveState.IDLE

    @property
    def is_running(self) -> bool:
        """Return True if pings are scheduled."""
        return self._interval_timer is not None

    @property
    def state(self) -> KeepaliveState:
        """Return the state within the current interval."""
        return self._state

    @property
    def watchdog_armed(self) -> bool:
        """Return True if a watchdog waits for a pong."""
        return self._watchdog is not None

    def handle_pong(self) -> None:
        """Cancel the armed watchdog. Called for transport and application pongs."""
        if (watchdog := self._watchdog) is None:
            _LOGGER.debug("KEEPALIVE: Pong without armed watchdog")
            return
        watchdog.cancel()
        self._watchdog = None
        self._state = KeepaliveState.ACKED

    def start(self) -> None:
        """Start sending pings. A running monitor is restarted."""
        self.stop()
        self._interval_timer = self._looper.call_later(
            delay=self._interval, target=self._on_interval, name="keepalive-interval"
        )

    def stop(self) -> None:
        """Stop sending pings and cancel the watchdog."""
        if self._interval_timer is not None:
            self._interval_timer.cancel()
            self._interval_timer = None
        self._cancel_watchdog()
        self._state = KeepaliveState.IDLE

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _expire(self) -> None:
        self.stop()
        self._state = KeepaliveState.WATCHDOG_EXPIRED
        self._on_expired()

    def _on_interval(self) -> None:
        self._interval_timer = self._looper.call_later(
            delay=self._interval, target=self._on_interval, name="keepalive-interval"
        )
        if self._watchdog is None:
            self._watchdog = self._looper.call_later(
                delay=self._timeout, target=self._on_watchdog, name="keepalive-watchdog"
            )
        self._state = KeepaliveState.PING_SENT
        self._looper.create_task(target=self._ping(), name="keepalive-ping")

    def _on_watchdog(self) -> None:
        self._watchdog = None
        _LOGGER.warning("KEEPALIVE: No pong within %ss, closing connection", self._timeout)
        self._expire()

    async def _ping(self) -> None:
        try:
            await self._send_ping()
        except BaseHassException as bhexc:
            if not self.is_running:
                return
            _LOGGER.warning("KEEPALIVE: Sending ping failed: %s", extract_exc_args(exc=bhexc))
            self._expire()
