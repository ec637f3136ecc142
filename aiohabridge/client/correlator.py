# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Request correlator of the hub client.

Every request gets the next id of a monotonic counter, a future and a timer.
The first of result frame or timer expiry resolves the future and removes the
entry; whatever comes later for the same id is ignored. Ids are never reused
for the lifetime of the correlator, not even across reconnects.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Final

import voluptuous as vol

from aiohabridge import i18n
from aiohabridge.async_support import Looper, TimerToken
from aiohabridge.exceptions import RemoteException, RequestTimeoutException
from aiohabridge.schemas import RESULT_SCHEMA

_LOGGER: Final = logging.getLogger(__name__)


class _PendingRequest:
    """One in-flight request."""

    __slots__ = ("future", "issued_at", "kind", "timer")

    def __init__(self, *, kind: str, future: asyncio.Future[Any], timer: TimerToken) -> None:
        self.kind: Final = kind
        self.future: Final = future
        self.timer: Final = timer
        self.issued_at: Final = time.monotonic()


class RequestCorrelator:
    """Match result frames to pending requests by id."""

    __slots__ = ("_last_id", "_looper", "_pending")

    def __init__(self, *, looper: Looper) -> None:
        """Initialize the correlator."""
        self._looper: Final = looper
        self._last_id = 0
        self._pending: Final[dict[int, _PendingRequest]] = {}

    @property
    def pending_count(self) -> int:
        """Return the number of unresolved requests."""
        return len(self._pending)

    @property
    def pending_ids(self) -> tuple[int, ...]:
        """Return the ids of unresolved requests."""
        return tuple(self._pending)

    def discard(self, *, request_id: int) -> None:
        """Forget a request without resolving it, e.g. because sending failed."""
        if (pending := self._pending.pop(request_id, None)) is not None:
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.cancel()

    def next_id(self) -> int:
        """Return the next unused request id."""
        self._last_id += 1
        return self._last_id

    def register(self, *, request_id: int, kind: str, timeout: float) -> asyncio.Future[Any]:
        """Track a request and return the future its result is delivered to."""
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        timer = self._looper.call_later(
            delay=timeout,
            target=lambda: self._expire(request_id=request_id, timeout=timeout),
            name=f"request-timeout-{request_id}",
        )
        self._pending[request_id] = _PendingRequest(kind=kind, future=future, timer=timer)
        return future

    def resolve(self, *, frame: dict[str, Any]) -> bool:
        """Resolve the request a result frame belongs to. Return False if nothing was resolved."""
        try:
            frame = RESULT_SCHEMA(frame)
        except vol.Invalid as err:
            _LOGGER.warning("RESOLVE: Dropping malformed result frame %s: %s", frame.get("id"), err)
            return False

        request_id: int = frame["id"]
        if (pending := self._pending.pop(request_id, None)) is None:
            _LOGGER.debug("RESOLVE: Ignoring result for unknown or expired request %i", request_id)
            return False
        pending.timer.cancel()
        if pending.future.done():
            # Caller went away
            return False

        _LOGGER.debug(
            "RESOLVE: %s %i answered after %.3fs", pending.kind, request_id, time.monotonic() - pending.issued_at
        )
        if frame["success"]:
            pending.future.set_result(frame.get("result"))
        else:
            error = frame.get("error") or {}
            message = error.get("message") or i18n.tr("exception.correlator.remote_error", kind=pending.kind)
            pending.future.set_exception(RemoteException(message, code=error.get("code"), message=message))
        return True

    def _expire(self, *, request_id: int, timeout: float) -> None:
        if (pending := self._pending.pop(request_id, None)) is None:
            return
        _LOGGER.debug("EXPIRE: %s %i timed out after %ss", pending.kind, request_id, timeout)
        if not pending.future.done():
            pending.future.set_exception(
                RequestTimeoutException(
                    i18n.tr("exception.correlator.timeout", kind=pending.kind, request_id=request_id, timeout=timeout)
                )
            )
