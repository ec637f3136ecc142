# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""Coalesce registry invalidations into one refetch per resource kind and window."""

from __future__ import annotations

import logging
from typing import Final

from aiohabridge.async_support import Looper, TimerToken
from aiohabridge.const import ResourceKind
from aiohabridge.exceptions import BaseHassException
from aiohabridge.support import extract_exc_args
from aiohabridge.type_aliases import ResourceRefresher

_LOGGER: Final = logging.getLogger(__name__)


class FetchDebouncer:
    """One shared timer for all pending resource kinds."""

    __slots__ = ("_looper", "_pending", "_refresh", "_timer", "_window")

    def __init__(self, *, looper: Looper, window: float, refresh: ResourceRefresher) -> None:
        """Initialize the debouncer."""
        self._looper: Final = looper
        self._window: Final = window
        self._refresh: Final = refresh
        # dict keeps the enqueue order
        self._pending: Final[dict[ResourceKind, None]] = {}
        self._timer: TimerToken | None = None

    @property
    def is_armed(self) -> bool:
        """Return True if a flush is scheduled."""
        return self._timer is not None

    @property
    def pending_kinds(self) -> tuple[ResourceKind, ...]:
        """Return the kinds waiting for the next flush."""
        return tuple(self._pending)

    def cancel(self) -> None:
        """Cancel the scheduled flush and forget the pending kinds."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending.clear()

    def enqueue(self, kind: ResourceKind) -> None:
        """Mark a resource kind for refetch within the current window."""
        self._pending[kind] = None
        if self._timer is None:
            _LOGGER.debug("DEBOUNCER: Arming %ss window for %s", self._window, kind)
            self._timer = self._looper.call_later(delay=self._window, target=self._flush, name="fetch-debouncer")

    def _flush(self) -> None:
        kinds = tuple(self._pending)
        self._pending.clear()
        self._timer = None
        if kinds:
            self._looper.create_task(target=self._refresh_all(kinds=kinds), name="fetch-debouncer-flush")

    async def _refresh_all(self, *, kinds: tuple[ResourceKind, ...]) -> None:
        for kind in kinds:
            try:
                await self._refresh(kind)
            except BaseHassException as bhexc:
                _LOGGER.warning("DEBOUNCER: Refetching %s failed: %s", kind, extract_exc_args(exc=bhexc))
