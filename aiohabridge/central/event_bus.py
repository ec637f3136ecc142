# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Typed event channel of the hub client.

Subscribers register a handler for one event class and optionally one routing
key. Handlers may be plain functions or coroutine functions. An exception in one
handler is logged and never reaches the publisher or other handlers.

Example:
-------
    def on_state(event: StateChangedEvent) -> None:
        print(event.entity_id, event.new_state["state"])

    unsubscribe = client.event_bus.subscribe(
        event_type=StateChangedEvent, event_key="light.kitchen", handler=on_state
    )
    ...
    unsubscribe()

"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
import inspect
import logging
from typing import Any, Final

from aiohabridge.central.events import HubEvent
from aiohabridge.support import describe_exception
from aiohabridge.type_aliases import EventHandler, UnsubscribeHandler

_LOGGER: Final = logging.getLogger(__name__)


class _Subscription:
    """One handler registration."""

    __slots__ = ("event_key", "handler", "is_async")

    def __init__(self, *, event_key: Any, handler: EventHandler) -> None:
        self.event_key: Final = event_key
        self.handler: Final = handler
        self.is_async: Final = inspect.iscoroutinefunction(handler)

    def matches(self, *, event: HubEvent) -> bool:
        return self.event_key is None or self.event_key == event.key


class EventBus:
    """Dispatch typed hub events to subscribed handlers."""

    __slots__ = ("_enable_event_logging", "_pending_publishes", "_subscriptions")

    def __init__(self, *, enable_event_logging: bool = False) -> None:
        """Initialize the event bus."""
        self._enable_event_logging: Final = enable_event_logging
        self._pending_publishes: Final[set[asyncio.Task[None]]] = set()
        self._subscriptions: Final[dict[type[HubEvent], list[_Subscription]]] = {}

    def clear_subscriptions(self, *, event_type: type[HubEvent] | None = None) -> None:
        """Remove all subscriptions, or the ones of one event type."""
        if event_type is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(event_type, None)

    async def publish(self, *, event: HubEvent) -> None:
        """Publish an event and wait for all handlers."""
        if self._enable_event_logging:
            _LOGGER.debug("PUBLISH: %s key=%s", type(event).__name__, event.key)

        # Copy, handlers may (un)subscribe while being called
        subscriptions = [sub for sub in self._subscriptions.get(type(event), ()) if sub.matches(event=event)]
        coroutines: list[Coroutine[Any, Any, None]] = []
        for sub in subscriptions:
            if sub.is_async:
                coroutines.append(self._call_async(handler=sub.handler, event=event))
            else:
                self._call_sync(handler=sub.handler, event=event)
        if coroutines:
            await asyncio.gather(*coroutines)

    def publish_sync(self, *, event: HubEvent) -> None:
        """
        Schedule publishing of an event from synchronous code.

        Events scheduled from the same task are delivered in scheduling order.
        Without a running event loop the event is dropped.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _LOGGER.debug("PUBLISH_SYNC: No running loop, dropping %s", type(event).__name__)
            return
        task = loop.create_task(self.publish(event=event), name=f"event-bus-{type(event).__name__}")
        self._pending_publishes.add(task)
        task.add_done_callback(self._pending_publishes.discard)

    async def wait_for_pending(self) -> None:
        """Wait until all events scheduled by publish_sync are delivered."""
        while self._pending_publishes:
            await asyncio.gather(*list(self._pending_publishes), return_exceptions=True)

    def subscribe(
        self, *, event_type: type[HubEvent], handler: EventHandler, event_key: Any = None
    ) -> UnsubscribeHandler:
        """Subscribe a handler and return a callable that removes the subscription."""
        subscription = _Subscription(event_key=event_key, handler=handler)
        self._subscriptions.setdefault(event_type, []).append(subscription)

        def unsubscribe() -> None:
            if (subs := self._subscriptions.get(event_type)) and subscription in subs:
                subs.remove(subscription)

        return unsubscribe

    def _call_sync(self, *, handler: EventHandler, event: HubEvent) -> None:
        try:
            handler(event)
        except Exception as exc:
            self._log_handler_error(handler=handler, event=event, exc=exc)

    async def _call_async(self, *, handler: EventHandler, event: HubEvent) -> None:
        try:
            await handler(event)  # type: ignore[misc]
        except Exception as exc:
            self._log_handler_error(handler=handler, event=event, exc=exc)

    def _log_handler_error(self, *, handler: EventHandler, event: HubEvent, exc: Exception) -> None:
        _LOGGER.error(
            "PUBLISH: Handler %s failed for %s: %s",
            getattr(handler, "__qualname__", repr(handler)),
            type(event).__name__,
            describe_exception(exc=exc),
        )
