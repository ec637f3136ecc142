# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Capture notifications of an EventBus for assertions in tests.

Example:
-------
    capture = EventCapture()
    capture.subscribe_to(client.event_bus, HubConnectedEvent, HubDisconnectedEvent)
    await client.connect()
    await capture.wait_for_event(event_type=HubConnectedEvent, ha_version="2024.1.0")
    capture.assert_event_emitted(event_type=HubDisconnectedEvent, count=0)
    capture.cleanup()

"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Final

from aiohabridge.central.event_bus import EventBus
from aiohabridge.central.events import HubEvent
from aiohabridge.type_aliases import UnsubscribeHandler

_POLL_INTERVAL: Final = 0.005


class EventCapture:
    """Record published events by type."""

    __slots__ = ("_unsubscribers", "captured_events")

    def __init__(self) -> None:
        """Initialize an empty capture."""
        self.captured_events: list[HubEvent] = []
        self._unsubscribers: list[UnsubscribeHandler] = []

    def assert_event_emitted(self, *, event_type: type[HubEvent], count: int | None = None, **attrs: Any) -> None:
        """Assert that events of a type with the given attribute values were captured."""
        events = self.get_events(event_type=event_type, **attrs)
        if count is None:
            assert events, f"No {event_type.__name__} matching {attrs} captured"
            return
        assert len(events) == count, f"Expected {count} {event_type.__name__}, got {len(events)}"

    def assert_no_event(self, *, event_type: type[HubEvent]) -> None:
        """Assert that no event of a type was captured."""
        events = self.get_events(event_type=event_type)
        assert not events, f"Unexpected {event_type.__name__}: {events}"

    def cleanup(self) -> None:
        """Unsubscribe from all buses and forget the captured events."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.clear()

    def clear(self) -> None:
        """Forget the captured events."""
        self.captured_events.clear()

    def get_event_count(self, *, event_type: type[HubEvent]) -> int:
        """Return the number of captured events of a type."""
        return len(self.get_events(event_type=event_type))

    def get_events(self, *, event_type: type[HubEvent] | None = None, **attrs: Any) -> list[HubEvent]:
        """Return the captured events of a type, optionally filtered by attribute values."""
        return [
            event
            for event in self.captured_events
            if (event_type is None or isinstance(event, event_type))
            and all(getattr(event, name, None) == value for name, value in attrs.items())
        ]

    def subscribe_to(self, event_bus: EventBus, *event_types: type[HubEvent]) -> None:
        """Capture the given event types of a bus."""
        for event_type in event_types:
            self._unsubscribers.append(event_bus.subscribe(event_type=event_type, handler=self._on_event))

    async def wait_for_event(self, *, event_type: type[HubEvent], timeout: float = 2.0, **attrs: Any) -> HubEvent:
        """Wait until a matching event was captured and return the first one."""
        deadline = time.monotonic() + timeout
        while not (events := self.get_events(event_type=event_type, **attrs)):
            if time.monotonic() >= deadline:
                raise AssertionError(f"No {event_type.__name__} matching {attrs} within {timeout}s")
            await asyncio.sleep(_POLL_INTERVAL)
        return events[0]

    def _on_event(self, event: HubEvent) -> None:
        self.captured_events.append(event)
