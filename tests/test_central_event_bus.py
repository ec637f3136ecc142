"""Tests for aiohabridge.central.event_bus."""

from __future__ import annotations

import asyncio
import logging

import pytest

from aiohabridge.central.event_bus import EventBus
from aiohabridge.central.events import HubConnectedEvent, HubDisconnectedEvent, StateChangedEvent


def _state_event(entity_id: str, new: str = "on") -> StateChangedEvent:
    return StateChangedEvent(
        device_id=None,
        entity_id=entity_id,
        old_state={"entity_id": entity_id, "state": "off"},
        new_state={"entity_id": entity_id, "state": new},
    )


class TestEventBus:
    """Test EventBus core functionality."""

    @pytest.mark.asyncio
    async def test_async_and_sync_handlers(self) -> None:
        """Sync and async handlers both receive the event."""
        bus = EventBus()
        calls: list[str] = []

        def sync_handler(event: HubConnectedEvent) -> None:
            calls.append(f"sync:{event.ha_version}")

        async def async_handler(event: HubConnectedEvent) -> None:
            await asyncio.sleep(0)
            calls.append(f"async:{event.ha_version}")

        bus.subscribe(event_type=HubConnectedEvent, handler=sync_handler)
        bus.subscribe(event_type=HubConnectedEvent, handler=async_handler)
        await bus.publish(event=HubConnectedEvent(ha_version="2024.1.0"))
        assert sorted(calls) == ["async:2024.1.0", "sync:2024.1.0"]

    @pytest.mark.asyncio
    async def test_handler_exception_isolation(self, caplog: pytest.LogCaptureFixture) -> None:
        """An exception in one handler neither reaches the publisher nor other handlers."""
        bus = EventBus()
        calls: list[HubConnectedEvent] = []

        def failing_handler(event: HubConnectedEvent) -> None:
            raise RuntimeError("handler failure")

        async def failing_async_handler(event: HubConnectedEvent) -> None:
            raise RuntimeError("async handler failure")

        bus.subscribe(event_type=HubConnectedEvent, handler=failing_handler)
        bus.subscribe(event_type=HubConnectedEvent, handler=failing_async_handler)
        bus.subscribe(event_type=HubConnectedEvent, handler=calls.append)

        await bus.publish(event=HubConnectedEvent(ha_version="1"))

        assert len(calls) == 1
        assert sum("handler failure" in record.getMessage() for record in caplog.records) == 2

    @pytest.mark.asyncio
    async def test_event_key_routing(self) -> None:
        """Handlers subscribed with a key only receive events of that key."""
        bus = EventBus()
        kitchen: list[StateChangedEvent] = []
        everything: list[StateChangedEvent] = []
        bus.subscribe(event_type=StateChangedEvent, event_key="light.kitchen", handler=kitchen.append)
        bus.subscribe(event_type=StateChangedEvent, handler=everything.append)

        await bus.publish(event=_state_event("light.kitchen"))
        await bus.publish(event=_state_event("light.hall"))

        assert [event.entity_id for event in kitchen] == ["light.kitchen"]
        assert [event.entity_id for event in everything] == ["light.kitchen", "light.hall"]

    @pytest.mark.asyncio
    async def test_unsubscribe(self) -> None:
        """The returned callable removes the subscription and is idempotent."""
        bus = EventBus()
        calls: list[HubDisconnectedEvent] = []
        unsubscribe = bus.subscribe(event_type=HubDisconnectedEvent, handler=calls.append)
        unsubscribe()
        unsubscribe()
        await bus.publish(event=HubDisconnectedEvent(reason="gone"))
        assert calls == []

    @pytest.mark.asyncio
    async def test_publish_sync_keeps_order(self) -> None:
        """Events scheduled from synchronous code are delivered in scheduling order."""
        bus = EventBus()
        received: list[str] = []
        bus.subscribe(event_type=StateChangedEvent, handler=lambda event: received.append(event.new_state["state"]))

        for value in ("1", "2", "3", "4"):
            bus.publish_sync(event=_state_event("sensor.counter", new=value))
        await bus.wait_for_pending()

        assert received == ["1", "2", "3", "4"]

    def test_publish_sync_without_loop(self) -> None:
        """Without a running loop the event is dropped silently."""
        bus = EventBus()
        calls: list[HubConnectedEvent] = []
        bus.subscribe(event_type=HubConnectedEvent, handler=calls.append)
        bus.publish_sync(event=HubConnectedEvent(ha_version="1"))
        assert calls == []

    @pytest.mark.asyncio
    async def test_event_logging(self, caplog: pytest.LogCaptureFixture) -> None:
        """With event logging enabled every publish is logged at debug level."""
        caplog.set_level(logging.DEBUG, logger="aiohabridge.central.event_bus")
        bus = EventBus(enable_event_logging=True)
        await bus.publish(event=HubConnectedEvent(ha_version="1"))
        await bus.publish(event=HubDisconnectedEvent(reason="x"))
        messages = [record.getMessage() for record in caplog.records if record.getMessage().startswith("PUBLISH")]
        assert messages == ["PUBLISH: HubConnectedEvent key=None", "PUBLISH: HubDisconnectedEvent key=None"]

    @pytest.mark.asyncio
    async def test_clear_subscriptions_specific_type(self) -> None:
        """Clearing one type keeps the others."""
        bus = EventBus()
        connected: list[HubConnectedEvent] = []
        disconnected: list[HubDisconnectedEvent] = []
        bus.subscribe(event_type=HubConnectedEvent, handler=connected.append)
        bus.subscribe(event_type=HubDisconnectedEvent, handler=disconnected.append)
        bus.clear_subscriptions(event_type=HubConnectedEvent)
        await bus.publish(event=HubConnectedEvent(ha_version="1"))
        await bus.publish(event=HubDisconnectedEvent(reason="x"))
        assert connected == []
        assert len(disconnected) == 1
        bus.clear_subscriptions()
        await bus.publish(event=HubDisconnectedEvent(reason="y"))
        assert len(disconnected) == 1
