"""Tests for aiohabridge.central.event_dispatcher."""

from __future__ import annotations

from typing import Any

import pytest

from aiohabridge.central.event_bus import EventBus
from aiohabridge.central.event_dispatcher import EventDispatcher
from aiohabridge.central.events import CallServiceEvent, HubErrorEvent, StateChangedEvent
from aiohabridge.central.registry import HassRegistry
from aiohabridge.const import ResourceKind
from aiohabridge_test_support.event_capture import EventCapture

from tests.helpers.hub_data import HA_ENTITIES, HA_STATES, state_changed_data

SUBSCRIPTION_ID = 3


def _event_frame(event_type: str, data: dict[str, Any] | None = None, subscription_id: int = SUBSCRIPTION_ID) -> dict:
    return {"id": subscription_id, "type": "event", "event": {"event_type": event_type, "data": data or {}}}


@pytest.fixture
def dispatcher_setup() -> tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]]:
    """Return a dispatcher with a populated registry and a recording enqueue callback."""
    registry = HassRegistry()
    registry.apply(kind=ResourceKind.ENTITIES, data=HA_ENTITIES)
    registry.apply(kind=ResourceKind.STATES, data=HA_STATES)
    event_bus = EventBus()
    enqueued: list[ResourceKind] = []
    dispatcher = EventDispatcher(registry=registry, event_bus=event_bus, enqueue_fetch=enqueued.append)
    dispatcher.add_subscription(subscription_id=SUBSCRIPTION_ID)
    return dispatcher, registry, event_bus, enqueued


class TestEventDispatcher:
    """Test dispatching of event frames."""

    @pytest.mark.asyncio
    async def test_state_changed_of_registered_entity(
        self, dispatcher_setup: tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]]
    ) -> None:
        """A state change of a registered entity is published and cached."""
        dispatcher, registry, event_bus, _ = dispatcher_setup
        capture = EventCapture()
        capture.subscribe_to(event_bus, StateChangedEvent)

        dispatcher.handle_event_frame(
            frame=_event_frame("state_changed", state_changed_data(entity_id="light.kitchen", old="off", new="on"))
        )
        await event_bus.wait_for_pending()

        capture.assert_event_emitted(
            event_type=StateChangedEvent, count=1, device_id="dev-kitchen", entity_id="light.kitchen"
        )
        event = capture.get_events(event_type=StateChangedEvent)[0]
        assert event.old_state["state"] == "off"
        assert event.new_state["state"] == "on"
        assert registry.get_state(entity_id="light.kitchen")["state"] == "on"

    @pytest.mark.asyncio
    async def test_state_changed_without_device(
        self, dispatcher_setup: tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]]
    ) -> None:
        """An entity without device publishes device_id None."""
        dispatcher, _, event_bus, _ = dispatcher_setup
        capture = EventCapture()
        capture.subscribe_to(event_bus, StateChangedEvent)
        dispatcher.handle_event_frame(
            frame=_event_frame("state_changed", state_changed_data(entity_id="switch.garden", old="on", new="off"))
        )
        await event_bus.wait_for_pending()
        capture.assert_event_emitted(event_type=StateChangedEvent, device_id=None, entity_id="switch.garden")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data",
        [
            state_changed_data(entity_id="light.unknown", old="off", new="on"),
            state_changed_data(entity_id="light.kitchen", old=None, new="on"),
            state_changed_data(entity_id="light.kitchen", old="on", new=None),
            {"old_state": None},
        ],
    )
    async def test_state_changed_dropped(
        self,
        dispatcher_setup: tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]],
        data: dict[str, Any],
    ) -> None:
        """Unknown entities, additions, removals and malformed data are dropped without error."""
        dispatcher, registry, event_bus, _ = dispatcher_setup
        capture = EventCapture()
        capture.subscribe_to(event_bus, StateChangedEvent, HubErrorEvent)
        dispatcher.handle_event_frame(frame=_event_frame("state_changed", data))
        await event_bus.wait_for_pending()
        assert capture.captured_events == []
        assert registry.get_state(entity_id="light.kitchen")["state"] == "off"

    @pytest.mark.asyncio
    async def test_call_service(
        self, dispatcher_setup: tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]]
    ) -> None:
        """call_service events publish a lightweight notification."""
        dispatcher, _, event_bus, _ = dispatcher_setup
        capture = EventCapture()
        capture.subscribe_to(event_bus, CallServiceEvent)
        dispatcher.handle_event_frame(frame=_event_frame("call_service", {"domain": "light", "service": "turn_on"}))
        await event_bus.wait_for_pending()
        capture.assert_event_emitted(event_type=CallServiceEvent, count=1, domain="light", service="turn_on")

    @pytest.mark.parametrize(
        ("event_type", "kind"),
        [
            ("device_registry_updated", ResourceKind.DEVICES),
            ("entity_registry_updated", ResourceKind.ENTITIES),
            ("area_registry_updated", ResourceKind.AREAS),
            ("label_registry_updated", ResourceKind.LABELS),
            ("core_config_updated", ResourceKind.CONFIG),
        ],
    )
    def test_invalidation_events_are_enqueued(
        self,
        dispatcher_setup: tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]],
        event_type: str,
        kind: ResourceKind,
    ) -> None:
        """Registry invalidations go to the debouncer instead of being published."""
        dispatcher, _, _, enqueued = dispatcher_setup
        dispatcher.handle_event_frame(frame=_event_frame(event_type))
        assert enqueued == [kind]

    @pytest.mark.asyncio
    async def test_unknown_event_type_and_subscription(
        self, dispatcher_setup: tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]]
    ) -> None:
        """Unknown event types and foreign subscription ids are dropped, never raised."""
        dispatcher, _, event_bus, enqueued = dispatcher_setup
        capture = EventCapture()
        capture.subscribe_to(event_bus, StateChangedEvent, CallServiceEvent, HubErrorEvent)
        dispatcher.handle_event_frame(frame=_event_frame("automation_triggered"))
        dispatcher.handle_event_frame(frame=_event_frame("device_registry_updated", subscription_id=99))
        await event_bus.wait_for_pending()
        assert capture.captured_events == []
        assert enqueued == []

    @pytest.mark.asyncio
    async def test_malformed_event_frame(
        self, dispatcher_setup: tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]]
    ) -> None:
        """An event frame without event data publishes an error notification."""
        dispatcher, _, event_bus, _ = dispatcher_setup
        capture = EventCapture()
        capture.subscribe_to(event_bus, HubErrorEvent)
        dispatcher.handle_event_frame(frame={"id": SUBSCRIPTION_ID, "type": "event"})
        await event_bus.wait_for_pending()
        capture.assert_event_emitted(event_type=HubErrorEvent, count=1)

    def test_subscription_bookkeeping(
        self, dispatcher_setup: tuple[EventDispatcher, HassRegistry, EventBus, list[ResourceKind]]
    ) -> None:
        """Subscriptions can be added, removed and cleared."""
        dispatcher, _, _, _ = dispatcher_setup
        dispatcher.add_subscription(subscription_id=8)
        assert dispatcher.subscription_ids == frozenset({SUBSCRIPTION_ID, 8})
        dispatcher.remove_subscription(subscription_id=SUBSCRIPTION_ID)
        assert dispatcher.subscription_ids == frozenset({8})
        dispatcher.clear_subscriptions()
        assert dispatcher.subscription_ids == frozenset()
