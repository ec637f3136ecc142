# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Event dispatcher for unsolicited hub event frames.

The dispatcher decodes event frames of active subscriptions, resolves
state_changed events against the local registry snapshot and publishes the
resulting notifications. Registry invalidation events are not published
directly: they are handed to the fetch debouncer, which refetches the
invalidated resource once per window.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any, Final, cast

import voluptuous as vol

from aiohabridge.central.event_bus import EventBus
from aiohabridge.central.events import CallServiceEvent, HubErrorEvent, StateChangedEvent
from aiohabridge.central.registry import HassRegistry
from aiohabridge.const import INVALIDATION_EVENTS, HassEventType, HassState, ResourceKind
from aiohabridge.schemas import EVENT_SCHEMA, STATE_CHANGED_DATA_SCHEMA

_LOGGER: Final = logging.getLogger(__name__)
_LOGGER_EVENT: Final = logging.getLogger(f"{__package__}.event")


class EventDispatcher:
    """Dispatch hub event frames to notifications."""

    __slots__ = ("_enqueue_fetch", "_event_bus", "_registry", "_subscription_ids")

    def __init__(
        self,
        *,
        registry: HassRegistry,
        event_bus: EventBus,
        enqueue_fetch: Callable[[ResourceKind], None],
    ) -> None:
        """Initialize the event dispatcher."""
        self._registry: Final = registry
        self._event_bus: Final = event_bus
        self._enqueue_fetch: Final = enqueue_fetch
        self._subscription_ids: Final[set[int]] = set()

    @property
    def subscription_ids(self) -> frozenset[int]:
        """Return the active subscription ids."""
        return frozenset(self._subscription_ids)

    def add_subscription(self, *, subscription_id: int) -> None:
        """Accept event frames carrying this subscription id."""
        self._subscription_ids.add(subscription_id)

    def clear_subscriptions(self) -> None:
        """Forget all subscriptions. They do not survive the socket."""
        self._subscription_ids.clear()

    def remove_subscription(self, *, subscription_id: int) -> None:
        """Stop accepting event frames carrying this subscription id."""
        self._subscription_ids.discard(subscription_id)

    def handle_event_frame(self, *, frame: dict[str, Any]) -> None:
        """Handle one inbound event frame. Never raises."""
        try:
            frame = EVENT_SCHEMA(frame)
        except vol.Invalid as err:
            message = f"Event frame with id {frame.get('id')} is malformed: {err}"
            _LOGGER.error("HANDLE_EVENT_FRAME: %s", message)
            self._event_bus.publish_sync(event=HubErrorEvent(message=message))
            return

        subscription_id: int = frame["id"]
        event = frame["event"]
        event_type: str = event["event_type"]
        if subscription_id not in self._subscription_ids:
            _LOGGER.debug(
                "HANDLE_EVENT_FRAME: Dropping %s for unknown subscription id %i", event_type, subscription_id
            )
            return

        _LOGGER_EVENT.debug("EVENT: %s received id %i", event_type, subscription_id)
        data = event.get("data") or {}

        if event_type == HassEventType.STATE_CHANGED:
            self._handle_state_changed(data=data)
        elif event_type == HassEventType.CALL_SERVICE:
            self._event_bus.publish_sync(event=CallServiceEvent(domain=data.get("domain"), service=data.get("service")))
        elif (kind := INVALIDATION_EVENTS.get(cast(HassEventType, event_type))) is not None:
            self._enqueue_fetch(kind)
        else:
            _LOGGER_EVENT.debug("EVENT: Unknown event type %s received id %i", event_type, subscription_id)

    def _handle_state_changed(self, *, data: dict[str, Any]) -> None:
        """Publish a state change of a registered entity and update the cached state."""
        try:
            data = STATE_CHANGED_DATA_SCHEMA(data)
        except vol.Invalid as err:
            _LOGGER.warning("HANDLE_STATE_CHANGED: Dropping malformed state_changed data: %s", err)
            return

        entity_id: str = data["entity_id"]
        if (entity := self._registry.get_entity(entity_id=entity_id)) is None:
            _LOGGER_EVENT.debug("EVENT: Entity id %s not found processing event", entity_id)
            return

        old_state = cast(HassState | None, data.get("old_state"))
        new_state = cast(HassState | None, data.get("new_state"))
        if old_state is None or new_state is None:
            # Entity added or removed. The registry events will follow.
            _LOGGER_EVENT.debug("EVENT: State of %s added or removed", entity_id)
            return

        self._registry.set_state(state={**new_state, "entity_id": new_state.get("entity_id", entity_id)})
        self._event_bus.publish_sync(
            event=StateChangedEvent(
                device_id=entity.get("device_id"),
                entity_id=entity_id,
                old_state=old_state,
                new_state=new_state,
            )
        )
