# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Notifications published by the hub client.

Every notification is an immutable dataclass. The `key` of an event is used by
the EventBus to route events to subscribers that registered for one key only
(e.g. a single entity id); subscribers registered with key None receive all
events of the type.

Lifecycle:    HubConnectedEvent, HubDisconnectedEvent, SocketOpenedEvent,
              SocketClosedEvent, HubErrorEvent, ReconnectExhaustedEvent
Snapshots:    ConfigFetchedEvent, ServicesFetchedEvent, DevicesFetchedEvent,
              EntitiesFetchedEvent, AreasFetchedEvent, LabelsFetchedEvent,
              StatesFetchedEvent
Stream:       SubscribedEvent, StateChangedEvent, CallServiceEvent
Keepalive:    PingReceivedEvent, PongReceivedEvent
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final

from aiohabridge.const import (
    HassArea,
    HassConfig,
    HassDevice,
    HassEntity,
    HassLabel,
    HassServices,
    HassState,
    ResourceKind,
)


@dataclass(frozen=True, kw_only=True, slots=True)
class HubEvent:
    """Base class of all notifications."""

    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> Any:
        """Return the routing key of the event."""
        return None


@dataclass(frozen=True, kw_only=True, slots=True)
class HubConnectedEvent(HubEvent):
    """Authenticated connection is ready."""

    ha_version: str


@dataclass(frozen=True, kw_only=True, slots=True)
class HubDisconnectedEvent(HubEvent):
    """Connection is gone, either by close() or by a failure."""

    reason: str


@dataclass(frozen=True, kw_only=True, slots=True)
class SocketOpenedEvent(HubEvent):
    """Transport socket opened, before authentication."""


@dataclass(frozen=True, kw_only=True, slots=True)
class SocketClosedEvent(HubEvent):
    """Transport socket closed."""

    code: int | None
    reason: str


@dataclass(frozen=True, kw_only=True, slots=True)
class HubErrorEvent(HubEvent):
    """Connection level error."""

    message: str


@dataclass(frozen=True, kw_only=True, slots=True)
class ReconnectExhaustedEvent(HubEvent):
    """Automatic recovery stopped permanently."""

    attempts: int
    message: str


@dataclass(frozen=True, kw_only=True, slots=True)
class ConfigFetchedEvent(HubEvent):
    """Core configuration snapshot."""

    config: HassConfig


@dataclass(frozen=True, kw_only=True, slots=True)
class ServicesFetchedEvent(HubEvent):
    """Services snapshot."""

    services: HassServices


@dataclass(frozen=True, kw_only=True, slots=True)
class DevicesFetchedEvent(HubEvent):
    """Device registry snapshot."""

    devices: tuple[HassDevice, ...]


@dataclass(frozen=True, kw_only=True, slots=True)
class EntitiesFetchedEvent(HubEvent):
    """Entity registry snapshot."""

    entities: tuple[HassEntity, ...]


@dataclass(frozen=True, kw_only=True, slots=True)
class AreasFetchedEvent(HubEvent):
    """Area registry snapshot."""

    areas: tuple[HassArea, ...]


@dataclass(frozen=True, kw_only=True, slots=True)
class LabelsFetchedEvent(HubEvent):
    """Label registry snapshot."""

    labels: tuple[HassLabel, ...]


@dataclass(frozen=True, kw_only=True, slots=True)
class StatesFetchedEvent(HubEvent):
    """States snapshot."""

    states: tuple[HassState, ...]


@dataclass(frozen=True, kw_only=True, slots=True)
class SubscribedEvent(HubEvent):
    """Event stream subscription was accepted by the hub."""

    subscription_id: int
    event_type: str | None = None


@dataclass(frozen=True, kw_only=True, slots=True)
class StateChangedEvent(HubEvent):
    """State of a registered entity changed."""

    device_id: str | None
    entity_id: str
    old_state: HassState
    new_state: HassState

    @property
    def key(self) -> str:
        """Return the entity id."""
        return self.entity_id


@dataclass(frozen=True, kw_only=True, slots=True)
class CallServiceEvent(HubEvent):
    """A service was called on the hub."""

    domain: str | None = None
    service: str | None = None


@dataclass(frozen=True, kw_only=True, slots=True)
class PingReceivedEvent(HubEvent):
    """Transport-level ping received from the hub."""

    data: bytes


@dataclass(frozen=True, kw_only=True, slots=True)
class PongReceivedEvent(HubEvent):
    """Transport-level or application-level pong received from the hub."""

    data: bytes


def create_snapshot_event(*, kind: ResourceKind, data: Any) -> HubEvent:
    """Return the snapshot notification of a resource kind."""
    match kind:
        case ResourceKind.CONFIG:
            return ConfigFetchedEvent(config=data)
        case ResourceKind.SERVICES:
            return ServicesFetchedEvent(services=data)
        case ResourceKind.DEVICES:
            return DevicesFetchedEvent(devices=tuple(data))
        case ResourceKind.ENTITIES:
            return EntitiesFetchedEvent(entities=tuple(data))
        case ResourceKind.AREAS:
            return AreasFetchedEvent(areas=tuple(data))
        case ResourceKind.LABELS:
            return LabelsFetchedEvent(labels=tuple(data))
        case ResourceKind.STATES:
            return StatesFetchedEvent(states=tuple(data))


SNAPSHOT_EVENT_TYPES: Final[dict[ResourceKind, type[HubEvent]]] = {
    ResourceKind.AREAS: AreasFetchedEvent,
    ResourceKind.CONFIG: ConfigFetchedEvent,
    ResourceKind.DEVICES: DevicesFetchedEvent,
    ResourceKind.ENTITIES: EntitiesFetchedEvent,
    ResourceKind.LABELS: LabelsFetchedEvent,
    ResourceKind.SERVICES: ServicesFetchedEvent,
    ResourceKind.STATES: StatesFetchedEvent,
}
