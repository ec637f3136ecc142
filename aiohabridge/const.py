# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Constants used by aiohabridge.

Public API of this module is defined by __all__.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Any, Final, NotRequired, Required, TypedDict

VERSION: Final = "2026.10.0"

DEFAULT_LOCALE: Final = "en"

# Hub WebSocket endpoint appended to the configured base url
PATH_WEBSOCKET: Final = "/api/websocket"
SCHEME_WS: Final = "ws://"
SCHEME_WSS: Final = "wss://"

# Durations are seconds
DEFAULT_RESPONSE_TIMEOUT: Final = 5.0
DEFAULT_PING_INTERVAL: Final = 30.0
DEFAULT_PING_TIMEOUT: Final = 35.0
DEFAULT_RECONNECT_DELAY: Final = 60.0
DEFAULT_RECONNECT_RETRIES: Final = 10
DEFAULT_DEBOUNCE_WINDOW: Final = 5.0
# Upper bound for waiting on background tasks during shutdown
DEFAULT_SHUTDOWN_WAIT: Final = 5.0

# The first reconnect attempt is numbered 1
INITIAL_RECONNECT_ATTEMPT: Final = 1

CLOSE_NORMAL_REASON: Final = "Normal closure"
DISCONNECTED_REASON: Final = "WebSocket connection closed"

UTF_8: Final = "utf-8"


class CloseCode(IntEnum):
    """WebSocket close codes used by the client."""

    NORMAL = 1000
    GOING_AWAY = 1001
    ABNORMAL = 1006


class ConnectionState(StrEnum):
    """Lifecycle state of the hub connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    CLOSING = "closing"


class KeepaliveState(StrEnum):
    """State of the keepalive monitor within one ping interval."""

    IDLE = "idle"
    PING_SENT = "ping_sent"
    ACKED = "acked"
    WATCHDOG_EXPIRED = "watchdog_expired"


class MessageType(StrEnum):
    """Frame types of the hub WebSocket protocol."""

    AUTH = "auth"
    AUTH_INVALID = "auth_invalid"
    AUTH_OK = "auth_ok"
    AUTH_REQUIRED = "auth_required"
    CALL_SERVICE = "call_service"
    EVENT = "event"
    PING = "ping"
    PONG = "pong"
    RESULT = "result"
    SUBSCRIBE_EVENTS = "subscribe_events"
    UNSUBSCRIBE_EVENTS = "unsubscribe_events"


class HassEventType(StrEnum):
    """Hub event types handled by the dispatcher."""

    AREA_REGISTRY_UPDATED = "area_registry_updated"
    CALL_SERVICE = "call_service"
    CORE_CONFIG_UPDATED = "core_config_updated"
    DEVICE_REGISTRY_UPDATED = "device_registry_updated"
    ENTITY_REGISTRY_UPDATED = "entity_registry_updated"
    LABEL_REGISTRY_UPDATED = "label_registry_updated"
    STATE_CHANGED = "state_changed"


class ResourceKind(StrEnum):
    """Fetchable hub resources. The value is the request type sent to the hub."""

    AREAS = "config/area_registry/list"
    CONFIG = "get_config"
    DEVICES = "config/device_registry/list"
    ENTITIES = "config/entity_registry/list"
    LABELS = "config/label_registry/list"
    SERVICES = "get_services"
    STATES = "get_states"


# Order used by the initial data load
INITIAL_FETCH_ORDER: Final[tuple[ResourceKind, ...]] = (
    ResourceKind.CONFIG,
    ResourceKind.SERVICES,
    ResourceKind.DEVICES,
    ResourceKind.ENTITIES,
    ResourceKind.STATES,
    ResourceKind.AREAS,
    ResourceKind.LABELS,
)

INVALIDATION_EVENTS: Final[dict[HassEventType, ResourceKind]] = {
    HassEventType.AREA_REGISTRY_UPDATED: ResourceKind.AREAS,
    HassEventType.CORE_CONFIG_UPDATED: ResourceKind.CONFIG,
    HassEventType.DEVICE_REGISTRY_UPDATED: ResourceKind.DEVICES,
    HassEventType.ENTITY_REGISTRY_UPDATED: ResourceKind.ENTITIES,
    HassEventType.LABEL_REGISTRY_UPDATED: ResourceKind.LABELS,
}

# Key of each registry list item used by the local caches
RESOURCE_ITEM_KEYS: Final[dict[ResourceKind, str]] = {
    ResourceKind.AREAS: "area_id",
    ResourceKind.DEVICES: "id",
    ResourceKind.ENTITIES: "entity_id",
    ResourceKind.LABELS: "label_id",
    ResourceKind.STATES: "entity_id",
}


class HassContext(TypedDict, total=False):
    """Context of a hub event or state."""

    id: str
    user_id: str | None
    parent_id: str | None


class HassState(TypedDict, total=False):
    """State of a hub entity."""

    entity_id: Required[str]
    state: Required[str]
    attributes: dict[str, Any]
    last_changed: str
    last_reported: str
    last_updated: str
    context: HassContext


class HassDevice(TypedDict, total=False):
    """Entry of the hub device registry."""

    id: Required[str]
    area_id: str | None
    config_entries: list[str]
    disabled_by: str | None
    entry_type: str | None
    hw_version: str | None
    identifiers: list[list[str]]
    labels: list[str]
    manufacturer: str | None
    model: str | None
    model_id: str | None
    name: str | None
    name_by_user: str | None
    serial_number: str | None
    sw_version: str | None
    via_device_id: str | None


class HassEntity(TypedDict, total=False):
    """Entry of the hub entity registry."""

    entity_id: Required[str]
    id: str
    area_id: str | None
    device_id: str | None
    disabled_by: str | None
    entity_category: str | None
    has_entity_name: bool
    hidden_by: str | None
    icon: str | None
    labels: list[str]
    name: str | None
    original_name: str | None
    platform: str
    unique_id: str
    translation_key: str | None


class HassArea(TypedDict, total=False):
    """Entry of the hub area registry."""

    area_id: Required[str]
    aliases: list[str]
    floor_id: str | None
    icon: str | None
    labels: list[str]
    name: str
    picture: str | None


class HassLabel(TypedDict, total=False):
    """Entry of the hub label registry."""

    label_id: Required[str]
    color: str | None
    description: str | None
    icon: str | None
    name: str


class HassConfig(TypedDict, total=False):
    """Core configuration of the hub."""

    components: list[str]
    country: str
    currency: str
    elevation: int
    language: str
    latitude: float
    location_name: str
    longitude: float
    state: str
    time_zone: str
    unit_system: dict[str, str]
    version: str


class HassServiceCall(TypedDict):
    """Payload of a call_service request without id and type."""

    domain: str
    service: str
    service_data: dict[str, Any]
    target: NotRequired[dict[str, Any]]


# Services are nested domain -> service -> description
type HassServices = dict[str, dict[str, Any]]


__all__ = [
    "CLOSE_NORMAL_REASON",
    "CloseCode",
    "ConnectionState",
    "DEFAULT_DEBOUNCE_WINDOW",
    "DEFAULT_LOCALE",
    "DEFAULT_PING_INTERVAL",
    "DEFAULT_PING_TIMEOUT",
    "DEFAULT_RECONNECT_DELAY",
    "DEFAULT_RECONNECT_RETRIES",
    "DEFAULT_RESPONSE_TIMEOUT",
    "DEFAULT_SHUTDOWN_WAIT",
    "DISCONNECTED_REASON",
    "HassArea",
    "HassConfig",
    "HassContext",
    "HassDevice",
    "HassEntity",
    "HassEventType",
    "HassLabel",
    "HassServiceCall",
    "HassServices",
    "HassState",
    "INITIAL_FETCH_ORDER",
    "INITIAL_RECONNECT_ATTEMPT",
    "INVALIDATION_EVENTS",
    "KeepaliveState",
    "MessageType",
    "PATH_WEBSOCKET",
    "RESOURCE_ITEM_KEYS",
    "ResourceKind",
    "SCHEME_WS",
    "SCHEME_WSS",
    "UTF_8",
    "VERSION",
]
