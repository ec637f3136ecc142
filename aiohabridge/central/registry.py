# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Local snapshot of the hub registries.

The registry caches devices, entities, areas, labels, states, the core
configuration and the services of the hub. It is written only from the client's
message path (fetch results and state_changed events); everybody else reads.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from types import MappingProxyType
from typing import Any, Final, cast

from aiohabridge import i18n
from aiohabridge.const import (
    RESOURCE_ITEM_KEYS,
    HassArea,
    HassConfig,
    HassDevice,
    HassEntity,
    HassLabel,
    HassServices,
    HassState,
    ResourceKind,
)
from aiohabridge.exceptions import ProtocolException

_LOGGER: Final = logging.getLogger(__name__)


class HassRegistry:
    """Registry snapshot of one hub."""

    __slots__ = ("_areas", "_config", "_devices", "_entities", "_labels", "_services", "_states")

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._areas: Final[dict[str, HassArea]] = {}
        self._devices: Final[dict[str, HassDevice]] = {}
        self._entities: Final[dict[str, HassEntity]] = {}
        self._labels: Final[dict[str, HassLabel]] = {}
        self._states: Final[dict[str, HassState]] = {}
        self._config: HassConfig | None = None
        self._services: HassServices | None = None

    @property
    def areas(self) -> Mapping[str, HassArea]:
        """Return the areas by area_id."""
        return MappingProxyType(self._areas)

    @property
    def config(self) -> HassConfig | None:
        """Return the core configuration."""
        return self._config

    @property
    def devices(self) -> Mapping[str, HassDevice]:
        """Return the devices by id."""
        return MappingProxyType(self._devices)

    @property
    def entities(self) -> Mapping[str, HassEntity]:
        """Return the entities by entity_id."""
        return MappingProxyType(self._entities)

    @property
    def labels(self) -> Mapping[str, HassLabel]:
        """Return the labels by label_id."""
        return MappingProxyType(self._labels)

    @property
    def services(self) -> HassServices | None:
        """Return the services by domain."""
        return self._services

    @property
    def states(self) -> Mapping[str, HassState]:
        """Return the current states by entity_id."""
        return MappingProxyType(self._states)

    def apply(self, *, kind: ResourceKind, data: Any) -> None:
        """
        Apply a fetch result to the cache of its resource kind.

        List resources replace the whole cache, so entries removed on the hub
        disappear locally too. Raise ProtocolException on an unexpected shape.
        """
        if kind == ResourceKind.CONFIG:
            if not isinstance(data, dict):
                raise ProtocolException(i18n.tr("exception.registry.unexpected_shape", kind=kind, expected="object"))
            self._config = cast(HassConfig, data)
            return
        if kind == ResourceKind.SERVICES:
            if not isinstance(data, dict):
                raise ProtocolException(i18n.tr("exception.registry.unexpected_shape", kind=kind, expected="object"))
            self._services = cast(HassServices, data)
            return

        if not isinstance(data, list):
            raise ProtocolException(i18n.tr("exception.registry.unexpected_shape", kind=kind, expected="list"))
        item_key = RESOURCE_ITEM_KEYS[kind]
        cache = self._get_cache(kind=kind)
        cache.clear()
        for item in data:
            if isinstance(item, dict) and isinstance(key := item.get(item_key), str):
                cache[key] = item
            else:
                _LOGGER.debug("APPLY: Skipping %s item without %s", kind, item_key)
        _LOGGER.debug("APPLY: Received %i %s", len(cache), kind)

    def clear(self) -> None:
        """Clear all caches."""
        for kind in RESOURCE_ITEM_KEYS:
            self._get_cache(kind=kind).clear()
        self._config = None
        self._services = None

    def get_entity(self, *, entity_id: str) -> HassEntity | None:
        """Return a registered entity."""
        return self._entities.get(entity_id)

    def get_state(self, *, entity_id: str) -> HassState | None:
        """Return the cached state of an entity."""
        return self._states.get(entity_id)

    def set_state(self, *, state: HassState) -> None:
        """Update the cached state of an entity."""
        self._states[state["entity_id"]] = state

    def _get_cache(self, *, kind: ResourceKind) -> dict[str, Any]:
        match kind:
            case ResourceKind.AREAS:
                return cast(dict[str, Any], self._areas)
            case ResourceKind.DEVICES:
                return cast(dict[str, Any], self._devices)
            case ResourceKind.ENTITIES:
                return cast(dict[str, Any], self._entities)
            case ResourceKind.LABELS:
                return cast(dict[str, Any], self._labels)
            case ResourceKind.STATES:
                return cast(dict[str, Any], self._states)
        raise KeyError(kind)
