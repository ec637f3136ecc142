# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Central state of the hub client: registry snapshot, notifications and the event channel.

The client writes the registry from its message path; everything else reads
it and listens on the EventBus.
"""

from __future__ import annotations

from aiohabridge.central.event_bus import EventBus
from aiohabridge.central.event_dispatcher import EventDispatcher
from aiohabridge.central.registry import HassRegistry

__all__ = ["EventBus", "EventDispatcher", "HassRegistry"]
