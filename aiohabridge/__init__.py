# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
aiohabridge: asyncio WebSocket client for the Home Assistant hub API.

The package bridges the real-time hub API into a hosting process: it keeps
one authenticated session, correlates requests, watches liveness, keeps a
local snapshot of the hub registries and reconnects after unexpected loss.

Public API of this module is defined by __all__.
"""

from __future__ import annotations

from aiohabridge.client import HomeAssistantClient
from aiohabridge.config import HubConfig, HubConfigBuilder
from aiohabridge.const import VERSION

__version__ = VERSION

__all__ = ["HomeAssistantClient", "HubConfig", "HubConfigBuilder", "__version__"]
