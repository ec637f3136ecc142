# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Shared typing aliases for callbacks and common callable shapes.

This module centralizes `Callable[...]` type aliases to avoid repeating
signatures across the code base.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeAlias

from aiohabridge.const import ResourceKind

# Generic zero-argument callback that returns nothing
ZeroArgHandler: TypeAlias = Callable[[], None]

# Returned by subscriptions, calling it removes the subscription
UnsubscribeHandler: TypeAlias = ZeroArgHandler

# Event bus handlers may be sync or async
EventHandler: TypeAlias = Callable[[Any], None] | Callable[[Any], Coroutine[Any, Any, None]]

# Inbound frame handler installed on the transport
FrameHandler: TypeAlias = Callable[[dict[str, Any]], None]

# Transport close callback receiving close code and reason
SocketClosedHandler: TypeAlias = Callable[[int | None, str], None]

# Transport-level ping or pong callback receiving the payload
ControlFrameHandler: TypeAlias = Callable[[bytes], None]

# Coroutine factories
AsyncTaskFactory: TypeAlias = Callable[[], Coroutine[Any, Any, None]]
AsyncConnectFactory: TypeAlias = Callable[[], Awaitable[str]]
ResourceRefresher: TypeAlias = Callable[[ResourceKind], Awaitable[None]]

# Connection level error callback receiving a message
ErrorMessageHandler: TypeAlias = Callable[[str], None]
