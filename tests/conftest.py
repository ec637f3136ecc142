# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""Test support for aiohabridge."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Generator
import logging
from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import pytest

from aiohabridge import i18n
from aiohabridge.client import HomeAssistantClient
from aiohabridge.config import HubConfig
from aiohabridge.const import DEFAULT_LOCALE

from tests.helpers.hub_data import default_results
from tests.helpers.mock_hub import DEFAULT_TOKEN, MockHub

if TYPE_CHECKING:
    from aiohabridge_test_support.event_capture import EventCapture

logging.basicConfig(level=logging.INFO)

# pylint: disable=protected-access, redefined-outer-name


@pytest.fixture(autouse=True)
def teardown() -> Generator[None]:
    """Clean up."""
    yield
    patch.stopall()
    i18n.set_locale(locale=DEFAULT_LOCALE)


# Mock hub fixtures


@pytest.fixture
async def mock_hub() -> AsyncGenerator[tuple[MockHub, str]]:
    """Yield a running mock hub preloaded with registry data and its ws:// base URL."""
    hub = MockHub()
    hub.results.update(default_results())
    base_url = await hub.start()
    try:
        yield hub, base_url
    finally:
        await hub.stop()


@pytest.fixture
def hub_config(mock_hub: tuple[MockHub, str]) -> HubConfig:
    """Return a configuration for the mock hub with short timings and reconnect disabled."""
    _, base_url = mock_hub
    return HubConfig(
        url=base_url,
        access_token=DEFAULT_TOKEN,
        response_timeout=0.5,
        ping_interval=10.0,
        ping_timeout=10.0,
        reconnect_delay=0,
        reconnect_retries=0,
        debounce_window=0.05,
    ).validate()


@pytest.fixture
async def client_factory(hub_config: HubConfig) -> AsyncGenerator[Callable[..., HomeAssistantClient]]:
    """Yield a factory for clients of the mock hub. Every created client is stopped on teardown."""
    clients: list[HomeAssistantClient] = []

    def factory(**changes: Any) -> HomeAssistantClient:
        config = hub_config.with_changes(**changes) if changes else hub_config
        client = HomeAssistantClient(config=config)
        clients.append(client)
        return client

    try:
        yield factory
    finally:
        for client in clients:
            await client.stop()


@pytest.fixture
async def connected_client(
    client_factory: Callable[..., HomeAssistantClient],
) -> HomeAssistantClient:
    """Return a client that is connected to the mock hub."""
    client = client_factory()
    await client.connect()
    return client


# Event capture fixtures


@pytest.fixture
def event_capture() -> Generator[EventCapture]:
    """Provide an EventCapture instance with automatic cleanup."""
    from aiohabridge_test_support.event_capture import EventCapture  # noqa: PLC0415

    capture = EventCapture()
    try:
        yield capture
    finally:
        capture.cleanup()
