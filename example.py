"""Example for aiohabridge."""

# !/usr/bin/python3
from __future__ import annotations

import asyncio
import logging
import sys

from aiohabridge import HomeAssistantClient, HubConfigBuilder
from aiohabridge.central.events import (
    HubConnectedEvent,
    HubDisconnectedEvent,
    ReconnectExhaustedEvent,
    StateChangedEvent,
)

logging.basicConfig(level=logging.DEBUG)
_LOGGER = logging.getLogger(__name__)

HUB_URL = "ws://homeassistant.local:8123"
HUB_TOKEN = "xxx"


class Example:
    """Example for aiohabridge."""

    got_states = False

    def __init__(self):
        """Init example."""
        self.SLEEPCOUNTER = 0
        self.client = None

    def _on_connected(self, event: HubConnectedEvent) -> None:
        """Subscribe again after every (re)connect."""
        _LOGGER.info("Connected, hub version %s", event.ha_version)
        asyncio.get_running_loop().create_task(self.client.subscribe())

    def _on_disconnected(self, event: HubDisconnectedEvent) -> None:
        _LOGGER.info("Disconnected: %s", event.reason)

    def _on_exhausted(self, event: ReconnectExhaustedEvent) -> None:
        _LOGGER.error("Giving up after %i attempts: %s", event.attempts, event.message)

    def _on_state_changed(self, event: StateChangedEvent) -> None:
        _LOGGER.info(
            "%s: %s -> %s", event.entity_id, event.old_state.get("state"), event.new_state.get("state")
        )
        self.got_states = True

    async def example_run(self):
        """Process the example."""
        config = (
            HubConfigBuilder()
            .with_url(url=HUB_URL)
            .with_access_token(access_token=HUB_TOKEN)
            .with_reconnect(delay=10, retries=5)
            .build()
        )
        self.client = HomeAssistantClient(config=config)
        self.client.event_bus.subscribe(event_type=HubConnectedEvent, handler=self._on_connected)
        self.client.event_bus.subscribe(event_type=HubDisconnectedEvent, handler=self._on_disconnected)
        self.client.event_bus.subscribe(event_type=ReconnectExhaustedEvent, handler=self._on_exhausted)
        self.client.event_bus.subscribe(event_type=StateChangedEvent, handler=self._on_state_changed)

        await self.client.connect()
        await self.client.fetch_data()
        _LOGGER.info("Loaded %i entities", len(self.client.entities))

        while not self.got_states and self.SLEEPCOUNTER < 20:
            _LOGGER.info("Waiting for state changes")
            self.SLEEPCOUNTER += 1
            await asyncio.sleep(1)

        for i in range(16):
            _LOGGER.info("Sleeping (%i)", i)
            await asyncio.sleep(2)
        # Stop the client so Python can exit properly.
        await self.client.stop()


example = Example()
asyncio.run(example.example_run())
sys.exit(0)
