# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
WebSocket protocol client for the Home Assistant hub.

Overview
--------
HomeAssistantClient keeps one long-lived WebSocket session to the hub. It
authenticates, exchanges correlated requests, watches liveness with a
ping/pong watchdog, dispatches hub events to the event bus and recovers from
unexpected connection loss.

Components
----------
- WebSocketTransport: owns the socket, reads frames in arrival order
- AuthHandshake: auth_required / auth / auth_ok sequence after open
- RequestCorrelator: pending requests by id with per-request timeout
- KeepaliveMonitor: periodic ping and pong watchdog
- EventDispatcher: event frames to notifications, invalidations to the debouncer
- FetchDebouncer: one refetch per resource kind and window
- ReconnectSupervisor: bounded fixed-delay reconnect after unexpected loss

Quick start
-----------
    config = (
        HubConfigBuilder()
        .with_url(url="ws://homeassistant.local:8123")
        .with_access_token(access_token="...")
        .build()
    )
    client = HomeAssistantClient(config=config)
    client.event_bus.subscribe(event_type=StateChangedEvent, handler=on_state_changed)
    ha_version = await client.connect()
    await client.fetch_data()
    await client.subscribe()
    ...
    await client.close()

Notes
-----
- All methods must be called from the event loop the client was connected on.
- Requests still in flight when the connection is lost are not failed early;
  they fail by their own timeout.

"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import logging
from typing import Any, Final

import aiohttp

from aiohabridge import i18n
from aiohabridge.async_support import Looper
from aiohabridge.central.event_bus import EventBus
from aiohabridge.central.event_dispatcher import EventDispatcher
from aiohabridge.central.events import (
    HubConnectedEvent,
    HubDisconnectedEvent,
    HubErrorEvent,
    PingReceivedEvent,
    PongReceivedEvent,
    ReconnectExhaustedEvent,
    SocketClosedEvent,
    SocketOpenedEvent,
    SubscribedEvent,
    create_snapshot_event,
)
from aiohabridge.central.registry import HassRegistry
from aiohabridge.client.correlator import RequestCorrelator
from aiohabridge.client.debouncer import FetchDebouncer
from aiohabridge.client.handshake import AuthHandshake
from aiohabridge.client.keepalive import KeepaliveMonitor
from aiohabridge.client.reconnect import ReconnectSupervisor
from aiohabridge.client.state_machine import ConnectionStateMachine
from aiohabridge.client.transport import WebSocketTransport
from aiohabridge.config import HubConfig
from aiohabridge.const import (
    CLOSE_NORMAL_REASON,
    DEFAULT_SHUTDOWN_WAIT,
    DISCONNECTED_REASON,
    INITIAL_FETCH_ORDER,
    CloseCode,
    ConnectionState,
    HassArea,
    HassConfig,
    HassDevice,
    HassEntity,
    HassLabel,
    HassServices,
    HassState,
    MessageType,
    ResourceKind,
)
from aiohabridge.exceptions import (
    AlreadyConnectedException,
    BaseHassException,
    NoConnectionException,
    RequestTimeoutException,
)
from aiohabridge.support import extract_exc_args

__all__ = ["HomeAssistantClient"]

_LOGGER: Final = logging.getLogger(__name__)

_WATCHDOG_REASON: Final = "Ping watchdog expired"


class HomeAssistantClient:
    """Protocol client of one Home Assistant hub."""

    __slots__ = (
        "_client_session",
        "_close_requested",
        "_config",
        "_correlator",
        "_debouncer",
        "_dispatcher",
        "_event_bus",
        "_ha_version",
        "_handshake",
        "_keepalive",
        "_looper",
        "_registry",
        "_response_timeout",
        "_state_machine",
        "_supervisor",
        "_transport",
    )

    def __init__(
        self,
        *,
        config: HubConfig,
        client_session: aiohttp.ClientSession | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize the client. Nothing is opened before connect()."""
        i18n.set_locale(locale=config.locale)
        self._config: Final = config
        self._client_session: Final = client_session
        self._response_timeout: float = config.response_timeout
        self._looper: Final = Looper()
        self._event_bus: Final = event_bus or EventBus()
        self._registry: Final = HassRegistry()
        self._state_machine: Final = ConnectionStateMachine(url=config.url)
        self._correlator: Final = RequestCorrelator(looper=self._looper)
        self._debouncer: Final = FetchDebouncer(
            looper=self._looper, window=config.debounce_window, refresh=self._refresh_resource
        )
        self._dispatcher: Final = EventDispatcher(
            registry=self._registry, event_bus=self._event_bus, enqueue_fetch=self._debouncer.enqueue
        )
        self._keepalive: Final = KeepaliveMonitor(
            looper=self._looper,
            interval=config.ping_interval,
            timeout=config.ping_timeout,
            send_ping=self._send_ping,
            on_expired=self._on_watchdog_expired,
        )
        self._supervisor: Final = ReconnectSupervisor(
            looper=self._looper,
            delay=config.reconnect_delay,
            max_attempts=config.reconnect_retries,
            connect=self._reconnect,
            on_exhausted=self._on_reconnect_exhausted,
        )
        self._close_requested = False
        self._ha_version: str | None = None
        self._handshake: AuthHandshake | None = None
        self._transport: WebSocketTransport | None = None

    @property
    def areas(self) -> Mapping[str, HassArea]:
        """Return the cached areas by area_id."""
        return self._registry.areas

    @property
    def config(self) -> HassConfig | None:
        """Return the cached core configuration of the hub."""
        return self._registry.config

    @property
    def devices(self) -> Mapping[str, HassDevice]:
        """Return the cached devices by id."""
        return self._registry.devices

    @property
    def entities(self) -> Mapping[str, HassEntity]:
        """Return the cached entities by entity_id."""
        return self._registry.entities

    @property
    def event_bus(self) -> EventBus:
        """Return the event bus notifications are published on."""
        return self._event_bus

    @property
    def ha_version(self) -> str | None:
        """Return the hub version of the last authenticated connection."""
        return self._ha_version

    @property
    def hub_config(self) -> HubConfig:
        """Return the client configuration."""
        return self._config

    @property
    def is_connected(self) -> bool:
        """Return True if the connection is ready for requests."""
        return self._state_machine.is_ready

    @property
    def keepalive(self) -> KeepaliveMonitor:
        """Return the keepalive monitor."""
        return self._keepalive

    @property
    def labels(self) -> Mapping[str, HassLabel]:
        """Return the cached labels by label_id."""
        return self._registry.labels

    @property
    def pending_request_count(self) -> int:
        """Return the number of unresolved requests."""
        return self._correlator.pending_count

    @property
    def reconnect_supervisor(self) -> ReconnectSupervisor:
        """Return the reconnect supervisor."""
        return self._supervisor

    @property
    def registry(self) -> HassRegistry:
        """Return the registry snapshot."""
        return self._registry

    @property
    def response_timeout(self) -> float:
        """Return the default request timeout in seconds."""
        return self._response_timeout

    @response_timeout.setter
    def response_timeout(self, timeout: float) -> None:
        """Set the default request timeout in seconds."""
        self._response_timeout = timeout

    @property
    def services(self) -> HassServices | None:
        """Return the cached services by domain."""
        return self._registry.services

    @property
    def state(self) -> ConnectionState:
        """Return the connection state."""
        return self._state_machine.state

    @property
    def states(self) -> Mapping[str, HassState]:
        """Return the cached states by entity_id."""
        return self._registry.states

    @property
    def subscription_ids(self) -> frozenset[int]:
        """Return the ids of the active event subscriptions."""
        return self._dispatcher.subscription_ids

    async def call_service(
        self,
        *,
        domain: str,
        service: str,
        entity_id: str | None = None,
        service_data: dict[str, Any] | None = None,
        target: dict[str, Any] | None = None,
    ) -> Any:
        """Call a hub service. entity_id is merged into the service data."""
        data = dict(service_data or {})
        if entity_id is not None:
            data["entity_id"] = entity_id
        payload: dict[str, Any] = {"domain": domain, "service": service, "service_data": data}
        if target is not None:
            payload["target"] = target
        _LOGGER.debug("CALL_SERVICE: %s.%s %s", domain, service, data)
        return await self.request(kind=MessageType.CALL_SERVICE, payload=payload)

    async def close(self, *, code: int = CloseCode.NORMAL, reason: str = CLOSE_NORMAL_REASON) -> None:
        """
        Close the connection and stop all automatic recovery.

        Cancels the keepalive monitor with its watchdog, the fetch debouncer and
        the reconnect supervisor, then closes the socket. A socket that does not
        finish closing within the response timeout raises RequestTimeoutException
        after the local state was cleaned up.
        """
        self._close_requested = True
        self._keepalive.stop()
        self._debouncer.cancel()
        self._supervisor.disarm()

        # connect() in progress cleans up after itself
        if (handshake := self._handshake) is not None:
            handshake.abort(reason=reason)
            return
        if not self._state_machine.is_ready or (transport := self._transport) is None:
            _LOGGER.debug("CLOSE: %s is not connected", self._config.url)
            return

        _LOGGER.info("CLOSE: Closing connection to %s", self._config.url)
        self._state_machine.transition_to(target=ConnectionState.CLOSING)
        self._transport = None
        self._dispatcher.clear_subscriptions()
        timed_out = False
        try:
            async with asyncio.timeout(self._response_timeout):
                await transport.close(code=code, reason=reason)
        except TimeoutError:
            timed_out = True
        finally:
            self._state_machine.transition_to(target=ConnectionState.DISCONNECTED)
            self._event_bus.publish_sync(event=SocketClosedEvent(code=code, reason=reason))
            self._event_bus.publish_sync(event=HubDisconnectedEvent(reason=DISCONNECTED_REASON))
            self._looper.cancel_tasks()
        if timed_out:
            raise RequestTimeoutException(
                i18n.tr("exception.client.close.timeout", url=self._config.url, timeout=self._response_timeout)
            )

    async def connect(self) -> str:
        """Open the socket, authenticate and return the hub version."""
        if self._state_machine.is_ready:
            raise AlreadyConnectedException(i18n.tr("exception.client.connect.already_connected", url=self._config.url))
        if not self._state_machine.is_disconnected:
            raise AlreadyConnectedException(i18n.tr("exception.client.connect.in_progress", url=self._config.url))
        # A scheduled retry is superseded by this call
        self._supervisor.disarm()
        self._supervisor.arm()
        self._close_requested = False
        await i18n.preload_locale(locale=self._config.locale)
        if self._close_requested:
            raise NoConnectionException(i18n.tr("exception.client.connect.aborted", url=self._config.url))
        return await self._connect()

    async def fetch(self, *, api: str) -> Any:
        """Fetch a resource by its request type, e.g. get_states."""
        return await self.request(kind=api)

    async def fetch_data(self) -> None:
        """
        Load all registries in dependency order.

        A failing step is logged and ends the load. Nothing is raised.
        """
        for kind in INITIAL_FETCH_ORDER:
            try:
                await self._refresh_resource(kind)
            except BaseHassException as bhexc:
                _LOGGER.warning("FETCH_DATA: Fetching %s failed, stopping: %s", kind, extract_exc_args(exc=bhexc))
                return

    def get_state(self, *, entity_id: str) -> HassState | None:
        """Return the cached state of an entity."""
        return self._registry.get_state(entity_id=entity_id)

    async def request(self, *, kind: str, payload: dict[str, Any] | None = None, timeout: float | None = None) -> Any:
        """
        Send a correlated request and return the result of its result frame.

        Raise NoConnectionException if not connected, RemoteException if the hub
        answered with success false and RequestTimeoutException if no answer
        arrived in time.
        """
        self._check_ready()
        return await self._send_request(
            request_id=self._correlator.next_id(), kind=kind, payload=payload, timeout=timeout
        )

    async def stop(self) -> None:
        """Close the connection and wait for background tasks to finish."""
        await self.close()
        await self._looper.block_till_done(wait_time=DEFAULT_SHUTDOWN_WAIT)
        await self._event_bus.wait_for_pending()

    async def subscribe(self, *, event_type: str | None = None) -> int:
        """Subscribe to hub events, all of them if event_type is None. Return the subscription id."""
        self._check_ready()
        # Events may arrive right after the result frame
        subscription_id = self._correlator.next_id()
        self._dispatcher.add_subscription(subscription_id=subscription_id)
        payload = {"event_type": event_type} if event_type else None
        try:
            await self._send_request(
                request_id=subscription_id, kind=MessageType.SUBSCRIBE_EVENTS, payload=payload, timeout=None
            )
        except BaseException:
            self._dispatcher.remove_subscription(subscription_id=subscription_id)
            raise
        _LOGGER.debug("SUBSCRIBE: Subscribed to %s with id %i", event_type or "all events", subscription_id)
        self._event_bus.publish_sync(event=SubscribedEvent(subscription_id=subscription_id, event_type=event_type))
        return subscription_id

    async def unsubscribe(self, *, subscription_id: int) -> None:
        """Cancel an event subscription."""
        try:
            await self.request(kind=MessageType.UNSUBSCRIBE_EVENTS, payload={"subscription": subscription_id})
        finally:
            self._dispatcher.remove_subscription(subscription_id=subscription_id)

    def _check_ready(self) -> None:
        if not self._state_machine.is_ready:
            raise NoConnectionException(
                i18n.tr("exception.client.not_connected", url=self._config.url, state=self._state_machine.state)
            )

    async def _connect(self) -> str:
        transport = WebSocketTransport(
            url=self._config.url,
            looper=self._looper,
            close_timeout=self._response_timeout,
            on_closed=lambda code, reason: self._on_socket_closed(transport=transport, code=code, reason=reason),
            on_error=self._on_socket_error,
            on_ping=self._on_transport_ping,
            on_pong=self._on_pong,
            certificate_path=self._config.certificate_path,
            reject_unauthorized=self._config.reject_unauthorized,
            client_session=self._client_session,
        )
        self._state_machine.transition_to(target=ConnectionState.CONNECTING)
        self._transport = transport
        try:
            await transport.open()
        except BaseException:
            self._transport = None
            self._state_machine.transition_to(target=ConnectionState.DISCONNECTED)
            raise
        self._event_bus.publish_sync(event=SocketOpenedEvent())
        await self._abort_if_close_requested(transport=transport)

        self._state_machine.transition_to(target=ConnectionState.AUTHENTICATING)
        handshake = AuthHandshake(
            transport=transport, access_token=self._config.access_token, response_timeout=self._response_timeout
        )
        self._handshake = handshake
        try:
            ha_version = await handshake.run()
        except BaseException:
            self._handshake = None
            await self._discard_transport(transport=transport)
            raise
        self._handshake = None
        await self._abort_if_close_requested(transport=transport)

        self._ha_version = ha_version
        transport.set_frame_handler(handler=self._handle_frame)
        self._state_machine.transition_to(target=ConnectionState.READY)
        self._supervisor.reset()
        self._keepalive.start()
        _LOGGER.info("CONNECT: Connected to %s, hub version %s", self._config.url, ha_version)
        self._event_bus.publish_sync(event=HubConnectedEvent(ha_version=ha_version))
        return ha_version

    async def _abort_if_close_requested(self, *, transport: WebSocketTransport) -> None:
        """Discard the socket of a connect() that close() was called during."""
        if not self._close_requested:
            return
        _LOGGER.debug("CONNECT: Close requested while connecting to %s", self._config.url)
        await self._discard_transport(transport=transport)
        raise NoConnectionException(i18n.tr("exception.client.connect.aborted", url=self._config.url))

    async def _discard_transport(self, *, transport: WebSocketTransport) -> None:
        """Close the socket of a connect() that did not reach the ready state."""
        self._transport = None
        try:
            if transport.is_open:
                await transport.close(code=CloseCode.NORMAL, reason="")
                self._event_bus.publish_sync(event=SocketClosedEvent(code=CloseCode.NORMAL, reason=""))
        finally:
            self._state_machine.transition_to(target=ConnectionState.DISCONNECTED)

    async def _force_close(self, *, transport: WebSocketTransport) -> None:
        await transport.close(code=CloseCode.GOING_AWAY, reason=_WATCHDOG_REASON)
        self._event_bus.publish_sync(event=SocketClosedEvent(code=CloseCode.GOING_AWAY, reason=_WATCHDOG_REASON))

    def _handle_connection_lost(self, *, reason: str) -> None:
        """Tear down the ready session after an unexpected loss and engage the supervisor."""
        self._keepalive.stop()
        self._debouncer.cancel()
        self._dispatcher.clear_subscriptions()
        self._state_machine.transition_to(target=ConnectionState.DISCONNECTED)
        _LOGGER.warning("CONNECTION_LOST: Lost connection to %s: %s", self._config.url, reason)
        self._event_bus.publish_sync(event=HubDisconnectedEvent(reason=reason))
        self._supervisor.schedule()

    def _handle_frame(self, frame: dict[str, Any]) -> None:
        """Handle one inbound frame of the ready session, in arrival order."""
        match frame.get("type"):
            case MessageType.RESULT:
                self._correlator.resolve(frame=frame)
            case MessageType.EVENT:
                self._dispatcher.handle_event_frame(frame=frame)
            case MessageType.PONG:
                self._on_pong(b"")
            case frame_type:
                _LOGGER.debug("HANDLE_FRAME: Ignoring %s frame", frame_type)

    def _on_pong(self, data: bytes) -> None:
        self._keepalive.handle_pong()
        self._event_bus.publish_sync(event=PongReceivedEvent(data=data))

    def _on_reconnect_exhausted(self, attempts: int, message: str) -> None:
        self._event_bus.publish_sync(event=ReconnectExhaustedEvent(attempts=attempts, message=message))

    def _on_socket_closed(self, *, transport: WebSocketTransport, code: int | None, reason: str) -> None:
        """Handle a close that was not requested by this client."""
        if transport is not self._transport:
            _LOGGER.debug("SOCKET_CLOSED: Ignoring close of a detached socket to %s", self._config.url)
            return
        self._transport = None
        self._event_bus.publish_sync(event=SocketClosedEvent(code=code, reason=reason))
        if (handshake := self._handshake) is not None:
            handshake.abort(reason=reason or DISCONNECTED_REASON)
            return
        if self._state_machine.is_ready:
            self._handle_connection_lost(reason=DISCONNECTED_REASON)

    def _on_socket_error(self, message: str) -> None:
        self._event_bus.publish_sync(event=HubErrorEvent(message=message))

    def _on_transport_ping(self, data: bytes) -> None:
        # A ping from the hub proves liveness as well
        self._keepalive.handle_pong()
        self._event_bus.publish_sync(event=PingReceivedEvent(data=data))

    def _on_watchdog_expired(self) -> None:
        if not self._state_machine.is_ready or (transport := self._transport) is None:
            return
        self._transport = None
        self._event_bus.publish_sync(event=HubErrorEvent(message=_WATCHDOG_REASON))
        self._looper.create_task(target=self._force_close(transport=transport), name="keepalive-force-close")
        self._handle_connection_lost(reason=_WATCHDOG_REASON)

    async def _reconnect(self) -> str:
        if self._state_machine.is_ready and self._ha_version is not None:
            return self._ha_version
        return await self._connect()

    async def _refresh_resource(self, kind: ResourceKind) -> None:
        """Fetch one resource, apply it to the registry and publish its snapshot."""
        data = await self.request(kind=kind)
        self._registry.apply(kind=kind, data=data)
        self._event_bus.publish_sync(event=create_snapshot_event(kind=kind, data=data))

    async def _send_ping(self) -> None:
        if (transport := self._transport) is None or not self._state_machine.is_ready:
            return
        await transport.ping()
        await transport.send_frame(frame={"id": self._correlator.next_id(), "type": MessageType.PING})

    async def _send_request(
        self, *, request_id: int, kind: str, payload: dict[str, Any] | None, timeout: float | None
    ) -> Any:
        if (transport := self._transport) is None:
            raise NoConnectionException(
                i18n.tr("exception.client.not_connected", url=self._config.url, state=self._state_machine.state)
            )
        timeout = self._response_timeout if timeout is None else timeout
        future = self._correlator.register(request_id=request_id, kind=kind, timeout=timeout)
        _LOGGER.debug("SEND_REQUEST: %s with id %i", kind, request_id)
        try:
            await transport.send_frame(frame={**(payload or {}), "id": request_id, "type": kind})
            return await future
        except BaseException:
            self._correlator.discard(request_id=request_id)
            raise
