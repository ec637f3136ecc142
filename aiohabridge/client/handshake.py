# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Auth handshake of a freshly opened hub socket.

The hub opens with auth_required, the client answers with its access token and
the hub either accepts (auth_ok, carrying the hub version) or rejects
(auth_invalid). While the handshake runs it is the only frame handler of the
transport. Each step waits at most the response timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Final

import voluptuous as vol

from aiohabridge import i18n
from aiohabridge.client.transport import WebSocketTransport
from aiohabridge.const import MessageType
from aiohabridge.exceptions import AuthFailure, NoConnectionException, ProtocolException, RequestTimeoutException
from aiohabridge.schemas import AUTH_OK_SCHEMA, AUTH_REQUIRED_SCHEMA

_LOGGER: Final = logging.getLogger(__name__)


class AuthHandshake:
    """Drive the auth_required / auth / auth_ok sequence on one transport."""

    __slots__ = ("_access_token", "_auth_sent", "_frames", "_response_timeout", "_transport")

    def __init__(self, *, transport: WebSocketTransport, access_token: str, response_timeout: float) -> None:
        """Initialize the handshake."""
        self._transport: Final = transport
        self._access_token: Final = access_token
        self._response_timeout: Final = response_timeout
        self._auth_sent = False
        self._frames: Final[asyncio.Queue[dict[str, Any] | Exception]] = asyncio.Queue()

    def abort(self, *, reason: str) -> None:
        """Abort a running handshake, e.g. because the socket closed."""
        self._frames.put_nowait(
            NoConnectionException(i18n.tr("exception.handshake.aborted", url=self._transport.url, reason=reason))
        )

    def handle_frame(self, frame: dict[str, Any]) -> None:
        """Queue an inbound frame for the handshake."""
        self._frames.put_nowait(frame)

    async def run(self) -> str:
        """
        Run the handshake and return the hub version.

        Raise AuthFailure on auth_invalid, RequestTimeoutException if the hub does
        not answer in time, ProtocolException on a malformed auth frame and
        NoConnectionException if the handshake was aborted.
        """
        self._transport.set_frame_handler(handler=self.handle_frame)
        while True:
            frame = await self._next_frame()
            match frame.get("type"):
                case MessageType.AUTH_REQUIRED:
                    await self._send_auth(frame=frame)
                case MessageType.AUTH_OK:
                    try:
                        frame = AUTH_OK_SCHEMA(frame)
                    except vol.Invalid as err:
                        raise ProtocolException(
                            i18n.tr("exception.handshake.malformed", url=self._transport.url, reason=err)
                        ) from err
                    _LOGGER.debug("HANDSHAKE: Authenticated at %s", self._transport.url)
                    return str(frame["ha_version"])
                case MessageType.AUTH_INVALID:
                    raise AuthFailure(
                        i18n.tr(
                            "exception.handshake.auth_invalid",
                            url=self._transport.url,
                            message=frame.get("message") or "",
                        )
                    )
                case _:
                    _LOGGER.debug("HANDSHAKE: Ignoring %s frame before auth_ok", frame.get("type"))

    async def _next_frame(self) -> dict[str, Any]:
        try:
            item = await asyncio.wait_for(self._frames.get(), timeout=self._response_timeout)
        except TimeoutError as exc:
            step = "auth_ok" if self._auth_sent else "auth_required"
            raise RequestTimeoutException(
                i18n.tr("exception.handshake.timeout", url=self._transport.url, step=step)
            ) from exc
        if isinstance(item, Exception):
            raise item
        return item

    async def _send_auth(self, *, frame: dict[str, Any]) -> None:
        if self._auth_sent:
            _LOGGER.debug("HANDSHAKE: Ignoring repeated auth_required from %s", self._transport.url)
            return
        try:
            AUTH_REQUIRED_SCHEMA(frame)
        except vol.Invalid as err:
            raise ProtocolException(
                i18n.tr("exception.handshake.malformed", url=self._transport.url, reason=err)
            ) from err
        _LOGGER.debug("HANDSHAKE: Sending auth to %s (hub %s)", self._transport.url, frame.get("ha_version"))
        await self._transport.send_frame(frame={"type": MessageType.AUTH, "access_token": self._access_token})
        self._auth_sent = True
