# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
WebSocket transport session of the hub client.

The transport owns exactly one aiohttp WebSocket. It knows how to send frames,
transport-level pings and how to close the socket. Inbound messages are read by
a single reader task and handed to the installed frame handler in arrival order.
Malformed frames are logged and dropped here and never reach the handler.

Transport pings are answered by the reader (autoping is disabled so that pings
and pongs are visible to the keepalive monitor).
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any, Final

import aiohttp

from aiohabridge import i18n
from aiohabridge.async_support import Looper, cancel_and_wait
from aiohabridge.const import CloseCode
from aiohabridge.exceptions import NoConnectionException, ProtocolException, SocketNotOpenException
from aiohabridge.support import (
    build_websocket_url,
    decode_frame,
    encode_frame,
    extract_exc_args,
    get_tls_context,
    is_secure_url,
)
from aiohabridge.type_aliases import ControlFrameHandler, ErrorMessageHandler, FrameHandler, SocketClosedHandler

_LOGGER: Final = logging.getLogger(__name__)

# Hub snapshots (e.g. get_states) can be several megabytes
_MAX_MSG_SIZE: Final = 0


class WebSocketTransport:
    """One WebSocket session to the hub."""

    __slots__ = (
        "_client_session",
        "_closing",
        "_close_timeout",
        "_frame_handler",
        "_looper",
        "_on_closed",
        "_on_error",
        "_on_ping",
        "_on_pong",
        "_owns_session",
        "_reader_task",
        "_ssl",
        "_url",
        "_ws",
    )

    def __init__(
        self,
        *,
        url: str,
        looper: Looper,
        close_timeout: float,
        on_closed: SocketClosedHandler,
        on_error: ErrorMessageHandler | None = None,
        on_ping: ControlFrameHandler | None = None,
        on_pong: ControlFrameHandler | None = None,
        certificate_path: str | None = None,
        reject_unauthorized: bool | None = None,
        client_session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the transport. Raise InvalidUrlException for a bad scheme."""
        self._url: Final = build_websocket_url(url=url)
        self._looper: Final = looper
        self._close_timeout: Final = close_timeout
        self._on_closed: Final = on_closed
        self._on_error: Final = on_error
        self._on_ping: Final = on_ping
        self._on_pong: Final = on_pong
        self._ssl: ssl.SSLContext | bool = True
        if is_secure_url(url=url) and (certificate_path or reject_unauthorized is not None):
            self._ssl = get_tls_context(certificate_path=certificate_path, reject_unauthorized=reject_unauthorized)
        self._client_session: aiohttp.ClientSession | None = client_session
        self._owns_session: Final = client_session is None
        self._frame_handler: FrameHandler | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._closing = False
        self._ws: aiohttp.ClientWebSocketResponse | None = None

    @property
    def is_open(self) -> bool:
        """Return True if the socket is open."""
        return self._ws is not None and not self._ws.closed

    @property
    def url(self) -> str:
        """Return the WebSocket endpoint."""
        return self._url

    async def close(self, *, code: int = CloseCode.NORMAL, reason: str = "") -> int | None:
        """
        Close the socket with the given code and reason.

        The on_closed callback is not invoked for an explicit close. Return the
        close code of the socket, None if it was never opened.
        """
        if (ws := self._ws) is None:
            await self._release_session()
            return None
        self._closing = True
        try:
            if not ws.closed:
                _LOGGER.debug("CLOSE: Closing %s with code %i", self._url, code)
                await ws.close(code=code, message=reason.encode())
            if (reader := self._reader_task) is not None and reader is not asyncio.current_task():
                await asyncio.wait({reader}, timeout=self._close_timeout)
                if not reader.done():
                    await cancel_and_wait(task=reader)
        finally:
            self._reader_task = None
            self._ws = None
            await self._release_session()
        return ws.close_code

    async def open(self) -> None:
        """Open the socket and start the reader. Raise NoConnectionException on failure."""
        if self._ws is not None:
            raise SocketNotOpenException(i18n.tr("exception.transport.open.already_used", url=self._url))
        if self._client_session is None:
            self._client_session = aiohttp.ClientSession()
        _LOGGER.debug("OPEN: Connecting to %s", self._url)
        try:
            self._ws = await self._client_session.ws_connect(
                self._url,
                ssl=self._ssl,
                autoping=False,
                heartbeat=None,
                max_msg_size=_MAX_MSG_SIZE,
                timeout=aiohttp.ClientWSTimeout(ws_receive=None, ws_close=self._close_timeout),
            )
        except (aiohttp.ClientError, OSError, TimeoutError) as exc:
            await self._release_session()
            raise NoConnectionException(
                i18n.tr("exception.transport.open.failed", url=self._url, reason=extract_exc_args(exc=exc))
            ) from exc
        self._reader_task = self._looper.create_task(target=self._read_loop(ws=self._ws), name=f"reader-{self._url}")

    async def ping(self, *, data: bytes = b"") -> None:
        """Send a transport-level ping."""
        ws = self._get_open_ws()
        try:
            await ws.ping(data)
        except (aiohttp.ClientError, OSError) as exc:
            raise SocketNotOpenException(
                i18n.tr("exception.transport.send.failed", url=self._url, reason=extract_exc_args(exc=exc))
            ) from exc

    async def send_frame(self, *, frame: dict[str, Any]) -> None:
        """Send a JSON frame."""
        ws = self._get_open_ws()
        try:
            await ws.send_str(encode_frame(frame=frame))
        except (aiohttp.ClientError, OSError) as exc:
            raise SocketNotOpenException(
                i18n.tr("exception.transport.send.failed", url=self._url, reason=extract_exc_args(exc=exc))
            ) from exc

    def set_frame_handler(self, *, handler: FrameHandler | None) -> None:
        """Install the handler for inbound frames, replacing the previous one."""
        self._frame_handler = handler

    def _dispatch(self, *, data: str | bytes) -> None:
        """Decode a frame and hand it to the installed handler."""
        try:
            frame = decode_frame(data=data)
        except ProtocolException as pex:
            _LOGGER.warning("DISPATCH: Dropping malformed frame from %s: %s", self._url, extract_exc_args(exc=pex))
            return
        if (handler := self._frame_handler) is None:
            _LOGGER.debug("DISPATCH: No handler installed, dropping %s frame", frame.get("type"))
            return
        handler(frame)

    def _get_open_ws(self) -> aiohttp.ClientWebSocketResponse:
        if (ws := self._ws) is None or ws.closed:
            raise SocketNotOpenException(i18n.tr("exception.transport.not_open", url=self._url))
        return ws

    async def _read_loop(self, *, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Read messages until the socket closes and report an unexpected close."""
        code: int | None = None
        reason = ""
        try:
            while True:
                msg = await ws.receive()
                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    self._dispatch(data=msg.data)
                elif msg.type == aiohttp.WSMsgType.PING:
                    await ws.pong(msg.data)
                    if self._on_ping is not None:
                        self._on_ping(msg.data)
                elif msg.type == aiohttp.WSMsgType.PONG:
                    if self._on_pong is not None:
                        self._on_pong(msg.data)
                elif msg.type == aiohttp.WSMsgType.CLOSE:
                    code = msg.data
                    reason = msg.extra or ""
                    break
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    _LOGGER.warning("READ_LOOP: Socket error on %s: %s", self._url, extract_exc_args(exc=msg.data))
                    if self._on_error is not None:
                        self._on_error(str(extract_exc_args(exc=msg.data)))
                    break
                else:
                    # CLOSING or CLOSED
                    break
        except (aiohttp.ClientError, OSError) as exc:
            _LOGGER.warning("READ_LOOP: Reading from %s failed: %s", self._url, extract_exc_args(exc=exc))
            if self._on_error is not None:
                self._on_error(str(extract_exc_args(exc=exc)))
        if self._closing:
            return

        if code is None:
            code = ws.close_code
        if not ws.closed:
            await ws.close()
        self._ws = None
        self._reader_task = None
        await self._release_session()
        _LOGGER.debug("READ_LOOP: Socket %s closed with code %s", self._url, code)
        self._on_closed(code, reason)

    async def _release_session(self) -> None:
        if self._owns_session and (session := self._client_session) is not None:
            self._client_session = None
            await session.close()
