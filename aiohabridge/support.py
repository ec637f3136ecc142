# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""Helper functions used within aiohabridge."""

from __future__ import annotations

import logging
import ssl
from typing import Any, Final

import orjson

from aiohabridge import i18n
from aiohabridge.const import PATH_WEBSOCKET, SCHEME_WS, SCHEME_WSS, UTF_8
from aiohabridge.exceptions import BaseHassException, InvalidUrlException, ProtocolException

_LOGGER: Final = logging.getLogger(__name__)


def build_websocket_url(*, url: str) -> str:
    """Return the WebSocket endpoint of the hub for a ws:// or wss:// base url."""
    if not url.startswith((SCHEME_WS, SCHEME_WSS)):
        raise InvalidUrlException(i18n.tr("exception.support.invalid_url", url=url))
    return f"{url.rstrip('/')}{PATH_WEBSOCKET}"


def is_secure_url(*, url: str) -> bool:
    """Return True for wss:// urls."""
    return url.startswith(SCHEME_WSS)


def get_tls_context(*, certificate_path: str | None, reject_unauthorized: bool | None) -> ssl.SSLContext:
    """
    Return the TLS context for a wss:// connection.

    A CA file is loaded when certificate_path is set. reject_unauthorized=False
    disables hostname and certificate verification; None keeps the defaults.
    """
    context = ssl.create_default_context()
    if certificate_path:
        _LOGGER.debug("GET_TLS_CONTEXT: Loading CA certificate from %s", certificate_path)
        context.load_verify_locations(cafile=certificate_path)
    if reject_unauthorized is False:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def encode_frame(*, frame: dict[str, Any]) -> str:
    """Serialize an outbound frame."""
    return orjson.dumps(frame).decode(UTF_8)


def decode_frame(*, data: str | bytes) -> dict[str, Any]:
    """Deserialize an inbound frame. Raise ProtocolException if it is not a JSON object."""
    try:
        frame = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise ProtocolException(i18n.tr("exception.support.decode_frame.invalid_json", reason=exc)) from exc
    if not isinstance(frame, dict):
        raise ProtocolException(i18n.tr("exception.support.decode_frame.not_an_object", kind=type(frame).__name__))
    return frame


def extract_exc_args(*, exc: Exception) -> tuple[Any, ...] | Any:
    """Return the first arg, if there is only one arg."""
    if exc.args:
        return exc.args[0] if len(exc.args) == 1 else exc.args
    return exc


def reduce_args(*, args: tuple[Any, ...]) -> tuple[Any, ...] | Any:
    """Return the first arg, if there is only one arg."""
    return args[0] if len(args) == 1 else args


def describe_exception(*, exc: BaseException) -> str:
    """Return a short one-line description of an exception for logs and notifications."""
    if isinstance(exc, BaseHassException):
        return f"{exc.name}: {reduce_args(args=exc.args)}"
    return f"{exc.__class__.__name__}: {exc}"
