# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Module for the exceptions of aiohabridge.

Every exception derives from BaseHassException, which carries a name. Per-call
failures derive from ClientException and only ever reject the operation that
raised them. ReconnectExhaustedException is the single fatal condition.
"""

from __future__ import annotations

from typing import Any


class BaseHassException(Exception):
    """aiohabridge base exception."""

    def __init__(self, name: str, *args: Any) -> None:
        """Init the BaseHassException."""
        if args and isinstance(args[0], BaseException):
            self.name = args[0].__class__.__name__
            args = tuple(args[0].args)
        else:
            self.name = name
        super().__init__(_reduce_args(args=args))


class ClientException(BaseHassException):
    """Base for per-call failures of the hub client."""

    def __init__(self, *args: Any) -> None:
        """Init the ClientException."""
        super().__init__("ClientException", *args)


class InvalidUrlException(ClientException):
    """The hub url does not use the ws:// or wss:// scheme."""

    def __init__(self, *args: Any) -> None:
        """Init the InvalidUrlException."""
        BaseHassException.__init__(self, "InvalidUrlException", *args)


class AlreadyConnectedException(ClientException):
    """connect() was called on a ready connection."""

    def __init__(self, *args: Any) -> None:
        """Init the AlreadyConnectedException."""
        BaseHassException.__init__(self, "AlreadyConnectedException", *args)


class AuthFailure(ClientException):
    """The hub rejected the access token."""

    def __init__(self, *args: Any) -> None:
        """Init the AuthFailure."""
        BaseHassException.__init__(self, "AuthFailure", *args)


class NoConnectionException(ClientException):
    """An operation was attempted outside the ready state."""

    def __init__(self, *args: Any) -> None:
        """Init the NoConnectionException."""
        BaseHassException.__init__(self, "NoConnectionException", *args)


class SocketNotOpenException(ClientException):
    """The underlying socket is not open."""

    def __init__(self, *args: Any) -> None:
        """Init the SocketNotOpenException."""
        BaseHassException.__init__(self, "SocketNotOpenException", *args)


class RequestTimeoutException(ClientException):
    """No response arrived within the configured window."""

    def __init__(self, *args: Any) -> None:
        """Init the RequestTimeoutException."""
        BaseHassException.__init__(self, "RequestTimeoutException", *args)


class ProtocolException(ClientException):
    """A frame was malformed or had an unexpected shape."""

    def __init__(self, *args: Any) -> None:
        """Init the ProtocolException."""
        BaseHassException.__init__(self, "ProtocolException", *args)


class RemoteException(ClientException):
    """The hub answered a request with success false."""

    def __init__(self, *args: Any, code: str | None = None, message: str | None = None) -> None:
        """Init the RemoteException."""
        self.code = code
        self.message = message
        BaseHassException.__init__(self, "RemoteException", *args)


class ReconnectExhaustedException(BaseHassException):
    """Automatic recovery gave up. Requires a restart of the hosting process."""

    def __init__(self, *args: Any) -> None:
        """Init the ReconnectExhaustedException."""
        super().__init__("ReconnectExhaustedException", *args)


class ValidationException(BaseHassException):
    """The client configuration is invalid."""

    def __init__(self, *args: Any) -> None:
        """Init the ValidationException."""
        super().__init__("ValidationException", *args)


def _reduce_args(*, args: tuple[Any, ...]) -> tuple[Any, ...] | Any:
    """Return the first arg, if there is only one arg."""
    return args[0] if len(args) == 1 else args
