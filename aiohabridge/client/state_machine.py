# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Connection state machine for the hub client.

This module tracks the lifecycle of one hub connection with validated
transitions.

The state machine ensures:
- Only valid state transitions occur (READY is only reachable via AUTHENTICATING)
- State changes are logged for debugging
- Invalid transitions raise exceptions for early error detection
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Final

from aiohabridge.const import ConnectionState

_LOGGER: Final = logging.getLogger(__name__)

VALID_CONNECTION_TRANSITIONS: Final[dict[ConnectionState, frozenset[ConnectionState]]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset(
        {
            ConnectionState.AUTHENTICATING,
            ConnectionState.DISCONNECTED,  # Socket could not be opened
            ConnectionState.CLOSING,
        }
    ),
    ConnectionState.AUTHENTICATING: frozenset(
        {
            ConnectionState.READY,
            ConnectionState.DISCONNECTED,  # auth_invalid or socket lost during handshake
            ConnectionState.CLOSING,
        }
    ),
    ConnectionState.READY: frozenset(
        {
            ConnectionState.CLOSING,
            ConnectionState.DISCONNECTED,  # Unexpected socket close
        }
    ),
    ConnectionState.CLOSING: frozenset({ConnectionState.DISCONNECTED}),
}


class InvalidStateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, *, current: ConnectionState, target: ConnectionState, url: str) -> None:
        """Initialize the error."""
        self.current = current
        self.target = target
        self.url = url
        super().__init__(f"Invalid state transition from {current.value} to {target.value} for {url}")


class ConnectionStateMachine:
    """
    State machine for the hub connection lifecycle.

    Thread Safety
    -------------
    This class is NOT thread-safe. All calls should happen from the same
    event loop/thread.

    Example:
    -------
        sm = ConnectionStateMachine(url="ws://homeassistant.local:8123")
        sm.on_state_change = lambda old, new: print(f"{old} -> {new}")

        sm.transition_to(target=ConnectionState.CONNECTING)
        sm.transition_to(target=ConnectionState.AUTHENTICATING)
        sm.transition_to(target=ConnectionState.READY)

    """

    __slots__ = ("_state", "_url", "on_state_change")

    def __init__(self, *, url: str) -> None:
        """Initialize the state machine."""
        self._url: Final = url
        self._state: ConnectionState = ConnectionState.DISCONNECTED
        self.on_state_change: Callable[[ConnectionState, ConnectionState], None] | None = None

    @property
    def is_disconnected(self) -> bool:
        """Return True if no socket is in use."""
        return self._state == ConnectionState.DISCONNECTED

    @property
    def is_ready(self) -> bool:
        """Return True if the connection is authenticated and usable."""
        return self._state == ConnectionState.READY

    @property
    def state(self) -> ConnectionState:
        """Return the current state."""
        return self._state

    def can_transition_to(self, *, target: ConnectionState) -> bool:
        """Check if transition to target state is valid."""
        return target in VALID_CONNECTION_TRANSITIONS.get(self._state, frozenset())

    def transition_to(self, *, target: ConnectionState) -> None:
        """
        Transition to a new state.

        Raises
        ------
            InvalidStateTransitionError: If transition is not valid

        """
        if not self.can_transition_to(target=target):
            raise InvalidStateTransitionError(current=self._state, target=target, url=self._url)

        old_state = self._state
        self._state = target
        _LOGGER.debug("STATE_MACHINE: %s: %s -> %s", self._url, old_state.value, target.value)

        if self.on_state_change is not None:
            try:
                self.on_state_change(old_state, target)
            except Exception:
                _LOGGER.exception("STATE_MACHINE: Error in state change callback for %s", self._url)
