"""Tests for aiohabridge.client.reconnect."""

from __future__ import annotations

import asyncio

import pytest

from aiohabridge.async_support import Looper
from aiohabridge.client.reconnect import ReconnectSupervisor
from aiohabridge.exceptions import AuthFailure, NoConnectionException


class _Connector:
    """Connect callback that fails a given number of times."""

    def __init__(self, *, failures: int = 0, exc: Exception | None = None) -> None:
        self.failures = failures
        self.exc = exc or NoConnectionException("hub unreachable")
        self.calls = 0

    async def connect(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "2024.1.0"


def _supervisor(
    connector: _Connector, exhausted: list[tuple[int, str]], *, delay: float = 0.01, max_attempts: int = 3
) -> ReconnectSupervisor:
    return ReconnectSupervisor(
        looper=Looper(),
        delay=delay,
        max_attempts=max_attempts,
        connect=connector.connect,
        on_exhausted=lambda attempts, message: exhausted.append((attempts, message)),
    )


async def _wait_idle(supervisor: ReconnectSupervisor, timeout: float = 1.0) -> None:
    async with asyncio.timeout(timeout):
        while supervisor.is_busy:
            await asyncio.sleep(0.005)


class TestReconnectSupervisor:
    """Test the bounded reconnect policy."""

    @pytest.mark.asyncio
    async def test_success_after_failures(self) -> None:
        """Failed attempts are retried until one succeeds."""
        connector = _Connector(failures=2)
        exhausted: list[tuple[int, str]] = []
        supervisor = _supervisor(connector, exhausted)
        assert supervisor.schedule() is True
        await _wait_idle(supervisor)
        assert connector.calls == 3
        assert exhausted == []
        assert not supervisor.is_exhausted

    @pytest.mark.asyncio
    async def test_exhaustion(self) -> None:
        """After max attempts no further connect happens and exhaustion is reported once."""
        connector = _Connector(failures=100)
        exhausted: list[tuple[int, str]] = []
        supervisor = _supervisor(connector, exhausted, max_attempts=3)
        supervisor.schedule()
        await _wait_idle(supervisor)
        assert connector.calls == 3
        assert supervisor.is_exhausted
        assert exhausted == [(3, "Reconnecting failed 3 times. Restart required")]

        assert supervisor.schedule() is False
        await asyncio.sleep(0.03)
        assert connector.calls == 3

    @pytest.mark.asyncio
    async def test_auth_failure_stops(self) -> None:
        """A rejected token ends the recovery immediately."""
        connector = _Connector(failures=100, exc=AuthFailure("token rejected"))
        exhausted: list[tuple[int, str]] = []
        supervisor = _supervisor(connector, exhausted, max_attempts=5)
        supervisor.schedule()
        await _wait_idle(supervisor)
        assert connector.calls == 1
        assert supervisor.is_exhausted
        assert len(exhausted) == 1
        assert "access token was rejected" in exhausted[0][1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("delay", "max_attempts"), [(0, 3), (0.01, 0)])
    async def test_disabled(self, delay: float, max_attempts: int) -> None:
        """With reconnecting disabled exhaustion is reported without any attempt."""
        connector = _Connector()
        exhausted: list[tuple[int, str]] = []
        supervisor = _supervisor(connector, exhausted, delay=delay, max_attempts=max_attempts)
        assert supervisor.schedule() is False
        assert exhausted == [(0, "Connection lost and automatic reconnect is disabled. Restart required")]
        assert connector.calls == 0

    @pytest.mark.asyncio
    async def test_disarm_and_arm(self) -> None:
        """A disarmed supervisor cancels its attempt and refuses new ones until armed."""
        connector = _Connector()
        exhausted: list[tuple[int, str]] = []
        supervisor = _supervisor(connector, exhausted, delay=0.02)
        supervisor.schedule()
        supervisor.disarm()
        assert not supervisor.is_busy
        assert supervisor.schedule() is False
        await asyncio.sleep(0.04)
        assert connector.calls == 0

        supervisor.arm()
        assert supervisor.schedule() is True
        await _wait_idle(supervisor)
        assert connector.calls == 1

    @pytest.mark.asyncio
    async def test_counter_and_reset(self) -> None:
        """The counter grows per attempt and reset() starts over."""
        connector = _Connector(failures=1)
        exhausted: list[tuple[int, str]] = []
        supervisor = _supervisor(connector, exhausted)
        assert supervisor.attempt == 1
        supervisor.schedule()
        await _wait_idle(supervisor)
        assert supervisor.attempt == 3
        supervisor.reset()
        assert supervisor.attempt == 1

    @pytest.mark.asyncio
    async def test_single_attempt_in_flight(self) -> None:
        """A second schedule() while an attempt is pending is refused."""
        connector = _Connector()
        supervisor = _supervisor(connector, [])
        assert supervisor.schedule() is True
        assert supervisor.schedule() is False
        await _wait_idle(supervisor)
        assert connector.calls == 1
