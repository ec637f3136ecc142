# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Configuration of the hub client.

HubConfig is the single source of truth for all tunables of one client. The
fluent HubConfigBuilder collects settings and validates them on build().

Example:
-------
    config = (
        HubConfigBuilder()
        .with_url(url="wss://homeassistant.local:8123")
        .with_access_token(access_token="...")
        .with_tls(certificate_path="/etc/ssl/ca.pem", reject_unauthorized=True)
        .with_reconnect(delay=30, retries=5)
        .build()
    )

"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Self

import voluptuous as vol

from aiohabridge import i18n
from aiohabridge.const import (
    DEFAULT_DEBOUNCE_WINDOW,
    DEFAULT_LOCALE,
    DEFAULT_PING_INTERVAL,
    DEFAULT_PING_TIMEOUT,
    DEFAULT_RECONNECT_DELAY,
    DEFAULT_RECONNECT_RETRIES,
    DEFAULT_RESPONSE_TIMEOUT,
)
from aiohabridge.exceptions import ValidationException
from aiohabridge.schemas import HUB_CONFIG_SCHEMA


@dataclass(frozen=True, kw_only=True, slots=True)
class HubConfig:
    """Settings of one hub connection. Durations are seconds."""

    url: str
    access_token: str
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    ping_interval: float = DEFAULT_PING_INTERVAL
    ping_timeout: float = DEFAULT_PING_TIMEOUT
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    reconnect_retries: int = DEFAULT_RECONNECT_RETRIES
    debounce_window: float = DEFAULT_DEBOUNCE_WINDOW
    certificate_path: str | None = None
    reject_unauthorized: bool | None = None
    locale: str = DEFAULT_LOCALE

    @property
    def reconnect_enabled(self) -> bool:
        """Return True if automatic reconnection is configured."""
        return self.reconnect_delay > 0 and self.reconnect_retries > 0

    def as_dict(self) -> dict[str, Any]:
        """Return the configuration as dict, with the access token masked."""
        return {**asdict(self), "access_token": "***"}

    def validate(self) -> Self:
        """Validate the configuration and return it. Raise ValidationException if invalid."""
        try:
            HUB_CONFIG_SCHEMA(asdict(self))
        except vol.MultipleInvalid as err:
            raise ValidationException(
                i18n.tr(
                    "exception.config.invalid",
                    errors="; ".join(f"{'.'.join(str(p) for p in e.path)}: {e.msg}" for e in err.errors),
                )
            ) from err
        return self

    def with_changes(self, **changes: Any) -> HubConfig:
        """Return a validated copy with the given fields replaced."""
        return replace(self, **changes).validate()


class HubConfigBuilder:
    """Fluent builder for HubConfig."""

    __slots__ = ("_values",)

    def __init__(self) -> None:
        """Initialize the builder."""
        self._values: dict[str, Any] = {}

    def build(self) -> HubConfig:
        """Build and validate the configuration."""
        missing = [name for name in ("url", "access_token") if name not in self._values]
        if missing:
            raise ValidationException(i18n.tr("exception.config.missing", fields=", ".join(missing)))
        return HubConfig(**self._values).validate()

    def with_access_token(self, *, access_token: str) -> Self:
        """Set the long-lived access token."""
        self._values["access_token"] = access_token
        return self

    def with_debounce_window(self, *, seconds: float) -> Self:
        """Set the window in which registry invalidations are coalesced."""
        self._values["debounce_window"] = seconds
        return self

    def with_keepalive(self, *, interval: float, timeout: float) -> Self:
        """Set the ping interval and the pong watchdog timeout."""
        self._values["ping_interval"] = interval
        self._values["ping_timeout"] = timeout
        return self

    def with_locale(self, *, locale: str) -> Self:
        """Set the locale of exception messages."""
        self._values["locale"] = locale
        return self

    def with_reconnect(self, *, delay: float, retries: int) -> Self:
        """Set the fixed reconnect delay and the maximum number of attempts. delay=0 disables reconnects."""
        self._values["reconnect_delay"] = delay
        self._values["reconnect_retries"] = retries
        return self

    def with_response_timeout(self, *, seconds: float) -> Self:
        """Set the timeout of correlated requests."""
        self._values["response_timeout"] = seconds
        return self

    def with_tls(self, *, certificate_path: str | None = None, reject_unauthorized: bool | None = None) -> Self:
        """Set the CA certificate and certificate verification of wss:// connections."""
        self._values["certificate_path"] = certificate_path
        self._values["reject_unauthorized"] = reject_unauthorized
        return self

    def with_url(self, *, url: str) -> Self:
        """Set the hub base url, e.g. ws://homeassistant.local:8123."""
        self._values["url"] = url
        return self
