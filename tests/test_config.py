"""Tests for aiohabridge.config."""

from __future__ import annotations

import pytest

from aiohabridge.config import HubConfig, HubConfigBuilder
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


class TestHubConfigBuilder:
    """Test the fluent configuration builder."""

    def test_build_with_defaults(self) -> None:
        """Only url and token are required, everything else has defaults."""
        config = HubConfigBuilder().with_url(url="ws://hub.local:8123").with_access_token(access_token="t").build()
        assert config.url == "ws://hub.local:8123"
        assert config.access_token == "t"
        assert config.response_timeout == DEFAULT_RESPONSE_TIMEOUT == 5.0
        assert config.ping_interval == DEFAULT_PING_INTERVAL == 30.0
        assert config.ping_timeout == DEFAULT_PING_TIMEOUT == 35.0
        assert config.reconnect_delay == DEFAULT_RECONNECT_DELAY
        assert config.reconnect_retries == DEFAULT_RECONNECT_RETRIES
        assert config.debounce_window == DEFAULT_DEBOUNCE_WINDOW == 5.0
        assert config.certificate_path is None
        assert config.reject_unauthorized is None
        assert config.locale == DEFAULT_LOCALE
        assert config.reconnect_enabled is True

    def test_build_with_all_settings(self) -> None:
        """All builder settings end up in the configuration."""
        config = (
            HubConfigBuilder()
            .with_url(url="wss://hub.local:8123")
            .with_access_token(access_token="t")
            .with_response_timeout(seconds=2)
            .with_keepalive(interval=10, timeout=12)
            .with_reconnect(delay=0, retries=3)
            .with_debounce_window(seconds=1)
            .with_tls(certificate_path="/etc/ssl/ca.pem", reject_unauthorized=False)
            .with_locale(locale="de")
            .build()
        )
        assert config.response_timeout == 2.0
        assert (config.ping_interval, config.ping_timeout) == (10, 12)
        assert config.reconnect_delay == 0
        assert config.reconnect_enabled is False
        assert config.debounce_window == 1
        assert config.certificate_path == "/etc/ssl/ca.pem"
        assert config.reject_unauthorized is False
        assert config.locale == "de"

    def test_missing_fields(self) -> None:
        """Building without url or token fails."""
        with pytest.raises(ValidationException, match="url, access_token"):
            HubConfigBuilder().build()

    @pytest.mark.parametrize(
        ("url", "token", "changes"),
        [
            ("http://hub.local:8123", "t", {}),
            ("ws://hub.local:8123", "", {}),
            ("ws://hub.local:8123", "t", {"response_timeout": 0}),
            ("ws://hub.local:8123", "t", {"ping_interval": -1}),
            ("ws://hub.local:8123", "t", {"reconnect_retries": -1}),
            ("ws://hub.local:8123", "t", {"reconnect_delay": -5}),
        ],
    )
    def test_invalid_values(self, url: str, token: str, changes: dict[str, float]) -> None:
        """Invalid values are rejected with ValidationException."""
        with pytest.raises(ValidationException):
            HubConfig(url=url, access_token=token, **changes).validate()


class TestHubConfig:
    """Test HubConfig helpers."""

    def test_as_dict_masks_token(self) -> None:
        """The token never shows up in the dict representation."""
        config = HubConfig(url="ws://hub.local:8123", access_token="very-secret")
        data = config.as_dict()
        assert data["access_token"] == "***"
        assert data["url"] == "ws://hub.local:8123"

    def test_with_changes_validates(self) -> None:
        """with_changes returns a validated copy and leaves the original untouched."""
        config = HubConfig(url="ws://hub.local:8123", access_token="t")
        changed = config.with_changes(response_timeout=1.5)
        assert changed.response_timeout == 1.5
        assert config.response_timeout == 5.0
        with pytest.raises(ValidationException):
            config.with_changes(url="ftp://hub.local")
