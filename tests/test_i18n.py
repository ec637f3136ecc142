"""Tests for aiohabridge.i18n."""

from __future__ import annotations

import pytest

from aiohabridge import i18n
from aiohabridge.exceptions import InvalidUrlException
from aiohabridge.support import build_websocket_url


class TestI18n:
    """Test message translation."""

    def test_english_default(self) -> None:
        """The base catalog renders placeholders."""
        i18n.set_locale(locale="en")
        assert i18n.tr("exception.transport.not_open", url="ws://x") == "Socket to ws://x is not open"

    def test_german_catalog(self) -> None:
        """The de catalog overrides the base catalog."""
        i18n.set_locale(locale="de")
        assert i18n.get_locale() == "de"
        assert i18n.tr("exception.transport.not_open", url="ws://x") == "Socket zu ws://x ist nicht geöffnet"

    def test_unknown_locale_falls_back_to_base(self) -> None:
        """A locale without catalog uses the base strings."""
        i18n.set_locale(locale="xx")
        assert i18n.tr("exception.client.connect.already_connected", url="ws://x") == "Already connected to ws://x"

    def test_unknown_key_returns_key(self) -> None:
        """Unknown keys are returned unchanged."""
        assert i18n.tr("does.not.exist") == "does.not.exist"

    def test_missing_placeholder_is_kept(self) -> None:
        """Missing placeholder values do not raise."""
        i18n.set_locale(locale="en")
        assert i18n.tr("exception.transport.not_open") == "Socket to {url} is not open"

    def test_empty_locale_selects_default(self) -> None:
        """None or empty selects the default locale."""
        i18n.set_locale(locale="")
        assert i18n.get_locale() == "en"
        i18n.set_locale(locale=None)
        assert i18n.get_locale() == "en"

    def test_exception_messages_are_localized(self) -> None:
        """Exceptions render their message in the active locale."""
        i18n.set_locale(locale="de")
        with pytest.raises(InvalidUrlException, match="Ungültige Hub-URL"):
            build_websocket_url(url="http://hub.local")

    @pytest.mark.asyncio
    async def test_preload_locale(self) -> None:
        """Preloading a catalog in a worker thread makes it available."""
        await i18n.preload_locale(locale="de")
        i18n.set_locale(locale="de")
        assert i18n.tr("exception.config.missing", fields="url") == "Fehlende Konfiguration: url"
