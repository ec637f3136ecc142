# SPDX-License-Identifier: MIT
"""
Small i18n helper to localize exception and fatal log messages.

Usage:
- Call set_locale(locale="de") early (HomeAssistantClient does this from HubConfig).
- Use tr("key", name="value") to render localized strings with str.format.

Lookup order:
1) translations/<locale>.json
2) translations/strings.json (base)
3) Fallback to the key itself
"""

from __future__ import annotations

import asyncio
import json
import logging
import pkgutil
from threading import RLock
from typing import Any, Final

from aiohabridge.const import DEFAULT_LOCALE, UTF_8

_BASE_CATALOG: dict[str, str] = {}
_BASE_CATALOG_LOADED: bool = False
_CACHE: dict[str, dict[str, str]] = {}
_CURRENT_LOCALE: str = DEFAULT_LOCALE
_LOCK: Final = RLock()
_TRANSLATIONS_PKG: Final = "aiohabridge"

_LOGGER: Final = logging.getLogger(__name__)


class _SafeDict(dict[str, str]):
    """Leave unknown placeholders untouched."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def _load_json_resource(*, resource: str) -> dict[str, str]:
    """Load a packaged translation catalog via pkgutil."""
    try:
        if not (data := pkgutil.get_data(_TRANSLATIONS_PKG, f"translations/{resource}")):
            return {}
        return {str(k): str(v) for k, v in json.loads(data.decode(UTF_8)).items()}
    except (OSError, ValueError) as exc:
        _LOGGER.debug("I18N: Failed to load translation resource %s: %s", resource, exc)
        return {}


def _load_base_catalog() -> dict[str, str]:
    """Load the base catalog (strings.json) once."""
    global _BASE_CATALOG, _BASE_CATALOG_LOADED  # noqa: PLW0603  # pylint: disable=global-statement
    with _LOCK:
        if not _BASE_CATALOG_LOADED:
            _BASE_CATALOG = _load_json_resource(resource="strings.json")
            _BASE_CATALOG_LOADED = True
        return _BASE_CATALOG


def _get_catalog(*, locale: str) -> dict[str, str]:
    """Return the merged catalog for a locale."""
    if (catalog := _CACHE.get(locale)) is not None:
        return catalog
    base = _load_base_catalog()
    with _LOCK:
        if locale not in _CACHE:
            _CACHE[locale] = {**base, **_load_json_resource(resource=f"{locale}.json")}
        return _CACHE[locale]


def _normalize(locale: str | None) -> str:
    return (locale or DEFAULT_LOCALE).strip() or DEFAULT_LOCALE


def set_locale(*, locale: str | None) -> None:
    """Set the current locale. None or empty selects the default."""
    global _CURRENT_LOCALE  # noqa: PLW0603  # pylint: disable=global-statement
    with _LOCK:
        _CURRENT_LOCALE = _normalize(locale)


def get_locale() -> str:
    """Return the active locale code."""
    return _CURRENT_LOCALE


def tr(key: str, /, **kwargs: Any) -> str:
    """
    Translate the given key using the active locale.

    Fallback order: <locale>.json -> strings.json -> key.
    """
    template = _get_catalog(locale=_CURRENT_LOCALE).get(key, key)
    try:
        return template.format_map(_SafeDict({str(k): str(v) for k, v in kwargs.items()}))
    except (ValueError, IndexError):
        return template


async def preload_locale(*, locale: str) -> None:
    """Load a locale catalog in a worker thread so the event loop never reads package data."""
    await asyncio.to_thread(_get_catalog, locale=_normalize(locale))
