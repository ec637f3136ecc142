# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Validation schemas for aiohabridge.

This module contains voluptuous schemas used for validating inbound hub frames
and the client configuration. Unknown keys are allowed on frames because the hub
adds fields over time.
"""

from __future__ import annotations

import voluptuous as vol

from aiohabridge.const import SCHEME_WS, SCHEME_WSS, MessageType


def _hub_url(value: str) -> str:
    """Validate a ws:// or wss:// url."""
    if not isinstance(value, str) or not value.startswith((SCHEME_WS, SCHEME_WSS)):
        raise vol.Invalid(f"url must start with {SCHEME_WS} or {SCHEME_WSS}")
    return value


_POSITIVE_SECONDS = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))
_NON_NEGATIVE_SECONDS = vol.All(vol.Coerce(float), vol.Range(min=0))

AUTH_REQUIRED_SCHEMA = vol.Schema(
    {
        vol.Required("type"): MessageType.AUTH_REQUIRED.value,
        vol.Optional("ha_version"): str,
    },
    extra=vol.ALLOW_EXTRA,
)

AUTH_OK_SCHEMA = vol.Schema(
    {
        vol.Required("type"): MessageType.AUTH_OK.value,
        vol.Required("ha_version"): str,
    },
    extra=vol.ALLOW_EXTRA,
)

RESULT_SCHEMA = vol.Schema(
    {
        vol.Required("type"): MessageType.RESULT.value,
        vol.Required("id"): int,
        vol.Required("success"): bool,
        vol.Optional("result"): object,
        vol.Optional("error"): vol.Schema(
            {
                vol.Optional("code"): vol.Any(str, int, None),
                vol.Optional("message"): vol.Any(str, None),
            },
            extra=vol.ALLOW_EXTRA,
        ),
    },
    extra=vol.ALLOW_EXTRA,
)

EVENT_SCHEMA = vol.Schema(
    {
        vol.Required("type"): MessageType.EVENT.value,
        vol.Required("id"): int,
        vol.Required("event"): vol.Schema(
            {
                vol.Required("event_type"): str,
                vol.Optional("data", default=dict): vol.Any(dict, None),
                vol.Optional("context"): vol.Any(dict, None),
                vol.Optional("origin"): vol.Any(str, None),
                vol.Optional("time_fired"): vol.Any(str, None),
            },
            extra=vol.ALLOW_EXTRA,
        ),
    },
    extra=vol.ALLOW_EXTRA,
)

STATE_CHANGED_DATA_SCHEMA = vol.Schema(
    {
        vol.Required("entity_id"): str,
        vol.Optional("old_state"): vol.Any(dict, None),
        vol.Optional("new_state"): vol.Any(dict, None),
    },
    extra=vol.ALLOW_EXTRA,
)

HUB_CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required("url"): _hub_url,
        vol.Required("access_token"): vol.All(str, vol.Length(min=1)),
        vol.Required("response_timeout"): _POSITIVE_SECONDS,
        vol.Required("ping_interval"): _POSITIVE_SECONDS,
        vol.Required("ping_timeout"): _POSITIVE_SECONDS,
        vol.Required("reconnect_delay"): _NON_NEGATIVE_SECONDS,
        vol.Required("reconnect_retries"): vol.All(int, vol.Range(min=0)),
        vol.Required("debounce_window"): _NON_NEGATIVE_SECONDS,
        vol.Optional("certificate_path"): vol.Any(None, vol.All(str, vol.Length(min=1))),
        vol.Optional("reject_unauthorized"): vol.Any(None, bool),
        vol.Optional("locale"): vol.Any(None, str),
    }
)
