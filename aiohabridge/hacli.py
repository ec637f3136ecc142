# SPDX-License-Identifier: MIT
# Copyright (c) 2021-2025
"""
Commandline tool to query and control a Home Assistant hub.

Examples:
-------
    hacli --url ws://homeassistant.local:8123 --token TOKEN fetch get_states
    hacli --url ws://homeassistant.local:8123 --token TOKEN call light turn_on --entity-id light.kitchen
    hacli --url ws://homeassistant.local:8123 --token TOKEN watch --seconds 30

"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

import orjson

from aiohabridge.central.events import StateChangedEvent
from aiohabridge.client import HomeAssistantClient
from aiohabridge.config import HubConfig, HubConfigBuilder
from aiohabridge.const import UTF_8, VERSION
from aiohabridge.exceptions import BaseHassException
from aiohabridge.support import describe_exception


def _dump(value: Any) -> str:
    return orjson.dumps(value, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS).decode(UTF_8)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Commandline tool to query and control a Home Assistant hub over its WebSocket API."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--url", "-u", required=True, help="Hub url, e.g. ws://homeassistant.local:8123")
    parser.add_argument("--token", "-t", required=True, help="Long-lived access token")
    parser.add_argument("--timeout", type=float, default=None, help="Response timeout in seconds")
    parser.add_argument("--cafile", default=None, help="CA certificate for wss:// urls")
    parser.add_argument("--insecure", action="store_true", help="Do not verify the hub certificate")

    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Send a request without payload and print its result")
    fetch.add_argument("api", help="Request type, e.g. get_states or config/device_registry/list")

    call = commands.add_parser("call", help="Call a service")
    call.add_argument("domain")
    call.add_argument("service")
    call.add_argument("--entity-id", dest="entity_id", default=None)
    call.add_argument("--data", default=None, help="Service data as JSON object")

    watch = commands.add_parser("watch", help="Print state changes")
    watch.add_argument("--seconds", type=float, default=None, help="Stop after this many seconds")
    return parser


def _build_config(args: argparse.Namespace) -> HubConfig:
    builder = HubConfigBuilder().with_url(url=args.url).with_access_token(access_token=args.token)
    if args.timeout is not None:
        builder.with_response_timeout(seconds=args.timeout)
    if args.cafile or args.insecure:
        builder.with_tls(certificate_path=args.cafile, reject_unauthorized=False if args.insecure else None)
    # A cli run ends on the first connection loss
    builder.with_reconnect(delay=0, retries=0)
    return builder.build()


async def _watch(client: HomeAssistantClient, seconds: float | None) -> None:
    def on_state_changed(event: StateChangedEvent) -> None:
        print(f"{event.entity_id}: {event.old_state.get('state')} -> {event.new_state.get('state')}")

    await client.fetch_data()
    unsubscribe = client.event_bus.subscribe(event_type=StateChangedEvent, handler=on_state_changed)
    try:
        await client.subscribe()
        if seconds is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(seconds)
    finally:
        unsubscribe()


async def _run(args: argparse.Namespace) -> int:
    client = HomeAssistantClient(config=_build_config(args))
    await client.connect()
    try:
        if args.command == "fetch":
            print(_dump(await client.fetch(api=args.api)))
        elif args.command == "call":
            service_data = orjson.loads(args.data) if args.data else None
            if service_data is not None and not isinstance(service_data, dict):
                print("--data must be a JSON object", file=sys.stderr)
                return 2
            result = await client.call_service(
                domain=args.domain, service=args.service, entity_id=args.entity_id, service_data=service_data
            )
            print(_dump(result))
        elif args.command == "watch":
            await _watch(client, args.seconds)
    finally:
        await client.stop()
    return 0


def main(argv: list[str] | None = None) -> None:
    """Start the cli."""
    args = _build_parser().parse_args(argv)
    try:
        code = asyncio.run(_run(args))
    except orjson.JSONDecodeError as err:
        print(f"Invalid JSON: {err}", file=sys.stderr)
        sys.exit(2)
    except BaseHassException as bhexc:
        print(describe_exception(exc=bhexc), file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
