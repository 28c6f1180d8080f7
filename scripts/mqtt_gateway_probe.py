#!/usr/bin/env python3
"""Run a gateway fed from an MQTT topic and print the register images.

Subscribes to a topic carrying one HCI packet per message (raw or hex
text), routes advertising reports to the devices given with ``--device``
and periodically prints each device's availability and registers.

Broker settings come from ``INODE_MQTT_*`` environment variables; gateway
settings from ``INODE_*``.  iNode manufacturer payloads need a decoder,
passed as ``--decoder package.module:function``.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import logging
import signal
import sys
import time
from collections.abc import Callable
from typing import Any

from pyinode import Gateway, GatewayConfig, HciDecoder, MqttConnection, MqttSettings, parse_device_map
from pyinode.exceptions import InodeConfigError
from pyinode.models import AdvertisingReport

_LOG = logging.getLogger("mqtt_gateway_probe")

INODE_COMPANY_ID = 0x0090


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print iNode register images built from an MQTT HCI feed.",
    )
    parser.add_argument(
        "--device",
        action="append",
        default=[],
        metavar="UNIT=MAC",
        help="Device to register (repeatable). Adds to INODE_DEVICES.",
    )
    parser.add_argument(
        "--decoder",
        default=None,
        metavar="MODULE:FUNCTION",
        help="Callable turning iNode manufacturer data bytes into a mapping.",
    )
    parser.add_argument(
        "--company-id",
        type=lambda text: int(text, 0),
        default=INODE_COMPANY_ID,
        help="Company identifier the decoder is registered for (default 0x0090).",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Seconds between register dumps.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--show-unknown",
        action="store_true",
        help="Print advertising reports from unregistered devices.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _load_decoder(spec: str) -> Callable[[bytes], Any]:
    module_name, sep, attribute = spec.partition(":")
    if not sep:
        raise SystemExit(f"Invalid --decoder {spec!r}, expected MODULE:FUNCTION")
    module = importlib.import_module(module_name)
    return getattr(module, attribute)


def _print_devices(gateway: Gateway) -> None:
    timeout = gateway.config.device_timeout
    print(f"[probe] {time.strftime('%H:%M:%S')} devices={len(gateway)}")
    for device in sorted(gateway.devices, key=lambda d: d.unit):
        model = device.model.name if device.model is not None else "-"
        state = "available" if device.is_available(timeout) else "unavailable"
        buffer = device.buffer
        registers = buffer.hex(" ", 2) if buffer is not None else "-"
        print(f"[probe]   unit={device.unit:<3} mac={device.mac} model={model} {state}")
        print(f"[probe]     registers: {registers}")


def _print_unknown(report: AdvertisingReport) -> None:
    print(f"[probe] unknown device mac={report.address} rssi={report.rssi}")


async def _run(args: argparse.Namespace, gateway: Gateway, settings: MqttSettings) -> None:
    connection = MqttConnection(settings, loop=asyncio.get_running_loop(), logger=_LOG)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    started_at = time.monotonic()
    with gateway:
        gateway.add_connection(connection)
        print(f"[probe] Connecting to {settings.host}:{settings.port} topic={settings.topic}")
        connection.start()
        try:
            while not stop.is_set():
                try:
                    await asyncio.wait_for(stop.wait(), timeout=args.interval)
                except TimeoutError:
                    pass
                _print_devices(gateway)
                if args.duration > 0 and time.monotonic() - started_at >= args.duration:
                    print(f"[probe] Reached --duration={args.duration}s, stopping.")
                    break
        finally:
            connection.stop()


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        base = GatewayConfig.from_env()
        devices = dict(base.devices)
        devices.update(parse_device_map(",".join(args.device)))
        config = GatewayConfig.from_env(devices=devices)
        settings = MqttSettings.from_env()

        decoder = HciDecoder()
        if args.decoder:
            decoder.register_manufacturer_data_decoder(args.company_id, _load_decoder(args.decoder))
        gateway = Gateway(config, decoder=decoder, on_unknown_device=_print_unknown if args.show_unknown else None)
    except InodeConfigError as exc:
        print(f"[probe] Configuration error: {exc}", file=sys.stderr)
        return 2

    asyncio.run(_run(args, gateway, settings))
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
