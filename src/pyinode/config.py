"""Gateway configuration for pyinode."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyinode._constants import DEFAULT_DEVICE_TIMEOUT, DEFAULT_MAX_BUFFER_SIZE
from pyinode.exceptions import InodeConfigError, InvalidUnitError
from pyinode.ingestion.normalize import prepare_mac_address


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def parse_device_map(text: str) -> dict[int, str]:
    """Parse ``"unit=mac,unit=mac"`` into a unit → canonical MAC mapping.

    Entries may be separated by commas, semicolons or whitespace.

    Raises
    ------
    InodeConfigError
        On malformed entries or a unit/MAC listed twice.
    """
    devices: dict[int, str] = {}
    seen_macs: set[str] = set()

    for entry in text.replace(";", ",").replace(" ", ",").split(","):
        entry = entry.strip()
        if not entry:
            continue
        unit_text, sep, mac_text = entry.partition("=")
        if not sep:
            raise InodeConfigError(f"Invalid device entry {entry!r}, expected unit=mac")
        try:
            unit = int(unit_text.strip())
        except ValueError:
            raise InvalidUnitError(unit_text.strip()) from None
        if not 0 <= unit <= 0xFF:
            raise InvalidUnitError(unit)
        mac = prepare_mac_address(mac_text)
        if unit in devices:
            raise InodeConfigError(f"Unit {unit} listed more than once")
        if mac in seen_macs:
            raise InodeConfigError(f"MAC address {mac} listed more than once")
        devices[unit] = mac
        seen_macs.add(mac)

    return devices


@dataclasses.dataclass(frozen=True)
class GatewayConfig:
    """Gateway configuration.

    Parameters
    ----------
    hex_encoded : bool
        Connections deliver ASCII hex text instead of raw bytes.
    device_timeout : float
        Seconds since the last report after which a device answers
        MODBUS requests with GatewayTargetDeviceFailedToRespond.
    reassemble : bool
        Cut H4 packets out of the byte stream by their length prefix.
        When disabled, every chunk is decoded as exactly one packet.
    max_buffer_size : int
        Reassembly buffer size (bytes) above which buffered data is dropped.
    devices : dict
        Unit → MAC address of the devices to register at startup.
    """

    hex_encoded: bool = True
    device_timeout: float = DEFAULT_DEVICE_TIMEOUT
    reassemble: bool = True
    max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE
    devices: dict[int, str] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides: Any) -> GatewayConfig:
        """Create configuration from ``INODE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        if "hex_encoded" not in overrides:
            config_kwargs["hex_encoded"] = _env_bool(env.get("INODE_HEX_ENCODED"), True)

        if "reassemble" not in overrides:
            config_kwargs["reassemble"] = _env_bool(env.get("INODE_REASSEMBLE"), True)

        timeout_env = env.get("INODE_DEVICE_TIMEOUT")
        if timeout_env is not None and "device_timeout" not in overrides:
            config_kwargs["device_timeout"] = float(timeout_env)

        buffer_env = env.get("INODE_MAX_BUFFER_SIZE")
        if buffer_env is not None and "max_buffer_size" not in overrides:
            config_kwargs["max_buffer_size"] = int(buffer_env)

        devices_env = env.get("INODE_DEVICES")
        if devices_env is not None and "devices" not in overrides:
            config_kwargs["devices"] = parse_device_map(devices_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class MqttSettings:
    """Broker details for :class:`pyinode._mqtt.MqttConnection`.

    Parameters
    ----------
    host : str
        Broker host name.
    topic : str
        Topic carrying HCI packets, one per message.
    port : int
        Broker port.
    client_id : str
        MQTT client identifier; empty lets the broker assign one.
    username, password : str or None
        Broker credentials.
    keepalive : int
        MQTT keepalive in seconds.
    tls : bool
        Connect with TLS using the system CA bundle.
    """

    host: str
    topic: str
    port: int = 1883
    client_id: str = ""
    username: str | None = None
    password: str | None = None
    keepalive: int = 60
    tls: bool = False

    @classmethod
    def from_env(cls, **overrides: Any) -> MqttSettings:
        """Create settings from ``INODE_MQTT_*`` environment variables."""
        env = os.environ

        _ENV_MAP = {
            "INODE_MQTT_HOST": "host",
            "INODE_MQTT_TOPIC": "topic",
            "INODE_MQTT_CLIENT_ID": "client_id",
            "INODE_MQTT_USERNAME": "username",
            "INODE_MQTT_PASSWORD": "password",
        }
        kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_MAP.items():
            val = env.get(env_key)
            if val is not None:
                kwargs[field_name] = val

        port_env = env.get("INODE_MQTT_PORT")
        if port_env is not None and "port" not in overrides:
            kwargs["port"] = int(port_env)

        keepalive_env = env.get("INODE_MQTT_KEEPALIVE")
        if keepalive_env is not None and "keepalive" not in overrides:
            kwargs["keepalive"] = int(keepalive_env)

        if "tls" not in overrides:
            kwargs["tls"] = _env_bool(env.get("INODE_MQTT_TLS"), False)

        kwargs.update(overrides)

        missing = [name for name in ("host", "topic") if not kwargs.get(name)]
        if missing:
            raise InodeConfigError(f"Missing MQTT settings: {', '.join(missing)}")

        return cls(**kwargs)
