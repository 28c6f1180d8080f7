"""Register layout descriptors.

Each device family maps to a :class:`RegisterLayout`: an offset table of
:class:`RegisterField` entries, each knowing which state keys it is rendered
from and how to encode them into big-endian register bytes.  Layouts are
pure data; :mod:`pyinode.state.render` applies them to a buffer.

Byte map of the common header (registers 0-15)::

    0   MAC address (6 bytes)         24  RSSI
    6   local name (16 bytes)         26  TX power level
    22  model                         28  RTTO flag
                                      30  alarm bitset
"""

from __future__ import annotations

import math
import struct
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pyinode._constants import LOCAL_NAME_SIZE, UNDEFINED
from pyinode.ingestion.normalize import is_number, normalize_timestamp_seconds
from pyinode.models.manufacturer import DeviceFamily, DeviceModel, EnergyMeterUnit

MAC_OFFSET = 0
MAC_SIZE = 6
LOCAL_NAME_OFFSET = 6
MODEL_OFFSET = 22
HEADER_SIZE = 32

Encoder = Callable[[Mapping[str, Any]], bytes]


@dataclass(frozen=True, slots=True)
class RegisterField:
    """A fixed-width slice of the register buffer."""

    name: str
    offset: int
    size: int
    sources: frozenset[str]
    encode: Encoder

    @property
    def register(self) -> int:
        return self.offset // 2


@dataclass(frozen=True, slots=True)
class RegisterLayout:
    family: DeviceFamily
    fields: tuple[RegisterField, ...]
    size: int

    def field(self, name: str) -> RegisterField:
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        raise KeyError(name)


# ---------------------------------------------------------------------------
# Encoding primitives
# ---------------------------------------------------------------------------


def _clamp(value: float, low: int, high: int) -> int:
    if not math.isfinite(value):
        value = UNDEFINED
    return max(low, min(high, int(round(value))))


def u16(value: float) -> bytes:
    return struct.pack(">H", _clamp(value, 0, 0xFFFF))


def i16(value: float) -> bytes:
    return struct.pack(">h", _clamp(value, -0x8000, 0x7FFF))


def u32(value: float) -> bytes:
    return struct.pack(">I", _clamp(value, 0, 0xFFFFFFFF))


def _number(state: Mapping[str, Any], key: str, default: float = 0) -> float:
    value = state.get(key)
    return value if is_number(value) else default


def _flag(value: Any) -> int:
    return 1 if value else 0


def _scaled_or_undefined(state: Mapping[str, Any], key: str, factor: int) -> float:
    value = state.get(key)
    return value * factor if is_number(value) else UNDEFINED


def _composite(state: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = state.get(key)
    return value if isinstance(value, Mapping) else {}


def _field(name: str, offset: int, size: int, encode: Encoder, *sources: str) -> RegisterField:
    return RegisterField(
        name=name,
        offset=offset,
        size=size,
        sources=frozenset(sources or (name,)),
        encode=encode,
    )


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------

ALARM_BITS: tuple[str, ...] = (
    "low_battery",
    "move_accelerometer",
    "level_accelerometer",
    "level_temperature",
    "level_humidity",
    "contact_change",
    "move_stopped",
    "move_g_timer",
    "level_accelerometer_change",
    "level_magnet_change",
    "level_magnet_timer",
)


def _encode_local_name(state: Mapping[str, Any]) -> bytes:
    name = state.get("local_name")
    raw = name.encode("ascii", errors="replace") if isinstance(name, str) else b""
    return raw[:LOCAL_NAME_SIZE].ljust(LOCAL_NAME_SIZE, b"\x00")


def _encode_alarms(state: Mapping[str, Any]) -> bytes:
    alarms = _composite(state, "alarms")
    bits = 0
    for bit, name in enumerate(ALARM_BITS):
        if alarms.get(name):
            bits |= 1 << bit
    return u16(bits)


_HEADER_FIELDS: tuple[RegisterField, ...] = (
    _field("local_name", LOCAL_NAME_OFFSET, LOCAL_NAME_SIZE, _encode_local_name),
    _field("rssi", 24, 2, lambda s: i16(_number(s, "rssi", UNDEFINED))),
    _field("tx_power_level", 26, 2, lambda s: i16(_number(s, "tx_power_level", UNDEFINED))),
    _field("rtto", 28, 2, lambda s: u16(_flag(s.get("rtto")))),
    _field("alarms", 30, 2, _encode_alarms),
)


# ---------------------------------------------------------------------------
# Care Relay
# ---------------------------------------------------------------------------

_CARE_RELAY_FIELDS: tuple[RegisterField, ...] = (
    _field("flags", 32, 2, lambda s: u16(_flag(s.get("output")) << 1), "output"),
)


# ---------------------------------------------------------------------------
# Energy Meter
# ---------------------------------------------------------------------------


def _energy_total(key: str) -> Encoder:
    def encode(state: Mapping[str, Any]) -> bytes:
        value = _number(state, key)
        if state.get("unit") != EnergyMeterUnit.COUNT:
            value *= 100
        return u32(value)

    return encode


def _encode_unit(state: Mapping[str, Any]) -> bytes:
    if state.get("unit") == EnergyMeterUnit.UNKNOWN:
        return u16(UNDEFINED)
    return u16(_number(state, "unit"))


_ENERGY_METER_FIELDS: tuple[RegisterField, ...] = (
    _field("constant", 32, 2, lambda s: u16(_number(s, "constant"))),
    _field("unit", 34, 2, _encode_unit),
    _field("total", 36, 4, _energy_total("total"), "total", "unit"),
    _field("average", 40, 4, _energy_total("average"), "average", "unit"),
    _field("light_level", 44, 2, lambda s: u16(_scaled_or_undefined(s, "light_level", 100))),
    _field("week_day", 46, 2, lambda s: u16(_number(s, "week_day", UNDEFINED))),
    _field("week_day_total", 48, 4, lambda s: u32(_number(s, "week_day_total") * 100)),
    _field("battery_level", 52, 2, lambda s: u16(_number(s, "battery_level"))),
    _field("battery_voltage", 54, 2, lambda s: u16(_scaled_or_undefined(s, "battery_voltage", 100))),
)


# ---------------------------------------------------------------------------
# Care Sensor family
# ---------------------------------------------------------------------------


def _encode_care_sensor_flags(state: Mapping[str, Any]) -> bytes:
    position = _composite(state, "position")
    flags = (
        _flag(state.get("input") or state.get("magnetic_field_direction"))
        | _flag(state.get("output")) << 1
        | _flag(position.get("motion")) << 2
    )
    return u16(flags)


def _encode_humidity(state: Mapping[str, Any]) -> bytes:
    # Care Sensor #5 reports its magnetic field in the humidity register.
    magnetic_field = state.get("magnetic_field")
    if is_number(magnetic_field):
        return u16(magnetic_field)
    return u16(_scaled_or_undefined(state, "humidity", 100))


def _encode_position(state: Mapping[str, Any]) -> bytes:
    position = _composite(state, "position")
    return b"".join(i16(_number(position, axis)) for axis in ("x", "y", "z"))


def _encode_time(state: Mapping[str, Any]) -> bytes:
    value = state.get("time")
    if isinstance(value, datetime):
        return u32(int(value.timestamp()))
    seconds = normalize_timestamp_seconds(value) if is_number(value) else None
    return u32(int(seconds) if seconds is not None else 0)


_CARE_SENSOR_FIELDS: tuple[RegisterField, ...] = (
    _field("flags", 32, 2, _encode_care_sensor_flags, "input", "magnetic_field_direction", "output", "position"),
    _field("temperature", 34, 2, lambda s: i16(_scaled_or_undefined(s, "temperature", 100))),
    _field("humidity", 36, 2, _encode_humidity, "humidity", "magnetic_field"),
    _field("pressure", 38, 2, lambda s: u16(_number(s, "pressure") * 16)),
    _field("position", 40, 6, _encode_position),
    _field("battery_level", 46, 2, lambda s: u16(_number(s, "battery_level"))),
    _field("battery_voltage", 48, 2, lambda s: u16(_scaled_or_undefined(s, "battery_voltage", 100))),
    _field("groups", 50, 2, lambda s: u16(_number(s, "groups"))),
    _field("time", 52, 4, _encode_time),
)


def _layout(family: DeviceFamily, extension: tuple[RegisterField, ...]) -> RegisterLayout:
    fields = _HEADER_FIELDS + extension
    size = max(f.offset + f.size for f in fields)
    return RegisterLayout(family=family, fields=fields, size=size)


LAYOUTS: dict[DeviceFamily, RegisterLayout] = {
    DeviceFamily.CARE_RELAY: _layout(DeviceFamily.CARE_RELAY, _CARE_RELAY_FIELDS),
    DeviceFamily.ENERGY_METER: _layout(DeviceFamily.ENERGY_METER, _ENERGY_METER_FIELDS),
    DeviceFamily.CARE_SENSOR: _layout(DeviceFamily.CARE_SENSOR, _CARE_SENSOR_FIELDS),
}


def layout_for(model: DeviceModel) -> RegisterLayout:
    """Return the register layout of *model*.

    Raises :class:`KeyError` for models without a family.
    """
    family = model.family
    if family is None:
        raise KeyError(model)
    return LAYOUTS[family]
