"""iNode manufacturer-specific data models.

Raw iNode payload bytes are turned into mappings by an external decoder;
these models give those mappings a typed shape per device family.  The
decoder is expected to emit camelCase keys (``batteryLevel``), but
snake_case keys are accepted too.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, field_validator

from pyinode.models._base import InodeBaseModel, InodeEnum, InodeTimestamp

_logger = logging.getLogger(__name__)


class DeviceModel(InodeEnum):
    """iNode device type, as carried in the manufacturer data."""

    UNKNOWN = -1
    ENERGY_METER = 0x82
    CARE_RELAY = 0x8A
    CARE_SENSOR_1 = 0x91
    CARE_SENSOR_2 = 0x92
    CARE_SENSOR_3 = 0x93
    CARE_SENSOR_4 = 0x94
    CARE_SENSOR_5 = 0x95
    CARE_SENSOR_6 = 0x96
    CARE_SENSOR_T = 0x9A
    CARE_SENSOR_HT = 0x9B
    CARE_SENSOR_PT = 0x9C
    CARE_SENSOR_PHT = 0x9D

    @property
    def family(self) -> DeviceFamily | None:
        return _FAMILIES.get(self)


class DeviceFamily(enum.StrEnum):
    """Register layout family a device model renders with."""

    CARE_RELAY = "care_relay"
    ENERGY_METER = "energy_meter"
    CARE_SENSOR = "care_sensor"


_FAMILIES: dict[DeviceModel, DeviceFamily] = {
    DeviceModel.CARE_RELAY: DeviceFamily.CARE_RELAY,
    DeviceModel.ENERGY_METER: DeviceFamily.ENERGY_METER,
    DeviceModel.CARE_SENSOR_1: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_2: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_3: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_4: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_5: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_6: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_T: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_HT: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_PT: DeviceFamily.CARE_SENSOR,
    DeviceModel.CARE_SENSOR_PHT: DeviceFamily.CARE_SENSOR,
}


class EnergyMeterUnit(InodeEnum):
    """Unit of the energy meter totals."""

    UNKNOWN = -1
    KWH = 0
    CUBIC_METERS = 1
    COUNT = 2


class Alarms(InodeBaseModel):
    """Alarm flags reported by every iNode model."""

    low_battery: bool = False
    move_accelerometer: bool = False
    level_accelerometer: bool = False
    level_temperature: bool = False
    level_humidity: bool = False
    contact_change: bool = False
    move_stopped: bool = False
    move_g_timer: bool = False
    level_accelerometer_change: bool = False
    level_magnet_change: bool = False
    level_magnet_timer: bool = False


class Position(InodeBaseModel):
    """Accelerometer reading of a Care Sensor."""

    x: int = 0
    y: int = 0
    z: int = 0
    motion: bool = False


class ManufacturerData(InodeBaseModel):
    """Fields shared by all iNode models."""

    model: DeviceModel
    rtto: bool | None = None
    alarms: Alarms | None = None


class CareRelayData(ManufacturerData):
    output: bool | None = None


class EnergyMeterData(ManufacturerData):
    constant: int | None = None
    unit: EnergyMeterUnit | None = None
    total: float | None = Field(default=None, validation_alias=AliasChoices("total", "sum"))
    average: float | None = None
    light_level: float | None = Field(
        default=None,
        validation_alias=AliasChoices("lightLevel", "light_level"),
    )
    week_day: int | None = Field(default=None, validation_alias=AliasChoices("weekDay", "week_day"))
    week_day_total: float | None = Field(
        default=None,
        validation_alias=AliasChoices("weekDayTotal", "week_day_total", "weekDaySum"),
    )
    battery_level: float | None = Field(
        default=None,
        validation_alias=AliasChoices("batteryLevel", "battery_level"),
    )
    battery_voltage: float | None = Field(
        default=None,
        validation_alias=AliasChoices("batteryVoltage", "battery_voltage"),
    )

    @field_validator("unit", mode="before")
    @classmethod
    def _coerce_unit(cls, value: Any) -> Any:
        if value is None or isinstance(value, EnergyMeterUnit):
            return value
        return EnergyMeterUnit(value)


class CareSensorData(ManufacturerData):
    """Care Sensor #1-6, T, HT, PT and PHT.

    Only Care Sensor #5 reports ``magnetic_field`` and
    ``magnetic_field_direction``; the others leave them unset.
    """

    input: bool | None = None
    output: bool | None = None
    magnetic_field_direction: bool | None = None
    magnetic_field: int | None = None
    position: Position | None = None
    temperature: float | None = None
    humidity: float | None = None
    pressure: float | None = None
    battery_level: float | None = None
    battery_voltage: float | None = None
    groups: int | None = None
    time: InodeTimestamp = None


_DATA_TYPES: dict[DeviceFamily, type[ManufacturerData]] = {
    DeviceFamily.CARE_RELAY: CareRelayData,
    DeviceFamily.ENERGY_METER: EnergyMeterData,
    DeviceFamily.CARE_SENSOR: CareSensorData,
}


def parse_manufacturer_data(value: Any) -> ManufacturerData | None:
    """Validate a decoded manufacturer payload into its family model.

    Returns ``None`` when *value* is not a mapping, carries no known model,
    or does not validate; such payloads are treated as unrecognized.
    """
    if isinstance(value, ManufacturerData):
        return value if value.model.family is not None else None
    if not isinstance(value, Mapping) or value.get("model") is None:
        return None

    try:
        model = DeviceModel(value["model"])
    except (TypeError, ValueError):
        return None

    family = model.family
    if family is None:
        return None

    try:
        return _DATA_TYPES[family].model_validate({**value, "model": model})
    except ValidationError:
        _logger.debug("Invalid manufacturer data for model=%s", model.name, exc_info=True)
        return None
