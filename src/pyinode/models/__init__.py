"""Data models for decoded advertising reports and the MODBUS surface."""

from pyinode.models._base import InodeBaseModel, InodeEnum, InodeTimestamp, parse_inode_timestamp
from pyinode.models.manufacturer import (
    Alarms,
    CareRelayData,
    CareSensorData,
    DeviceFamily,
    DeviceModel,
    EnergyMeterData,
    EnergyMeterUnit,
    ManufacturerData,
    Position,
    parse_manufacturer_data,
)
from pyinode.models.modbus import (
    ExceptionCode,
    FunctionCode,
    ModbusRequest,
    ModbusResponse,
    ReadHoldingRegistersResponse,
    RespondCallback,
)
from pyinode.models.report import AdvertisingEventType, AdvertisingReport, EirDataStructure, EirDataType

__all__ = [
    "AdvertisingEventType",
    "AdvertisingReport",
    "Alarms",
    "CareRelayData",
    "CareSensorData",
    "DeviceFamily",
    "DeviceModel",
    "EirDataStructure",
    "EirDataType",
    "EnergyMeterData",
    "EnergyMeterUnit",
    "ExceptionCode",
    "FunctionCode",
    "InodeBaseModel",
    "InodeEnum",
    "InodeTimestamp",
    "ManufacturerData",
    "ModbusRequest",
    "ModbusResponse",
    "Position",
    "ReadHoldingRegistersResponse",
    "RespondCallback",
    "parse_inode_timestamp",
    "parse_manufacturer_data",
]
