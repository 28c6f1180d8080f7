"""pyinode - BLE iNode advertising telemetry exposed as MODBUS holding registers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyinode")
except PackageNotFoundError:
    __version__ = "0+local"
from pyinode._mqtt import MqttConnection
from pyinode.config import GatewayConfig, MqttSettings, parse_device_map
from pyinode.device import Device
from pyinode.exceptions import (
    DuplicateDeviceError,
    HciDecodeError,
    InodeConfigError,
    InodeError,
    InvalidMacAddressError,
    InvalidUnitError,
)
from pyinode.gateway import Connection, Gateway
from pyinode.ingestion.hci import HciDecoder, HciPacket
from pyinode.models import (
    AdvertisingReport,
    Alarms,
    DeviceFamily,
    DeviceModel,
    EirDataStructure,
    EirDataType,
    EnergyMeterUnit,
    ExceptionCode,
    FunctionCode,
    ModbusRequest,
    Position,
    ReadHoldingRegistersResponse,
)
from pyinode.state.diff import StateDiff

__all__ = [
    "__version__",
    "AdvertisingReport",
    "Alarms",
    "Connection",
    "Device",
    "DeviceFamily",
    "DeviceModel",
    "DuplicateDeviceError",
    "EirDataStructure",
    "EirDataType",
    "EnergyMeterUnit",
    "ExceptionCode",
    "FunctionCode",
    "Gateway",
    "GatewayConfig",
    "HciDecodeError",
    "HciDecoder",
    "HciPacket",
    "InodeConfigError",
    "InodeError",
    "InvalidMacAddressError",
    "InvalidUnitError",
    "ModbusRequest",
    "MqttConnection",
    "MqttSettings",
    "Position",
    "ReadHoldingRegistersResponse",
    "StateDiff",
    "parse_device_map",
]
