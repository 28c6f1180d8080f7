"""BLE advertising report models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyinode.ingestion.normalize import prepare_mac_address
from pyinode.models._base import InodeEnum


class EirDataType(InodeEnum):
    """Extended Inquiry Response data types (Bluetooth Assigned Numbers)."""

    UNKNOWN = -1
    FLAGS = 0x01
    INCOMPLETE_LIST_16BIT_SERVICE_UUIDS = 0x02
    COMPLETE_LIST_16BIT_SERVICE_UUIDS = 0x03
    LOCAL_NAME_SHORT = 0x08
    LOCAL_NAME_COMPLETE = 0x09
    TX_POWER_LEVEL = 0x0A
    SERVICE_DATA_16BIT_UUID = 0x16
    MANUFACTURER_SPECIFIC_DATA = 0xFF


class AdvertisingEventType(InodeEnum):
    UNKNOWN = -1
    ADV_IND = 0x00
    ADV_DIRECT_IND = 0x01
    ADV_SCAN_IND = 0x02
    ADV_NONCONN_IND = 0x03
    SCAN_RSP = 0x04


class EirDataStructure(BaseModel):
    """One ``length, type, value`` element of an advertising payload.

    ``type`` keeps the raw code when it has no :class:`EirDataType` member.
    ``value`` is decoded per type: ``str`` for local names, ``int`` for the
    TX power level, a decoder-specific mapping (or
    :class:`pyinode.ingestion.hci.RawManufacturerData`) for manufacturer
    data, raw ``bytes`` otherwise.
    """

    model_config = ConfigDict(frozen=True)

    type: int
    value: Any = None

    @property
    def data_type(self) -> EirDataType:
        return EirDataType(self.type)


class AdvertisingReport(BaseModel):
    """A single device's entry of an HCI LE Advertising Report event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: str
    rssi: int | None = None
    event_type: int = Field(default=AdvertisingEventType.ADV_IND, alias="eventType")
    address_type: int = Field(default=0, alias="addressType")
    data: tuple[EirDataStructure, ...] = ()

    @field_validator("address")
    @classmethod
    def _normalize_address(cls, value: str) -> str:
        return prepare_mac_address(value)
