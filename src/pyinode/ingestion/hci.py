"""HCI event and EIR decoding.

Only what the gateway consumes is decoded in depth: the LE Meta event's
Advertising Report subevent and the EIR structures inside it.  Other
packets decode to an :class:`HciPacket` without parameters.

iNode manufacturer payloads are not decoded here.  Register a decoder for
their company identifier with
:meth:`HciDecoder.register_manufacturer_data_decoder`; it must return a
mapping shaped like :class:`pyinode.models.ManufacturerData`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pyinode.exceptions import HciDecodeError
from pyinode.ingestion.normalize import mac_from_le_bytes
from pyinode.models._base import InodeEnum
from pyinode.models.report import AdvertisingReport, EirDataStructure, EirDataType

_logger = logging.getLogger(__name__)

# RSSI value meaning "not available".
_RSSI_UNAVAILABLE = 127

ManufacturerDataDecoder = Callable[[bytes], Any]


class PacketType(InodeEnum):
    UNKNOWN = -1
    COMMAND = 0x01
    ACL_DATA = 0x02
    SYNC_DATA = 0x03
    EVENT = 0x04
    ISO_DATA = 0x05


class EventCode(InodeEnum):
    UNKNOWN = -1
    DISCONNECTION_COMPLETE = 0x05
    COMMAND_COMPLETE = 0x0E
    COMMAND_STATUS = 0x0F
    LE_META = 0x3E


class LeSubeventCode(InodeEnum):
    UNKNOWN = -1
    CONNECTION_COMPLETE = 0x01
    ADVERTISING_REPORT = 0x02


@dataclass(frozen=True, slots=True)
class RawManufacturerData:
    """Manufacturer data without a registered decoder."""

    company_id: int
    data: bytes


@dataclass(frozen=True, slots=True)
class AdvertisingReportEvent:
    """Parameters of an LE Advertising Report subevent."""

    subevent_code: int
    reports: tuple[AdvertisingReport, ...]


@dataclass(frozen=True, slots=True)
class HciPacket:
    """A decoded H4 packet.

    ``event_code`` is only set for event packets; ``parameters`` is an
    :class:`AdvertisingReportEvent` for LE advertising reports and the raw
    parameter bytes for everything else.
    """

    type: int
    event_code: int | None
    parameters: Any

    @property
    def is_advertising_report(self) -> bool:
        return isinstance(self.parameters, AdvertisingReportEvent)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0

    def take(self, size: int) -> bytes:
        end = self._offset + size
        if end > len(self._data):
            raise HciDecodeError(f"Truncated packet: need {end} bytes, have {len(self._data)}")
        chunk = self._data[self._offset : end]
        self._offset = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def i8(self) -> int:
        return int.from_bytes(self.take(1), "little", signed=True)


class HciDecoder:
    """Decode H4 packets into :class:`HciPacket` objects."""

    def __init__(self) -> None:
        self._msd_decoders: dict[int, ManufacturerDataDecoder] = {}

    def register_manufacturer_data_decoder(self, company_id: int, decoder: ManufacturerDataDecoder) -> None:
        """Decode manufacturer data starting with *company_id* (little-endian) using *decoder*.

        The decoder receives the full manufacturer data, company identifier
        included.
        """
        self._msd_decoders[company_id] = decoder

    def decode(self, data: bytes) -> HciPacket:
        """Decode one complete H4 packet.

        Raises :class:`HciDecodeError` for unknown or truncated packets.
        """
        if not data:
            raise HciDecodeError("Empty packet")

        packet_type = data[0]
        if PacketType(packet_type) == PacketType.UNKNOWN:
            raise HciDecodeError(f"Unknown packet type 0x{packet_type:02X}")
        if packet_type != PacketType.EVENT:
            return HciPacket(type=packet_type, event_code=None, parameters=bytes(data[1:]))

        reader = _Reader(bytes(data[1:]))
        event_code = reader.u8()
        parameters = reader.take(reader.u8())

        if event_code == EventCode.LE_META and parameters and parameters[0] == LeSubeventCode.ADVERTISING_REPORT:
            return HciPacket(
                type=packet_type,
                event_code=event_code,
                parameters=self.decode_advertising_report_event(parameters),
            )
        return HciPacket(type=packet_type, event_code=event_code, parameters=parameters)

    def decode_advertising_report_event(self, parameters: bytes) -> AdvertisingReportEvent:
        reader = _Reader(parameters)
        subevent_code = reader.u8()
        count = reader.u8()
        reports: list[AdvertisingReport] = []

        for _ in range(count):
            event_type = reader.u8()
            address_type = reader.u8()
            address = mac_from_le_bytes(reader.take(6))
            eir = reader.take(reader.u8())
            rssi = reader.i8()
            reports.append(
                AdvertisingReport(
                    address=address,
                    rssi=None if rssi == _RSSI_UNAVAILABLE else rssi,
                    event_type=event_type,
                    address_type=address_type,
                    data=self.decode_eir(eir),
                )
            )

        return AdvertisingReportEvent(subevent_code=subevent_code, reports=tuple(reports))

    def decode_eir(self, data: bytes) -> tuple[EirDataStructure, ...]:
        """Split advertising data into EIR structures.

        A zero length byte ends the list (the rest is padding).
        """
        structures: list[EirDataStructure] = []
        offset = 0

        while offset < len(data):
            length = data[offset]
            if length == 0:
                break
            end = offset + 1 + length
            if end > len(data):
                raise HciDecodeError(f"EIR structure at offset {offset} overruns advertising data")
            data_type = data[offset + 1]
            value = bytes(data[offset + 2 : end])
            structures.append(EirDataStructure(type=data_type, value=self._decode_eir_value(data_type, value)))
            offset = end

        return tuple(structures)

    def _decode_eir_value(self, data_type: int, value: bytes) -> Any:
        kind = EirDataType(data_type)

        if kind in (EirDataType.LOCAL_NAME_COMPLETE, EirDataType.LOCAL_NAME_SHORT):
            return value.rstrip(b"\x00").decode("utf-8", errors="replace")

        if kind == EirDataType.TX_POWER_LEVEL:
            return int.from_bytes(value[:1], "little", signed=True) if value else None

        if kind == EirDataType.MANUFACTURER_SPECIFIC_DATA and len(value) >= 2:
            company_id = int.from_bytes(value[:2], "little")
            decoder = self._msd_decoders.get(company_id)
            if decoder is not None:
                try:
                    return decoder(value)
                except Exception:
                    _logger.debug("Manufacturer data decoder failed company_id=0x%04X", company_id, exc_info=True)
            return RawManufacturerData(company_id=company_id, data=value[2:])

        return value
