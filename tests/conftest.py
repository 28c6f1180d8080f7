from __future__ import annotations

from typing import Any

import pytest

from pyinode.models.report import AdvertisingReport, EirDataStructure, EirDataType

MAC = "00:12:6F:AA:BB:01"
OTHER_MAC = "00:12:6F:AA:BB:02"


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_report(
    msd: Any = None,
    *,
    address: str = MAC,
    rssi: int | None = -60,
    name: str | None = None,
    tx_power_level: int | None = None,
) -> AdvertisingReport:
    data: list[EirDataStructure] = []
    if name is not None:
        data.append(EirDataStructure(type=EirDataType.LOCAL_NAME_COMPLETE, value=name))
    if tx_power_level is not None:
        data.append(EirDataStructure(type=EirDataType.TX_POWER_LEVEL, value=tx_power_level))
    if msd is not None:
        data.append(EirDataStructure(type=EirDataType.MANUFACTURER_SPECIFIC_DATA, value=msd))
    return AdvertisingReport(address=address, rssi=rssi, data=data)


def eir(data_type: int, value: bytes) -> bytes:
    return bytes([len(value) + 1, data_type]) + value


def advertising_packet(*reports: tuple[str, bytes, int]) -> bytes:
    """Build an H4 LE Advertising Report event from ``(mac, eir, rssi)`` tuples."""
    params = bytearray([0x02, len(reports)])
    for mac, eir_data, rssi in reports:
        address = bytes(reversed(bytes.fromhex(mac.replace(":", ""))))
        params += bytes([0x00, 0x00]) + address + bytes([len(eir_data)]) + eir_data
        params += rssi.to_bytes(1, "little", signed=True)
    return bytes([0x04, 0x3E, len(params)]) + bytes(params)
