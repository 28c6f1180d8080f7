"""A BLE device exposed as a MODBUS slave."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pyinode._constants import MODEL_STABLE_FIELDS, REGISTER_SIZE
from pyinode.exceptions import InvalidUnitError
from pyinode.ingestion.normalize import is_number, prepare_mac_address
from pyinode.models.manufacturer import DeviceModel, parse_manufacturer_data
from pyinode.models.modbus import (
    ExceptionCode,
    FunctionCode,
    ModbusRequest,
    ModbusResponse,
    ReadHoldingRegistersResponse,
    RespondCallback,
)
from pyinode.models.report import AdvertisingReport, EirDataType
from pyinode.state.diff import StateDiff, compare
from pyinode.state.layout import RegisterLayout, layout_for
from pyinode.state.render import allocate, render

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Observation:
    """Fields observed in one advertising report, in EIR order."""

    model: DeviceModel | None = None
    fields: dict[str, Any] = field(default_factory=dict)


def observe(report: AdvertisingReport, current_model: DeviceModel | None) -> Observation:
    """Collect the state fields carried by *report*.

    When manufacturer data announces a model other than *current_model*,
    everything observed so far is dropped except the fields whose register
    position does not depend on the model.
    """
    observation = Observation()
    model = current_model

    if is_number(report.rssi):
        observation.fields["rssi"] = report.rssi

    for structure in report.data:
        data_type = structure.data_type

        if data_type in (EirDataType.LOCAL_NAME_COMPLETE, EirDataType.LOCAL_NAME_SHORT):
            observation.fields["local_name"] = structure.value
        elif data_type == EirDataType.TX_POWER_LEVEL:
            observation.fields["tx_power_level"] = structure.value
        elif data_type == EirDataType.MANUFACTURER_SPECIFIC_DATA:
            data = parse_manufacturer_data(structure.value)
            if data is None:
                continue
            if data.model != model:
                model = data.model
                observation.model = model
                observation.fields = {k: v for k, v in observation.fields.items() if k in MODEL_STABLE_FIELDS}
            received = data.received()
            received.pop("model", None)
            observation.fields.update(received)

    return observation


class Device:
    """Register image of one iNode device.

    Parameters
    ----------
    mac : str
        MAC address; six groups of two hexadecimal digits optionally
        separated by ``:`` or ``-``.
    unit : int
        MODBUS unit between 0 and 255.
    clock : callable
        Returns the current epoch time in seconds.

    Raises
    ------
    InvalidMacAddressError
        If *mac* is not a valid MAC address.
    InvalidUnitError
        If *unit* is not an integer between 0 and 255.
    """

    def __init__(
        self,
        mac: str,
        unit: int,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if isinstance(unit, bool) or not isinstance(unit, int) or not 0 <= unit <= 0xFF:
            raise InvalidUnitError(unit)

        self._mac = prepare_mac_address(mac)
        self._unit = unit
        self._clock = clock
        self._model: DeviceModel | None = None
        self._layout: RegisterLayout | None = None
        self._buffer: bytearray | None = None
        self._state: dict[str, Any] = {}
        self._last_seen_at = 0.0

    def __repr__(self) -> str:
        model = self._model.name if self._model is not None else None
        return f"Device(mac={self._mac!r}, unit={self._unit}, model={model})"

    @property
    def mac(self) -> str:
        return self._mac

    @property
    def unit(self) -> int:
        return self._unit

    @property
    def model(self) -> DeviceModel | None:
        return self._model

    @property
    def last_seen_at(self) -> float:
        """Epoch seconds of the last applied report, ``0`` if never seen."""
        return self._last_seen_at

    @property
    def state(self) -> Mapping[str, Any]:
        """A copy of the decoded state."""
        return dict(self._state)

    @property
    def buffer(self) -> bytes | None:
        """A copy of the register buffer, ``None`` until a model is known."""
        return bytes(self._buffer) if self._buffer is not None else None

    def is_available(self, timeout: float) -> bool:
        """Whether a model is known and the device reported within *timeout* seconds."""
        if self._model is None:
            return False
        return self._clock() - self._last_seen_at <= timeout

    def apply(self, report: AdvertisingReport) -> StateDiff:
        """Merge an advertising report into the state and register buffer."""
        observation = observe(report, self._model)
        changes = compare(self._state, observation.fields)
        merged = {**self._state, **changes}

        new_model = observation.model
        if new_model is not None:
            layout = layout_for(new_model)
            buffer = allocate(layout, self._mac, new_model)
            render(buffer, layout, merged)
            self._model = new_model
            self._layout = layout
            self._buffer = buffer
            _logger.debug("Device %s switched to model=%s", self._mac, new_model.name)
        elif changes and self._buffer is not None and self._layout is not None:
            written = render(self._buffer, self._layout, merged, changes.keys())
            _logger.debug("Device %s rewrote %d fields for %s", self._mac, written, sorted(changes))

        self._state.update(changes)
        self._last_seen_at = self._clock()

        return StateDiff(changes=changes, model=new_model)

    def read(self, start_register: int, end_register: int) -> bytes | ExceptionCode:
        """Return the bytes of registers ``[start_register, end_register)``."""
        buffer = self._buffer
        if buffer is None:
            return ExceptionCode.ILLEGAL_DATA_ADDRESS

        start = start_register * REGISTER_SIZE
        end = end_register * REGISTER_SIZE
        if start < 0 or end < start or start > len(buffer) - 1 or end > len(buffer):
            return ExceptionCode.ILLEGAL_DATA_ADDRESS

        return bytes(buffer[start:end])

    def handle_modbus_request(self, request: ModbusRequest, respond: RespondCallback) -> None:
        respond(self.respond_to(request))

    def respond_to(self, request: ModbusRequest) -> ModbusResponse:
        if request.function_code != FunctionCode.READ_HOLDING_REGISTERS:
            return ExceptionCode.ILLEGAL_FUNCTION_CODE

        result = self.read(request.starting_index, request.ending_index)
        if isinstance(result, ExceptionCode):
            return result
        return ReadHoldingRegistersResponse(data=result)
