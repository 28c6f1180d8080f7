"""Device registry and router between connections, devices and MODBUS."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pyinode.config import GatewayConfig
from pyinode.device import Device
from pyinode.exceptions import DuplicateDeviceError, HciDecodeError
from pyinode.ingestion.framing import H4Reassembler
from pyinode.ingestion.hci import AdvertisingReportEvent, EventCode, HciDecoder, HciPacket, PacketType
from pyinode.ingestion.normalize import prepare_mac_address
from pyinode.models.modbus import (
    ExceptionCode,
    FunctionCode,
    ModbusRequest,
    ModbusResponse,
    RespondCallback,
)
from pyinode.models.report import AdvertisingReport

_logger = logging.getLogger(__name__)

DataListener = Callable[[bytes | str], None]
UnknownDeviceHook = Callable[[AdvertisingReport], None]


class Connection(Protocol):
    """A byte-stream source, e.g. a TCP socket or serial port wrapper."""

    def subscribe(self, on_data: DataListener) -> Callable[[], None]:
        """Start delivering chunks to *on_data*; return a callable that stops it."""
        ...


class PacketDecoder(Protocol):
    def decode(self, data: bytes) -> HciPacket: ...


@dataclass(slots=True)
class _ConnectionState:
    reassembler: H4Reassembler
    unsubscribe: Callable[[], None] | None = None
    active: bool = True
    # trailing hex digit of a byte split across chunks
    pending_hex: str = ""


class Gateway:
    """Expose registered iNode devices as MODBUS slaves.

    Usage::

        gateway = Gateway(GatewayConfig(device_timeout=30.0))
        gateway.add_device(Device("00:12:6F:00:00:01", unit=1))
        gateway.add_connection(connection)
        slave.on_request(gateway.handle_modbus_request)
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        decoder: PacketDecoder | None = None,
        on_unknown_device: UnknownDeviceHook | None = None,
    ) -> None:
        self._config = config or GatewayConfig()
        self._decoder: PacketDecoder = decoder or HciDecoder()
        self._on_unknown_device = on_unknown_device
        self._connections: dict[Any, _ConnectionState] = {}
        self._unit_to_device: dict[int, Device] = {}
        self._mac_to_device: dict[str, Device] = {}

        for unit, mac in self._config.devices.items():
            self.add_device(Device(mac, unit))

    def __enter__(self) -> Gateway:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._unit_to_device)

    def __contains__(self, device: object) -> bool:
        return isinstance(device, Device) and self._unit_to_device.get(device.unit) is device

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def devices(self) -> list[Device]:
        return list(self._unit_to_device.values())

    @property
    def connections(self) -> list[Any]:
        return list(self._connections)

    def close(self) -> None:
        """Detach from every connection and forget every device.

        Connections themselves are left open.
        """
        for connection in list(self._connections):
            self.remove_connection(connection)
        self._unit_to_device.clear()
        self._mac_to_device.clear()

    # ------------------------------------------------------------------
    # Device registry
    # ------------------------------------------------------------------

    def add_device(self, device: Device) -> None:
        """Register *device* under its unit and MAC address.

        Raises
        ------
        DuplicateDeviceError
            If a different device with the same unit or MAC address was
            already registered.  Nothing is registered in that case.
        """
        if device in self:
            return

        if device.unit in self._unit_to_device:
            raise DuplicateDeviceError(
                f"Device with unit [{device.unit}] was already registered!",
                unit=device.unit,
            )

        if device.mac in self._mac_to_device:
            raise DuplicateDeviceError(
                f"Device with MAC address [{device.mac}] was already registered!",
                mac=device.mac,
            )

        self._unit_to_device[device.unit] = device
        self._mac_to_device[device.mac] = device
        _logger.debug("Registered device unit=%d mac=%s", device.unit, device.mac)

    def remove_device(self, device: Device) -> None:
        if device not in self:
            return

        del self._unit_to_device[device.unit]
        del self._mac_to_device[device.mac]
        _logger.debug("Removed device unit=%d mac=%s", device.unit, device.mac)

    def get_device(self, unit: int) -> Device | None:
        return self._unit_to_device.get(unit)

    def get_device_by_mac(self, mac: str) -> Device | None:
        return self._mac_to_device.get(prepare_mac_address(mac))

    # ------------------------------------------------------------------
    # MODBUS
    # ------------------------------------------------------------------

    def route(self, unit: int, request: ModbusRequest, respond: RespondCallback) -> None:
        """Answer a MODBUS *request* addressed to *unit* through *respond*."""
        respond(self.respond_to(unit, request))

    handle_modbus_request = route

    def respond_to(self, unit: int, request: ModbusRequest) -> ModbusResponse:
        device = self._unit_to_device.get(unit)

        if device is None:
            return ExceptionCode.ILLEGAL_DATA_ADDRESS

        if request.function_code != FunctionCode.READ_HOLDING_REGISTERS:
            return ExceptionCode.ILLEGAL_FUNCTION_CODE

        if not device.is_available(self._config.device_timeout):
            return ExceptionCode.GATEWAY_TARGET_DEVICE_FAILED_TO_RESPOND

        return device.respond_to(request)

    # ------------------------------------------------------------------
    # Advertising reports
    # ------------------------------------------------------------------

    def on_advertising_report(self, report: AdvertisingReport) -> None:
        device = self._mac_to_device.get(report.address)

        if device is not None:
            device.apply(report)
            return

        if self._on_unknown_device is None:
            return

        try:
            self._on_unknown_device(report)
        except Exception:
            _logger.debug("on_unknown_device callback failed mac=%s", report.address, exc_info=True)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def add_connection(self, connection: Connection) -> None:
        if connection in self._connections:
            return

        state = _ConnectionState(reassembler=H4Reassembler(self._config.max_buffer_size))
        self._connections[connection] = state

        try:
            state.unsubscribe = connection.subscribe(functools.partial(self._on_connection_data, connection))
        except Exception:
            del self._connections[connection]
            raise

    def remove_connection(self, connection: Connection) -> None:
        state = self._connections.pop(connection, None)

        if state is None:
            return

        state.active = False
        state.reassembler.clear()
        if state.unsubscribe is not None:
            state.unsubscribe()

    def _on_connection_data(self, connection: Connection, data: bytes | str) -> None:
        state = self._connections.get(connection)

        if state is None or not state.active:
            return

        chunk = self._decode_chunk(state, data)
        if chunk is None:
            return

        if self._config.reassemble:
            packets = state.reassembler.feed(chunk)
        else:
            packets = [state.reassembler.drain(chunk)]

        for packet in packets:
            if not state.active:
                break
            self._handle_packet(packet)

    def _decode_chunk(self, state: _ConnectionState, data: bytes | str) -> bytes | None:
        if not self._config.hex_encoded:
            return data.encode("latin-1") if isinstance(data, str) else bytes(data)

        try:
            text = data if isinstance(data, str) else bytes(data).decode("ascii")
            text = state.pending_hex + "".join(text.split())
            cut = len(text)
            if self._config.reassemble:
                cut -= len(text) % 2
            state.pending_hex = text[cut:]
            return bytes.fromhex(text[:cut])
        except (UnicodeDecodeError, ValueError):
            _logger.warning("Dropping chunk that is not valid hex text: %r", data[:64])
            state.pending_hex = ""
            state.reassembler.clear()
            return None

    def _handle_packet(self, data: bytes) -> None:
        try:
            packet = self._decoder.decode(data)
        except HciDecodeError:
            _logger.debug("Failed to decode HCI packet %s", data.hex(), exc_info=True)
            return

        if (
            packet.type == PacketType.EVENT
            and packet.event_code == EventCode.LE_META
            and isinstance(packet.parameters, AdvertisingReportEvent)
        ):
            for report in packet.parameters.reports:
                self.on_advertising_report(report)
