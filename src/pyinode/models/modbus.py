"""MODBUS request/response surface consumed from the slave transport."""

from __future__ import annotations

import enum
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from pyinode._constants import REGISTER_SIZE


class FunctionCode(enum.IntEnum):
    READ_COILS = 0x01
    READ_DISCRETE_INPUTS = 0x02
    READ_HOLDING_REGISTERS = 0x03
    READ_INPUT_REGISTERS = 0x04
    WRITE_SINGLE_COIL = 0x05
    WRITE_SINGLE_REGISTER = 0x06
    WRITE_MULTIPLE_COILS = 0x0F
    WRITE_MULTIPLE_REGISTERS = 0x10


class ExceptionCode(enum.IntEnum):
    ILLEGAL_FUNCTION_CODE = 0x01
    ILLEGAL_DATA_ADDRESS = 0x02
    ILLEGAL_DATA_VALUE = 0x03
    SLAVE_DEVICE_FAILURE = 0x04
    GATEWAY_PATH_UNAVAILABLE = 0x0A
    GATEWAY_TARGET_DEVICE_FAILED_TO_RESPOND = 0x0B


class ModbusRequest(BaseModel):
    """A decoded MODBUS request addressed to one unit.

    ``starting_index`` and ``ending_index`` are register indices;
    ``ending_index`` is exclusive.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    function_code: int = Field(alias="functionCode")
    starting_index: int = Field(default=0, alias="startingIndex")
    ending_index: int = Field(default=0, alias="endingIndex")

    @classmethod
    def read_holding_registers(cls, address: int, quantity: int) -> ModbusRequest:
        """Build a ReadHoldingRegisters request from its PDU fields."""
        return cls(
            function_code=FunctionCode.READ_HOLDING_REGISTERS,
            starting_index=address,
            ending_index=address + quantity,
        )

    @property
    def quantity(self) -> int:
        return self.ending_index - self.starting_index


class ReadHoldingRegistersResponse(BaseModel):
    """Successful response carrying the raw big-endian register bytes."""

    model_config = ConfigDict(frozen=True)

    data: bytes

    @property
    def registers(self) -> list[int]:
        """The response data as unsigned 16-bit register values."""
        return [
            int.from_bytes(self.data[i : i + REGISTER_SIZE], "big")
            for i in range(0, len(self.data) - REGISTER_SIZE + 1, REGISTER_SIZE)
        ]


ModbusResponse = ExceptionCode | ReadHoldingRegistersResponse

RespondCallback = Callable[[ModbusResponse], None]
