"""Custom exception hierarchy for pyinode."""

from __future__ import annotations


class InodeError(Exception):
    """Base exception for all pyinode errors."""


class InodeConfigError(InodeError):
    """Invalid gateway or device configuration."""


class InvalidMacAddressError(InodeConfigError, ValueError):
    """MAC address is not six groups of one or two hexadecimal digits."""

    def __init__(self, mac: str) -> None:
        self.mac = mac
        super().__init__(f"Invalid MAC address: {mac}")


class InvalidUnitError(InodeConfigError, ValueError):
    """MODBUS unit is not an integer between 0 and 255."""

    def __init__(self, unit: object) -> None:
        self.unit = unit
        super().__init__(f"Invalid unit. Expected an integer between 0 and 255, but got: {unit}")


class DuplicateDeviceError(InodeConfigError):
    """A different device with the same unit or MAC address is already registered.

    Exactly one of ``unit`` / ``mac`` is set, depending on which index
    rejected the registration.
    """

    def __init__(
        self,
        message: str,
        *,
        unit: int | None = None,
        mac: str | None = None,
    ) -> None:
        self.unit = unit
        self.mac = mac
        super().__init__(message)


class HciDecodeError(InodeError):
    """An HCI packet or EIR structure could not be decoded."""
