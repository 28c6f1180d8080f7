from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pyinode._constants import DEFAULT_DEVICE_TIMEOUT, UNDEFINED
from pyinode.exceptions import InodeConfigError, InvalidMacAddressError
from pyinode.ingestion.normalize import (
    is_number,
    mac_from_le_bytes,
    mac_to_bytes,
    normalize_timestamp_seconds,
    prepare_mac_address,
    safe_float,
)
from pyinode.models._base import parse_inode_timestamp


def test_default_device_timeout_is_twenty_seconds() -> None:
    assert DEFAULT_DEVICE_TIMEOUT == 20.0


def test_undefined_register_value() -> None:
    assert UNDEFINED == 0x00FF


@pytest.mark.parametrize(
    ("mac", "expected"),
    [
        ("00:12:6f:aa:bb:01", "00:12:6F:AA:BB:01"),
        ("00-12-6F-AA-BB-01", "00:12:6F:AA:BB:01"),
        ("00126FAABB01", "00:12:6F:AA:BB:01"),
        ("0:1a-2B:3c:4d:5e", "00:1A:2B:3C:4D:5E"),
        ("  00:12:6F:AA:BB:01 ", "00:12:6F:AA:BB:01"),
    ],
)
def test_prepare_mac_address(mac: str, expected: str) -> None:
    assert prepare_mac_address(mac) == expected


@pytest.mark.parametrize("mac", ["", "00:12:6F:AA:BB", "00:12:6F:AA:BB:01:02", "00:12:6F:AA:BB:ZZ", 12])
def test_prepare_mac_address_rejects(mac: object) -> None:
    with pytest.raises(InvalidMacAddressError) as excinfo:
        prepare_mac_address(mac)  # type: ignore[arg-type]
    assert isinstance(excinfo.value, InodeConfigError)
    assert isinstance(excinfo.value, ValueError)


def test_mac_bytes() -> None:
    assert mac_to_bytes("00:12:6F:AA:BB:01") == bytes.fromhex("00126FAABB01")
    assert mac_from_le_bytes(bytes.fromhex("01BBAA6F1200")) == "00:12:6F:AA:BB:01"


def test_mac_from_le_bytes_wrong_length() -> None:
    with pytest.raises(ValueError):
        mac_from_le_bytes(b"\x01\x02")


def test_is_number_excludes_bool() -> None:
    assert is_number(1)
    assert is_number(-2.5)
    assert not is_number(True)
    assert not is_number("1")
    assert not is_number(None)


def test_safe_float() -> None:
    assert safe_float("3.5") == 3.5
    assert safe_float("") is None
    assert safe_float("nan") is None
    assert safe_float(object()) is None


def test_timestamp_seconds_and_milliseconds() -> None:
    assert normalize_timestamp_seconds(1_700_000_000) == 1_700_000_000
    assert normalize_timestamp_seconds(1_700_000_000_500) == pytest.approx(1_700_000_000.5)
    assert normalize_timestamp_seconds(-1) is None
    assert normalize_timestamp_seconds(None) is None


def test_parse_inode_timestamp() -> None:
    assert parse_inode_timestamp(1_700_000_000) == datetime.fromtimestamp(1_700_000_000, tz=UTC)
    assert parse_inode_timestamp(None) is None
    assert parse_inode_timestamp("") is None
