"""Normalization helpers.

Centralizes MAC address canonicalization and lenient numeric parsing.
"""

from __future__ import annotations

import math
import re
from typing import Any

from pyinode.exceptions import InvalidMacAddressError

_MAC_GROUP_RE = re.compile(r"([A-F0-9]{1,2})(?:-|:)?")
_MAC_ALLOWED_RE = re.compile(r"[A-F0-9:\-]+")


def prepare_mac_address(mac: str) -> str:
    """Return *mac* as six uppercase, zero-padded groups joined by colons.

    Accepts six groups of one or two hexadecimal digits, optionally
    separated by ``:`` or ``-`` (``"0:1a-2B:3c:4d:5e"``, ``"001A2B3C4D5E"``).

    Raises :class:`InvalidMacAddressError` for anything else.
    """
    if not isinstance(mac, str):
        raise InvalidMacAddressError(str(mac))

    text = mac.strip().upper()
    if not text or not _MAC_ALLOWED_RE.fullmatch(text):
        raise InvalidMacAddressError(mac)

    groups = _MAC_GROUP_RE.findall(text)
    if len(groups) != 6:
        raise InvalidMacAddressError(mac)

    return ":".join(group.zfill(2) for group in groups)


def mac_to_bytes(mac: str) -> bytes:
    """Convert a canonical MAC string to its six raw bytes (display order)."""
    return bytes(int(group, 16) for group in mac.split(":"))


def mac_from_le_bytes(data: bytes) -> str:
    """Format a little-endian HCI ``BD_ADDR`` as a canonical MAC string."""
    if len(data) != 6:
        raise ValueError(f"BD_ADDR must be 6 bytes, got {len(data)}")
    return ":".join(f"{b:02X}" for b in reversed(data))


def is_number(value: Any) -> bool:
    """Return ``True`` for ints and floats, but not for bools."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize epoch timestamps to seconds.

    - Empty/missing -> None
    - Milliseconds (> 1e11) -> seconds
    """
    ts = safe_float(value)
    if ts is None or ts < 0:
        return None
    if ts > 1e11:
        ts /= 1000.0
    return ts
