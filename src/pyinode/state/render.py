"""Render device state into a register buffer."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

from pyinode.ingestion.normalize import mac_to_bytes
from pyinode.models.manufacturer import DeviceModel
from pyinode.state.layout import MAC_OFFSET, MAC_SIZE, MODEL_OFFSET, RegisterLayout, u16


def allocate(layout: RegisterLayout, mac: str, model: DeviceModel) -> bytearray:
    """Allocate a zeroed buffer for *layout* with its identity registers set.

    The MAC address and model code are only ever written here.
    """
    buffer = bytearray(layout.size)
    buffer[MAC_OFFSET : MAC_OFFSET + MAC_SIZE] = mac_to_bytes(mac)
    buffer[MODEL_OFFSET : MODEL_OFFSET + 2] = u16(int(model))
    return buffer


def render(
    buffer: bytearray,
    layout: RegisterLayout,
    state: Mapping[str, Any],
    changed: Collection[str] | None = None,
) -> int:
    """Write the fields of *layout* whose sources are in *changed*.

    ``changed=None`` rewrites every field.  Returns the number of fields
    written.
    """
    written = 0
    for field in layout.fields:
        if changed is not None and field.sources.isdisjoint(changed):
            continue
        encoded = field.encode(state)
        if len(encoded) != field.size:
            raise ValueError(f"{field.name} encoded to {len(encoded)} bytes, expected {field.size}")
        buffer[field.offset : field.offset + field.size] = encoded
        written += 1
    return written
