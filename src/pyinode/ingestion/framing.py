"""H4 (UART transport) packet reassembly.

Connections deliver arbitrary byte chunks: an HCI packet may be split
across several chunks, or several packets may arrive in one.  Every H4
packet starts with a packet-type byte followed by a type-specific header
that carries the parameter length, so complete packets can be cut out of
the stream without decoding them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pyinode._constants import DEFAULT_MAX_BUFFER_SIZE

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _HeaderSpec:
    size: int
    length_offset: int
    length_size: int
    length_mask: int = 0xFFFF


# Keyed by H4 packet-type byte.
_HEADERS: dict[int, _HeaderSpec] = {
    0x01: _HeaderSpec(size=4, length_offset=3, length_size=1),  # command
    0x02: _HeaderSpec(size=5, length_offset=3, length_size=2),  # ACL data
    0x03: _HeaderSpec(size=4, length_offset=3, length_size=1),  # synchronous data
    0x04: _HeaderSpec(size=3, length_offset=2, length_size=1),  # event
    0x05: _HeaderSpec(size=5, length_offset=3, length_size=2, length_mask=0x3FFF),  # ISO data
}


def packet_length(data: bytes | bytearray) -> int | None:
    """Return the total length of the packet at the start of *data*.

    ``None`` means the header is not complete yet.  Raises
    :class:`ValueError` for an unknown packet-type byte.
    """
    if not data:
        return None
    header = _HEADERS.get(data[0])
    if header is None:
        raise ValueError(f"Unknown H4 packet type 0x{data[0]:02X}")
    if len(data) < header.size:
        return None
    start = header.length_offset
    length = int.from_bytes(data[start : start + header.length_size], "little") & header.length_mask
    return header.size + length


class H4Reassembler:
    """Per-connection reassembly buffer."""

    def __init__(self, max_size: int = DEFAULT_MAX_BUFFER_SIZE) -> None:
        self._buffer = bytearray()
        self._max_size = max_size

    def __len__(self) -> int:
        return len(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()

    def feed(self, chunk: bytes) -> list[bytes]:
        """Append *chunk* and return every packet completed by it, in order."""
        self._buffer.extend(chunk)
        packets: list[bytes] = []

        while self._buffer:
            try:
                total = packet_length(self._buffer)
            except ValueError:
                _logger.warning(
                    "Dropping %d buffered bytes: unknown H4 packet type 0x%02X",
                    len(self._buffer),
                    self._buffer[0],
                )
                self._buffer.clear()
                break
            if total is None or len(self._buffer) < total:
                break
            packets.append(bytes(self._buffer[:total]))
            del self._buffer[:total]

        if len(self._buffer) > self._max_size:
            _logger.warning(
                "Dropping %d buffered bytes: exceeds max buffer size %d",
                len(self._buffer),
                self._max_size,
            )
            self._buffer.clear()

        return packets

    def drain(self, chunk: bytes) -> bytes:
        """Append *chunk* and return the whole buffer, leaving it empty.

        Used when every chunk is known to carry exactly one packet.
        """
        self._buffer.extend(chunk)
        data = bytes(self._buffer)
        self._buffer.clear()
        return data
