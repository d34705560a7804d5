"""Packet builder and parser for the RCON wire format.

Frame layout::

    +---------+---------+---------+------------------+------------+
    |  Size   |   Id    |  Kind   |       Body       | Terminator |
    | 4 bytes | 4 bytes | 4 bytes |  variable length |  2 bytes   |
    +---------+---------+---------+------------------+------------+

- Size: little-endian int32 count of the bytes that follow it
  (id + kind + body + terminator)
- Id: little-endian int32 correlation token, echoed by the server
- Kind: little-endian int32 packet type (see ``PacketKind``)
- Terminator: two zero bytes, not part of the logical body
"""

from __future__ import annotations

import asyncio
import struct
from dataclasses import dataclass
from enum import IntEnum

from .errors import FramingError

HEADER = struct.Struct("<iii")
SIZE_FIELD = struct.Struct("<i")
HEADER_SIZE = HEADER.size  # 12
TERMINATOR = b"\x00\x00"
# id(4) + kind(4) + terminator(2)
FIXED_SIZE = 10
MIN_DECLARED_SIZE = FIXED_SIZE
MAX_BODY_SIZE = 4096
DEFAULT_MAX_PACKET_SIZE = MAX_BODY_SIZE + FIXED_SIZE


class PacketKind(IntEnum):
    """Packet type values.

    ``AUTH_RESPONSE`` and ``EXEC_COMMAND`` share the value 2, so a received
    kind alone never says which one was meant; the caller knows from the
    direction of the exchange.
    """

    AUTH = 3
    AUTH_RESPONSE = 2
    EXEC_COMMAND = 2
    RESPONSE_VALUE = 0


@dataclass(frozen=True)
class Packet:
    """A decoded protocol packet."""

    packet_id: int
    kind: int
    body: bytes = b""

    @property
    def size(self) -> int:
        return FIXED_SIZE + len(self.body)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return (
            f"Packet(id={self.packet_id}, kind={self.kind}, "
            f"body={self.body!r})"
        )


def encode_packet(packet_id: int, kind: int, body: bytes | str = b"") -> bytes:
    """Build the wire bytes for a single packet.

    Args:
        packet_id: Correlation id, must fit an int32.
        kind: Packet type value.
        body: Packet body; ``str`` bodies are UTF-8 encoded.

    Returns:
        ``size || id || kind || body || 0x00 0x00``.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    size = FIXED_SIZE + len(body)
    try:
        header = HEADER.pack(size, packet_id, int(kind))
    except struct.error as e:
        raise ValueError(f"Packet field out of int32 range: {e}") from e
    return header + body + TERMINATOR


def decode_packet(data: bytes) -> Packet:
    """Parse exactly one packet's worth of bytes.

    The declared size must equal the number of bytes after the size field
    and the frame must end with the terminator pair. The one exception is
    a bare 12-byte header declaring an empty body, which decodes as such.

    Raises:
        FramingError: If fewer than 12 bytes are supplied or the declared
            size disagrees with the buffer, or the terminator is missing.
    """
    if len(data) < HEADER_SIZE:
        raise FramingError(
            f"Packet needs at least {HEADER_SIZE} bytes, got {len(data)}"
        )

    size, packet_id, kind = HEADER.unpack_from(data)
    if size < MIN_DECLARED_SIZE:
        raise FramingError(f"Declared size {size} is below the minimum")

    if len(data) == HEADER_SIZE and size == FIXED_SIZE:
        return Packet(packet_id=packet_id, kind=kind, body=b"")

    trailing = len(data) - SIZE_FIELD.size
    if trailing != size:
        raise FramingError(
            f"Declared size {size} but {trailing} bytes follow the size field"
        )
    if data[-len(TERMINATOR):] != TERMINATOR:
        raise FramingError("Packet does not end with the terminator pair")

    body = data[HEADER_SIZE:-len(TERMINATOR)]
    return Packet(packet_id=packet_id, kind=kind, body=bytes(body))


async def read_packet(
    reader: asyncio.StreamReader,
    max_size: int = DEFAULT_MAX_PACKET_SIZE,
) -> bytes:
    """Read one complete frame off a stream.

    Reads the size field, then keeps reading until exactly that many bytes
    have arrived, so a frame split across several TCP segments is
    reassembled. Frames the server splits into several packets are not
    joined.

    Returns:
        The raw frame, size field included, ready for ``decode_packet``.

    Raises:
        FramingError: If the declared size is out of bounds.
        asyncio.IncompleteReadError: If the peer closes mid-frame.
    """
    raw_size = await reader.readexactly(SIZE_FIELD.size)
    (size,) = SIZE_FIELD.unpack(raw_size)
    if not MIN_DECLARED_SIZE <= size <= max_size:
        raise FramingError(
            f"Declared size {size} outside {MIN_DECLARED_SIZE}..{max_size}"
        )
    return raw_size + await reader.readexactly(size)
