"""
Trilogy Save Editor - Checksum
================================
CRC-32 (zlib polynomial) over a byte range of a save file.

The chunked formats store the CRC of every preceding byte in the last
4 bytes of the file. On save the value is always recomputed from the
bytes actually written.
"""

import struct
import zlib

from .config import CHECKSUM_SIZE
from .errors import UnexpectedEof


def crc32(data: bytes, start: int = 0, end: int | None = None) -> int:
    """CRC-32 of data[start:end] as an unsigned 32-bit value."""
    return zlib.crc32(memoryview(data)[start:end]) & 0xFFFFFFFF


def verify_trailing(data: bytes) -> tuple[int, int]:
    """Return (stored, computed) for a file ending in a uint32 CRC.

    Raises UnexpectedEof if the buffer is too short to hold the field.
    """
    if len(data) < CHECKSUM_SIZE:
        raise UnexpectedEof('Buffer too short for a trailing checksum', 0)
    body_end = len(data) - CHECKSUM_SIZE
    stored = struct.unpack_from('<I', data, body_end)[0]
    return stored, crc32(data, 0, body_end)


def append_checksum(body: bytes) -> bytes:
    """Return `body` followed by its CRC-32."""
    return body + struct.pack('<I', crc32(body))
