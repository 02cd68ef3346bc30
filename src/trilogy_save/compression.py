"""
Trilogy Save Editor - Chunked Compression
===========================================
Splits/joins a logical byte stream into independently zlib-compressed
chunks, as stored by the me1 LE, me2 and me3 save formats.

Block layout:
    uint32  Signature       (0x9E2A83C1, the Unreal package tag)
    uint32  MaxChunkSize    (largest uncompressed chunk)
    uint32  ChunkCount
    [ChunkCount x (uint32 CompressedSize + uint32 UncompressedSize)]
    [ChunkCount x zlib stream, in table order]

Only the inflated bytes have to match the original file; chunk
boundaries chosen on save may differ from the ones read on load.
"""

import logging
import zlib

from .config import COMPRESSION_LEVEL, DEFAULT_CHUNK_SIZE, PACKAGE_TAG
from .cursor import ByteCursor
from .errors import CompressionError, SizeMismatch

logger = logging.getLogger(__name__)


class ChunkInfo:
    """One chunk table entry."""

    __slots__ = ('compressed_size', 'uncompressed_size')

    def __init__(self, compressed_size: int, uncompressed_size: int):
        self.compressed_size = compressed_size
        self.uncompressed_size = uncompressed_size

    def __eq__(self, other):
        if not isinstance(other, ChunkInfo):
            return NotImplemented
        return (self.compressed_size, self.uncompressed_size) == \
            (other.compressed_size, other.uncompressed_size)

    def __repr__(self):
        return (f'ChunkInfo(compressed={self.compressed_size}, '
                f'uncompressed={self.uncompressed_size})')


def _inflate(blob: bytes, offset: int) -> bytes:
    d = zlib.decompressobj()
    try:
        data = d.decompress(blob)
        data += d.flush()
    except zlib.error as e:
        raise CompressionError(f'zlib: {e}', offset) from e
    if not d.eof:
        raise CompressionError('Chunk ends before its zlib stream does', offset)
    if d.unused_data:
        raise CompressionError(
            f'{len(d.unused_data)} bytes of trailing data inside chunk', offset
        )
    return data


def decompress_chunks(cursor: ByteCursor) -> tuple[bytes, list[ChunkInfo]]:
    """Read a chunk block at the cursor and return (logical bytes, chunk table).

    The cursor is left just past the last chunk.
    """
    block_offset = cursor.tell()
    signature = cursor.read_u32()
    if signature != PACKAGE_TAG:
        raise CompressionError(
            f'Bad chunk block signature 0x{signature:08X}, expected 0x{PACKAGE_TAG:08X}',
            block_offset,
        )
    max_chunk_size = cursor.read_u32()
    count = cursor.read_u32()
    if count * 8 > cursor.remaining():
        raise SizeMismatch(
            f'Chunk table declares {count} chunks, only {cursor.remaining()} bytes left',
            block_offset,
        )

    table = []
    for _ in range(count):
        entry_offset = cursor.tell()
        info = ChunkInfo(cursor.read_u32(), cursor.read_u32())
        if info.uncompressed_size > max_chunk_size:
            raise SizeMismatch(
                f'Chunk of {info.uncompressed_size} bytes exceeds maximum {max_chunk_size}',
                entry_offset,
            )
        table.append(info)

    parts = []
    for i, info in enumerate(table):
        chunk_offset = cursor.tell()
        data = _inflate(cursor.read_bytes(info.compressed_size), chunk_offset)
        if len(data) != info.uncompressed_size:
            raise SizeMismatch(
                f'Chunk {i} inflated to {len(data)} bytes, table declares '
                f'{info.uncompressed_size}', chunk_offset,
            )
        parts.append(data)

    logical = b''.join(parts)
    logger.debug(f'Inflated {count} chunk(s) into {len(logical):,} bytes')
    return logical, table


def compress_chunks(data: bytes, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """Deflate `data` into a chunk block with chunks of at most `max_chunk_size`."""
    if max_chunk_size <= 0:
        raise ValueError('max_chunk_size must be positive')

    blobs = []
    table = []
    for start in range(0, len(data), max_chunk_size):
        piece = data[start:start + max_chunk_size]
        blob = zlib.compress(piece, COMPRESSION_LEVEL)
        blobs.append(blob)
        table.append(ChunkInfo(len(blob), len(piece)))

    out = ByteCursor()
    out.write_u32(PACKAGE_TAG)
    out.write_u32(max_chunk_size)
    out.write_u32(len(table))
    for info in table:
        out.write_u32(info.compressed_size)
        out.write_u32(info.uncompressed_size)
    for blob in blobs:
        out.write_bytes(blob)
    return out.getvalue()
