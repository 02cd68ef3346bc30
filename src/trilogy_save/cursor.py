"""
Trilogy Save Editor - Byte Cursor
===================================
Bounds-checked little-endian reader/writer over an in-memory buffer.

All three save formats are little-endian regardless of platform. Strings
are UE FStrings:

    int32   Length   (0 = empty, > 0 = single-byte chars, < 0 = UTF-16 units)
    bytes   Data     (including the NUL terminator)

Single-byte strings use a legacy code page (cp1252 by default), so they go
through an explicit encode/decode rather than being assumed UTF-8.
"""

import struct

from .config import LEGACY_ENCODING
from .errors import EncodingError, UnexpectedEof

_U8 = struct.Struct('<B')
_U16 = struct.Struct('<H')
_U32 = struct.Struct('<I')
_I32 = struct.Struct('<i')
_U64 = struct.Struct('<Q')
_F32 = struct.Struct('<f')


class ByteCursor:
    """Sequential reader/writer over a growable buffer.

    Reads past the end raise UnexpectedEof. Writes at the current position
    overwrite existing bytes and grow the buffer as needed.
    """

    def __init__(self, data: bytes = b'', encoding: str = LEGACY_ENCODING):
        self._buf = bytearray(data)
        self._pos = 0
        self.encoding = encoding

    def __len__(self) -> int:
        return len(self._buf)

    def __repr__(self):
        return f'ByteCursor(pos=0x{self._pos:X}, size=0x{len(self._buf):X})'

    # ------------------------------------------------------------------
    # Positioning
    # ------------------------------------------------------------------

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int) -> None:
        if offset < 0 or offset > len(self._buf):
            raise UnexpectedEof(
                f'Seek to 0x{offset:X} outside buffer of {len(self._buf)} bytes',
                self._pos,
            )
        self._pos = offset

    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._buf)

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_bytes(self, n: int) -> bytes:
        if n < 0 or self._pos + n > len(self._buf):
            raise UnexpectedEof(
                f'Wanted {n} bytes, {self.remaining()} left', self._pos
            )
        data = bytes(self._buf[self._pos:self._pos + n])
        self._pos += n
        return data

    def _read(self, fmt: struct.Struct):
        return fmt.unpack(self.read_bytes(fmt.size))[0]

    def read_u8(self) -> int:
        return self._read(_U8)

    def read_u16(self) -> int:
        return self._read(_U16)

    def read_u32(self) -> int:
        return self._read(_U32)

    def read_i32(self) -> int:
        return self._read(_I32)

    def read_u64(self) -> int:
        return self._read(_U64)

    def read_f32(self) -> float:
        return self._read(_F32)

    def read_fstring(self, encoding: str | None = None) -> str:
        """Read a UE FString (int32 length + data + NUL terminator).

        Positive lengths are single-byte strings in `encoding` (the cursor's
        legacy encoding by default); negative lengths are UTF-16LE.
        """
        start = self._pos
        length = self.read_i32()
        if length == 0:
            return ''
        if length > 0:
            raw = self.read_bytes(length)
            if raw[-1] != 0:
                raise EncodingError('FString is missing its NUL terminator', start)
            payload = raw[:-1]
            codec = encoding or self.encoding
        else:
            raw = self.read_bytes(-length * 2)
            if raw[-2:] != b'\x00\x00':
                raise EncodingError('FString is missing its NUL terminator', start)
            payload = raw[:-2]
            codec = 'utf-16-le'
        try:
            return payload.decode(codec)
        except UnicodeDecodeError as e:
            raise EncodingError(f'FString is not valid {codec}: {e.reason}', start) from e

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write_bytes(self, data: bytes) -> None:
        self._buf[self._pos:self._pos + len(data)] = data
        self._pos += len(data)

    def _write(self, fmt: struct.Struct, value) -> None:
        try:
            packed = fmt.pack(value)
        except (struct.error, OverflowError, TypeError) as e:
            raise EncodingError(f'Cannot pack {value!r} as {fmt.format}: {e}', self._pos) from e
        self.write_bytes(packed)

    def write_u8(self, value: int) -> None:
        self._write(_U8, value)

    def write_u16(self, value: int) -> None:
        self._write(_U16, value)

    def write_u32(self, value: int) -> None:
        self._write(_U32, value)

    def write_i32(self, value: int) -> None:
        self._write(_I32, value)

    def write_u64(self, value: int) -> None:
        self._write(_U64, value)

    def write_f32(self, value: float) -> None:
        self._write(_F32, value)

    def write_fstring(self, text: str, wide: bool = False,
                      encoding: str | None = None) -> None:
        """Write a UE FString.

        The legacy single-byte encoding is used unless `wide` is set or the
        text cannot be represented in it, in which case UTF-16LE is written.
        """
        if not text:
            self.write_i32(0)
            return
        if not wide:
            try:
                raw = text.encode(encoding or self.encoding) + b'\x00'
            except UnicodeEncodeError:
                raw = None
            if raw is not None:
                self.write_i32(len(raw))
                self.write_bytes(raw)
                return
        raw = text.encode('utf-16-le') + b'\x00\x00'
        self.write_i32(-(len(raw) // 2))
        self.write_bytes(raw)

    def patch_u32(self, offset: int, value: int) -> None:
        """Overwrite a uint32 at `offset` without moving the cursor."""
        if offset < 0 or offset + 4 > len(self._buf):
            raise UnexpectedEof(f'Cannot patch uint32 at 0x{offset:X}', offset)
        try:
            self._buf[offset:offset + 4] = _U32.pack(value)
        except struct.error as e:
            raise EncodingError(f'Cannot pack {value!r} as uint32: {e}', offset) from e
