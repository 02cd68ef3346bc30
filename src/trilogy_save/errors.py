"""
Trilogy Save Editor - Codec Errors
====================================
Every failure the codec reports is a CodecError subclass. All of them
abort the load/save in progress, except ChecksumMismatch during a
non-strict load, which is recorded on the document as a warning.
"""


class CodecError(ValueError):
    """Base class for all save codec failures.

    Args:
        message: Human readable description.
        offset: Byte offset in the buffer being decoded, if known.
    """

    def __init__(self, message: str, offset: int | None = None):
        self.offset = offset
        if offset is not None:
            message = f'{message} (at offset 0x{offset:08X})'
        super().__init__(message)


class UnexpectedEof(CodecError):
    """A read ran past the end of the buffer."""


class InvalidMagic(CodecError):
    """The file does not start with the signature the title expects."""


class UnsupportedVersion(CodecError):
    """The version field names a layout that has not been reverse-engineered."""


class IndexOutOfRange(CodecError):
    """A name or object index does not resolve to a table entry."""


class SizeMismatch(CodecError):
    """A declared length disagrees with the bytes actually consumed."""


class UnknownPropertyType(CodecError):
    """A property tag or array element kind the codec cannot decode."""


class MaxDepthExceeded(CodecError):
    """Struct/array nesting went past the configured depth limit."""


class CompressionError(CodecError):
    """A compressed chunk could not be inflated, or its framing is bad."""


class ChecksumMismatch(CodecError):
    """The stored checksum does not match the bytes it covers."""

    def __init__(self, stored: int, computed: int, offset: int | None = None):
        self.stored = stored
        self.computed = computed
        super().__init__(
            f'Checksum mismatch: stored 0x{stored:08X}, computed 0x{computed:08X}',
            offset,
        )


class EncodingError(CodecError):
    """A string or value cannot be represented in its on-disk field."""


class SchemaError(CodecError):
    """A document does not carry a field its title schema requires."""


class PathError(CodecError):
    """A document path does not lead to a property."""
