"""
Trilogy Save Editor - Codec
=============================
Decode save files of the trilogy (me1, me1 LE, me2, me3) into an
editable document and encode them back.

    doc = trilogy_save.load(data)
    doc.set('Player/Credits', 250000)
    data = trilogy_save.save(doc)
"""

from .config import DEFAULT_MAX_DEPTH, ME1LE_MAGIC, ME2_MAGIC, ME3_MAGIC, PACKAGE_TAG
from .document import SaveDocument, Title
from .errors import (
    ChecksumMismatch, CodecError, CompressionError, EncodingError, IndexOutOfRange,
    InvalidMagic, MaxDepthExceeded, PathError, SchemaError, SizeMismatch,
    UnexpectedEof, UnknownPropertyType, UnsupportedVersion,
)
from .formats import ADAPTERS, Me1Container, is_container
from .properties import (
    ArrayProperty, BoolProperty, ByteProperty, EnumProperty, Field, FloatProperty,
    IntProperty, NameProperty, NativeStructProperty, ObjectProperty, Property,
    StringRefProperty, StrProperty, StructProperty, UIntProperty,
)

__version__ = '0.1.0'

_MAGIC_TITLES = {
    PACKAGE_TAG: Title.ME1,
    ME1LE_MAGIC: Title.ME1LE,
    ME2_MAGIC: Title.ME2,
    ME3_MAGIC: Title.ME3,
}


def detect_title(data: bytes) -> Title:
    """Identify the title from the file's leading magic.

    Shipped me1 saves start with opaque bytes instead of a magic; they are
    recognized by the zip archive their header points at.
    """
    if len(data) < 4:
        raise UnexpectedEof('File too short to hold a magic signature', 0)
    magic = int.from_bytes(data[:4], 'little')
    if magic in _MAGIC_TITLES:
        return _MAGIC_TITLES[magic]
    if is_container(data):
        return Title.ME1
    raise InvalidMagic(f'Unrecognized save magic 0x{magic:08X}', 0)


def load(data: bytes, title: Title | str | None = None, *, strict: bool = False,
         max_depth: int = DEFAULT_MAX_DEPTH) -> SaveDocument:
    """Decode a save file.

    Args:
        data: Complete file contents.
        title: Which game wrote the file; detected from the magic if omitted.
        strict: Raise ChecksumMismatch instead of recording a warning.
        max_depth: Nesting limit for the property decoder.
    """
    title = detect_title(data) if title is None else Title(title)
    adapter = ADAPTERS[title](strict=strict, max_depth=max_depth)
    return adapter.load(bytes(data))


def save(doc: SaveDocument, *, max_depth: int = DEFAULT_MAX_DEPTH) -> bytes:
    """Encode a document into the bytes of a save file."""
    adapter = ADAPTERS[doc.title](max_depth=max_depth)
    return adapter.save(doc)


def blank(title: Title | str, version: int | None = None, flags: int = 0) -> SaveDocument:
    """Create a document filled with default values.

    version defaults to the newest supported version of the title.
    """
    return ADAPTERS[Title(title)]().blank(version, flags)


__all__ = [
    'ArrayProperty', 'BoolProperty', 'ByteProperty', 'ChecksumMismatch', 'CodecError',
    'CompressionError', 'EncodingError', 'EnumProperty', 'Field', 'FloatProperty',
    'IndexOutOfRange', 'IntProperty', 'InvalidMagic', 'MaxDepthExceeded', 'Me1Container',
    'NameProperty', 'NativeStructProperty', 'ObjectProperty', 'PathError', 'Property',
    'SaveDocument', 'SchemaError', 'SizeMismatch', 'StrProperty', 'StringRefProperty',
    'StructProperty', 'Title', 'UIntProperty', 'UnexpectedEof', 'UnknownPropertyType',
    'UnsupportedVersion', 'blank', 'detect_title', 'load', 'save',
]
