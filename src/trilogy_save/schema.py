"""
Trilogy Save Editor - Schema Engine
=====================================
Decodes/encodes the fixed-plus-variable payloads of the me1 LE, me2 and
me3 saves from declarative schema tables.

A schema is a tuple of SchemaField(name, kind, present):

    kind     one of the scalar kinds below, ListOf(kind), a Record, or
             'properties' (an inline tagged property bag)
    present  optional predicate on the document header; fields whose
             predicate is false are absent from both the file and the tree

Scalar kinds and their on-disk form:

    i32, u32, f32   4 bytes
                    (u32 surfaces as UIntProperty, i32 as IntProperty)
    u8              1 byte, surfaced as ByteProperty
    bool32          uint32 0/1
    str             FString (written as UTF-16)
    vector          3 x float32
    rotator         3 x int32
    color           4 x float32 (LinearColor)
    bitfield        uint32 WordCount + WordCount x uint32, bits LSB first,
                    surfaced as an array of BoolProperty
    ListOf(kind)    uint32 Count + Count x kind
    OptionalOf(kind)
                    uint32 0/1 flag, then kind when the flag is 1;
                    surfaced as an array of zero or one item
    Opaque(n)       n bytes the codec does not interpret, kept verbatim
                    as an array of ByteProperty

The per-title differences live in the schema tables of the adapters;
this engine and the property codec are shared.
"""

import struct
from typing import Callable, NamedTuple

from .config import DEFAULT_MAX_DEPTH, NONE_NAME
from .cursor import ByteCursor
from .errors import EncodingError, MaxDepthExceeded, SchemaError, SizeMismatch
from .properties import (
    ArrayProperty, BoolProperty, ByteProperty, Field, FloatProperty, IntProperty,
    NativeStructProperty, Property, StrProperty, StructProperty, UIntProperty,
)
from .property_codec import PropertyCodec
from .tables import NameTable


class SchemaField(NamedTuple):
    name: str
    kind: object
    present: Callable[[dict], bool] | None = None


class ListOf:
    """Length-prefixed list of one kind."""

    def __init__(self, kind):
        self.kind = kind

    def __repr__(self):
        return f'ListOf({self.kind!r})'


class OptionalOf:
    """Value preceded by a bool32 presence flag."""

    def __init__(self, kind):
        self.kind = kind

    def __repr__(self):
        return f'OptionalOf({self.kind!r})'


class Opaque:
    """Fixed run of uninterpreted bytes."""

    def __init__(self, size: int):
        self.size = size

    def __repr__(self):
        return f'Opaque({self.size})'


class Record:
    """Named group of schema fields, surfaced as a StructProperty."""

    def __init__(self, type_name: str, fields):
        self.type_name = type_name
        self.fields = tuple(fields)

    def __repr__(self):
        return f'Record({self.type_name!r}, {len(self.fields)} fields)'


def since(version: int) -> Callable[[dict], bool]:
    """Presence condition: field exists from `version` onwards."""
    return lambda header: header['version'] >= version


def with_dlc(mask: int) -> Callable[[dict], bool]:
    """Presence condition: field exists when any bit of `mask` is set in the DLC flags."""
    return lambda header: bool(header['flags'] & mask)


# Element kind of the ArrayProperty produced for ListOf(<scalar kind>)
_ELEMENT_KINDS = {
    'i32': 'IntProperty',
    'u32': 'UIntProperty',
    'f32': 'FloatProperty',
    'u8': 'ByteProperty',
    'bool32': 'BoolProperty',
    'str': 'StrProperty',
    'vector': 'Vector',
    'rotator': 'Rotator',
    'color': 'LinearColor',
    'properties': 'StructProperty',
}

_NATIVE = {
    'vector': ('Vector', '<3f'),
    'rotator': ('Rotator', '<3i'),
    'color': ('LinearColor', '<4f'),
}


def element_kind(kind) -> str:
    if isinstance(kind, Record):
        return 'StructProperty'
    try:
        return _ELEMENT_KINDS[kind]
    except (KeyError, TypeError):
        raise SchemaError(f'Schema kind {kind!r} cannot be a list element') from None


class SchemaCodec:
    """Reads and writes one payload against a schema and a document header.

    Args:
        names: The document's NameTable; field names are interned into it.
        header: Decoded header fields; presence predicates are evaluated on it.
        max_depth: Deepest record/list/property nesting accepted.
    """

    def __init__(self, names: NameTable, header: dict,
                 max_depth: int = DEFAULT_MAX_DEPTH):
        self.names = names
        self.header = header
        self.max_depth = max_depth
        # Pinned first so the bag terminator has the same index in every pass
        names.intern(NONE_NAME)
        self.properties = PropertyCodec(
            names, None, inline_names=True, max_depth=max_depth, wide_strings=True
        )

    def _present(self, field: SchemaField) -> bool:
        return field.present is None or field.present(self.header)

    def _check_depth(self, depth: int, offset: int | None) -> None:
        if depth > self.max_depth:
            raise MaxDepthExceeded(f'Schema nesting deeper than {self.max_depth} levels', offset)

    # ========================================================================
    # DECODING
    # ========================================================================

    def read_record(self, cursor: ByteCursor, fields, type_name: str | None = None,
                    depth: int = 0) -> StructProperty:
        self._check_depth(depth, cursor.tell())
        struct_name = self.names.intern(type_name) if type_name else None
        out = []
        for field in fields:
            if not self._present(field):
                continue
            name = self.names.intern(field.name)
            out.append(Field(name, self.read_value(cursor, field.kind, depth + 1)))
        return StructProperty(struct_name, out)

    def read_value(self, cursor: ByteCursor, kind, depth: int) -> Property:
        offset = cursor.tell()
        if isinstance(kind, Record):
            return self.read_record(cursor, kind.fields, kind.type_name, depth)
        if isinstance(kind, ListOf):
            self._check_depth(depth, offset)
            count = cursor.read_u32()
            if count > cursor.remaining():
                raise SizeMismatch(
                    f'List declares {count} entries, {cursor.remaining()} bytes left', offset
                )
            items = [self.read_value(cursor, kind.kind, depth + 1) for _ in range(count)]
            return ArrayProperty(element_kind(kind.kind), items)
        if isinstance(kind, OptionalOf):
            self._check_depth(depth, offset)
            flag = cursor.read_u32()
            if flag not in (0, 1):
                raise EncodingError(f'Presence flag {flag} is neither 0 nor 1', offset)
            items = [self.read_value(cursor, kind.kind, depth + 1)] if flag else []
            return ArrayProperty(element_kind(kind.kind), items)
        if isinstance(kind, Opaque):
            raw = cursor.read_bytes(kind.size)
            return ArrayProperty('ByteProperty', [ByteProperty(b) for b in raw])
        if kind == 'i32':
            return IntProperty(cursor.read_i32())
        if kind == 'u32':
            return UIntProperty(cursor.read_u32())
        if kind == 'f32':
            return FloatProperty(cursor.read_f32())
        if kind == 'u8':
            return ByteProperty(cursor.read_u8())
        if kind == 'bool32':
            value = cursor.read_u32()
            if value not in (0, 1):
                raise EncodingError(f'Bool value {value} is neither 0 nor 1', offset)
            return BoolProperty(bool(value))
        if kind == 'str':
            return StrProperty(cursor.read_fstring())
        if kind in _NATIVE:
            layout, fmt = _NATIVE[kind]
            values = struct.unpack(fmt, cursor.read_bytes(struct.calcsize(fmt)))
            return NativeStructProperty(layout, tuple(values))
        if kind == 'bitfield':
            words = cursor.read_u32()
            if words * 4 > cursor.remaining():
                raise SizeMismatch(
                    f'Bitfield declares {words} words, {cursor.remaining()} bytes left', offset
                )
            bits = []
            for _ in range(words):
                word = cursor.read_u32()
                bits.extend(BoolProperty(bool(word >> bit & 1)) for bit in range(32))
            return ArrayProperty('BoolProperty', bits)
        if kind == 'properties':
            fields, terminated = self.properties.read_fields(cursor, depth)
            return StructProperty(None, fields, terminated)
        raise SchemaError(f'Unknown schema kind {kind!r}', offset)

    # ========================================================================
    # ENCODING
    # ========================================================================

    def write_record(self, cursor: ByteCursor, fields, value: StructProperty,
                     depth: int = 0, path: str = '') -> None:
        self._check_depth(depth, None)
        if not isinstance(value, StructProperty):
            raise SchemaError(f'{path or "<root>"} must be a struct, got {value!r}')
        for field in fields:
            if not self._present(field):
                continue
            index = self.names.index_of(field.name)
            child = value.get(index) if index is not None else None
            if child is None:
                raise SchemaError(f'{path}/{field.name} is required but missing')
            self.write_value(cursor, field.kind, child, depth + 1, f'{path}/{field.name}')

    def _expect(self, value, cls, path: str):
        if not isinstance(value, cls):
            raise SchemaError(f'{path} must be {cls.__name__}, got {type(value).__name__}')

    def write_value(self, cursor: ByteCursor, kind, value: Property, depth: int,
                    path: str) -> None:
        if isinstance(kind, Record):
            self.write_record(cursor, kind.fields, value, depth, path)
            return
        if isinstance(kind, ListOf):
            self._check_depth(depth, None)
            self._expect(value, ArrayProperty, path)
            cursor.write_u32(len(value.items))
            for i, item in enumerate(value.items):
                self.write_value(cursor, kind.kind, item, depth + 1, f'{path}/{i}')
            return
        if isinstance(kind, OptionalOf):
            self._check_depth(depth, None)
            self._expect(value, ArrayProperty, path)
            if len(value.items) > 1:
                raise SchemaError(f'{path} holds {len(value.items)} items, at most 1 allowed')
            cursor.write_u32(len(value.items))
            for item in value.items:
                self.write_value(cursor, kind.kind, item, depth + 1, f'{path}/0')
            return
        if isinstance(kind, Opaque):
            self._expect(value, ArrayProperty, path)
            if len(value.items) != kind.size:
                raise SchemaError(
                    f'{path} must hold exactly {kind.size} bytes, got {len(value.items)}'
                )
            for i, item in enumerate(value.items):
                self._expect(item, ByteProperty, f'{path}/{i}')
                cursor.write_u8(item.value)
            return
        if kind == 'i32':
            self._expect(value, IntProperty, path)
            cursor.write_i32(value.value)
        elif kind == 'u32':
            self._expect(value, UIntProperty, path)
            cursor.write_u32(value.value)
        elif kind == 'f32':
            self._expect(value, FloatProperty, path)
            cursor.write_f32(value.value)
        elif kind == 'u8':
            self._expect(value, ByteProperty, path)
            cursor.write_u8(value.value)
        elif kind == 'bool32':
            self._expect(value, BoolProperty, path)
            cursor.write_u32(1 if value.value else 0)
        elif kind == 'str':
            self._expect(value, StrProperty, path)
            cursor.write_fstring(value.value, wide=True)
        elif kind in _NATIVE:
            layout, fmt = _NATIVE[kind]
            self._expect(value, NativeStructProperty, path)
            if value.layout != layout:
                raise SchemaError(f'{path} must be a {layout}, got {value.layout}')
            try:
                cursor.write_bytes(struct.pack(fmt, *value.values))
            except struct.error as e:
                raise EncodingError(f'Cannot pack {path} {value.values!r}: {e}') from e
        elif kind == 'bitfield':
            self._expect(value, ArrayProperty, path)
            bits = value.items
            words = (len(bits) + 31) // 32
            cursor.write_u32(words)
            for w in range(words):
                word = 0
                for bit, item in enumerate(bits[w * 32:(w + 1) * 32]):
                    self._expect(item, BoolProperty, f'{path}/{w * 32 + bit}')
                    if item.value:
                        word |= 1 << bit
                cursor.write_u32(word)
        elif kind == 'properties':
            self._expect(value, StructProperty, path)
            self.properties.write_fields(cursor, value.fields, depth, value.terminated)
        else:
            raise SchemaError(f'Unknown schema kind {kind!r}')

    # ========================================================================
    # DEFAULTS
    # ========================================================================

    def default_record(self, fields, type_name: str | None = None) -> StructProperty:
        """Build a record holding the default value of every present field.

        Names are interned in the same order read_record interns them, so a
        blank document and its decoded copy share name indices.
        """
        struct_name = self.names.intern(type_name) if type_name else None
        out = []
        for field in fields:
            if self._present(field):
                name = self.names.intern(field.name)
                out.append(Field(name, self.default_value(field.kind)))
        return StructProperty(struct_name, out)

    def default_value(self, kind) -> Property:
        if isinstance(kind, Record):
            return self.default_record(kind.fields, kind.type_name)
        if isinstance(kind, (ListOf, OptionalOf)):
            return ArrayProperty(element_kind(kind.kind), [])
        if isinstance(kind, Opaque):
            return ArrayProperty('ByteProperty', [ByteProperty(0) for _ in range(kind.size)])
        if kind == 'i32':
            return IntProperty(0)
        if kind == 'u32':
            return UIntProperty(0)
        if kind == 'f32':
            return FloatProperty(0.0)
        if kind == 'u8':
            return ByteProperty(0)
        if kind == 'bool32':
            return BoolProperty(False)
        if kind == 'str':
            return StrProperty('')
        if kind == 'vector':
            return NativeStructProperty('Vector', (0.0, 0.0, 0.0))
        if kind == 'rotator':
            return NativeStructProperty('Rotator', (0, 0, 0))
        if kind == 'color':
            return NativeStructProperty('LinearColor', (0.0, 0.0, 0.0, 0.0))
        if kind == 'bitfield':
            return ArrayProperty('BoolProperty', [])
        if kind == 'properties':
            return StructProperty(None, [])
        raise SchemaError(f'Unknown schema kind {kind!r}')
