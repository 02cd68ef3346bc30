"""
Trilogy Save Editor - Property Decoder/Encoder
================================================
Recursive-descent codec for Unreal-style tagged property lists.

Tag layout (indexed names, me1 packages):

    uint32  NameIndex      uint32  NameNumber     ("None" ends the list)
    uint32  TypeIndex      uint32  0
    uint32  Size           uint32  ArrayIndex
    [StructProperty: uint32 StructNameIndex, uint32 0]
    [BoolProperty:   uint32 Value (not counted by Size)]
    Payload (Size bytes)

Tag layout (inline names, property bags embedded in me2/me3 payloads):

    FString Name           ("None" ends the list)
    FString Type
    uint32  Size           uint32  ArrayIndex
    [StructProperty: FString StructName]
    [ArrayProperty:  FString ElementKind]
    [BoolProperty:   uint8 Value (not counted by Size)]
    Payload (Size bytes)

Indexed arrays do not record their element kind; it comes from the
adapter's array_kinds table (property name -> kind), defaulting to
lists of tagged structs.

Every declared Size is checked against the bytes its payload actually
consumed; encoding back-patches sizes from the real serialized length.
"""

import struct

from .config import DEFAULT_MAX_DEPTH, NONE_NAME
from .cursor import ByteCursor
from .errors import (
    EncodingError, IndexOutOfRange, MaxDepthExceeded, SizeMismatch,
    UnexpectedEof, UnknownPropertyType,
)
from .properties import (
    NATIVE_LAYOUTS, ArrayProperty, BoolProperty, ByteProperty, EnumProperty,
    Field, FloatProperty, IntProperty, NameProperty, NativeStructProperty,
    ObjectProperty, Property, StringRefProperty, StrProperty, StructProperty,
)
from .tables import NameTable, ObjectTable


class PropertyCodec:
    """Decodes and encodes tagged property lists against one document's tables.

    Args:
        names: The document's NameTable.
        objects: The document's ObjectTable, or None if the format has none
            (any non-null object reference then fails to resolve).
        inline_names: Write names as FStrings instead of table indices.
        array_kinds: Element kind per array property name (indexed mode).
        max_depth: Deepest struct/array nesting accepted.
        wide_strings: Always write StrProperty values as UTF-16.
    """

    def __init__(self, names: NameTable, objects: ObjectTable | None = None, *,
                 inline_names: bool = False, array_kinds: dict | None = None,
                 max_depth: int = DEFAULT_MAX_DEPTH, wide_strings: bool = False):
        self.names = names
        self.objects = objects
        self.inline_names = inline_names
        self.array_kinds = array_kinds or {}
        self.max_depth = max_depth
        self.wide_strings = wide_strings

    # ========================================================================
    # SHARED HELPERS
    # ========================================================================

    def _check_depth(self, depth: int, offset: int) -> None:
        if depth > self.max_depth:
            raise MaxDepthExceeded(
                f'Property nesting deeper than {self.max_depth} levels', offset
            )

    def _resolve(self, index: int, offset: int | None = None) -> str:
        try:
            return self.names.resolve(index)
        except IndexOutOfRange as e:
            raise IndexOutOfRange(str(e), offset) from None

    def _read_name(self, cursor: ByteCursor) -> tuple[int, int]:
        """Read a name reference; returns (name index, instance number)."""
        offset = cursor.tell()
        if self.inline_names:
            return self.names.intern(cursor.read_fstring()), 0
        index = cursor.read_u32()
        number = cursor.read_u32()
        self._resolve(index, offset)
        return index, number

    def _write_name(self, cursor: ByteCursor, index: int, number: int = 0) -> None:
        text = self._resolve(index, cursor.tell())
        if self.inline_names:
            cursor.write_fstring(text)
        else:
            cursor.write_u32(index)
            cursor.write_u32(number)

    def _read_bool(self, cursor: ByteCursor) -> bool:
        offset = cursor.tell()
        value = cursor.read_u8() if self.inline_names else cursor.read_u32()
        if value not in (0, 1):
            raise EncodingError(f'Bool value {value} is neither 0 nor 1', offset)
        return bool(value)

    def _write_bool(self, cursor: ByteCursor, value: bool) -> None:
        if self.inline_names:
            cursor.write_u8(1 if value else 0)
        else:
            cursor.write_u32(1 if value else 0)

    def _read_object(self, cursor: ByteCursor) -> int | None:
        offset = cursor.tell()
        raw = cursor.read_i32()
        if raw == 0:
            return None
        if raw < 0 or self.objects is None:
            raise IndexOutOfRange(f'Object reference {raw} does not resolve', offset)
        try:
            self.objects.check_ref(raw - 1)
        except IndexOutOfRange as e:
            raise IndexOutOfRange(str(e), offset) from None
        return raw - 1

    def _write_object(self, cursor: ByteCursor, index: int | None) -> None:
        if index is None:
            cursor.write_i32(0)
            return
        if self.objects is None:
            raise IndexOutOfRange(f'Object reference {index} with no object table')
        self.objects.check_ref(index)
        cursor.write_i32(index + 1)

    # ========================================================================
    # DECODING
    # ========================================================================

    def read_fields(self, cursor: ByteCursor, depth: int = 0,
                    end: int | None = None) -> tuple[list[Field], bool]:
        """Read tagged properties until a None tag or until `end`.

        Returns (fields, terminated), terminated being True when the list
        ended with a None tag.
        """
        self._check_depth(depth, cursor.tell())
        fields = []
        while True:
            if end is not None and cursor.tell() >= end:
                if cursor.tell() > end:
                    raise SizeMismatch('Property list overran its declared size', end)
                return fields, False
            field = self.read_property(cursor, depth)
            if field is None:
                return fields, True
            fields.append(field)

    def read_property(self, cursor: ByteCursor, depth: int = 0) -> Field | None:
        """Read one tagged property; returns None at the end-of-list tag."""
        name, number = self._read_name(cursor)
        prop_name = self.names.resolve(name)
        if prop_name == NONE_NAME:
            return None

        type_offset = cursor.tell()
        type_index, _ = self._read_name(cursor)
        type_name = self.names.resolve(type_index)
        size = cursor.read_u32()
        array_index = cursor.read_u32()

        struct_name = None
        element_kind = None
        if type_name == 'StructProperty':
            struct_name, _ = self._read_name(cursor)
        elif type_name == 'ArrayProperty':
            if self.inline_names:
                element_kind = cursor.read_fstring()
            else:
                element_kind = self.array_kinds.get(prop_name, 'StructProperty')
        elif type_name == 'BoolProperty':
            value = self._read_bool(cursor)
            if size != 0:
                raise SizeMismatch(
                    f'BoolProperty {prop_name} declares {size} payload bytes', type_offset
                )
            return Field(name, BoolProperty(value), array_index, number)

        start = cursor.tell()
        if size > cursor.remaining():
            raise UnexpectedEof(
                f'{type_name} {prop_name} declares {size} bytes, '
                f'{cursor.remaining()} left', start
            )
        end = start + size

        if type_name == 'StructProperty':
            prop = self._read_struct(cursor, struct_name, depth + 1, end)
        elif type_name == 'ArrayProperty':
            prop = self._read_array(cursor, element_kind, depth + 1, end)
        elif type_name == 'ByteProperty':
            if size == 1:
                prop = ByteProperty(cursor.read_u8())
            else:
                value, value_number = self._read_name(cursor)
                prop = EnumProperty(value, value_number)
        elif type_name in ('IntProperty', 'FloatProperty', 'NameProperty',
                           'StrProperty', 'StringRefProperty', 'ObjectProperty'):
            prop = self._read_element(cursor, type_name, depth + 1, end)
        else:
            raise UnknownPropertyType(
                f'Unknown property type {type_name!r} for {prop_name}', type_offset
            )

        consumed = cursor.tell() - start
        if consumed != size:
            raise SizeMismatch(
                f'{type_name} {prop_name} declares {size} bytes but {consumed} '
                f'were consumed', start
            )
        return Field(name, prop, array_index, number)

    def _read_struct(self, cursor: ByteCursor, struct_name: int, depth: int,
                     end: int) -> Property:
        layout = self.names.resolve(struct_name)
        if layout in NATIVE_LAYOUTS:
            return self._read_native(cursor, layout)
        fields, terminated = self.read_fields(cursor, depth, end)
        return StructProperty(struct_name, fields, terminated)

    def _read_native(self, cursor: ByteCursor, layout: str) -> NativeStructProperty:
        fmt = NATIVE_LAYOUTS[layout]
        values = struct.unpack(fmt, cursor.read_bytes(struct.calcsize(fmt)))
        return NativeStructProperty(layout, tuple(values))

    def _read_array(self, cursor: ByteCursor, element_kind: str, depth: int,
                    end: int) -> ArrayProperty:
        self._check_depth(depth, cursor.tell())
        count_offset = cursor.tell()
        count = cursor.read_u32()
        if count > end - cursor.tell():
            raise SizeMismatch(
                f'Array declares {count} elements in {end - cursor.tell()} bytes',
                count_offset,
            )
        items = [self._read_element(cursor, element_kind, depth, end)
                 for _ in range(count)]
        return ArrayProperty(element_kind, items)

    def _read_element(self, cursor: ByteCursor, kind: str, depth: int,
                      end: int | None = None) -> Property:
        """Read one untagged value of `kind` (array element or scalar payload)."""
        if kind == 'IntProperty':
            return IntProperty(cursor.read_i32())
        if kind == 'FloatProperty':
            return FloatProperty(cursor.read_f32())
        if kind == 'BoolProperty':
            return BoolProperty(self._read_bool(cursor))
        if kind == 'ByteProperty':
            return ByteProperty(cursor.read_u8())
        if kind == 'NameProperty':
            value, number = self._read_name(cursor)
            return NameProperty(value, number)
        if kind == 'StrProperty':
            return StrProperty(cursor.read_fstring())
        if kind == 'StringRefProperty':
            return StringRefProperty(cursor.read_i32())
        if kind == 'ObjectProperty':
            return ObjectProperty(self._read_object(cursor))
        if kind == 'StructProperty':
            fields, terminated = self.read_fields(cursor, depth, end)
            return StructProperty(None, fields, terminated)
        if kind in NATIVE_LAYOUTS:
            return self._read_native(cursor, kind)
        raise UnknownPropertyType(f'Unknown array element kind {kind!r}', cursor.tell())

    # ========================================================================
    # ENCODING
    # ========================================================================

    def write_fields(self, cursor: ByteCursor, fields, depth: int = 0,
                     terminated: bool = True) -> None:
        """Write tagged properties, followed by a None tag if `terminated`."""
        self._check_depth(depth, cursor.tell())
        for field in fields:
            self.write_property(cursor, field, depth)
        if terminated:
            self._write_name(cursor, self.names.intern(NONE_NAME))

    def write_property(self, cursor: ByteCursor, field: Field, depth: int = 0) -> None:
        prop = field.value
        if not isinstance(prop, Property) or not prop.TYPE_NAME:
            raise UnknownPropertyType(f'Cannot encode {type(prop).__name__} as a property')

        self._write_name(cursor, field.name, field.number)
        self._write_name(cursor, self.names.intern(prop.TYPE_NAME))
        size_offset = cursor.tell()
        cursor.write_u32(0)
        cursor.write_u32(field.array_index)

        if isinstance(prop, NativeStructProperty):
            self._write_name(cursor, self.names.intern(prop.layout))
        elif isinstance(prop, StructProperty):
            if prop.struct_name is None:
                raise UnknownPropertyType(
                    f'Struct {self.names.resolve(field.name)} has no struct type name'
                )
            self._write_name(cursor, prop.struct_name)
        elif isinstance(prop, ArrayProperty):
            if self.inline_names:
                cursor.write_fstring(prop.element_kind)
            else:
                self._check_array_kind(field.name, prop)
        elif isinstance(prop, BoolProperty):
            self._write_bool(cursor, prop.value)
            return

        start = cursor.tell()
        if isinstance(prop, NativeStructProperty):
            self._write_element(cursor, prop.layout, prop, depth + 1)
        elif isinstance(prop, StructProperty):
            self.write_fields(cursor, prop.fields, depth + 1, prop.terminated)
        elif isinstance(prop, ArrayProperty):
            self._write_array(cursor, prop, depth + 1)
        elif isinstance(prop, EnumProperty):
            self._write_name(cursor, prop.value, prop.number)
        else:
            self._write_element(cursor, prop.TYPE_NAME, prop, depth + 1)
        cursor.patch_u32(size_offset, cursor.tell() - start)

    def _check_array_kind(self, name: int, prop: ArrayProperty) -> None:
        # Indexed arrays are read back with the kind registered for their name
        prop_name = self.names.resolve(name)
        expected = self.array_kinds.get(prop_name, 'StructProperty')
        if prop.element_kind != expected:
            raise UnknownPropertyType(
                f'Array {prop_name} holds {prop.element_kind} elements, '
                f'but is always read as {expected}'
            )

    def _write_array(self, cursor: ByteCursor, prop: ArrayProperty, depth: int) -> None:
        self._check_depth(depth, cursor.tell())
        cursor.write_u32(len(prop.items))
        last = len(prop.items) - 1
        for i, item in enumerate(prop.items):
            if isinstance(item, StructProperty):
                if item.struct_name is not None:
                    raise EncodingError(
                        f'Array struct element {i} carries struct name '
                        f'{self.names.resolve(item.struct_name)!r}, which is not stored'
                    )
                if not item.terminated and i != last:
                    raise EncodingError(
                        f'Array struct element {i} has no None tag and is not the last element'
                    )
            self._write_element(cursor, prop.element_kind, item, depth)

    def _write_element(self, cursor: ByteCursor, kind: str, item: Property,
                       depth: int) -> None:
        if kind in NATIVE_LAYOUTS:
            if not isinstance(item, NativeStructProperty) or item.layout != kind:
                raise UnknownPropertyType(f'{kind} element holds {item!r}')
            fmt = NATIVE_LAYOUTS[kind]
            try:
                cursor.write_bytes(struct.pack(fmt, *item.values))
            except struct.error as e:
                raise EncodingError(f'Cannot pack {kind} {item.values!r}: {e}') from e
            return
        if kind == 'StructProperty':
            if not isinstance(item, StructProperty):
                raise UnknownPropertyType(f'Struct element holds {item!r}')
            self.write_fields(cursor, item.fields, depth, item.terminated)
            return

        if not isinstance(item, Property) or item.TYPE_NAME != kind or isinstance(item, EnumProperty):
            raise UnknownPropertyType(f'{kind} element holds {item!r}')
        if kind == 'IntProperty':
            cursor.write_i32(item.value)
        elif kind == 'FloatProperty':
            cursor.write_f32(item.value)
        elif kind == 'BoolProperty':
            self._write_bool(cursor, item.value)
        elif kind == 'ByteProperty':
            cursor.write_u8(item.value)
        elif kind == 'NameProperty':
            self._write_name(cursor, item.value, item.number)
        elif kind == 'StrProperty':
            cursor.write_fstring(item.value, wide=self.wide_strings)
        elif kind == 'StringRefProperty':
            cursor.write_i32(item.value)
        elif kind == 'ObjectProperty':
            self._write_object(cursor, item.value)
        else:
            raise UnknownPropertyType(f'Unknown array element kind {kind!r}')


# ============================================================================
# CONVENIENCE WRAPPERS
# ============================================================================

def decode_properties(data: bytes, names: NameTable,
                      objects: ObjectTable | None = None, **options) -> StructProperty:
    """Decode a bare tagged property list into an anonymous StructProperty.

    The whole buffer must be consumed; trailing bytes raise SizeMismatch.
    Keyword options are passed to PropertyCodec.
    """
    cursor = ByteCursor(data)
    codec = PropertyCodec(names, objects, **options)
    fields, terminated = codec.read_fields(cursor)
    if not cursor.at_end():
        raise SizeMismatch(
            f'{cursor.remaining()} trailing bytes after property list', cursor.tell()
        )
    return StructProperty(None, fields, terminated)


def encode_properties(root: StructProperty, names: NameTable,
                      objects: ObjectTable | None = None, **options) -> bytes:
    """Encode a StructProperty's fields as a bare tagged property list."""
    cursor = ByteCursor()
    codec = PropertyCodec(names, objects, **options)
    codec.write_fields(cursor, root.fields, terminated=root.terminated)
    return cursor.getvalue()
