"""
Trilogy Save Editor - Document Model
======================================
The editable in-memory form of one save file.

A SaveDocument owns its NameTable and ObjectTable and a root
StructProperty. Nodes are addressed by paths:

    'Player/Appearance/0'            string, '/'-separated
    ('Player', 'Appearance', 0)      tuple of str/int segments

A str segment selects the first struct field with that name. An int
segment (or an all-digit string segment) selects an array item or the
n-th field of a struct.
"""

import logging
import struct
from enum import Enum

from .errors import EncodingError, IndexOutOfRange, PathError
from .properties import (
    NATIVE_LAYOUTS, ArrayProperty, BoolProperty, ByteProperty, EnumProperty,
    FloatProperty, IntProperty, NameProperty, NativeStructProperty,
    ObjectProperty, Property, StringRefProperty, StrProperty, StructProperty,
    UIntProperty,
)
from .tables import NameTable, ObjectTable

logger = logging.getLogger(__name__)

I32_MIN, I32_MAX = -2 ** 31, 2 ** 31 - 1
U32_MAX = 2 ** 32 - 1


class Title(str, Enum):
    ME1 = 'me1'
    ME1LE = 'me1le'
    ME2 = 'me2'
    ME3 = 'me3'


class SaveDocument:
    """Decoded save file.

    Attributes:
        title: Which game the file belongs to.
        header: Header fields ('magic', 'version', 'flags', plus title extras).
        names: NameTable every name index in the tree refers to.
        objects: ObjectTable every object reference refers to (empty for me2/me3).
        root: Root StructProperty of the property graph.
        chunks: Chunk table seen on load; informational, rebuilt on save.
        checksum: Checksum stored in the loaded file, if the format has one.
        warnings: Non-fatal problems found while loading.
    """

    def __init__(self, title: Title, header: dict, names: NameTable | None = None,
                 objects: ObjectTable | None = None, root: StructProperty | None = None,
                 chunks=None, checksum: int | None = None, warnings=None):
        self.title = Title(title)
        self.header = header
        self.names = names if names is not None else NameTable()
        self.objects = objects if objects is not None else ObjectTable()
        self.root = root if root is not None else StructProperty()
        self.chunks = list(chunks or [])
        self.checksum = checksum
        self.warnings = list(warnings or [])

    def __repr__(self):
        return (
            f'SaveDocument(title={self.title.value}, version={self.header.get("version")}, '
            f'fields={len(self.root.fields)}, names={len(self.names)})'
        )

    def name_of(self, index: int) -> str:
        return self.names.resolve(index)

    # ========================================================================
    # PATH RESOLUTION
    # ========================================================================

    @staticmethod
    def _segments(path) -> list:
        if isinstance(path, str):
            return [int(s) if s.isdigit() else s for s in path.split('/') if s]
        return list(path)

    def _step(self, node: Property, segment, trail: str) -> tuple[Property, int]:
        """Descend one segment; returns (child, position within node)."""
        if isinstance(node, StructProperty):
            if isinstance(segment, int):
                if not 0 <= segment < len(node.fields):
                    raise PathError(f'{trail}: struct has {len(node.fields)} fields')
                return node.fields[segment].value, segment
            index = self.names.index_of(segment)
            pos = node.find(index) if index is not None else None
            if pos is None:
                raise PathError(f'{trail}: no field named {segment!r}')
            return node.fields[pos].value, pos
        if isinstance(node, ArrayProperty):
            if not isinstance(segment, int):
                raise PathError(f'{trail}: array items are addressed by index')
            if not 0 <= segment < len(node.items):
                raise PathError(f'{trail}: array has {len(node.items)} items')
            return node.items[segment], segment
        raise PathError(f'{trail}: {type(node).__name__} has no children')

    def _walk(self, path):
        """Return (parent, position, node) for a non-empty path."""
        segments = self._segments(path)
        if not segments:
            raise PathError('Empty path addresses the root, which cannot be replaced')
        parent, pos, node = None, None, self.root
        trail = ''
        for segment in segments:
            trail = f'{trail}/{segment}'
            parent = node
            node, pos = self._step(node, segment, trail)
        return parent, pos, node

    # ========================================================================
    # ACCESSORS
    # ========================================================================

    def get(self, path) -> Property:
        """Return the Property at `path`; an empty path returns the root."""
        if not self._segments(path):
            return self.root
        return self._walk(path)[2]

    def get_value(self, path):
        """Return the plain Python value held by the leaf at `path`.

        Names and enums come back as strings, object references as
        ObjectTable indices (or None), native structs as tuples.
        """
        node = self.get(path)
        if isinstance(node, (NameProperty, EnumProperty)):
            return self.names.resolve(node.value)
        if isinstance(node, NativeStructProperty):
            return node.values
        if isinstance(node, (StructProperty, ArrayProperty)):
            raise PathError(f'{path!r} is a {type(node).__name__}, not a value')
        return node.value

    def children(self, path=()) -> list[tuple]:
        """List (key, Property) pairs below `path`.

        Struct keys are field names, array keys are item indices.
        """
        node = self.get(path)
        if isinstance(node, StructProperty):
            return [(self.names.resolve(f.name), f.value) for f in node.fields]
        if isinstance(node, ArrayProperty):
            return list(enumerate(node.items))
        raise PathError(f'{path!r} is a {type(node).__name__} and has no children')

    def set(self, path, value) -> Property:
        """Replace or update the node at `path` and return the new node.

        A Property value replaces the node outright. Anything else is
        checked against the existing node's kind and stored in a fresh
        node of the same kind.
        """
        parent, pos, node = self._walk(path)
        new = value if isinstance(value, Property) else self._coerce(node, value, path)
        if isinstance(parent, StructProperty):
            parent.fields[pos] = parent.fields[pos]._replace(value=new)
        else:
            parent.items[pos] = new
        logger.debug(f'Set {path!r} to {new!r}')
        return new

    # ========================================================================
    # VALUE COERCION
    # ========================================================================

    def _coerce(self, node: Property, value, path) -> Property:
        if isinstance(node, BoolProperty):
            if not isinstance(value, bool):
                raise EncodingError(f'{path!r} expects a bool, got {value!r}')
            return BoolProperty(value)

        if isinstance(node, (IntProperty, UIntProperty, StringRefProperty, ByteProperty)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise EncodingError(f'{path!r} expects an int, got {value!r}')
            if isinstance(node, ByteProperty):
                low, high = 0, 255
            elif isinstance(node, UIntProperty):
                low, high = 0, U32_MAX
            else:
                low, high = I32_MIN, I32_MAX
            if not low <= value <= high:
                raise EncodingError(f'{path!r}: {value} outside [{low}, {high}]')
            return type(node)(value)

        if isinstance(node, FloatProperty):
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise EncodingError(f'{path!r} expects a number, got {value!r}')
            try:
                packed = struct.pack('<f', value)
            except (OverflowError, struct.error) as e:
                raise EncodingError(f'{path!r}: {value} does not fit a float32') from e
            # Store what a reload will read back
            return FloatProperty(struct.unpack('<f', packed)[0])

        if isinstance(node, StrProperty):
            if not isinstance(value, str):
                raise EncodingError(f'{path!r} expects a str, got {value!r}')
            return StrProperty(value)

        if isinstance(node, (NameProperty, EnumProperty)):
            if not isinstance(value, str):
                raise EncodingError(f'{path!r} expects a name string, got {value!r}')
            return type(node)(self.names.intern(value))

        if isinstance(node, ObjectProperty):
            if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
                raise EncodingError(f'{path!r} expects an object index or None, got {value!r}')
            try:
                self.objects.check_ref(value)
            except IndexOutOfRange as e:
                raise EncodingError(f'{path!r}: {e}') from e
            return ObjectProperty(value)

        if isinstance(node, NativeStructProperty):
            fmt = NATIVE_LAYOUTS[node.layout]
            try:
                packed = struct.pack(fmt, *tuple(value))
            except (TypeError, OverflowError, struct.error) as e:
                raise EncodingError(f'{path!r}: {value!r} is not a valid {node.layout}') from e
            return NativeStructProperty(node.layout, struct.unpack(fmt, packed))

        raise EncodingError(
            f'{path!r} is a {type(node).__name__}; assign a Property to replace it'
        )
