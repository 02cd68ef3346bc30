"""
Trilogy Save Editor - Property Model
======================================
Typed document tree shared by every title.

Property is a closed tagged union: one dataclass per supported kind.
TYPE_NAME is the tag written on disk for that kind. Structs hold an
ordered list of Field(name, value) pairs whose order is preserved on
re-encode; names are NameTable indices, never strings.
"""

from dataclasses import dataclass, field
from typing import ClassVar, NamedTuple

# Engine structs serialized as raw values with no property tags
NATIVE_LAYOUTS = {
    'Vector': '<3f',
    'Rotator': '<3i',
    'LinearColor': '<4f',
}


@dataclass
class Property:
    """Base of every property variant."""
    TYPE_NAME: ClassVar[str] = ''


@dataclass
class IntProperty(Property):
    TYPE_NAME: ClassVar[str] = 'IntProperty'
    value: int = 0


@dataclass
class UIntProperty(Property):
    """Unsigned 32-bit value of a fixed-layout payload; it has no tagged form."""
    value: int = 0


@dataclass
class FloatProperty(Property):
    TYPE_NAME: ClassVar[str] = 'FloatProperty'
    value: float = 0.0


@dataclass
class BoolProperty(Property):
    TYPE_NAME: ClassVar[str] = 'BoolProperty'
    value: bool = False


@dataclass
class ByteProperty(Property):
    TYPE_NAME: ClassVar[str] = 'ByteProperty'
    value: int = 0


@dataclass
class EnumProperty(Property):
    """Enum value stored as a name; tagged ByteProperty on disk."""
    TYPE_NAME: ClassVar[str] = 'ByteProperty'
    value: int = 0
    number: int = 0


@dataclass
class NameProperty(Property):
    TYPE_NAME: ClassVar[str] = 'NameProperty'
    value: int = 0
    number: int = 0


@dataclass
class StrProperty(Property):
    TYPE_NAME: ClassVar[str] = 'StrProperty'
    value: str = ''


@dataclass
class StringRefProperty(Property):
    """Localized string id (TLK reference)."""
    TYPE_NAME: ClassVar[str] = 'StringRefProperty'
    value: int = 0


@dataclass
class ObjectProperty(Property):
    """Reference into the ObjectTable; None is the null reference."""
    TYPE_NAME: ClassVar[str] = 'ObjectProperty'
    value: int | None = None


@dataclass
class ArrayProperty(Property):
    """Homogeneous sequence; element_kind is a TYPE_NAME or a native layout."""
    TYPE_NAME: ClassVar[str] = 'ArrayProperty'
    element_kind: str = 'StructProperty'
    items: list = field(default_factory=list)


class Field(NamedTuple):
    """One (name, value) entry of a struct.

    array_index is the static-array slot and number the name's instance
    suffix; both are zero for nearly every property.
    """
    name: int
    value: Property
    array_index: int = 0
    number: int = 0


@dataclass
class StructProperty(Property):
    """Ordered tagged fields.

    struct_name is the NameTable index of the struct type, or None for
    anonymous bodies (array elements, document roots). terminated records
    whether the body ended with a None tag rather than at its declared size.
    """
    TYPE_NAME: ClassVar[str] = 'StructProperty'
    struct_name: int | None = None
    fields: list = field(default_factory=list)
    terminated: bool = True

    def find(self, name: int) -> int | None:
        """Position of the first field named `name`, or None."""
        for i, f in enumerate(self.fields):
            if f.name == name:
                return i
        return None

    def get(self, name: int) -> Property | None:
        i = self.find(name)
        return None if i is None else self.fields[i].value


@dataclass
class NativeStructProperty(Property):
    """Engine struct serialized as raw values (see NATIVE_LAYOUTS)."""
    TYPE_NAME: ClassVar[str] = 'StructProperty'
    layout: str = 'Vector'
    values: tuple = (0.0, 0.0, 0.0)


# Kinds an ArrayProperty may hold
SCALAR_ELEMENT_KINDS = {
    cls.TYPE_NAME: cls for cls in (
        IntProperty, FloatProperty, BoolProperty, ByteProperty, NameProperty,
        StrProperty, StringRefProperty, ObjectProperty,
    )
}
ELEMENT_KINDS = frozenset(SCALAR_ELEMENT_KINDS) | {'StructProperty'} | frozenset(NATIVE_LAYOUTS)
