"""Shared fixtures: crafted me1 packages and property buffers."""

import struct

import pytest

PACKAGE_TAG = 0x9E2A83C1


def fstring(text: str) -> bytes:
    if not text:
        return struct.pack('<i', 0)
    raw = text.encode('cp1252') + b'\x00'
    return struct.pack('<i', len(raw)) + raw


class PackageBuilder:
    """Assembles indexed property lists and me1 packages byte by byte.

    Names are added to the table the first time they are referenced, and
    sections are laid out back to back (header, names, objects, blocks).
    """

    def __init__(self):
        self.names = ['None']
        self.objects = []

    def n(self, name: str) -> int:
        if name not in self.names:
            self.names.append(name)
        return self.names.index(name)

    def name_ref(self, name: str, number: int = 0) -> bytes:
        return struct.pack('<II', self.n(name), number)

    def tag(self, name: str, type_name: str, size: int, array_index: int = 0) -> bytes:
        return self.name_ref(name) + self.name_ref(type_name) + struct.pack('<II', size, array_index)

    def end(self) -> bytes:
        return self.name_ref('None')

    def int_prop(self, name, value, array_index=0):
        return self.tag(name, 'IntProperty', 4, array_index) + struct.pack('<i', value)

    def float_prop(self, name, value):
        return self.tag(name, 'FloatProperty', 4) + struct.pack('<f', value)

    def bool_prop(self, name, value):
        return self.tag(name, 'BoolProperty', 0) + struct.pack('<I', int(value))

    def str_prop(self, name, text):
        payload = fstring(text)
        return self.tag(name, 'StrProperty', len(payload)) + payload

    def byte_prop(self, name, value):
        return self.tag(name, 'ByteProperty', 1) + struct.pack('<B', value)

    def enum_prop(self, name, value):
        return self.tag(name, 'ByteProperty', 8) + self.name_ref(value)

    def name_prop(self, name, value):
        return self.tag(name, 'NameProperty', 8) + self.name_ref(value)

    def object_prop(self, name, raw):
        return self.tag(name, 'ObjectProperty', 4) + struct.pack('<i', raw)

    def struct_prop(self, name, struct_name, body):
        struct_ref = self.name_ref(struct_name)
        return self.tag(name, 'StructProperty', len(body)) + struct_ref + body

    def array_prop(self, name, count, payload):
        body = struct.pack('<I', count) + payload
        return self.tag(name, 'ArrayProperty', len(body)) + body

    def add_object(self, class_name, name, props: bytes, net_index=0):
        self.objects.append((self.n(class_name), self.n(name), net_index, props))

    def build(self, version=491, licensee=0, flags=0) -> bytes:
        name_bytes = b''.join(fstring(n) + struct.pack('<Q', 0) for n in self.names)
        object_offset = 32 + len(name_bytes)
        data_offset = object_offset + 16 * len(self.objects)

        table, blocks = b'', b''
        offset = data_offset
        for class_name, name, net_index, props in self.objects:
            block = struct.pack('<I', net_index) + props
            table += struct.pack('<4I', class_name, name, offset, len(block))
            blocks += block
            offset += len(block)

        header = struct.pack(
            '<IHHI5I', PACKAGE_TAG, version, licensee, flags,
            len(self.names), 32, len(self.objects), object_offset, data_offset,
        )
        return header + name_bytes + table + blocks


@pytest.fixture
def builder() -> PackageBuilder:
    return PackageBuilder()


@pytest.fixture
def garrus_buffer() -> tuple[list[str], bytes]:
    """One BoolProperty 'HasMetGarrus' = true, then the None terminator."""
    names = ['None', 'HasMetGarrus', 'BoolProperty']
    data = (
        struct.pack('<II', 1, 0)      # name
        + struct.pack('<II', 2, 0)    # type
        + struct.pack('<II', 0, 0)    # size, array index
        + struct.pack('<I', 1)        # value
        + struct.pack('<II', 0, 0)    # None
    )
    return names, data


@pytest.fixture
def me1_package(builder: PackageBuilder) -> bytes:
    """Two-object me1 package: a player referencing one item."""
    b = builder
    location = struct.pack('<3f', 1.0, 2.0, 3.0)
    talents = b.int_prop('TalentId', 7) + b.int_prop('Ranks', 2) + b.end()
    player = (
        b.int_prop('m_nLevel', 60)
        + b.bool_prop('m_bFemale', True)
        + b.str_prop('m_FirstName', 'Jane')
        + b.float_prop('m_fXP', 1250.5)
        + b.byte_prop('m_nClassIndex', 3)
        + b.enum_prop('m_eOrigin', 'ORIGIN_Spacer')
        + b.name_prop('m_Tag', 'Shepard')
        + b.object_prop('m_oCurrentItem', 2)
        + b.array_prop('m_aItem', 1, struct.pack('<i', 2))
        + b.array_prop('m_vPosition', 1, location)
        + b.array_prop('m_SimpleTalents', 1, talents)
        + b.struct_prop('m_Location', 'Vector', location)
        + b.end()
    )
    item = b.int_prop('m_nLevel', 3) + b.end()
    b.add_object('BioPlayer', 'Player', player, net_index=5)
    b.add_object('BioItem', 'Item0', item)
    return b.build()
