"""
Trilogy Save Editor - me1 Package Adapter
===========================================
me1 keeps its game state in an Unreal property package.

Header (32 bytes, little-endian):
    0x00  uint32  Magic            (0x9E2A83C1)
    0x04  uint16  FileVersion      (491)
    0x06  uint16  LicenseeVersion
    0x08  uint32  PackageFlags
    0x0C  uint32  NameCount        0x10  uint32  NameOffset
    0x14  uint32  ObjectCount      0x18  uint32  ObjectOffset
    0x1C  uint32  DataOffset

Name table:    NameCount x (FString Name, uint64 Flags)
Object table:  ObjectCount x (uint32 ClassName, uint32 ObjectName,
                              uint32 DataOffset, uint32 DataSize)
Object blocks: uint32 NetIndex + indexed property list ended by None,
               exactly DataSize bytes each

The document root holds one field per object, named after the object,
whose value is a StructProperty typed with the object's class name.
On save the sections are laid out back to back in the order above.

Shipped saves wrap the package in a container:

    0x00  8 bytes   Unknown, kept verbatim
    0x08  uint32    ZipOffset
    0x0C  filler up to ZipOffset, kept verbatim
    ZipOffset       zip archive: player.sav (the package above),
                    state.sav, optionally WorldSavePackage.sav

Only player.sav is decoded. The rest of the container is carried in
header['container'] as an Me1Container and written back around the
re-encoded package. A bare package loads and saves without one.
"""

import io
import logging
import struct
import zipfile
import zlib
from dataclasses import dataclass

from ..config import (
    ME1_CONTAINER_HEADER_SIZE, ME1_HEADER_SIZE, ME1_PLAYER_ENTRY, ME1_STATE_ENTRY,
    ME1_SUPPORTED_VERSIONS, ME1_WORLD_ENTRY, ME1_ZIP_DATE_TIME, ME1_ZIP_SIGNATURE,
    NONE_NAME, PACKAGE_TAG,
)
from ..cursor import ByteCursor
from ..document import SaveDocument, Title
from ..errors import (
    CompressionError, EncodingError, IndexOutOfRange, SchemaError, SizeMismatch,
    UnexpectedEof,
)
from ..properties import Field, StructProperty
from ..property_codec import PropertyCodec
from ..tables import NameTable, ObjectTable
from .base import FormatAdapter

logger = logging.getLogger(__name__)

# Arrays whose element kind is not the default list of tagged structs.
# The package does not record element kinds, so they are keyed by property name.
ME1_ARRAY_KINDS = {
    'm_PrereqTalentIDArray': 'IntProperty',
    'm_PrereqTalentRankArray': 'IntProperty',
    'm_aItem': 'ObjectProperty',
    'm_aXMod': 'ObjectProperty',
    'm_aEquipped': 'ObjectProperty',
    'm_QuickSlotArray': 'ObjectProperty',
    'm_savedBuybackItems': 'ObjectProperty',
    'm_vPosition': 'Vector',
    'm_DependentPackages': 'StrProperty',
}

# Smallest possible table entries: empty FString + flags / four uint32
NAME_ENTRY_MIN_SIZE = 12
OBJECT_ENTRY_SIZE = 16



# ============================================================================
# CONTAINER
# ============================================================================

@dataclass
class Me1Container:
    """Everything around player.sav in a shipped save."""
    begin: bytes = bytes(8)
    filler: bytes = b''
    state: bytes = b''
    world_save_package: bytes | None = None


def is_container(data: bytes) -> bool:
    """True if `data` looks like a wrapped save rather than a bare package."""
    if len(data) < ME1_CONTAINER_HEADER_SIZE:
        return False
    zip_offset = struct.unpack_from('<I', data, 8)[0]
    if zip_offset < ME1_CONTAINER_HEADER_SIZE:
        return False
    return data[zip_offset:zip_offset + len(ME1_ZIP_SIGNATURE)] == ME1_ZIP_SIGNATURE


def unwrap_container(data: bytes) -> tuple[Me1Container, bytes]:
    """Split a shipped save into its container and the player.sav package."""
    cursor = ByteCursor(data)
    begin = cursor.read_bytes(8)
    zip_offset = cursor.read_u32()
    if zip_offset < ME1_CONTAINER_HEADER_SIZE:
        raise SizeMismatch(f'Zip offset {zip_offset} points into the container header', 8)
    if zip_offset > len(data):
        raise UnexpectedEof(f'Zip offset {zip_offset} is past the end of the file', 8)
    filler = cursor.read_bytes(zip_offset - ME1_CONTAINER_HEADER_SIZE)

    try:
        with zipfile.ZipFile(io.BytesIO(data[zip_offset:])) as archive:
            entries = set(archive.namelist())
            for required in (ME1_PLAYER_ENTRY, ME1_STATE_ENTRY):
                if required not in entries:
                    raise SchemaError(f'me1 save archive has no {required}', zip_offset)
            package = archive.read(ME1_PLAYER_ENTRY)
            container = Me1Container(
                begin=begin,
                filler=filler,
                state=archive.read(ME1_STATE_ENTRY),
                world_save_package=(archive.read(ME1_WORLD_ENTRY)
                                    if ME1_WORLD_ENTRY in entries else None),
            )
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise CompressionError(f'Unreadable me1 save archive: {e}', zip_offset) from e

    logger.debug(f'me1 container: zip at 0x{zip_offset:X}, entries {sorted(entries)}')
    return container, package


def wrap_container(container: Me1Container, package: bytes) -> bytes:
    """Rebuild a shipped save around an encoded player.sav package."""
    if len(container.begin) != 8:
        raise EncodingError(f'Container prefix must be 8 bytes, got {len(container.begin)}')
    entries = [(ME1_PLAYER_ENTRY, package), (ME1_STATE_ENTRY, container.state)]
    if container.world_save_package is not None:
        entries.append((ME1_WORLD_ENTRY, container.world_save_package))

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        for name, payload in entries:
            info = zipfile.ZipInfo(name, date_time=ME1_ZIP_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, payload)

    out = ByteCursor()
    out.write_bytes(container.begin)
    out.write_u32(ME1_CONTAINER_HEADER_SIZE + len(container.filler))
    out.write_bytes(container.filler)
    out.write_bytes(buffer.getvalue())
    return out.getvalue()


class Me1Adapter(FormatAdapter):
    title = Title.ME1
    magic = PACKAGE_TAG
    supported_versions = ME1_SUPPORTED_VERSIONS

    def __init__(self, **options):
        super().__init__(**options)
        self._layout: dict = {}
        self._records: list[tuple[int, int, int, bytes]] = []

    def _codec(self, doc: SaveDocument) -> PropertyCodec:
        return PropertyCodec(
            doc.names, doc.objects, array_kinds=ME1_ARRAY_KINDS, max_depth=self.max_depth
        )

    def load(self, data: bytes) -> SaveDocument:
        if int.from_bytes(data[:4], 'little') != PACKAGE_TAG and is_container(data):
            container, package = unwrap_container(data)
            doc = super().load(package)
            doc.header['container'] = container
            return doc
        return super().load(data)

    def save(self, doc: SaveDocument) -> bytes:
        package = super().save(doc)
        container = doc.header.get('container')
        if container is None:
            return package
        return wrap_container(container, package)

    # ========================================================================
    # LOAD
    # ========================================================================

    def read_header(self, cursor: ByteCursor) -> dict:
        self.check_magic(cursor.read_u32(), 0)
        version = cursor.read_u16()
        self.check_version(version, 4)
        header = {
            'magic': PACKAGE_TAG,
            'version': version,
            'licensee_version': cursor.read_u16(),
            'flags': cursor.read_u32(),
        }
        for key in ('name_count', 'name_offset', 'object_count', 'object_offset',
                    'data_offset'):
            self._layout[key] = cursor.read_u32()
        return header

    def read_tables(self, cursor: ByteCursor, doc: SaveDocument) -> None:
        layout = self._layout

        cursor.seek(layout['name_offset'])
        if layout['name_count'] * NAME_ENTRY_MIN_SIZE > cursor.remaining():
            raise SizeMismatch(
                f'Name table declares {layout["name_count"]} entries, '
                f'{cursor.remaining()} bytes left', layout['name_offset']
            )
        entries, flags = [], []
        for _ in range(layout['name_count']):
            entries.append(cursor.read_fstring())
            flags.append(cursor.read_u64())
        doc.names = NameTable(entries, flags)

        cursor.seek(layout['object_offset'])
        if layout['object_count'] * OBJECT_ENTRY_SIZE > cursor.remaining():
            raise SizeMismatch(
                f'Object table declares {layout["object_count"]} entries, '
                f'{cursor.remaining()} bytes left', layout['object_offset']
            )
        objects = ObjectTable()
        for _ in range(layout['object_count']):
            entry_offset = cursor.tell()
            class_name = cursor.read_u32()
            name = cursor.read_u32()
            data_range = (cursor.read_u32(), cursor.read_u32())
            for index in (class_name, name):
                if index >= len(doc.names):
                    raise IndexOutOfRange(
                        f'Object entry names index {index}, table has {len(doc.names)}',
                        entry_offset,
                    )
            objects.register_object(class_name, data_range, name=name)
        doc.objects = objects
        logger.debug(f'me1 tables: {len(doc.names)} names, {len(objects)} objects')

    def read_property_graph(self, cursor: ByteCursor, doc: SaveDocument) -> None:
        codec = self._codec(doc)
        fields = []
        for record in doc.objects:
            end = record.offset + record.length
            if end > len(cursor):
                raise UnexpectedEof(
                    f'Object block of {record.length} bytes runs past end of file',
                    record.offset,
                )
            if record.length < 4:
                raise SizeMismatch(
                    f'Object block of {record.length} bytes has no room for its net index',
                    record.offset,
                )
            cursor.seek(record.offset)
            record.net_index = cursor.read_u32()
            props, terminated = codec.read_fields(cursor, 1, end)
            if cursor.tell() != end:
                raise SizeMismatch(
                    f'Object block declares {record.length} bytes but '
                    f'{cursor.tell() - record.offset} were consumed', record.offset
                )
            fields.append(Field(record.name, StructProperty(record.class_name, props, terminated)))
        doc.root = StructProperty(None, fields)

    # ========================================================================
    # SAVE
    # ========================================================================

    def write_property_graph(self, doc: SaveDocument) -> bytes:
        if len(doc.root.fields) != len(doc.objects):
            raise SchemaError(
                f'Document root has {len(doc.root.fields)} objects, '
                f'object table has {len(doc.objects)}'
            )
        codec = self._codec(doc)
        self._records = []
        for field, record in zip(doc.root.fields, doc.objects):
            value = field.value
            if not isinstance(value, StructProperty):
                raise SchemaError(
                    f'Object {doc.name_of(field.name)} must be a struct, '
                    f'got {type(value).__name__}'
                )
            block = ByteCursor()
            block.write_u32(record.net_index)
            codec.write_fields(block, value.fields, 1, value.terminated)
            class_name = record.class_name if value.struct_name is None else value.struct_name
            self._records.append((class_name, field.name, record.net_index, block.getvalue()))
        return b''.join(data for _, _, _, data in self._records)

    def write_tables(self, doc: SaveDocument, payload: bytes) -> bytes:
        out = ByteCursor()
        for index, name in enumerate(doc.names):
            out.write_fstring(name)
            out.write_u64(doc.names.flags_of(index))
        names_size = len(out)

        object_offset = ME1_HEADER_SIZE + names_size
        data_offset = object_offset + OBJECT_ENTRY_SIZE * len(self._records)
        offset = data_offset
        for class_name, name, _, data in self._records:
            out.write_u32(class_name)
            out.write_u32(name)
            out.write_u32(offset)
            out.write_u32(len(data))
            offset += len(data)

        self._layout = {
            'name_count': len(doc.names),
            'name_offset': ME1_HEADER_SIZE,
            'object_count': len(self._records),
            'object_offset': object_offset,
            'data_offset': data_offset,
        }
        out.write_bytes(payload)
        return out.getvalue()

    def write_header(self, doc: SaveDocument, body: bytes) -> bytes:
        out = ByteCursor()
        out.write_u32(PACKAGE_TAG)
        out.write_u16(doc.header['version'])
        out.write_u16(doc.header.get('licensee_version', 0))
        out.write_u32(doc.header.get('flags', 0))
        for key in ('name_count', 'name_offset', 'object_count', 'object_offset',
                    'data_offset'):
            out.write_u32(self._layout[key])
        out.write_bytes(body)
        return out.getvalue()

    def blank(self, version: int | None = None, flags: int = 0) -> SaveDocument:
        version = max(self.supported_versions) if version is None else version
        self.check_version(version)
        header = {'magic': PACKAGE_TAG, 'version': version, 'licensee_version': 0,
                  'flags': flags}
        return SaveDocument(self.title, header, NameTable([NONE_NAME]))
