"""
Trilogy Save Editor - Chunked Schema Adapter
==============================================
Container shared by the me1 LE, me2 and me3 saves:

    0x00    uint32  Magic       ('ME1L' / 'ME2S' / 'ME3S')
    0x04    uint32  Version
    0x08    uint32  DlcFlags
    0x0C    chunked zlib block holding the logical payload
    end-4   uint32  CRC-32 of every preceding byte

The logical payload is decoded by the schema engine from the
subclass's SCHEMA table; the titles differ only in that table.
"""

import logging

from ..checksum import append_checksum, verify_trailing
from ..config import CHECKSUM_SIZE, SCHEMA_HEADER_SIZE
from ..compression import compress_chunks, decompress_chunks
from ..cursor import ByteCursor
from ..document import SaveDocument
from ..errors import ChecksumMismatch, SizeMismatch
from ..schema import SchemaCodec
from .base import FormatAdapter

logger = logging.getLogger(__name__)


class ChunkedSchemaAdapter(FormatAdapter):
    SCHEMA: tuple = ()
    ROOT_TYPE = 'SaveGame'

    def __init__(self, **options):
        super().__init__(**options)
        self._payload = b''

    # ========================================================================
    # LOAD
    # ========================================================================

    def read_header(self, cursor: ByteCursor) -> dict:
        self.check_magic(cursor.read_u32(), 0)
        version = cursor.read_u32()
        self.check_version(version, 4)
        return {'magic': self.magic, 'version': version, 'flags': cursor.read_u32()}

    def read_tables(self, cursor: ByteCursor, doc: SaveDocument) -> None:
        data = cursor.getvalue()
        stored, computed = verify_trailing(data)
        doc.checksum = stored
        if stored != computed:
            error = ChecksumMismatch(stored, computed, len(data) - CHECKSUM_SIZE)
            if self.strict:
                raise error
            logger.warning(f'{self.title.value}: {error}')
            doc.warnings.append(error)

        # The chunk block may not reach into the checksum field
        body = ByteCursor(data[:len(data) - CHECKSUM_SIZE])
        body.seek(SCHEMA_HEADER_SIZE)
        self._payload, doc.chunks = decompress_chunks(body)
        if not body.at_end():
            raise SizeMismatch(
                f'{body.remaining()} bytes between chunk block and checksum', body.tell()
            )

    def read_property_graph(self, cursor: ByteCursor, doc: SaveDocument) -> None:
        payload = ByteCursor(self._payload)
        codec = SchemaCodec(doc.names, doc.header, self.max_depth)
        doc.root = codec.read_record(payload, self.SCHEMA, self.ROOT_TYPE)
        if not payload.at_end():
            raise SizeMismatch(
                f'{payload.remaining()} payload bytes left after the '
                f'{self.title.value} schema', payload.tell()
            )

    # ========================================================================
    # SAVE
    # ========================================================================

    def write_property_graph(self, doc: SaveDocument) -> bytes:
        out = ByteCursor()
        codec = SchemaCodec(doc.names, doc.header, self.max_depth)
        codec.write_record(out, self.SCHEMA, doc.root)
        return out.getvalue()

    def write_tables(self, doc: SaveDocument, payload: bytes) -> bytes:
        return compress_chunks(payload)

    def write_header(self, doc: SaveDocument, body: bytes) -> bytes:
        out = ByteCursor()
        out.write_u32(self.magic)
        out.write_u32(doc.header['version'])
        out.write_u32(doc.header.get('flags', 0))
        out.write_bytes(body)
        return append_checksum(out.getvalue())

    def blank(self, version: int | None = None, flags: int = 0) -> SaveDocument:
        version = max(self.supported_versions) if version is None else version
        self.check_version(version)
        header = {'magic': self.magic, 'version': version, 'flags': flags}
        doc = SaveDocument(self.title, header)
        codec = SchemaCodec(doc.names, header, self.max_depth)
        doc.root = codec.default_record(self.SCHEMA, self.ROOT_TYPE)
        return doc
