"""
Trilogy Save Editor - Format Adapter Base
===========================================
Shared state machine for the per-title adapters.

    load:  READ_HEADER -> READ_TABLES -> READ_PROPERTY_GRAPH -> DONE
    save:  WRITE_PROPERTY_GRAPH -> WRITE_TABLES -> WRITE_HEADER -> DONE

Subclasses fill in one method per stage. Magic and version are checked
as the very first reads; a near-miss is never guessed at.
"""

import logging
from enum import Enum

from ..config import DEFAULT_MAX_DEPTH
from ..cursor import ByteCursor
from ..document import SaveDocument, Title
from ..errors import InvalidMagic, UnsupportedVersion

logger = logging.getLogger(__name__)


class AdapterState(Enum):
    IDLE = 'idle'
    READ_HEADER = 'read_header'
    READ_TABLES = 'read_tables'
    READ_PROPERTY_GRAPH = 'read_property_graph'
    WRITE_PROPERTY_GRAPH = 'write_property_graph'
    WRITE_TABLES = 'write_tables'
    WRITE_HEADER = 'write_header'
    DONE = 'done'


class FormatAdapter:
    """One load or save pass over a single document.

    Adapters hold per-pass state; create a fresh one for every operation.

    Args:
        strict: Raise recoverable problems (checksum mismatch) instead of
            recording them as document warnings.
        max_depth: Nesting limit handed to the property/schema codecs.
    """

    title: Title
    magic: int = 0
    supported_versions: frozenset = frozenset()

    def __init__(self, *, strict: bool = False, max_depth: int = DEFAULT_MAX_DEPTH):
        self.strict = strict
        self.max_depth = max_depth
        self.state = AdapterState.IDLE

    def __repr__(self):
        return f'{type(self).__name__}(state={self.state.name})'

    def _enter(self, state: AdapterState) -> None:
        logger.debug(f'{self.title.value}: {self.state.name} -> {state.name}')
        self.state = state

    def check_magic(self, magic: int, offset: int = 0) -> None:
        if magic != self.magic:
            raise InvalidMagic(
                f'Not a {self.title.value} save: magic 0x{magic:08X}, '
                f'expected 0x{self.magic:08X}', offset
            )

    def check_version(self, version: int, offset: int | None = None) -> None:
        if version not in self.supported_versions:
            supported = ', '.join(str(v) for v in sorted(self.supported_versions))
            raise UnsupportedVersion(
                f'{self.title.value} version {version} is not supported '
                f'(supported: {supported})', offset
            )

    # ========================================================================
    # DRIVERS
    # ========================================================================

    def load(self, data: bytes) -> SaveDocument:
        cursor = ByteCursor(data)

        self._enter(AdapterState.READ_HEADER)
        header = self.read_header(cursor)
        doc = SaveDocument(self.title, header)

        self._enter(AdapterState.READ_TABLES)
        self.read_tables(cursor, doc)

        self._enter(AdapterState.READ_PROPERTY_GRAPH)
        self.read_property_graph(cursor, doc)

        self._enter(AdapterState.DONE)
        logger.debug(f'Loaded {doc!r}')
        return doc

    def save(self, doc: SaveDocument) -> bytes:
        self.check_magic(doc.header.get('magic', self.magic))
        self.check_version(doc.header.get('version'))

        self._enter(AdapterState.WRITE_PROPERTY_GRAPH)
        payload = self.write_property_graph(doc)

        self._enter(AdapterState.WRITE_TABLES)
        body = self.write_tables(doc, payload)

        self._enter(AdapterState.WRITE_HEADER)
        data = self.write_header(doc, body)

        self._enter(AdapterState.DONE)
        return data

    # ========================================================================
    # STAGES
    # ========================================================================

    def read_header(self, cursor: ByteCursor) -> dict:
        raise NotImplementedError

    def read_tables(self, cursor: ByteCursor, doc: SaveDocument) -> None:
        raise NotImplementedError

    def read_property_graph(self, cursor: ByteCursor, doc: SaveDocument) -> None:
        raise NotImplementedError

    def write_property_graph(self, doc: SaveDocument) -> bytes:
        raise NotImplementedError

    def write_tables(self, doc: SaveDocument, payload: bytes) -> bytes:
        raise NotImplementedError

    def write_header(self, doc: SaveDocument, body: bytes) -> bytes:
        raise NotImplementedError

    def blank(self, version: int | None = None, flags: int = 0) -> SaveDocument:
        """Build a document holding default values for every field."""
        raise NotImplementedError
