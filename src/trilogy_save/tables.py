"""
Trilogy Save Editor - Name/Object Tables
==========================================
Index-addressed tables shared by one document's decode/encode pass.

Properties never point at each other directly: names are referenced by
their index in the NameTable and objects by their index in the
ObjectTable, so cyclic object graphs need no special handling.
"""

from .errors import IndexOutOfRange


class NameTable:
    """Append-only pool of unique strings addressed by index.

    Entries loaded from disk keep their on-disk positions. New names are
    only ever appended, and a name that is already present is reused, so
    indices handed out before an edit stay valid after it.
    """

    def __init__(self, entries=None, flags=None):
        self._names: list[str] = []
        self._flags: list[int] = []
        self._index: dict[str, int] = {}
        entries = list(entries or [])
        flags = list(flags) if flags is not None else [0] * len(entries)
        if len(flags) != len(entries):
            raise ValueError('NameTable needs one flags value per entry')
        for name, flag in zip(entries, flags):
            self._append(name, flag)

    def _append(self, name: str, flags: int) -> int:
        index = len(self._names)
        self._names.append(name)
        self._flags.append(flags)
        # First occurrence wins if a file carries duplicates
        self._index.setdefault(name, index)
        return index

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self):
        return iter(self._names)

    def __contains__(self, name) -> bool:
        return name in self._index

    def __repr__(self):
        return f'NameTable({len(self._names)} names)'

    def intern(self, name: str, flags: int = 0) -> int:
        """Return the index of `name`, appending it if not yet present."""
        index = self._index.get(name)
        if index is None:
            index = self._append(name, flags)
        return index

    def index_of(self, name: str) -> int | None:
        return self._index.get(name)

    def resolve(self, index: int) -> str:
        if not 0 <= index < len(self._names):
            raise IndexOutOfRange(
                f'Name index {index} outside table of {len(self._names)} names'
            )
        return self._names[index]

    def flags_of(self, index: int) -> int:
        self.resolve(index)
        return self._flags[index]


class ObjectRecord:
    """One entry of the object table.

    class_name and name are NameTable indices. offset/length locate the
    serialized property block; they describe the file the record was read
    from and are recomputed on save.
    """

    __slots__ = ('class_name', 'name', 'offset', 'length', 'net_index')

    def __init__(self, class_name: int, name: int, offset: int = 0,
                 length: int = 0, net_index: int = 0):
        self.class_name = class_name
        self.name = name
        self.offset = offset
        self.length = length
        self.net_index = net_index

    def __repr__(self):
        return (
            f'ObjectRecord(class_name={self.class_name}, name={self.name}, '
            f'offset=0x{self.offset:X}, length={self.length})'
        )


class ObjectTable:
    """Ordered list of object records referenced by index."""

    def __init__(self):
        self._records: list[ObjectRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __repr__(self):
        return f'ObjectTable({len(self._records)} objects)'

    def register_object(self, class_name: int, data_range: tuple[int, int],
                        name: int = 0, net_index: int = 0) -> int:
        """Append an object record and return its index.

        Args:
            class_name: NameTable index of the object's class.
            data_range: (offset, length) of its serialized property block.
            name: NameTable index of the object's own name.
            net_index: Opaque value stored ahead of the property block.
        """
        offset, length = data_range
        self._records.append(ObjectRecord(class_name, name, offset, length, net_index))
        return len(self._records) - 1

    def get(self, index: int) -> ObjectRecord:
        if not 0 <= index < len(self._records):
            raise IndexOutOfRange(
                f'Object index {index} outside table of {len(self._records)} objects'
            )
        return self._records[index]

    def check_ref(self, index: int | None) -> None:
        """Validate an object reference; None is the null reference."""
        if index is not None:
            self.get(index)
