"""
Row/cell data models shared by the codecs, the store and the gateway.

Rows never travel alone on the wire: responses always wrap them in a
CellSetModel. Equality is by logical content, so a row whose key is a window
into a larger buffer equals a row holding the same key as an owned buffer.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Tuple, Union

from cellgate.core.bytes_window import ByteWindow, BytesLike, SharedWindow
from cellgate.core.constants import COLUMN_DELIMITER, INT64_MAX, INT64_MIN

ByteInput = Union[ByteWindow, BytesLike, str]


class CellModel:
    """
    A single cell: ``family:qualifier`` column, optional timestamp and value.

    Attributes:
        column: Column name bytes (non-empty)
        timestamp: 64-bit timestamp, or None when the server assigns it
        value: Cell value bytes (may be empty)
    """

    __slots__ = ("_column", "_timestamp", "_value")

    def __init__(
        self,
        column: ByteInput,
        value: ByteInput = b"",
        timestamp: Optional[int] = None,
    ) -> None:
        column_bytes = ByteWindow.of(column)
        if column_bytes.logical_length() == 0:
            raise ValueError("Cell column must not be empty")
        if value is None:
            raise ValueError("Cell value must not be absent")
        if timestamp is not None:
            if isinstance(timestamp, bool) or not isinstance(timestamp, int):
                raise ValueError(f"Invalid timestamp: {timestamp!r}")
            if not INT64_MIN <= timestamp <= INT64_MAX:
                raise ValueError(f"Timestamp out of 64-bit range: {timestamp}")
        self._column = column_bytes
        self._value = ByteWindow.of(value)
        self._timestamp = timestamp

    @classmethod
    def from_parts(
        cls,
        family: bytes,
        qualifier: bytes,
        value: ByteInput = b"",
        timestamp: Optional[int] = None,
    ) -> "CellModel":
        """Build a cell from separate family and qualifier."""
        return cls(family + COLUMN_DELIMITER + qualifier, value, timestamp)

    @property
    def column(self) -> bytes:
        return self._column.materialize()

    @property
    def column_window(self) -> ByteWindow:
        return self._column

    @property
    def value(self) -> bytes:
        return self._value.materialize()

    @property
    def value_window(self) -> ByteWindow:
        return self._value

    @property
    def timestamp(self) -> Optional[int]:
        return self._timestamp

    def has_timestamp(self) -> bool:
        return self._timestamp is not None

    def split_column(self) -> Tuple[bytes, bytes]:
        """Return ``(family, qualifier)``; a bare family has an empty qualifier."""
        family, _, qualifier = self.column.partition(COLUMN_DELIMITER)
        return family, qualifier

    @property
    def family(self) -> bytes:
        return self.split_column()[0]

    @property
    def qualifier(self) -> bytes:
        return self.split_column()[1]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellModel):
            return NotImplemented
        return (
            self._column == other._column
            and self._timestamp == other._timestamp
            and self._value == other._value
        )

    def __hash__(self) -> int:
        return hash((self._column, self._timestamp, self._value))

    def __repr__(self) -> str:
        ts = f", timestamp={self._timestamp}" if self._timestamp is not None else ""
        return f"CellModel(column={self.column!r}{ts}, value={self.value!r})"


class RowModel:
    """
    A row key plus its cells, in insertion order.

    The key is either an owned buffer or a zero-copy window (see
    ``from_window``) into a longer buffer such as a decoded request.
    """

    __slots__ = ("_key", "_cells")

    def __init__(
        self, key: ByteInput, cells: Optional[Iterable[CellModel]] = None
    ) -> None:
        key_bytes = ByteWindow.of(key)
        if key_bytes.logical_length() == 0:
            raise ValueError("Row key must not be empty")
        self._key = key_bytes
        self._cells: List[CellModel] = list(cells) if cells is not None else []

    @classmethod
    def from_window(
        cls,
        backing: BytesLike,
        offset: int,
        length: int,
        cells: Optional[Iterable[CellModel]] = None,
    ) -> "RowModel":
        """Build a row whose key is ``backing[offset:offset + length]`` without copying."""
        data = backing if isinstance(backing, bytes) else bytes(backing)
        return cls(SharedWindow(data, offset, length), cells)

    @property
    def key(self) -> bytes:
        return self._key.materialize()

    @property
    def key_window(self) -> ByteWindow:
        return self._key

    @property
    def cells(self) -> List[CellModel]:
        return self._cells

    def add_cell(self, cell: CellModel) -> None:
        self._cells.append(cell)

    def is_empty(self) -> bool:
        return not self._cells

    def __iter__(self) -> Iterator[CellModel]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RowModel):
            return NotImplemented
        return self._key == other._key and self._cells == other._cells

    def __hash__(self) -> int:
        return hash((self._key, tuple(self._cells)))

    def __repr__(self) -> str:
        return f"RowModel(key={self.key!r}, cells={self._cells!r})"


class CellSetModel:
    """Ordered collection of rows; the body of point and multiget reads."""

    __slots__ = ("_rows",)

    def __init__(self, rows: Optional[Iterable[RowModel]] = None) -> None:
        self._rows: List[RowModel] = list(rows) if rows is not None else []

    @property
    def rows(self) -> List[RowModel]:
        return self._rows

    def add_row(self, row: RowModel) -> None:
        self._rows.append(row)

    def is_empty(self) -> bool:
        return not self._rows

    def __iter__(self) -> Iterator[RowModel]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellSetModel):
            return NotImplemented
        return self._rows == other._rows

    def __hash__(self) -> int:
        return hash(tuple(self._rows))

    def __repr__(self) -> str:
        return f"CellSetModel(rows={self._rows!r})"


class TableModel:
    """A table name."""

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError(f"Invalid table name: {name!r}")
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableModel):
            return NotImplemented
        return self._name == other._name

    def __hash__(self) -> int:
        return hash(self._name)

    def __repr__(self) -> str:
        return f"TableModel(name={self._name!r})"


class TableListModel:
    """Ordered list of table names."""

    __slots__ = ("_tables",)

    def __init__(self, tables: Optional[Iterable[Union[TableModel, str]]] = None) -> None:
        self._tables: List[TableModel] = []
        for table in tables or ():
            self.add(table)

    @property
    def tables(self) -> List[TableModel]:
        return self._tables

    @property
    def names(self) -> List[str]:
        return [table.name for table in self._tables]

    def add(self, table: Union[TableModel, str]) -> None:
        self._tables.append(table if isinstance(table, TableModel) else TableModel(table))

    def get(self, index: int) -> TableModel:
        return self._tables[index]

    def __iter__(self) -> Iterator[TableModel]:
        return iter(self._tables)

    def __len__(self) -> int:
        return len(self._tables)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableListModel):
            return NotImplemented
        return self._tables == other._tables

    def __hash__(self) -> int:
        return hash(tuple(self._tables))

    def __repr__(self) -> str:
        return f"TableListModel(tables={self.names!r})"


__all__ = [
    "CellModel",
    "RowModel",
    "CellSetModel",
    "TableModel",
    "TableListModel",
    "ByteInput",
]
