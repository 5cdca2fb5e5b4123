"""Thread-safe in-process row store (tests and local runs)."""

from __future__ import annotations

import time
from threading import Lock
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from cellgate.core.constants import DEFAULT_MAX_VERSIONS
from cellgate.core.errors import BadRequestError, NotFoundError
from cellgate.core.models import RowModel, TableListModel
from cellgate.store.base import ColumnSpec, RowStore, StoredCell
from cellgate.store.filters import RowFilter, parse_filter
from cellgate.utils.logging import get_logger

logger = get_logger(__name__)

__all__ = ["InMemoryRowStore"]

ColumnKey = Tuple[bytes, bytes]
# row -> (family, qualifier) -> [(timestamp, value)] newest first
TableData = Dict[bytes, Dict[ColumnKey, List[Tuple[int, bytes]]]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class InMemoryRowStore(RowStore):
    """
    Dict-backed store with tables, column families and cell versions.

    Features:
    - Cells returned in (family, qualifier) order, newest version first
    - Same-timestamp writes overwrite the previous value
    - Keeps at most ``max_versions_kept`` versions per column
    """

    def __init__(
        self,
        tables: Optional[Mapping[str, Iterable[str]]] = None,
        max_versions_kept: int = 3,
    ) -> None:
        """
        Args:
            tables: Table name -> column family names to create up front
            max_versions_kept: Versions retained per column
        """
        self._lock = Lock()
        self._families: Dict[str, set] = {}
        self._data: Dict[str, TableData] = {}
        self.max_versions_kept = max_versions_kept
        for name, families in (tables or {}).items():
            self.create_table(name, families)

    def create_table(self, name: str, families: Iterable[str]) -> None:
        encoded = {f.encode("utf-8") if isinstance(f, str) else bytes(f) for f in families}
        if not encoded:
            raise BadRequestError(f"Table {name} needs at least one column family")
        with self._lock:
            self._families[name] = encoded
            self._data.setdefault(name, {})
        logger.info("table_created", table=name, families=sorted(f.decode() for f in encoded))

    def drop_table(self, name: str) -> None:
        with self._lock:
            self._families.pop(name, None)
            self._data.pop(name, None)

    def _table(self, table: str) -> TableData:
        data = self._data.get(table)
        if data is None:
            raise NotFoundError(f"Table {table} not found")
        return data

    def compile_filter(self, expression: bytes) -> RowFilter:
        return parse_filter(expression)

    def _select(
        self,
        columns: Dict[ColumnKey, List[Tuple[int, bytes]]],
        specs: Sequence[ColumnSpec],
        max_versions: int,
    ) -> List[StoredCell]:
        cells: List[StoredCell] = []
        for (family, qualifier) in sorted(columns):
            if specs and not any(spec.matches(family, qualifier) for spec in specs):
                continue
            for timestamp, value in columns[(family, qualifier)][:max_versions]:
                cells.append(StoredCell(family, qualifier, timestamp, value))
        return cells

    async def get_row(
        self,
        table: str,
        row: bytes,
        columns: Sequence[ColumnSpec] = (),
        row_filter: Optional[RowFilter] = None,
        max_versions: int = DEFAULT_MAX_VERSIONS,
    ) -> Optional[RowModel]:
        with self._lock:
            stored = self._table(table).get(row)
            if stored is None:
                return None
            cells = self._select(stored, columns, max(1, max_versions))

        if row_filter is not None:
            cells = row_filter.apply(row, cells)
        if not cells:
            return None
        return RowModel(row, [cell.to_model() for cell in cells])

    async def put_row(self, table: str, row: RowModel) -> None:
        now = _now_ms()
        with self._lock:
            data = self._table(table)
            families = self._families[table]
            for cell in row.cells:
                family, qualifier = cell.split_column()
                if family not in families:
                    raise BadRequestError(
                        f"Unknown column family {family!r} in table {table}"
                    )

            stored = data.setdefault(row.key, {})
            for cell in row.cells:
                family, qualifier = cell.split_column()
                timestamp = cell.timestamp if cell.timestamp is not None else now
                versions = [
                    (ts, value)
                    for ts, value in stored.get((family, qualifier), [])
                    if ts != timestamp
                ]
                versions.append((timestamp, cell.value))
                versions.sort(key=lambda item: item[0], reverse=True)
                stored[(family, qualifier)] = versions[: self.max_versions_kept]

    async def delete(
        self, table: str, row: bytes, column: Optional[ColumnSpec] = None
    ) -> None:
        with self._lock:
            data = self._table(table)
            if column is None:
                data.pop(row, None)
                return
            stored = data.get(row)
            if stored is None:
                return
            for key in [k for k in stored if column.matches(*k)]:
                del stored[key]
            if not stored:
                del data[row]

    async def list_tables(self) -> TableListModel:
        with self._lock:
            return TableListModel(sorted(self._data))
