"""Boundary between the gateway and the wide-column store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from cellgate.core.constants import COLUMN_DELIMITER, DEFAULT_MAX_VERSIONS
from cellgate.core.errors import BadRequestError
from cellgate.core.models import CellModel, RowModel, TableListModel

__all__ = [
    "ColumnSpec",
    "StoredCell",
    "RowStore",
    "parse_column_selector",
]


@dataclass(frozen=True)
class ColumnSpec:
    """A ``family`` or ``family:qualifier`` selector entry."""

    family: bytes
    qualifier: Optional[bytes] = None

    @classmethod
    def parse(cls, token: Union[str, bytes]) -> "ColumnSpec":
        raw = token.encode("utf-8") if isinstance(token, str) else bytes(token)
        family, sep, qualifier = raw.partition(COLUMN_DELIMITER)
        if not family:
            raise BadRequestError(f"Invalid column {raw!r}: empty family")
        return cls(family, qualifier if sep else None)

    def matches(self, family: bytes, qualifier: bytes) -> bool:
        if family != self.family:
            return False
        return self.qualifier is None or self.qualifier == qualifier

    def to_bytes(self) -> bytes:
        if self.qualifier is None:
            return self.family
        return self.family + COLUMN_DELIMITER + self.qualifier

    def __str__(self) -> str:
        return self.to_bytes().decode("utf-8", "backslashreplace")


def parse_column_selector(selector: Union[str, bytes, None]) -> List[ColumnSpec]:
    """Parse ``a:1,b`` into column specs; empty entries are skipped."""
    if not selector:
        return []
    raw = selector.encode("utf-8") if isinstance(selector, str) else bytes(selector)
    return [ColumnSpec.parse(token) for token in raw.split(b",") if token.strip()]


@dataclass(frozen=True)
class StoredCell:
    """One version of one column, as held by a store."""

    family: bytes
    qualifier: bytes
    timestamp: int
    value: bytes

    def to_model(self) -> CellModel:
        return CellModel.from_parts(self.family, self.qualifier, self.value, self.timestamp)


class RowStore(ABC):
    """
    Abstract point-read/write interface of the backing store.

    Filters are opaque to callers: ``compile_filter`` turns an expression into
    whatever the store evaluates, and the result is handed back to ``get_row``.
    """

    @abstractmethod
    def compile_filter(self, expression: bytes) -> Any:
        """
        Raises:
            FilterSyntaxError: if the expression cannot be parsed
        """

    @abstractmethod
    async def get_row(
        self,
        table: str,
        row: bytes,
        columns: Sequence[ColumnSpec] = (),
        row_filter: Any = None,
        max_versions: int = DEFAULT_MAX_VERSIONS,
    ) -> Optional[RowModel]:
        """
        Read one row.

        Returns:
            The row with its cells, or None when no cell matches

        Raises:
            NotFoundError: if the table does not exist
            EmptyRowError: if the store reports the row as holding no cells
            UpstreamError: on any other store failure
        """

    @abstractmethod
    async def put_row(self, table: str, row: RowModel) -> None:
        """Store every cell of ``row``."""

    @abstractmethod
    async def delete(
        self, table: str, row: bytes, column: Optional[ColumnSpec] = None
    ) -> None:
        """Delete a whole row, a family or a single column."""

    @abstractmethod
    async def list_tables(self) -> TableListModel:
        pass

    async def close(self) -> None:
        """Release store resources."""
        return None
