"""Row store that proxies point reads and writes to another gateway."""

from __future__ import annotations

from typing import Optional, Sequence

import httpx

from cellgate.client.rest_client import GatewayClient
from cellgate.core.constants import DEFAULT_MAX_VERSIONS, DEFAULT_REQUEST_TIMEOUT
from cellgate.core.models import CellSetModel, RowModel, TableListModel
from cellgate.store.base import ColumnSpec, RowStore

__all__ = ["RemoteRowStore"]


class RemoteRowStore(RowStore):
    """
    RowStore backed by an upstream gateway.

    Filter expressions are not interpreted here; they are forwarded as
    ``filter.b64`` and the upstream parses them. Row keys always travel
    base64url-encoded so binary keys survive the URL.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.client = GatewayClient(base_url, timeout=timeout, transport=transport)

    def compile_filter(self, expression: bytes) -> bytes:
        return bytes(expression)

    async def get_row(
        self,
        table: str,
        row: bytes,
        columns: Sequence[ColumnSpec] = (),
        row_filter: Optional[bytes] = None,
        max_versions: int = DEFAULT_MAX_VERSIONS,
    ) -> Optional[RowModel]:
        cell_set = await self.client.multiget(
            table,
            [row],
            columns=[spec.to_bytes() for spec in columns] or None,
            filter=row_filter,
            b64_keys=True,
            versions=max_versions,
        )
        if cell_set is None or cell_set.is_empty():
            return None
        return cell_set.rows[0]

    async def put_row(self, table: str, row: RowModel) -> None:
        await self.client.put_rows(table, CellSetModel([row]))

    async def delete(
        self, table: str, row: bytes, column: Optional[ColumnSpec] = None
    ) -> None:
        await self.client.delete(
            table,
            row,
            column.to_bytes() if column is not None else None,
            b64_keys=True,
        )

    async def list_tables(self) -> TableListModel:
        return await self.client.list_tables()

    async def close(self) -> None:
        await self.client.aclose()
