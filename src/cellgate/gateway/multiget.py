"""
Multi-row point reads: ``GET /{table}/multiget?row=K1&row=K2``.

One request becomes N independent point reads against the store. Rows that
produce cells are returned in request order (duplicates included); rows with
no cells are omitted. No rows requested, or no row with cells, is a 404.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from cellgate.core.bytes_window import ByteWindow, OwnedBytes, window
from cellgate.core.constants import (
    DEFAULT_MAX_PARALLEL_READS,
    DEFAULT_MAX_VERSIONS,
    DEFAULT_REQUEST_TIMEOUT,
    ROW_KEYS_PARAM,
)
from cellgate.core.encoding import b64url_decode_nopad
from cellgate.core.errors import (
    BadRequestError,
    DeadlineExceededError,
    EmptyRowError,
    NotFoundError,
    UpstreamError,
)
from cellgate.core.models import CellSetModel, RowModel
from cellgate.gateway.params import (
    QueryParams,
    filter_expression,
    max_versions,
    wants_b64_keys,
)
from cellgate.monitoring.metrics import (
    MULTIGET_ROWS_REQUESTED,
    MULTIGET_ROWS_RETURNED,
    POINT_READ_FAILURES,
    POINT_READ_LATENCY,
)
from cellgate.store.base import ColumnSpec, RowStore, parse_column_selector
from cellgate.utils.logging import get_logger
from cellgate.utils.retry import async_retry

logger = get_logger(__name__)


@dataclass
class RowSpec:
    """A parsed ``row`` parameter: ``key[/columns]``."""

    key: ByteWindow
    columns: List[ColumnSpec] = field(default_factory=list)

    @classmethod
    def parse(cls, raw: bytes, b64: bool = False) -> "RowSpec":
        """
        Parse one row spec.

        Plain keys stay a window over ``raw`` (no copy); base64url keys are
        decoded into their own buffer.

        Raises:
            BadRequestError: on an empty key, bad base64 or a bad column list
        """
        key_part, _, column_part = raw.partition(b"/")
        if b"/" in column_part:
            raise BadRequestError(f"Unsupported row spec: {raw!r}")
        if b64:
            key: ByteWindow = OwnedBytes(b64url_decode_nopad(key_part))
        else:
            key = window(raw, 0, len(key_part))
        if key.logical_length() == 0:
            raise BadRequestError(f"Empty row key in {raw!r}")
        return cls(key, parse_column_selector(column_part))


@dataclass
class MultiGetRequest:
    table: str
    rows: List[bytes] = field(default_factory=list)
    columns: List[ColumnSpec] = field(default_factory=list)
    filter_expression: Optional[bytes] = None
    b64_keys: bool = False
    max_versions: int = DEFAULT_MAX_VERSIONS

    @classmethod
    def from_http(
        cls,
        table: str,
        query_string: bytes,
        headers: Mapping[str, str],
        path_columns: Optional[str] = None,
    ) -> "MultiGetRequest":
        params = QueryParams.from_query_string(query_string)
        return cls(
            table=table,
            rows=params.get_all(ROW_KEYS_PARAM),
            columns=parse_column_selector(path_columns),
            filter_expression=filter_expression(params),
            b64_keys=wants_b64_keys(params, headers),
            max_versions=max_versions(params),
        )

    def row_specs(self) -> List[RowSpec]:
        # the whole list is validated before any read is issued
        return [RowSpec.parse(raw, self.b64_keys) for raw in self.rows]


class MultiGetHandler:
    """Fans a multiget out into point reads and assembles the CellSet."""

    def __init__(
        self,
        store: RowStore,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_parallel_reads: int = DEFAULT_MAX_PARALLEL_READS,
        read_retries: int = 1,
        retry_backoff_base: float = 0.1,
    ) -> None:
        self.store = store
        self.request_timeout = request_timeout
        self.max_parallel_reads = max_parallel_reads
        self._read = async_retry(
            max_attempts=read_retries,
            backoff_base=retry_backoff_base,
            exceptions=(UpstreamError,),
            no_retry=(EmptyRowError,),
            max_wait=request_timeout,
        )(self.store.get_row)

    async def _point_read(
        self,
        semaphore: asyncio.Semaphore,
        request: MultiGetRequest,
        spec: RowSpec,
        row_filter: Any,
    ) -> Optional[RowModel]:
        columns: Sequence[ColumnSpec] = [*request.columns, *spec.columns]
        async with semaphore:
            started = time.perf_counter()
            try:
                row = await self._read(
                    request.table,
                    spec.key.materialize(),
                    columns,
                    row_filter,
                    request.max_versions,
                )
            except EmptyRowError:
                return None
            except UpstreamError as exc:
                POINT_READ_FAILURES.labels(reason="upstream").inc()
                logger.warning(
                    "point_read_failed",
                    table=request.table,
                    row=spec.key.materialize(),
                    error=str(exc),
                )
                raise
            finally:
                POINT_READ_LATENCY.observe(time.perf_counter() - started)

        if row is None or row.is_empty():
            return None
        # present the requested key window, not a copy from the store
        return RowModel(spec.key, row.cells)

    async def execute(self, request: MultiGetRequest) -> CellSetModel:
        """
        Run every point read and assemble the response.

        Raises:
            NotFoundError: no rows requested, no row produced cells, or unknown table
            BadRequestError: malformed key or filter
            DeadlineExceededError: deadline passed before any row produced cells
            UpstreamError: a point read failed in the store
        """
        specs = request.row_specs()
        if not specs:
            raise NotFoundError("No row keys requested")

        row_filter = None
        if request.filter_expression is not None:
            row_filter = self.store.compile_filter(request.filter_expression)

        MULTIGET_ROWS_REQUESTED.observe(len(specs))
        semaphore = asyncio.Semaphore(self.max_parallel_reads)
        tasks = [
            asyncio.create_task(self._point_read(semaphore, request, spec, row_filter))
            for spec in specs
        ]
        try:
            done, pending = await asyncio.wait(
                tasks,
                timeout=self.request_timeout,
                return_when=asyncio.FIRST_EXCEPTION,
            )
        finally:
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)

        for task in tasks:
            if task in done and task.exception() is not None:
                raise task.exception()

        cell_set = CellSetModel()
        for task in tasks:
            if task in done:
                row = task.result()
                if row is not None:
                    cell_set.add_row(row)

        MULTIGET_ROWS_RETURNED.observe(len(cell_set))
        logger.info(
            "multiget_completed",
            table=request.table,
            requested=len(specs),
            returned=len(cell_set),
            timed_out=len(pending),
        )

        if cell_set.is_empty():
            if pending:
                raise DeadlineExceededError(
                    f"Deadline of {self.request_timeout}s exceeded with "
                    f"{len(pending)} of {len(specs)} reads unfinished"
                )
            raise NotFoundError("No rows found")
        return cell_set


__all__ = ["RowSpec", "MultiGetRequest", "MultiGetHandler"]
