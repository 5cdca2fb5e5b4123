"""Single-row reads, writes and deletes, plus the table list."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Request, Response

from cellgate.codec import registry
from cellgate.core.constants import MIMETYPE_BINARY, TIMESTAMP_HEADER
from cellgate.core.errors import BadRequestError, NotFoundError
from cellgate.core.models import CellModel, CellSetModel, RowModel
from cellgate.gateway.params import (
    QueryParams,
    decode_key,
    max_versions,
    wants_b64_keys,
)
from cellgate.store.base import ColumnSpec, RowStore, parse_column_selector
from cellgate.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

ROW_PRODUCES = (*registry.PRODUCES, MIMETYPE_BINARY)


def _store(request: Request) -> RowStore:
    return request.app.state.store


def _params(request: Request) -> QueryParams:
    return QueryParams.from_query_string(request.scope.get("query_string", b""))


def _row_key(request: Request, row: str, params: QueryParams) -> bytes:
    return decode_key(row.encode("utf-8"), wants_b64_keys(params, request.headers))


def _content_type(request: Request) -> str:
    return (request.headers.get("content-type") or "").split(";", 1)[0].strip().lower()


def _timestamp_header(request: Request) -> Optional[int]:
    raw = request.headers.get(TIMESTAMP_HEADER)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise BadRequestError(f"Invalid {TIMESTAMP_HEADER} header: {raw!r}") from exc


@router.get("/")
async def list_tables(request: Request) -> Response:
    media_type = registry.negotiate(request.headers.get("accept"))
    tables = await _store(request).list_tables()
    return Response(content=registry.encode(tables, media_type), media_type=media_type)


@router.get("/{table}/{row}")
@router.get("/{table}/{row}/{columns}")
async def get_row(request: Request, table: str, row: str) -> Response:
    media_type = registry.negotiate(request.headers.get("accept"), ROW_PRODUCES)
    params = _params(request)
    key = _row_key(request, row, params)
    columns = parse_column_selector(request.path_params.get("columns"))

    result = await _store(request).get_row(
        table, key, columns, max_versions=max_versions(params)
    )
    if result is None:
        raise NotFoundError(f"Row {key!r} not found in {table}")

    if media_type == MIMETYPE_BINARY:
        if len(result) != 1:
            raise BadRequestError(
                "Binary GET needs exactly one matching cell, "
                f"found {len(result)}"
            )
        cell = result.cells[0]
        headers = {}
        if cell.timestamp is not None:
            headers[TIMESTAMP_HEADER] = str(cell.timestamp)
        return Response(content=cell.value, media_type=MIMETYPE_BINARY, headers=headers)

    body = registry.encode(CellSetModel([result]), media_type)
    return Response(content=body, media_type=media_type)


async def _put_cell_set(request: Request, table: str) -> List[RowModel]:
    cell_set = registry.decode(
        await request.body(), request.headers.get("content-type"), CellSetModel
    )
    store = _store(request)
    for row_model in cell_set:
        await store.put_row(table, row_model)
    return cell_set.rows


@router.api_route("/{table}/{row}", methods=["PUT", "POST"])
async def put_rows(request: Request, table: str, row: str) -> Response:
    if _content_type(request) == MIMETYPE_BINARY:
        raise BadRequestError("Binary PUT needs a column in the path")
    rows = await _put_cell_set(request, table)
    logger.info(
        "rows_stored",
        table=table,
        rows=len(rows),
        cells=sum(len(r) for r in rows),
    )
    return Response(status_code=200)


@router.api_route("/{table}/{row}/{column}", methods=["PUT", "POST"])
async def put_cell(request: Request, table: str, row: str, column: str) -> Response:
    if _content_type(request) != MIMETYPE_BINARY:
        rows = await _put_cell_set(request, table)
        logger.info("rows_stored", table=table, rows=len(rows))
        return Response(status_code=200)

    params = _params(request)
    key = _row_key(request, row, params)
    spec = ColumnSpec.parse(column)
    if spec.qualifier is None:
        raise BadRequestError(f"Column {column!r} must be family:qualifier")

    try:
        cell = CellModel(spec.to_bytes(), await request.body(), _timestamp_header(request))
    except ValueError as exc:
        raise BadRequestError(str(exc)) from exc
    await _store(request).put_row(table, RowModel(key, [cell]))
    logger.info("cell_stored", table=table, column=column)
    return Response(status_code=200)


@router.delete("/{table}/{row}")
@router.delete("/{table}/{row}/{column}")
async def delete_row(request: Request, table: str, row: str) -> Response:
    params = _params(request)
    key = _row_key(request, row, params)
    column = request.path_params.get("column")
    spec = ColumnSpec.parse(column) if column else None
    await _store(request).delete(table, key, spec)
    logger.info("row_deleted", table=table, column=column)
    return Response(status_code=200)
