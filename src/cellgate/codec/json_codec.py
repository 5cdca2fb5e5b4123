"""
JSON codec.

Wire shape::

    {"Row": [{"key": "<b64>", "Cell": [{"column": "<b64>", "timestamp": 1, "$": "<b64>"}]}]}

All byte fields are standard base64 with padding; absent timestamps are
omitted rather than written as null.
"""

from __future__ import annotations

import binascii
from typing import Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from cellgate.codec.base import Codec, M, Model
from cellgate.core.constants import MIMETYPE_JSON
from cellgate.core.encoding import b64decode, b64encode
from cellgate.core.errors import MalformedError, NotSupportedError
from cellgate.core.models import (
    CellModel,
    CellSetModel,
    RowModel,
    TableListModel,
)


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CellJson(_Wire):
    column: str
    timestamp: Optional[StrictInt] = None
    value: str = Field("", alias="$")


class RowJson(_Wire):
    key: str
    cells: List[CellJson] = Field(default_factory=list, alias="Cell")


class CellSetJson(_Wire):
    rows: List[RowJson] = Field(default_factory=list, alias="Row")


class TableJson(_Wire):
    name: str


class TableListJson(_Wire):
    tables: List[TableJson] = Field(default_factory=list, alias="table")


def _cell_to_wire(cell: CellModel) -> CellJson:
    return CellJson(
        column=b64encode(cell.column_window.view()),
        timestamp=cell.timestamp,
        value=b64encode(cell.value_window.view()),
    )


def _row_to_wire(row: RowModel) -> RowJson:
    return RowJson(
        key=b64encode(row.key_window.view()),
        cells=[_cell_to_wire(cell) for cell in row.cells],
    )


def _cell_from_wire(wire: CellJson) -> CellModel:
    return CellModel(b64decode(wire.column), b64decode(wire.value), wire.timestamp)


def _row_from_wire(wire: RowJson) -> RowModel:
    return RowModel(b64decode(wire.key), [_cell_from_wire(c) for c in wire.cells])


_ENCODERS: Dict[type, Callable[[Model], _Wire]] = {
    CellModel: _cell_to_wire,
    RowModel: _row_to_wire,
    CellSetModel: lambda m: CellSetJson(rows=[_row_to_wire(r) for r in m.rows]),
    TableListModel: lambda m: TableListJson(
        tables=[TableJson(name=n) for n in m.names]
    ),
}

_DECODERS: Dict[type, tuple] = {
    CellModel: (CellJson, _cell_from_wire),
    RowModel: (RowJson, _row_from_wire),
    CellSetModel: (
        CellSetJson,
        lambda w: CellSetModel(_row_from_wire(r) for r in w.rows),
    ),
    TableListModel: (
        TableListJson,
        lambda w: TableListModel(t.name for t in w.tables),
    ),
}


class JsonCodec(Codec):
    media_type = MIMETYPE_JSON

    def encode(self, model: Model) -> bytes:
        to_wire = _ENCODERS.get(type(model))
        if to_wire is None:
            raise NotSupportedError(f"No JSON form for {type(model).__name__}")
        wire = to_wire(model)
        return wire.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

    def decode(self, data: bytes, model_type: Type[M]) -> M:
        entry = _DECODERS.get(model_type)
        if entry is None:
            raise NotSupportedError(f"No JSON form for {model_type.__name__}")
        wire_type, from_wire = entry
        try:
            wire = wire_type.model_validate_json(data)
        except ValidationError as exc:
            raise MalformedError(f"Invalid JSON {model_type.__name__}: {exc}") from exc
        try:
            return from_wire(wire)
        except binascii.Error as exc:
            raise MalformedError(f"Invalid base64 in JSON body: {exc}") from exc
        except ValueError as exc:
            raise MalformedError(str(exc)) from exc


__all__ = ["JsonCodec", "CellJson", "RowJson", "CellSetJson", "TableListJson"]
