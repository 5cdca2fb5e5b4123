"""
XML codec.

Wire shape::

    <CellSet><Row key="<b64>"><Cell column="<b64>" timestamp="1"><b64></Cell></Row></CellSet>

``key``, ``column`` and ``timestamp`` are attributes; the cell value is the
base64 element text.
"""

from __future__ import annotations

import binascii
from typing import Any, Dict, List, Optional, Type
from xml.parsers.expat import ExpatError

import xmltodict

from cellgate.codec.base import Codec, M, Model
from cellgate.core.constants import MIMETYPE_TEXT_XML, MIMETYPE_XML
from cellgate.core.encoding import b64decode, b64encode
from cellgate.core.errors import MalformedError, NotSupportedError
from cellgate.core.models import CellModel, CellSetModel, RowModel, TableListModel

_ROOTS = {
    CellModel: "Cell",
    RowModel: "Row",
    CellSetModel: "CellSet",
    TableListModel: "TableList",
}
_REPEATED = ("Row", "Cell", "table")


def _force_list(path: list, key: str, value: Any) -> bool:
    # the root element stays a mapping even when it is a Row or a Cell
    return bool(path) and key in _REPEATED


def _cell_to_doc(cell: CellModel) -> Dict[str, Any]:
    doc: Dict[str, Any] = {"@column": b64encode(cell.column_window.view())}
    if cell.timestamp is not None:
        doc["@timestamp"] = str(cell.timestamp)
    doc["#text"] = b64encode(cell.value_window.view())
    return doc


def _row_to_doc(row: RowModel) -> Dict[str, Any]:
    doc: Dict[str, Any] = {"@key": b64encode(row.key_window.view())}
    if row.cells:
        doc["Cell"] = [_cell_to_doc(cell) for cell in row.cells]
    return doc


def _cellset_to_doc(cellset: CellSetModel) -> Optional[Dict[str, Any]]:
    if not cellset.rows:
        return None
    return {"Row": [_row_to_doc(row) for row in cellset.rows]}


def _tables_to_doc(tables: TableListModel) -> Optional[Dict[str, Any]]:
    if not tables.tables:
        return None
    return {"table": [{"@name": name} for name in tables.names]}


def _require_dict(node: Any, element: str) -> Dict[str, Any]:
    if node is None:
        return {}
    if not isinstance(node, dict):
        raise MalformedError(f"Unexpected content in <{element}>")
    return node


def _attribute(node: Dict[str, Any], name: str, element: str) -> str:
    value = node.get(f"@{name}")
    if value is None:
        raise MalformedError(f"<{element}> is missing attribute {name!r}")
    return value


def _cell_from_doc(node: Any) -> CellModel:
    node = _require_dict(node, "Cell")
    raw_ts = node.get("@timestamp")
    timestamp = int(raw_ts) if raw_ts is not None else None
    return CellModel(
        b64decode(_attribute(node, "column", "Cell")),
        b64decode(node.get("#text") or ""),
        timestamp,
    )


def _row_from_doc(node: Any) -> RowModel:
    node = _require_dict(node, "Row")
    cells: List[CellModel] = [_cell_from_doc(c) for c in node.get("Cell") or []]
    return RowModel(b64decode(_attribute(node, "key", "Row")), cells)


def _cellset_from_doc(node: Any) -> CellSetModel:
    node = _require_dict(node, "CellSet")
    return CellSetModel(_row_from_doc(r) for r in node.get("Row") or [])


def _tables_from_doc(node: Any) -> TableListModel:
    node = _require_dict(node, "TableList")
    return TableListModel(
        _attribute(_require_dict(t, "table"), "name", "table")
        for t in node.get("table") or []
    )


_TO_DOC = {
    CellModel: _cell_to_doc,
    RowModel: _row_to_doc,
    CellSetModel: _cellset_to_doc,
    TableListModel: _tables_to_doc,
}
_FROM_DOC = {
    CellModel: _cell_from_doc,
    RowModel: _row_from_doc,
    CellSetModel: _cellset_from_doc,
    TableListModel: _tables_from_doc,
}


class XmlCodec(Codec):
    media_type = MIMETYPE_XML
    aliases = (MIMETYPE_TEXT_XML,)

    def encode(self, model: Model) -> bytes:
        root = _ROOTS.get(type(model))
        if root is None:
            raise NotSupportedError(f"No XML form for {type(model).__name__}")
        doc = {root: _TO_DOC[type(model)](model)}
        return xmltodict.unparse(doc, encoding="utf-8").encode("utf-8")

    def decode(self, data: bytes, model_type: Type[M]) -> M:
        root = _ROOTS.get(model_type)
        if root is None:
            raise NotSupportedError(f"No XML form for {model_type.__name__}")
        try:
            doc = xmltodict.parse(data, force_list=_force_list)
        except ExpatError as exc:
            raise MalformedError(f"Invalid XML body: {exc}") from exc
        if root not in doc:
            raise MalformedError(f"Expected <{root}> root element, got <{next(iter(doc))}>")
        try:
            return _FROM_DOC[model_type](doc[root])
        except binascii.Error as exc:
            raise MalformedError(f"Invalid base64 in XML body: {exc}") from exc
        except ValueError as exc:
            raise MalformedError(str(exc)) from exc


__all__ = ["XmlCodec"]
