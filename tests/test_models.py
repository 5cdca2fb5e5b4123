"""Tests for the row/cell data models."""
import pytest

from cellgate.core.bytes_window import OwnedBytes, SharedWindow
from cellgate.core.constants import INT64_MAX, INT64_MIN
from cellgate.core.models import (
    CellModel,
    CellSetModel,
    RowModel,
    TableListModel,
    TableModel,
)


@pytest.mark.unit
def test_cell_basic():
    cell = CellModel(b"a:1", b"testvalue5", 1700000000000)
    assert cell.column == b"a:1"
    assert cell.value == b"testvalue5"
    assert cell.timestamp == 1700000000000
    assert cell.has_timestamp()
    assert cell.split_column() == (b"a", b"1")
    assert cell.family == b"a"
    assert cell.qualifier == b"1"


@pytest.mark.unit
def test_cell_from_parts_and_defaults():
    cell = CellModel.from_parts(b"b", b"2", b"v")
    assert cell.column == b"b:2"
    assert cell.timestamp is None
    assert not cell.has_timestamp()
    assert CellModel("a:").value == b""
    assert CellModel(b"a").split_column() == (b"a", b"")


@pytest.mark.unit
@pytest.mark.parametrize(
    "kwargs",
    [
        {"column": b""},
        {"column": b"a:1", "value": None},
        {"column": b"a:1", "timestamp": INT64_MAX + 1},
        {"column": b"a:1", "timestamp": INT64_MIN - 1},
        {"column": b"a:1", "timestamp": "12"},
        {"column": b"a:1", "timestamp": True},
    ],
)
def test_cell_rejects_invalid_fields(kwargs):
    with pytest.raises(ValueError):
        CellModel(**kwargs)


@pytest.mark.unit
def test_cell_timestamp_accepts_int64_bounds():
    assert INT64_MIN == -(2**63)
    assert INT64_MAX == 2**63 - 1
    assert CellModel(b"a:1", timestamp=INT64_MIN).timestamp == INT64_MIN
    assert CellModel(b"a:1", timestamp=INT64_MAX).timestamp == INT64_MAX


@pytest.mark.unit
def test_row_key_window_equals_owned_key():
    cells = [CellModel(b"a:1", b"v")]
    backing = b"testrow5/a:1"
    windowed = RowModel.from_window(backing, 0, 8, cells)
    owned = RowModel(b"testrow5", cells)

    assert isinstance(windowed.key_window, SharedWindow)
    assert isinstance(owned.key_window, OwnedBytes)
    assert windowed.key == b"testrow5"
    assert windowed == owned
    assert hash(windowed) == hash(owned)


@pytest.mark.unit
def test_row_cells_keep_insertion_order():
    row = RowModel("r1")
    assert row.is_empty()
    row.add_cell(CellModel(b"b:2", b"x"))
    row.add_cell(CellModel(b"a:1", b"y"))
    assert [c.column for c in row] == [b"b:2", b"a:1"]
    assert len(row) == 2
    assert row != RowModel("r1", list(reversed(row.cells)))


@pytest.mark.unit
def test_row_rejects_empty_key():
    with pytest.raises(ValueError):
        RowModel(b"")


@pytest.mark.unit
def test_cell_set_order_and_duplicates():
    row = RowModel(b"k", [CellModel(b"a:1", b"v")])
    cell_set = CellSetModel([row, row])
    assert len(cell_set) == 2
    assert not cell_set.is_empty()
    assert CellSetModel().is_empty()
    assert cell_set == CellSetModel([RowModel(b"k", [CellModel(b"a:1", b"v")])] * 2)


@pytest.mark.unit
def test_table_list():
    tables = TableListModel(["t1", TableModel("t2")])
    tables.add("t3")
    assert tables.names == ["t1", "t2", "t3"]
    assert tables.get(1) == TableModel("t2")
    assert len(tables) == 3
    assert tables == TableListModel(["t1", "t2", "t3"])
    with pytest.raises(ValueError):
        TableModel("")
