import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from cellgate.api.multiget import ClientDisconnected, _until_disconnect
from cellgate.core.bytes_window import OwnedBytes, SharedWindow
from cellgate.core.encoding import b64url_encode_nopad
from cellgate.core.errors import (
    BadRequestError,
    DeadlineExceededError,
    EmptyRowError,
    FilterSyntaxError,
    NotFoundError,
    UpstreamError,
)
from cellgate.core.models import CellModel, RowModel
from cellgate.gateway.multiget import MultiGetHandler, MultiGetRequest, RowSpec
from cellgate.store import InMemoryRowStore
from cellgate.store.base import ColumnSpec, RowStore
from cellgate.store.filters import parse_filter

TABLE = "T"


class ScriptedStore(RowStore):
    """Store whose point reads follow a per-row script of outcomes."""

    def __init__(self, script: Dict[bytes, List[str]]) -> None:
        self.script = script
        self.calls: List[bytes] = []
        self.columns_seen: Dict[bytes, Sequence[ColumnSpec]] = {}
        self.cancelled: List[bytes] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def compile_filter(self, expression: bytes):
        return parse_filter(expression)

    async def get_row(self, table, row, columns=(), row_filter=None, max_versions=1):
        self.calls.append(row)
        self.columns_seen[row] = list(columns)
        outcomes = self.script.get(row, ["missing"])
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if outcome == "slow":
                await asyncio.sleep(30)
            await asyncio.sleep(0.01)
            if outcome == "empty":
                raise EmptyRowError(f"{row!r} has no cells")
            if outcome == "upstream":
                raise UpstreamError("region server gone")
            if outcome == "missing":
                return None
            return RowModel(row, [CellModel(b"a:1", b"value-" + row, 1)])
        except asyncio.CancelledError:
            self.cancelled.append(row)
            raise
        finally:
            self.in_flight -= 1

    async def put_row(self, table, row):
        raise NotImplementedError

    async def delete(self, table, row, column=None):
        raise NotImplementedError

    async def list_tables(self):
        raise NotImplementedError


def _request(*rows: bytes, **kwargs) -> MultiGetRequest:
    return MultiGetRequest(table=TABLE, rows=list(rows), **kwargs)


def _keys(cell_set) -> List[bytes]:
    return [row.key for row in cell_set]


@pytest.mark.unit
def test_row_spec_parse_plain_key_is_window():
    spec = RowSpec.parse(b"testrow5/a:1,b")
    assert isinstance(spec.key, SharedWindow)
    assert spec.key.materialize() == b"testrow5"
    assert spec.columns == [ColumnSpec(b"a", b"1"), ColumnSpec(b"b")]


@pytest.mark.unit
def test_row_spec_parse_b64_key():
    spec = RowSpec.parse(b64url_encode_nopad(b"\x00\xff/x").encode() + b"/a", b64=True)
    assert isinstance(spec.key, OwnedBytes)
    assert spec.key.materialize() == b"\x00\xff/x"
    assert spec.columns == [ColumnSpec(b"a")]


@pytest.mark.unit
@pytest.mark.parametrize("raw", [b"", b"/a:1", b"k/a:1/b", b"k/:q"])
def test_row_spec_rejects_bad_input(raw):
    with pytest.raises(BadRequestError):
        RowSpec.parse(raw)


@pytest.mark.unit
def test_request_from_http():
    filter_b64 = b64url_encode_nopad(b"PrefixFilter('x')")
    request = MultiGetRequest.from_http(
        TABLE,
        f"row=a%2Fb&row=c&filter=ignored&filter.b64={filter_b64}&v=2".encode(),
        {"Encoding": "b64"},
        "a:1,b",
    )
    assert request.rows == [b"a/b", b"c"]
    assert request.filter_expression == b"PrefixFilter('x')"
    assert request.b64_keys
    assert request.max_versions == 2
    assert request.columns == [ColumnSpec(b"a", b"1"), ColumnSpec(b"b")]


@pytest.mark.unit
@pytest.mark.parametrize("query", [b"row=a&v=0", b"row=a&v=x", b"row=a&filter.b64=***"])
def test_request_from_http_rejects_bad_parameters(query):
    with pytest.raises(BadRequestError):
        MultiGetRequest.from_http(TABLE, query, {})


@pytest.mark.asyncio
async def test_rows_in_request_order_with_duplicates_and_omissions():
    store = InMemoryRowStore(tables={TABLE: ["a"]})
    for key in (b"r1", b"r2"):
        await store.put_row(TABLE, RowModel(key, [CellModel(b"a:1", key, 1)]))
    handler = MultiGetHandler(store)

    result = await handler.execute(_request(b"r2", b"missing", b"r1", b"r2"))

    assert _keys(result) == [b"r2", b"r1", b"r2"]
    assert [row.cells[0].value for row in result] == [b"r2", b"r1", b"r2"]


@pytest.mark.asyncio
async def test_response_keys_are_windows_over_request_bytes():
    store = ScriptedStore({b"k1": ["row"]})
    result = await MultiGetHandler(store).execute(_request(b"k1/a:1"))
    key = result.rows[0].key_window
    assert isinstance(key, SharedWindow)
    assert key.backing == b"k1/a:1"
    assert result.rows[0] == RowModel(b"k1", [CellModel(b"a:1", b"value-k1", 1)])


@pytest.mark.asyncio
async def test_path_and_row_columns_are_combined():
    store = ScriptedStore({b"k1": ["row"], b"k2": ["row"]})
    await MultiGetHandler(store).execute(
        _request(b"k1/b:2", b"k2", columns=[ColumnSpec(b"a", b"1")])
    )
    assert store.columns_seen[b"k1"] == [ColumnSpec(b"a", b"1"), ColumnSpec(b"b", b"2")]
    assert store.columns_seen[b"k2"] == [ColumnSpec(b"a", b"1")]


@pytest.mark.asyncio
async def test_b64_keys_decoded():
    key = b"\x00bin\xff"
    store = ScriptedStore({key: ["row"]})
    encoded = b64url_encode_nopad(key).encode()
    result = await MultiGetHandler(store).execute(_request(encoded, b64_keys=True))
    assert _keys(result) == [key]


@pytest.mark.asyncio
async def test_invalid_b64_key_rejects_whole_request_before_reads():
    store = ScriptedStore({b"ok": ["row"]})
    good = b64url_encode_nopad(b"ok").encode()
    with pytest.raises(BadRequestError):
        await MultiGetHandler(store).execute(_request(good, b"not*base64", b64_keys=True))
    assert store.calls == []


@pytest.mark.asyncio
async def test_no_rows_requested_is_not_found():
    store = ScriptedStore({})
    with pytest.raises(NotFoundError):
        await MultiGetHandler(store).execute(_request())
    assert store.calls == []


@pytest.mark.asyncio
async def test_no_row_with_cells_is_not_found():
    store = ScriptedStore({b"a": ["missing"], b"b": ["empty"]})
    with pytest.raises(NotFoundError):
        await MultiGetHandler(store).execute(_request(b"a", b"b"))


@pytest.mark.asyncio
async def test_empty_row_error_omits_row_without_retry():
    store = ScriptedStore({b"a": ["empty"], b"b": ["row"]})
    handler = MultiGetHandler(store, read_retries=3, retry_backoff_base=0.0)
    result = await handler.execute(_request(b"a", b"b"))
    assert _keys(result) == [b"b"]
    assert store.calls.count(b"a") == 1


@pytest.mark.asyncio
async def test_upstream_error_surfaces():
    store = ScriptedStore({b"a": ["row"], b"b": ["upstream"]})
    with pytest.raises(UpstreamError):
        await MultiGetHandler(store).execute(_request(b"a", b"b"))


@pytest.mark.asyncio
async def test_upstream_error_is_retried():
    store = ScriptedStore({b"a": ["upstream", "row"]})
    handler = MultiGetHandler(store, read_retries=2, retry_backoff_base=0.0)
    result = await handler.execute(_request(b"a"))
    assert _keys(result) == [b"a"]
    assert store.calls == [b"a", b"a"]


@pytest.mark.asyncio
async def test_malformed_filter_fails_before_reads():
    store = ScriptedStore({b"a": ["row"]})
    with pytest.raises(FilterSyntaxError):
        await MultiGetHandler(store).execute(
            _request(b"a", filter_expression=b"PrefixFilter(")
        )
    assert store.calls == []


@pytest.mark.asyncio
async def test_filter_applies_to_every_row():
    store = InMemoryRowStore(tables={TABLE: ["a"]})
    for key in (b"testrow5", b"other"):
        await store.put_row(TABLE, RowModel(key, [CellModel(b"a:1", b"v", 1)]))
    handler = MultiGetHandler(store)
    result = await handler.execute(
        _request(b"testrow5", b"other", filter_expression=b"PrefixFilter('test')")
    )
    assert _keys(result) == [b"testrow5"]


@pytest.mark.asyncio
async def test_deadline_returns_rows_that_finished():
    store = ScriptedStore({b"fast": ["row"], b"slow": ["slow"]})
    handler = MultiGetHandler(store, request_timeout=0.3)
    result = await handler.execute(_request(b"slow", b"fast"))
    assert _keys(result) == [b"fast"]
    assert store.cancelled == [b"slow"]


@pytest.mark.asyncio
async def test_deadline_with_nothing_finished_is_unavailable():
    store = ScriptedStore({b"s1": ["slow"], b"s2": ["slow"]})
    handler = MultiGetHandler(store, request_timeout=0.1)
    with pytest.raises(DeadlineExceededError) as excinfo:
        await handler.execute(_request(b"s1", b"s2"))
    assert excinfo.value.status_code == 503
    assert sorted(store.cancelled) == [b"s1", b"s2"]


@pytest.mark.asyncio
async def test_parallel_reads_are_bounded():
    keys = [f"k{i}".encode() for i in range(12)]
    store = ScriptedStore({key: ["row"] for key in keys})
    handler = MultiGetHandler(store, max_parallel_reads=3)
    result = await handler.execute(_request(*keys))
    assert _keys(result) == keys
    assert 1 <= store.max_in_flight <= 3


@pytest.mark.asyncio
async def test_unknown_table_is_not_found():
    handler = MultiGetHandler(InMemoryRowStore(tables={TABLE: ["a"]}))
    with pytest.raises(NotFoundError):
        await handler.execute(MultiGetRequest(table="missing", rows=[b"a"]))


class _StubRequest:
    """Stands in for a Starlette request; only the disconnect check is used."""

    def __init__(self, disconnected: bool) -> None:
        self.disconnected = disconnected
        self.checks = 0

    async def is_disconnected(self) -> bool:
        self.checks += 1
        return self.disconnected


@pytest.mark.asyncio
async def test_client_disconnect_cancels_point_reads():
    store = ScriptedStore({b"s1": ["slow"], b"s2": ["slow"]})
    handler = MultiGetHandler(store, request_timeout=30.0)
    request = _StubRequest(disconnected=True)

    with pytest.raises(ClientDisconnected):
        await _until_disconnect(request, handler.execute(_request(b"s1", b"s2")))

    assert request.checks == 1
    assert sorted(store.cancelled) == [b"s1", b"s2"]
    assert store.in_flight == 0


@pytest.mark.asyncio
async def test_connected_client_gets_result():
    store = ScriptedStore({b"r1": ["row"]})
    handler = MultiGetHandler(store)

    result = await _until_disconnect(
        _StubRequest(disconnected=False), handler.execute(_request(b"r1"))
    )

    assert _keys(result) == [b"r1"]
    assert store.cancelled == []
