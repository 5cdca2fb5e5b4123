import json

import pytest

from cellgate.codec import JSON_CODEC, PROTOBUF_CODEC, XML_CODEC
from cellgate.core.constants import (
    MIMETYPE_BINARY,
    MIMETYPE_JSON,
    MIMETYPE_PROTOBUF,
    MIMETYPE_XML,
    REQUEST_ID_HEADER,
    TIMESTAMP_HEADER,
)
from cellgate.core.encoding import b64url_encode_nopad
from cellgate.core.models import CellModel, CellSetModel, RowModel, TableListModel

pytestmark = pytest.mark.integration

TABLE = "TestRowResource"
BINARY = {"Content-Type": MIMETYPE_BINARY}


def test_put_and_get_single_cell_binary(api_client):
    response = api_client.put(
        f"/{TABLE}/row1/a:1",
        content=b"\x00raw\xff",
        headers={**BINARY, TIMESTAMP_HEADER: "1234"},
    )
    assert response.status_code == 200

    response = api_client.get(f"/{TABLE}/row1/a:1", headers={"Accept": MIMETYPE_BINARY})
    assert response.status_code == 200
    assert response.content == b"\x00raw\xff"
    assert response.headers[TIMESTAMP_HEADER] == "1234"


def test_binary_get_needs_exactly_one_cell(api_client):
    api_client.put(f"/{TABLE}/row1/a:1", content=b"x", headers=BINARY)
    api_client.put(f"/{TABLE}/row1/a:2", content=b"y", headers=BINARY)
    response = api_client.get(f"/{TABLE}/row1/a", headers={"Accept": MIMETYPE_BINARY})
    assert response.status_code == 400


def test_get_row_negotiates_cell_set(api_client):
    api_client.put(f"/{TABLE}/row1/a:1", content=b"x", headers={**BINARY, TIMESTAMP_HEADER: "5"})
    api_client.put(f"/{TABLE}/row1/b:2", content=b"y", headers={**BINARY, TIMESTAMP_HEADER: "5"})
    expected = CellSetModel(
        [RowModel(b"row1", [CellModel(b"a:1", b"x", 5), CellModel(b"b:2", b"y", 5)])]
    )
    for media_type, codec in (
        (MIMETYPE_JSON, JSON_CODEC),
        (MIMETYPE_XML, XML_CODEC),
        (MIMETYPE_PROTOBUF, PROTOBUF_CODEC),
    ):
        response = api_client.get(f"/{TABLE}/row1", headers={"Accept": media_type})
        assert response.status_code == 200
        assert response.headers["content-type"] == media_type
        assert codec.decode(response.content, CellSetModel) == expected

    only_b = api_client.get(f"/{TABLE}/row1/b", headers={"Accept": MIMETYPE_JSON})
    assert JSON_CODEC.decode(only_b.content, CellSetModel).rows[0].cells == [
        CellModel(b"b:2", b"y", 5)
    ]


def test_get_missing_row_is_not_found(api_client):
    assert api_client.get(f"/{TABLE}/nothing").status_code == 404


def test_put_cell_set_body_uses_row_keys_from_body(api_client):
    body = CellSetModel(
        [
            RowModel(b"k1", [CellModel(b"a:1", b"v1", 1)]),
            RowModel(b"k2", [CellModel(b"b:1", b"v2", 1)]),
        ]
    )
    for media_type, codec in ((MIMETYPE_JSON, JSON_CODEC), (MIMETYPE_PROTOBUF, PROTOBUF_CODEC)):
        response = api_client.put(
            f"/{TABLE}/ignored",
            content=codec.encode(body),
            headers={"Content-Type": media_type},
        )
        assert response.status_code == 200

    response = api_client.get(f"/{TABLE}/multiget?row=k1&row=k2", headers={"Accept": MIMETYPE_JSON})
    assert JSON_CODEC.decode(response.content, CellSetModel) == body


def test_put_rejects_bad_bodies(api_client):
    response = api_client.put(
        f"/{TABLE}/row1", content=b"{broken", headers={"Content-Type": MIMETYPE_JSON}
    )
    assert response.status_code == 400

    response = api_client.put(f"/{TABLE}/row1", content=b"x", headers={"Content-Type": "text/csv"})
    assert response.status_code == 415

    response = api_client.put(f"/{TABLE}/row1", content=b"x", headers=BINARY)
    assert response.status_code == 400

    response = api_client.put(f"/{TABLE}/row1/a", content=b"x", headers=BINARY)
    assert response.status_code == 400

    response = api_client.put(
        f"/{TABLE}/row1/a:1", content=b"x", headers={**BINARY, TIMESTAMP_HEADER: "soon"}
    )
    assert response.status_code == 400

    response = api_client.put(f"/{TABLE}/row1/zz:1", content=b"x", headers=BINARY)
    assert response.status_code == 400


def test_put_into_unknown_table_is_not_found(api_client):
    response = api_client.put("/NoSuchTable/row1/a:1", content=b"x", headers=BINARY)
    assert response.status_code == 404


def test_delete_column_then_row(api_client):
    api_client.put(f"/{TABLE}/row1/a:1", content=b"x", headers=BINARY)
    api_client.put(f"/{TABLE}/row1/b:2", content=b"y", headers=BINARY)

    assert api_client.delete(f"/{TABLE}/row1/a:1").status_code == 200
    response = api_client.get(f"/{TABLE}/row1", headers={"Accept": MIMETYPE_JSON})
    cells = JSON_CODEC.decode(response.content, CellSetModel).rows[0].cells
    assert [c.column for c in cells] == [b"b:2"]

    assert api_client.delete(f"/{TABLE}/row1").status_code == 200
    assert api_client.get(f"/{TABLE}/row1").status_code == 404


def test_b64_row_key_in_path(api_client):
    key = b"\x00bin/key"
    encoded = b64url_encode_nopad(key)
    response = api_client.put(f"/{TABLE}/{encoded}/a:1?e=b64", content=b"v", headers=BINARY)
    assert response.status_code == 200

    response = api_client.get(
        f"/{TABLE}/multiget?row={encoded}&e=b64", headers={"Accept": MIMETYPE_JSON}
    )
    assert JSON_CODEC.decode(response.content, CellSetModel).rows[0].key == key

    response = api_client.get(
        f"/{TABLE}/{encoded}/a:1",
        headers={"Accept": MIMETYPE_BINARY, "Encoding": "b64"},
    )
    assert response.content == b"v"


def test_list_tables(api_client):
    response = api_client.get("/", headers={"Accept": MIMETYPE_JSON})
    assert response.status_code == 200
    assert json.loads(response.content) == {"table": [{"name": TABLE}]}
    response = api_client.get("/", headers={"Accept": MIMETYPE_PROTOBUF})
    assert PROTOBUF_CODEC.decode(response.content, TableListModel).names == [TABLE]


def test_health_metrics_and_request_id(api_client):
    response = api_client.get("/health", headers={REQUEST_ID_HEADER: "req-1"})
    assert response.json() == {"status": "ok"}
    assert response.headers[REQUEST_ID_HEADER] == "req-1"

    api_client.get(f"/{TABLE}/multiget")
    metrics = api_client.get("/metrics")
    assert metrics.status_code == 200
    assert b"cellgate_requests_total" in metrics.content
    assert b'route="/{table}/multiget"' in metrics.content
