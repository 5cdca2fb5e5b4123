"""Async HTTP client for the gateway, built on httpx."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Union
from urllib.parse import quote, quote_from_bytes

import httpx

from cellgate.codec import registry
from cellgate.core.constants import (
    CSRF_CUSTOM_HEADER_DEFAULT,
    FILTER_B64_PARAM,
    KEY_ENCODING_B64,
    KEY_ENCODING_PARAM,
    MIMETYPE_BINARY,
    MIMETYPE_PROTOBUF,
    ROW_KEYS_PARAM,
    TIMESTAMP_HEADER,
    VERSIONS_PARAM,
)
from cellgate.core.encoding import b64url_encode_nopad
from cellgate.core.errors import BadRequestError, UpstreamError
from cellgate.core.models import CellSetModel, RowModel, TableListModel
from cellgate.utils.logging import get_logger

logger = get_logger(__name__)

Key = Union[str, bytes]

# Multi-row puts take their row keys from the body; the path only needs a segment.
BATCH_ROW_PLACEHOLDER = "batch"


def _key_bytes(key: Key) -> bytes:
    return key.encode("utf-8") if isinstance(key, str) else bytes(key)


def _encode_key(key: Key, b64: bool) -> str:
    raw = _key_bytes(key)
    if b64:
        return b64url_encode_nopad(raw)
    return quote_from_bytes(raw, safe="")


def _columns_segment(columns: Optional[Sequence[Key]]) -> str:
    if not columns:
        return ""
    return "/" + ",".join(quote_from_bytes(_key_bytes(c), safe=":") for c in columns)


class GatewayClient:
    """
    Talks to a gateway over HTTP.

    Responses are requested in ``media_type`` (protobuf by default). A 404
    comes back as None, 5xx and transport failures raise UpstreamError and any
    other 4xx raises BadRequestError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        media_type: str = MIMETYPE_PROTOBUF,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.media_type = media_type
        default_headers = {CSRF_CUSTOM_HEADER_DEFAULT: "cellgate-client"}
        default_headers.update(headers or {})
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers=default_headers,
        )

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[httpx.Response]:
        try:
            response = await self._client.request(
                method, url, content=content, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.warning("gateway_request_failed", method=method, url=url, error=str(exc))
            raise UpstreamError(f"{method} {url} failed: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.status_code >= 500:
            raise UpstreamError(
                f"{method} {url} returned {response.status_code}: {response.text}"
            )
        if response.status_code >= 400:
            raise BadRequestError(
                f"{method} {url} returned {response.status_code}: {response.text}"
            )
        return response

    def _decode_cell_set(self, response: httpx.Response) -> CellSetModel:
        return registry.decode(
            response.content, response.headers.get("content-type"), CellSetModel
        )

    async def multiget(
        self,
        table: str,
        rows: Iterable[Key],
        columns: Optional[Sequence[Key]] = None,
        filter: Optional[Key] = None,
        b64_keys: bool = False,
        versions: Optional[int] = None,
    ) -> Optional[CellSetModel]:
        """
        Fetch several rows in one request.

        Returns:
            The rows that have cells, in request order, or None when none do
        """
        query: List[str] = [
            f"{ROW_KEYS_PARAM}={_encode_key(row, b64_keys)}" for row in rows
        ]
        if b64_keys:
            query.append(f"{KEY_ENCODING_PARAM}={KEY_ENCODING_B64}")
        if filter is not None:
            query.append(f"{FILTER_B64_PARAM}={b64url_encode_nopad(_key_bytes(filter))}")
        if versions is not None:
            query.append(f"{VERSIONS_PARAM}={versions}")

        url = f"/{quote(table, safe='')}/multiget{_columns_segment(columns)}"
        if query:
            url += "?" + "&".join(query)

        response = await self._request("GET", url, headers={"Accept": self.media_type})
        if response is None:
            return None
        return self._decode_cell_set(response)

    async def get_row(
        self,
        table: str,
        row: Key,
        columns: Optional[Sequence[Key]] = None,
        b64_keys: bool = False,
    ) -> Optional[RowModel]:
        url = f"/{quote(table, safe='')}/{_encode_key(row, b64_keys)}{_columns_segment(columns)}"
        if b64_keys:
            url += f"?{KEY_ENCODING_PARAM}={KEY_ENCODING_B64}"
        response = await self._request("GET", url, headers={"Accept": self.media_type})
        if response is None:
            return None
        cell_set = self._decode_cell_set(response)
        return cell_set.rows[0] if not cell_set.is_empty() else None

    async def put_cell(
        self,
        table: str,
        row: Key,
        column: Key,
        value: bytes,
        timestamp: Optional[int] = None,
        b64_keys: bool = False,
    ) -> None:
        url = f"/{quote(table, safe='')}/{_encode_key(row, b64_keys)}{_columns_segment([column])}"
        if b64_keys:
            url += f"?{KEY_ENCODING_PARAM}={KEY_ENCODING_B64}"
        headers = {"Content-Type": MIMETYPE_BINARY}
        if timestamp is not None:
            headers[TIMESTAMP_HEADER] = str(timestamp)
        await self._request("PUT", url, content=value, headers=headers)

    async def put_rows(self, table: str, cell_set: CellSetModel) -> None:
        """Store every row of ``cell_set`` in one request."""
        url = f"/{quote(table, safe='')}/{BATCH_ROW_PLACEHOLDER}"
        body = registry.encode(cell_set, self.media_type)
        response = await self._request(
            "PUT", url, content=body, headers={"Content-Type": self.media_type}
        )
        if response is None:
            raise BadRequestError(f"Table {table} not found")

    async def delete(
        self,
        table: str,
        row: Key,
        column: Optional[Key] = None,
        b64_keys: bool = False,
    ) -> None:
        url = f"/{quote(table, safe='')}/{_encode_key(row, b64_keys)}"
        if column is not None:
            url += _columns_segment([column])
        if b64_keys:
            url += f"?{KEY_ENCODING_PARAM}={KEY_ENCODING_B64}"
        await self._request("DELETE", url)

    async def list_tables(self) -> TableListModel:
        response = await self._request("GET", "/", headers={"Accept": self.media_type})
        if response is None:
            return TableListModel()
        return registry.decode(
            response.content, response.headers.get("content-type"), TableListModel
        )


__all__ = ["GatewayClient", "BATCH_ROW_PLACEHOLDER"]
