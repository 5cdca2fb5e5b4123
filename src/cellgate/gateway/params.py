"""Binary-clean query string parsing and request hints shared by the routes."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import unquote_plus, unquote_to_bytes

from cellgate.core.constants import (
    DEFAULT_MAX_VERSIONS,
    FILTER_B64_PARAM,
    FILTER_PARAM,
    KEY_ENCODING_B64,
    KEY_ENCODING_HEADER,
    KEY_ENCODING_PARAM,
    VERSIONS_PARAM,
)
from cellgate.core.encoding import b64url_decode_nopad
from cellgate.core.errors import BadRequestError


def parse_query_bytes(query_string: bytes) -> List[Tuple[str, bytes]]:
    """
    Split a raw query string into ``(name, value)`` pairs in order.

    Values stay bytes so binary row keys survive percent-decoding; ``+`` is
    a space as in form encoding.
    """
    pairs: List[Tuple[str, bytes]] = []
    for part in query_string.split(b"&"):
        if not part:
            continue
        name, _, value = part.partition(b"=")
        pairs.append(
            (
                unquote_plus(name.decode("latin-1")),
                unquote_to_bytes(value.replace(b"+", b" ")),
            )
        )
    return pairs


class QueryParams:
    """Ordered multi-valued view over ``parse_query_bytes`` output."""

    def __init__(self, pairs: List[Tuple[str, bytes]]) -> None:
        self._values: Dict[str, List[bytes]] = {}
        for name, value in pairs:
            self._values.setdefault(name, []).append(value)

    @classmethod
    def from_query_string(cls, query_string: bytes) -> "QueryParams":
        return cls(parse_query_bytes(query_string))

    def get_all(self, name: str) -> List[bytes]:
        return list(self._values.get(name, []))

    def first(self, name: str) -> Optional[bytes]:
        values = self._values.get(name)
        return values[0] if values else None

    def __contains__(self, name: str) -> bool:
        return name in self._values


def wants_b64_keys(params: QueryParams, headers: Mapping[str, str]) -> bool:
    """``e=b64`` and the ``Encoding: b64`` header are equivalent."""
    hint = params.first(KEY_ENCODING_PARAM)
    if hint is not None and hint.decode("latin-1").strip().lower() == KEY_ENCODING_B64:
        return True
    header = headers.get(KEY_ENCODING_HEADER) or headers.get(KEY_ENCODING_HEADER.lower())
    return header is not None and header.strip().lower() == KEY_ENCODING_B64


def filter_expression(params: QueryParams) -> Optional[bytes]:
    """
    Filter bytes from ``filter.b64`` (base64url) or ``filter`` (plain text).

    ``filter.b64`` takes precedence when both are present.
    """
    encoded = params.first(FILTER_B64_PARAM)
    if encoded is not None:
        return b64url_decode_nopad(encoded)
    return params.first(FILTER_PARAM)


def max_versions(params: QueryParams) -> int:
    raw = params.first(VERSIONS_PARAM)
    if raw is None:
        return DEFAULT_MAX_VERSIONS
    try:
        value = int(raw.decode("ascii"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise BadRequestError(f"Invalid versions parameter: {raw!r}") from exc
    if value < 1:
        raise BadRequestError(f"Versions must be positive, got {value}")
    return value


def decode_key(raw: bytes, b64: bool) -> bytes:
    key = b64url_decode_nopad(raw) if b64 else raw
    if not key:
        raise BadRequestError("Empty row key")
    return key


__all__ = [
    "QueryParams",
    "parse_query_bytes",
    "wants_b64_keys",
    "filter_expression",
    "max_versions",
    "decode_key",
]
