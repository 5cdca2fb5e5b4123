"""Base64 helpers shared by the codecs, the multiget parser and the client."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Union

from cellgate.core.errors import BadRequestError

_B64URL_RE = re.compile(rb"^[A-Za-z0-9_-]*={0,2}$")

BytesLike = Union[bytes, bytearray, memoryview]


def b64encode(data: BytesLike) -> str:
    """Standard base64 with padding, as text."""
    return base64.b64encode(data).decode("ascii")


def b64decode(text: Union[str, bytes]) -> bytes:
    """Strict standard base64; raises ``binascii.Error`` on bad input."""
    return base64.b64decode(text, validate=True)


def b64url_encode_nopad(data: BytesLike) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode_nopad(text: Union[str, bytes]) -> bytes:
    """
    Decode base64url without padding (trailing ``=`` tolerated).

    Raises:
        BadRequestError: on characters outside the url-safe alphabet or an
            impossible length.
    """
    raw = text.encode("ascii", "replace") if isinstance(text, str) else bytes(text)
    if not _B64URL_RE.match(raw):
        raise BadRequestError(f"Invalid base64url value: {raw!r}")
    raw = raw.rstrip(b"=")
    if len(raw) % 4 == 1:
        raise BadRequestError(f"Invalid base64url length: {raw!r}")
    try:
        return base64.urlsafe_b64decode(raw + b"=" * (-len(raw) % 4))
    except binascii.Error as exc:
        raise BadRequestError(f"Invalid base64url value: {raw!r}") from exc


__all__ = ["b64encode", "b64decode", "b64url_encode_nopad", "b64url_decode_nopad"]
