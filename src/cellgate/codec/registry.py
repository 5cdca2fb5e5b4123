"""
Media type -> codec mapping and ``Accept`` negotiation.

The mapping is explicit and finite; ``PRODUCES`` keeps the order in which
media types are offered when the client accepts anything.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple, Type

from cellgate.codec.base import Codec, M, Model
from cellgate.codec.json_codec import JsonCodec
from cellgate.codec.protobuf_codec import ProtobufCodec
from cellgate.codec.xml_codec import XmlCodec
from cellgate.core.errors import (
    MalformedError,
    NotAcceptableError,
    UnsupportedMediaTypeError,
)
from cellgate.monitoring.metrics import CODEC_ERRORS

XML_CODEC = XmlCodec()
JSON_CODEC = JsonCodec()
PROTOBUF_CODEC = ProtobufCodec()

CODECS: Dict[str, Codec] = {}
for _codec in (XML_CODEC, JSON_CODEC, PROTOBUF_CODEC):
    for _alias in (_codec.media_type, *_codec.aliases):
        CODECS[_alias] = _codec

PRODUCES: Tuple[str, ...] = tuple(CODECS)


def _media_type(value: str) -> str:
    return value.split(";", 1)[0].strip().lower()


def parse_accept(accept: Optional[str]) -> List[Tuple[str, float]]:
    """Return ``(media_range, q)`` pairs, highest quality first (stable)."""
    ranges: List[Tuple[str, float]] = []
    for part in (accept or "").split(","):
        if not part.strip():
            continue
        media_range, *params = [p.strip() for p in part.split(";")]
        quality = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        ranges.append((media_range.lower(), quality))
    return sorted(ranges, key=lambda item: -item[1])


def negotiate(accept: Optional[str], produces: Sequence[str] = PRODUCES) -> str:
    """
    Pick the response media type for an ``Accept`` header.

    A missing header or ``*/*`` selects ``produces[0]``.

    Raises:
        NotAcceptableError: when nothing in ``produces`` is acceptable
    """
    ranges = parse_accept(accept)
    if not ranges:
        return produces[0]
    for media_range, quality in ranges:
        if quality <= 0:
            continue
        if media_range in ("*/*", "*"):
            return produces[0]
        if media_range.endswith("/*"):
            prefix = media_range[:-1]
            for candidate in produces:
                if candidate.startswith(prefix):
                    return candidate
            continue
        if media_range in produces:
            return media_range
    raise NotAcceptableError(f"Not acceptable: {accept}")


def codec_for(media_type: str) -> Codec:
    codec = CODECS.get(_media_type(media_type))
    if codec is None:
        raise NotAcceptableError(f"No codec for {media_type}")
    return codec


def for_content_type(content_type: Optional[str]) -> Codec:
    """
    Raises:
        UnsupportedMediaTypeError: for a missing or unknown ``Content-Type``
    """
    codec = CODECS.get(_media_type(content_type or ""))
    if codec is None:
        raise UnsupportedMediaTypeError(f"Unsupported media type: {content_type}")
    return codec


def encode(model: Model, media_type: str) -> bytes:
    return codec_for(media_type).encode(model)


def decode(data: bytes, content_type: Optional[str], model_type: Type[M]) -> M:
    codec = for_content_type(content_type)
    try:
        return codec.decode(data, model_type)
    except MalformedError:
        CODEC_ERRORS.labels(media_type=codec.media_type).inc()
        raise


__all__ = [
    "CODECS",
    "PRODUCES",
    "XML_CODEC",
    "JSON_CODEC",
    "PROTOBUF_CODEC",
    "parse_accept",
    "negotiate",
    "codec_for",
    "for_content_type",
    "encode",
    "decode",
]
