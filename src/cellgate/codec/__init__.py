"""Wire codecs: JSON, XML and length-prefixed protobuf."""

from cellgate.codec.base import Codec
from cellgate.codec.json_codec import JsonCodec
from cellgate.codec.protobuf_codec import ProtobufCodec
from cellgate.codec.registry import (
    CODECS,
    JSON_CODEC,
    PRODUCES,
    PROTOBUF_CODEC,
    XML_CODEC,
    codec_for,
    decode,
    encode,
    for_content_type,
    negotiate,
)
from cellgate.codec.xml_codec import XmlCodec

__all__ = [
    "Codec",
    "JsonCodec",
    "XmlCodec",
    "ProtobufCodec",
    "CODECS",
    "PRODUCES",
    "JSON_CODEC",
    "XML_CODEC",
    "PROTOBUF_CODEC",
    "codec_for",
    "decode",
    "encode",
    "for_content_type",
    "negotiate",
]
