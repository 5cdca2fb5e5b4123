"""
Protobuf schema of the gateway messages, built at import time.

Equivalent ``.proto`` (proto2, package ``cellgate.rest``)::

    message Cell {
      optional bytes row = 1;        // unused inside a CellSet
      optional bytes column = 2;
      optional int64 timestamp = 3;
      optional bytes data = 4;
    }
    message CellSet {
      message Row {
        required bytes key = 1;
        repeated Cell values = 2;
      }
      repeated Row rows = 1;
    }
    message TableList {
      repeated string name = 1;
    }

There is deliberately no standalone Row message.
"""

from __future__ import annotations

from typing import Optional, Tuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "cellgate.rest"

_Field = descriptor_pb2.FieldDescriptorProto


def _add_field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    field_type: int,
    label: int = _Field.LABEL_OPTIONAL,
    type_name: Optional[str] = None,
) -> None:
    field = message.field.add()
    field.name = name
    field.number = number
    field.type = field_type
    field.label = label
    if type_name:
        field.type_name = type_name


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto()
    proto.name = "cellgate/rest.proto"
    proto.package = PACKAGE
    proto.syntax = "proto2"

    cell = proto.message_type.add()
    cell.name = "Cell"
    _add_field(cell, "row", 1, _Field.TYPE_BYTES)
    _add_field(cell, "column", 2, _Field.TYPE_BYTES)
    _add_field(cell, "timestamp", 3, _Field.TYPE_INT64)
    _add_field(cell, "data", 4, _Field.TYPE_BYTES)

    cell_set = proto.message_type.add()
    cell_set.name = "CellSet"
    row = cell_set.nested_type.add()
    row.name = "Row"
    _add_field(row, "key", 1, _Field.TYPE_BYTES, _Field.LABEL_REQUIRED)
    _add_field(
        row,
        "values",
        2,
        _Field.TYPE_MESSAGE,
        _Field.LABEL_REPEATED,
        f".{PACKAGE}.Cell",
    )
    _add_field(
        cell_set,
        "rows",
        1,
        _Field.TYPE_MESSAGE,
        _Field.LABEL_REPEATED,
        f".{PACKAGE}.CellSet.Row",
    )

    table_list = proto.message_type.add()
    table_list.name = "TableList"
    _add_field(table_list, "name", 1, _Field.TYPE_STRING, _Field.LABEL_REPEATED)
    return proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())

CellMessage = message_factory.GetMessageClass(
    _POOL.FindMessageTypeByName(f"{PACKAGE}.Cell")
)
CellSetMessage = message_factory.GetMessageClass(
    _POOL.FindMessageTypeByName(f"{PACKAGE}.CellSet")
)
TableListMessage = message_factory.GetMessageClass(
    _POOL.FindMessageTypeByName(f"{PACKAGE}.TableList")
)

MAX_VARINT_BYTES = 10


def encode_varint(value: int) -> bytes:
    """Base-128 varint of a non-negative int, as used for the body length prefix."""
    if value < 0:
        raise ValueError(f"Varint must be non-negative: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, pos: int = 0) -> Tuple[int, int]:
    """
    Read one varint from ``data`` at ``pos``.

    Returns:
        The value and the position just past it

    Raises:
        ValueError: if the varint is truncated or longer than 10 bytes
    """
    result = 0
    shift = 0
    for index in range(pos, min(len(data), pos + MAX_VARINT_BYTES)):
        byte = data[index]
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, index + 1
        shift += 7
    if len(data) - pos >= MAX_VARINT_BYTES:
        raise ValueError("Varint longer than 10 bytes")
    raise ValueError("Truncated varint")


__all__ = [
    "CellMessage",
    "CellSetMessage",
    "TableListMessage",
    "PACKAGE",
    "encode_varint",
    "decode_varint",
]
