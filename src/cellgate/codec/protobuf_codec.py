"""
Length-prefixed protobuf codec.

Each body is a varint length followed by exactly that many bytes of a
``CellSet``, ``TableList`` or ``Cell`` message. Rows have no message of their
own; asking for one raises ``NotSupportedError``.
"""

from __future__ import annotations

from typing import Any, Type

from google.protobuf.message import DecodeError, EncodeError

from cellgate.codec.base import Codec, M, Model
from cellgate.codec.protobuf_schema import (
    CellMessage,
    CellSetMessage,
    TableListMessage,
    decode_varint,
    encode_varint,
)
from cellgate.core.constants import MIMETYPE_PROTOBUF, MIMETYPE_PROTOBUF_IETF
from cellgate.core.errors import MalformedError, NotSupportedError
from cellgate.core.models import CellModel, CellSetModel, RowModel, TableListModel

_NO_ROW_MESSAGE = "no protobuf equivalent to RowModel"


def _fill_cell(message: Any, cell: CellModel) -> None:
    message.column = cell.column
    if cell.timestamp is not None:
        message.timestamp = cell.timestamp
    message.data = cell.value


def _cell_from_message(message: Any) -> CellModel:
    timestamp = message.timestamp if message.HasField("timestamp") else None
    return CellModel(message.column, message.data, timestamp)


def _to_message(model: Model) -> Any:
    if isinstance(model, CellSetModel):
        message = CellSetMessage()
        for row in model.rows:
            row_message = message.rows.add()
            row_message.key = row.key
            for cell in row.cells:
                _fill_cell(row_message.values.add(), cell)
        return message
    if isinstance(model, TableListModel):
        message = TableListMessage()
        message.name.extend(model.names)
        return message
    if isinstance(model, CellModel):
        message = CellMessage()
        _fill_cell(message, model)
        return message
    raise NotSupportedError(f"No protobuf form for {type(model).__name__}")


def _from_message(message: Any, model_type: type) -> Model:
    if model_type is CellSetModel:
        return CellSetModel(
            RowModel(row.key, [_cell_from_message(v) for v in row.values])
            for row in message.rows
        )
    if model_type is TableListModel:
        return TableListModel(message.name)
    return _cell_from_message(message)


_MESSAGES = {
    CellSetModel: CellSetMessage,
    TableListModel: TableListMessage,
    CellModel: CellMessage,
}


class ProtobufCodec(Codec):
    media_type = MIMETYPE_PROTOBUF
    aliases = (MIMETYPE_PROTOBUF_IETF,)

    def encode(self, model: Model) -> bytes:
        if isinstance(model, RowModel):
            raise NotSupportedError(_NO_ROW_MESSAGE)
        try:
            payload = _to_message(model).SerializeToString()
        except EncodeError as exc:
            raise MalformedError(f"Cannot serialize {type(model).__name__}: {exc}") from exc
        return encode_varint(len(payload)) + payload

    def decode(self, data: bytes, model_type: Type[M]) -> M:
        if model_type is RowModel:
            raise NotSupportedError(_NO_ROW_MESSAGE)
        message_cls = _MESSAGES.get(model_type)
        if message_cls is None:
            raise NotSupportedError(f"No protobuf form for {model_type.__name__}")

        data = bytes(data)
        try:
            length, pos = decode_varint(data)
        except ValueError as exc:
            raise MalformedError(f"Invalid protobuf length prefix: {exc}") from exc
        available = len(data) - pos
        if available < length:
            raise MalformedError(
                f"Truncated protobuf body: expected {length} bytes, got {available}"
            )
        if available > length:
            raise MalformedError(
                f"Trailing bytes after protobuf body: {available - length}"
            )

        # merge into a fresh message so a failed parse leaves nothing behind
        message = message_cls()
        try:
            message.MergeFromString(data[pos : pos + length])
        except DecodeError as exc:
            raise MalformedError(f"Invalid protobuf body: {exc}") from exc
        if not message.IsInitialized():
            missing = ", ".join(message.FindInitializationErrors())
            raise MalformedError(f"Incomplete protobuf body, missing: {missing}")

        try:
            return _from_message(message, model_type)
        except ValueError as exc:
            raise MalformedError(str(exc)) from exc


__all__ = ["ProtobufCodec"]
