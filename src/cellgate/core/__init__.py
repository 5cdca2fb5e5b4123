"""Core types shared by every layer: byte windows, models, errors."""

from cellgate.core.bytes_window import ByteWindow, OwnedBytes, SharedWindow, window
from cellgate.core.errors import (
    BadRequestError,
    DeadlineExceededError,
    EmptyRowError,
    FilterSyntaxError,
    GatewayError,
    MalformedError,
    NotAcceptableError,
    NotFoundError,
    NotSupportedError,
    UnsupportedMediaTypeError,
    UpstreamError,
)
from cellgate.core.models import (
    CellModel,
    CellSetModel,
    RowModel,
    TableListModel,
    TableModel,
)

__all__ = [
    "ByteWindow",
    "OwnedBytes",
    "SharedWindow",
    "window",
    "CellModel",
    "RowModel",
    "CellSetModel",
    "TableModel",
    "TableListModel",
    "GatewayError",
    "BadRequestError",
    "FilterSyntaxError",
    "MalformedError",
    "NotFoundError",
    "NotSupportedError",
    "NotAcceptableError",
    "UnsupportedMediaTypeError",
    "UpstreamError",
    "EmptyRowError",
    "DeadlineExceededError",
]
