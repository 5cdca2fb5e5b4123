"""Error kinds raised by the gateway, each mapped to one HTTP status."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""

    status_code = 500
    kind = "Internal"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class BadRequestError(GatewayError):
    """Malformed row key, bad base64, malformed parameter or missing CSRF header."""

    status_code = 400
    kind = "Bad request"


class FilterSyntaxError(BadRequestError):
    """Filter expression could not be parsed."""

    kind = "Bad filter"


class MalformedError(GatewayError):
    """Inbound body could not be decoded by a codec."""

    status_code = 400
    kind = "Malformed body"


class NotFoundError(GatewayError):
    status_code = 404
    kind = "Not found"


class NotSupportedError(GatewayError):
    """Encoding requested for an entity (or media type) that has none."""

    status_code = 406
    kind = "Not supported"


class NotAcceptableError(NotSupportedError):
    kind = "Not acceptable"


class UnsupportedMediaTypeError(NotSupportedError):
    status_code = 415
    kind = "Unsupported media type"


class UpstreamError(GatewayError):
    """Point-read failure reported by the store."""

    status_code = 503
    kind = "Service unavailable"


class EmptyRowError(UpstreamError):
    """The store reported that a row holds no cells."""

    status_code = 404
    kind = "Row has no cells"


class DeadlineExceededError(GatewayError):
    status_code = 503
    kind = "Deadline exceeded"


__all__ = [
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
