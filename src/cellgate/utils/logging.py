"""
structlog setup for the gateway.

Row keys, columns and values are raw bytes; ``render_bytes`` turns them into
escaped text before rendering so JSON output stays readable.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping, cast

import structlog
from structlog.dev import ConsoleRenderer
from structlog.stdlib import BoundLogger
from structlog.types import Processor

from cellgate import __version__

MAX_LOGGED_BYTES = 64

# uvicorn logs every request itself; the gateway already counts them
QUIET_LOGGERS = ("uvicorn.access",)


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, str):
            raise ValueError(f"Invalid log level: {level}")
        return int(resolved)
    return int(level)


def _printable(data: bytes) -> str:
    text = data[:MAX_LOGGED_BYTES].decode("utf-8", "backslashreplace")
    if len(data) > MAX_LOGGED_BYTES:
        text += f"...(+{len(data) - MAX_LOGGED_BYTES} bytes)"
    return text


def render_bytes(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace bytes-like event values with escaped, truncated text."""
    for key, value in event_dict.items():
        if isinstance(value, (bytes, bytearray, memoryview)):
            event_dict[key] = _printable(bytes(value))
    return event_dict


def configure_logging(level: str | int = "INFO", json_output: bool = True) -> None:
    """Install JSON (or console) rendering for structlog and stdlib loggers."""
    numeric_level = _coerce_level(level)
    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_output else ConsoleRenderer()
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        render_bytes,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer, foreign_pre_chain=shared_processors
        )
    )
    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> BoundLogger:
    """Logger with ``service_name`` and ``version`` bound."""
    return cast(
        BoundLogger,
        structlog.get_logger(name).bind(
            service_name=os.getenv("SERVICE_NAME", "cellgate"), version=__version__
        ),
    )


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind request-scoped fields (request id, table) for a block."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


__all__ = ["configure_logging", "get_logger", "log_context", "render_bytes"]
