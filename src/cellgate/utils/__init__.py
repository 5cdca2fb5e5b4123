"""
Utility helpers for the gateway.
"""

from .logging import configure_logging, get_logger, log_context
from .retry import async_retry

__all__ = ["configure_logging", "get_logger", "log_context", "async_retry"]
