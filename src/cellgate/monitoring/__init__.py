"""
Monitoring utilities for the gateway.
"""

from cellgate.monitoring.metrics import (
    CONTENT_TYPE_LATEST,
    REQUESTS,
    generate_latest,
)

__all__ = [
    "REQUESTS",
    "CONTENT_TYPE_LATEST",
    "generate_latest",
]
