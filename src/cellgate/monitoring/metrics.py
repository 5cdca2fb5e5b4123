"""Prometheus metrics for the gateway."""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)

# Counters
REQUESTS = Counter(
    "cellgate_requests_total",
    "Gateway requests",
    ["route", "method", "status"],
)
CODEC_ERRORS = Counter(
    "cellgate_codec_errors_total",
    "Inbound bodies rejected by a codec",
    ["media_type"],
)
POINT_READ_FAILURES = Counter(
    "cellgate_point_read_failures_total",
    "Point reads that failed in the store",
    ["reason"],
)

# Histograms
MULTIGET_ROWS_REQUESTED = Histogram(
    "cellgate_multiget_rows_requested",
    "Row keys per multiget request",
    buckets=(1, 2, 5, 10, 25, 50, 100, 250, 1000),
)
MULTIGET_ROWS_RETURNED = Histogram(
    "cellgate_multiget_rows_returned",
    "Rows with cells per multiget response",
    buckets=(0, 1, 2, 5, 10, 25, 50, 100, 250, 1000),
)
POINT_READ_LATENCY = Histogram(
    "cellgate_point_read_latency_seconds",
    "Point read latency seconds",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

__all__ = [
    "REQUESTS",
    "CODEC_ERRORS",
    "POINT_READ_FAILURES",
    "MULTIGET_ROWS_REQUESTED",
    "MULTIGET_ROWS_RETURNED",
    "POINT_READ_LATENCY",
    "CONTENT_TYPE_LATEST",
    "generate_latest",
]
