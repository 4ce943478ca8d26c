"""Prometheus metrics for index builds, queries and snapshot handling."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


INDEX_BUILD_LATENCY = Histogram(
    "emoji_index_build_seconds",
    "Index build latency in seconds",
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

SEARCH_LATENCY = Histogram(
    "emoji_search_latency_seconds",
    "Search query latency",
    ["path"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)

SNAPSHOT_ERRORS = Counter(
    "emoji_snapshot_errors_total",
    "Snapshot decode failures",
    ["kind"],
)

REGISTERED_INDEXES = Gauge(
    "emoji_registered_indexes",
    "Indexes currently held by the handle registry",
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        metric = histogram.labels(**labels) if labels else histogram
        metric.observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for a metrics endpoint."""
    return CONTENT_TYPE_LATEST
