"""Observability module for tracing, metrics, and logging."""

from emoji_search.observability.context import (
    get_trace_context,
    index_handle_context,
    set_trace_context,
    trace_context,
)
from emoji_search.observability.logging import JsonFormatter, configure_logging
from emoji_search.observability.metrics import (
    INDEX_BUILD_LATENCY,
    REGISTERED_INDEXES,
    SEARCH_LATENCY,
    SNAPSHOT_ERRORS,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from emoji_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "INDEX_BUILD_LATENCY",
    "REGISTERED_INDEXES",
    "SEARCH_LATENCY",
    "SNAPSHOT_ERRORS",
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "index_handle_context",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
