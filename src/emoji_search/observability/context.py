"""Trace correlation state shared by log records and spans.

The state is a plain dict in a ``ContextVar`` so every thread (and every
``contextvars.copy_context()``) sees its own ids and index handle.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


trace_context: ContextVar[dict | None] = ContextVar("trace_context", default=None)


def _new_ids() -> dict:
    return {"trace_id": uuid4().hex, "span_id": uuid4().hex[:16]}


def get_trace_context() -> dict:
    """Return the current ids, creating a fresh trace on first use."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = _new_ids()
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **extra: object) -> None:
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **extra})


def update_span_id(span_id: str) -> None:
    """Point log correlation at a new span, keeping the trace id and extras."""
    ctx = trace_context.get() or {}
    trace_context.set({**ctx, "span_id": span_id})


@contextmanager
def index_handle_context(handle: int) -> Iterator[dict]:
    """Tag log records with ``handle`` until the block exits.

    The previous context is restored on exit, including when the block raises.
    """
    token = trace_context.set({**get_trace_context(), "index_handle": handle})
    try:
        yield trace_context.get()
    finally:
        trace_context.reset(token)
