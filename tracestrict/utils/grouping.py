"""
tracestrict.utils.grouping - Helpers for arranging spans into traces.

This module provides the functions storage uses to turn a flat list of
spans into traces, either by full trace ID or by the low 64 bits that a
loose index shares across 128-bit traces.

Functions:
    trace_key: Grouping key of a span's trace ID
    group_by_trace_id: Group spans into traces, preserving arrival order
    get_root_span: Find the root span of a trace
    get_trace_timestamp: Timestamp used to order and window traces
"""

from __future__ import annotations

from typing import Dict, List, Optional, TYPE_CHECKING

from tracestrict.core.model import normalize_trace_id, to_lower_trace_id

if TYPE_CHECKING:
    from tracestrict.core.model import Span, Trace


def trace_key(trace_id: str, strict_trace_id: bool) -> str:
    """Return the key a span's trace is grouped under.

    Args:
        trace_id: Hex trace identifier
        strict_trace_id: Whether 128-bit IDs must be kept apart

    Returns:
        The normalized ID in strict mode, otherwise its low 64 bits.
        Identifiers that cannot be normalized are used as-is.
    """
    try:
        normalized = normalize_trace_id(trace_id)
    except ValueError:
        return trace_id
    return normalized if strict_trace_id else to_lower_trace_id(normalized)


def group_by_trace_id(spans: List["Span"], strict_trace_id: bool = True) -> List["Trace"]:
    """Group spans into traces.

    Traces appear in the order their first span appears in ``spans``, and
    spans keep their relative order inside each trace.

    Args:
        spans: Flat list of spans, possibly from several traces
        strict_trace_id: When False, traces sharing the low 64 bits of
            their ID are merged

    Returns:
        List of traces, each a non-empty list of spans

    Example:
        >>> traces = group_by_trace_id(spans)
        >>> len(traces)  # one entry per distinct trace ID
    """
    groups: Dict[str, List["Span"]] = {}
    for span in spans:
        groups.setdefault(trace_key(span.traceId, strict_trace_id), []).append(span)
    return list(groups.values())


def get_root_span(trace: "Trace") -> Optional["Span"]:
    """Return the first span without a parent, or None."""
    for span in trace:
        if span.is_root:
            return span
    return None


def get_trace_timestamp(trace: "Trace") -> int:
    """Return the root span's timestamp, else the earliest non-zero one.

    Args:
        trace: Spans of one trace

    Returns:
        Timestamp in epoch microseconds, 0 if no span has one
    """
    root = get_root_span(trace)
    if root is not None and root.timestamp:
        return root.timestamp
    timestamps = [s.timestamp for s in trace if s.timestamp]
    return min(timestamps) if timestamps else 0
