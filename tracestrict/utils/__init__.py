"""
tracestrict.utils - Utility functions for arranging spans into traces.

This subpackage contains utility functions:
- grouping: Functions for grouping spans by trace ID
"""

from tracestrict.utils.grouping import (
    get_root_span,
    get_trace_timestamp,
    group_by_trace_id,
    trace_key,
)

__all__ = [
    "get_root_span",
    "get_trace_timestamp",
    "group_by_trace_id",
    "trace_key",
]
