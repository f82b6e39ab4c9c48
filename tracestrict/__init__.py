"""
tracestrict - Strict trace ID re-checking for distributed tracing storage.

Storage backends often look traces up by the low 64 bits of their ID and
so return extra spans or traces when 128-bit IDs share those bits. This
package provides the filters that re-check such results, the deferred call
they are attached to, and an in-memory storage that uses them.

Example:
    >>> from tracestrict import InMemoryStorage, QueryRequest, Span
    >>> storage = InMemoryStorage()
    >>> storage.accept(spans).execute()
    >>> trace = storage.get_trace("48485a3953bb6124").execute()
    >>> traces = storage.get_traces(QueryRequest(end_ts=now_millis)).execute()
"""

__version__ = "0.1.0"
__author__ = "KR"
__email__ = "Karthickrajam18@gmail.com"

from tracestrict.core.model import Span, Trace, normalize_trace_id, to_lower_trace_id
from tracestrict.core.call import Call, Callback
from tracestrict.core.query import QueryRequest, parse_annotation_query
from tracestrict.core.strict_trace_id import (
    FilterSpans,
    FilterTracesByIds,
    FilterTracesByQuery,
    ResultFilter,
    filter_spans,
    filter_traces,
    filter_traces_by_ids,
)
from tracestrict.storage import InMemoryStorage, StorageConfig

__all__ = [
    "Span",
    "Trace",
    "normalize_trace_id",
    "to_lower_trace_id",
    "Call",
    "Callback",
    "QueryRequest",
    "parse_annotation_query",
    "ResultFilter",
    "FilterSpans",
    "FilterTracesByQuery",
    "FilterTracesByIds",
    "filter_spans",
    "filter_traces",
    "filter_traces_by_ids",
    "InMemoryStorage",
    "StorageConfig",
]
