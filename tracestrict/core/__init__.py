"""
tracestrict.core - Span model, deferred calls, query predicate and result filters.

This subpackage contains the main functionality:
- model: Span dataclass and trace ID normalization
- call: Call, a single-result deferred computation with map()
- query: QueryRequest, the predicate a trace must satisfy
- strict_trace_id: filters re-checking storage results against exact trace IDs
"""

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
]
