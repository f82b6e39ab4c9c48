"""
tracestrict.core.query - Trace search criteria and their predicate.

A :class:`QueryRequest` describes what a caller is looking for: a service,
a span name, tags, a duration range and a time window. Its :meth:`test`
method decides whether one complete trace satisfies those criteria, which
is how results of a loose storage lookup are re-checked.

Example:
    >>> request = QueryRequest(
    ...     service_name="frontend",
    ...     annotation_query=parse_annotation_query("error"),
    ...     end_ts=1_700_000_000_000,
    ...     lookback=86_400_000,
    ... )
    >>> request.test(trace)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from tracestrict.core.model import Span
from tracestrict.utils.grouping import get_trace_timestamp

DEFAULT_LOOKBACK_MILLIS = 86_400_000
DEFAULT_LIMIT = 10


def parse_annotation_query(annotation_query: Optional[str]) -> Dict[str, str]:
    """Parse an annotation query string into a mapping.

    Terms are separated by ``and``. A bare term such as ``error`` matches
    any span with that annotation value or tag key. A ``key=value`` term
    matches a tag with exactly that value.

    Args:
        annotation_query: Query string, e.g. ``"error and http.method=GET"``

    Returns:
        Ordered mapping of keys to required values ('' for presence only)

    Example:
        >>> parse_annotation_query("error and http.method=GET")
        {'error': '', 'http.method': 'GET'}
    """
    result: Dict[str, str] = {}
    if not annotation_query:
        return result

    for term in annotation_query.split(" and "):
        term = term.strip()
        if not term:
            continue
        key, sep, value = term.partition("=")
        key = key.strip()
        if not key:
            continue
        result[key] = value.strip() if sep else ""
    return result


@dataclass(frozen=True)
class QueryRequest:
    """Criteria a trace must satisfy to be returned by a search.

    Attributes:
        service_name: Only consider spans recorded by this local service
        remote_service_name: Require a span with this remote service
        span_name: Require a span with this operation name
        annotation_query: Required annotation values or tags ('' = presence)
        min_duration: Minimum span duration in microseconds
        max_duration: Maximum span duration in microseconds
        end_ts: Upper bound of the time window, epoch milliseconds
        lookback: Length of the time window in milliseconds
        limit: Maximum number of traces to return
    """
    end_ts: int
    lookback: int = DEFAULT_LOOKBACK_MILLIS
    limit: int = DEFAULT_LIMIT
    service_name: Optional[str] = None
    remote_service_name: Optional[str] = None
    span_name: Optional[str] = None
    annotation_query: Mapping[str, str] = field(default_factory=dict)
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate the request after initialization."""
        if self.end_ts <= 0:
            raise ValueError("endTs <= 0")
        if self.lookback <= 0:
            raise ValueError("lookback <= 0")
        if self.limit <= 0:
            raise ValueError("limit <= 0")
        if self.min_duration is not None and self.min_duration <= 0:
            raise ValueError("minDuration <= 0")
        if self.max_duration is not None:
            if self.min_duration is None:
                raise ValueError("maxDuration is only valid with minDuration")
            if self.max_duration < self.min_duration:
                raise ValueError("maxDuration < minDuration")

    @property
    def start_ts(self) -> int:
        """Lower bound of the time window, epoch milliseconds."""
        return self.end_ts - self.lookback

    def test(self, spans: List[Span]) -> bool:
        """Return True if the trace matches every criterion of this request.

        The trace timestamp is taken from the root span, or the earliest
        timestamped span when there is no root. Service, span name and
        annotation criteria may each be satisfied by a different span.

        Args:
            spans: All spans of one trace

        Returns:
            Whether the trace satisfies this request
        """
        timestamp = get_trace_timestamp(spans)
        if timestamp == 0:
            return False
        if timestamp < self.start_ts * 1000 or timestamp > self.end_ts * 1000:
            return False

        tested_duration = self.min_duration is None and self.max_duration is None
        service_to_match = self.service_name
        remote_service_to_match = self.remote_service_name
        span_name_to_match = self.span_name
        remaining = dict(self.annotation_query)

        for span in spans:
            if self.service_name is not None and span.service != self.service_name:
                continue
            service_to_match = None

            if remote_service_to_match is not None and remote_service_to_match == span.remoteService:
                remote_service_to_match = None
            if span_name_to_match is not None and span_name_to_match == span.operation:
                span_name_to_match = None

            for value in span.annotations:
                if remaining.get(value) == "":
                    del remaining[value]
            for key, value in span.tags.items():
                expected = remaining.get(key)
                if expected is None:
                    continue
                if expected == "" or expected == value:
                    del remaining[key]

            if not tested_duration:
                tested_duration = self._duration_in_range(span.duration)

        return (
            service_to_match is None
            and remote_service_to_match is None
            and span_name_to_match is None
            and not remaining
            and tested_duration
        )

    def _duration_in_range(self, duration: int) -> bool:
        if self.min_duration is not None and duration < self.min_duration:
            return False
        if self.max_duration is not None and duration > self.max_duration:
            return False
        return True
