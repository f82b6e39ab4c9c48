"""
Unit tests for tracestrict.core.query module.

Tests cover annotation query parsing, QueryRequest validation and the
trace predicate used to re-check search results.
"""

from typing import List

import pytest

from tracestrict.core.model import Span
from tracestrict.core.query import QueryRequest, parse_annotation_query

END_TS = 1_700_000_000_000  # epoch millis
TS = (END_TS - 1_000) * 1000  # one second before END_TS, epoch micros


@pytest.fixture
def trace() -> List[Span]:
    """Create a two-service trace: frontend calls backend."""
    return [
        Span(
            traceId="a",
            spanId="1",
            service="frontend",
            remoteService="backend",
            operation="get /",
            timestamp=TS,
            duration=2000,
            tags={"http.method": "GET"},
            annotations=("wire.send",),
        ),
        Span(
            traceId="a",
            spanId="2",
            parentSpanId="1",
            service="backend",
            operation="query",
            timestamp=TS + 100,
            duration=500,
            tags={"error": "timeout"},
        ),
    ]


class TestParseAnnotationQuery:
    """Tests for parse_annotation_query."""

    def test_empty(self) -> None:
        """Test empty and None queries produce an empty mapping."""
        assert parse_annotation_query(None) == {}
        assert parse_annotation_query("") == {}

    def test_key_only(self) -> None:
        """Test a bare term requires presence only."""
        assert parse_annotation_query("error") == {"error": ""}

    def test_key_value_and_key(self) -> None:
        """Test terms joined with 'and'."""
        assert parse_annotation_query("error and http.method=GET") == {
            "error": "",
            "http.method": "GET",
        }

    def test_value_may_contain_equals(self) -> None:
        """Test only the first '=' separates key and value."""
        assert parse_annotation_query("q=a=b") == {"q": "a=b"}


class TestQueryRequestValidation:
    """Tests for QueryRequest construction checks."""

    def test_defaults(self) -> None:
        """Test default lookback and limit."""
        request = QueryRequest(end_ts=END_TS)
        assert request.lookback == 86_400_000
        assert request.limit == 10
        assert request.start_ts == END_TS - 86_400_000

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"end_ts": 0}, "endTs"),
            ({"end_ts": END_TS, "lookback": 0}, "lookback"),
            ({"end_ts": END_TS, "limit": 0}, "limit"),
            ({"end_ts": END_TS, "min_duration": 0}, "minDuration"),
            ({"end_ts": END_TS, "max_duration": 10}, "only valid with minDuration"),
            ({"end_ts": END_TS, "min_duration": 10, "max_duration": 5}, "maxDuration < minDuration"),
        ],
    )
    def test_invalid_raises_error(self, kwargs: dict, message: str) -> None:
        """Test invalid criteria raise ValueError."""
        with pytest.raises(ValueError, match=message):
            QueryRequest(**kwargs)


class TestQueryRequestTest:
    """Tests for QueryRequest.test."""

    def test_matches_time_window_only(self, trace: List[Span]) -> None:
        """Test a request with no criteria matches a trace in the window."""
        assert QueryRequest(end_ts=END_TS).test(trace)

    def test_outside_window(self, trace: List[Span]) -> None:
        """Test traces outside the lookback window are rejected."""
        assert not QueryRequest(end_ts=END_TS - 10_000, lookback=1_000).test(trace)
        assert not QueryRequest(end_ts=END_TS + 10_000, lookback=1_000).test(trace)

    def test_untimestamped_trace_rejected(self) -> None:
        """Test a trace without timestamps never matches."""
        assert not QueryRequest(end_ts=END_TS).test([Span(traceId="a", spanId="1")])

    def test_empty_trace_rejected(self) -> None:
        """Test an empty trace never matches."""
        assert not QueryRequest(end_ts=END_TS).test([])

    def test_service_name(self, trace: List[Span]) -> None:
        """Test matching on local service name."""
        assert QueryRequest(end_ts=END_TS, service_name="backend").test(trace)
        assert not QueryRequest(end_ts=END_TS, service_name="db").test(trace)

    def test_remote_service_name(self, trace: List[Span]) -> None:
        """Test matching on remote service name."""
        assert QueryRequest(end_ts=END_TS, remote_service_name="backend").test(trace)
        assert not QueryRequest(end_ts=END_TS, remote_service_name="db").test(trace)

    def test_span_name(self, trace: List[Span]) -> None:
        """Test matching on span name."""
        assert QueryRequest(end_ts=END_TS, span_name="query").test(trace)
        assert not QueryRequest(end_ts=END_TS, span_name="insert").test(trace)

    def test_span_name_scoped_to_service(self, trace: List[Span]) -> None:
        """Test span name must be on a span of the requested service."""
        request = QueryRequest(end_ts=END_TS, service_name="frontend", span_name="query")
        assert not request.test(trace)

    def test_annotation_query_by_tag(self, trace: List[Span]) -> None:
        """Test tag key presence and key=value terms."""
        assert QueryRequest(
            end_ts=END_TS, annotation_query=parse_annotation_query("error and http.method=GET")
        ).test(trace)
        assert not QueryRequest(
            end_ts=END_TS, annotation_query=parse_annotation_query("http.method=POST")
        ).test(trace)

    def test_annotation_query_by_annotation_value(self, trace: List[Span]) -> None:
        """Test a bare term matches an annotation value."""
        assert QueryRequest(
            end_ts=END_TS, annotation_query={"wire.send": ""}
        ).test(trace)

    def test_min_duration(self, trace: List[Span]) -> None:
        """Test at least one span must reach the minimum duration."""
        assert QueryRequest(end_ts=END_TS, min_duration=1500).test(trace)
        assert not QueryRequest(end_ts=END_TS, min_duration=5000).test(trace)

    def test_duration_range(self, trace: List[Span]) -> None:
        """Test a span must fall inside min and max duration."""
        assert QueryRequest(end_ts=END_TS, min_duration=100, max_duration=600).test(trace)
        assert not QueryRequest(end_ts=END_TS, min_duration=600, max_duration=1000).test(trace)

    def test_root_timestamp_preferred(self) -> None:
        """Test the root span's timestamp decides the window."""
        spans = [
            Span(traceId="a", spanId="2", parentSpanId="1", timestamp=1),
            Span(traceId="a", spanId="1", timestamp=TS),
        ]
        assert QueryRequest(end_ts=END_TS, lookback=10_000).test(spans)
