"""
Tests for tracestrict.utils.grouping module.

Tests cover grouping spans into traces by full or low 64-bit trace ID,
and root and trace timestamp selection.
"""

from typing import List

import pytest

from tracestrict.core.model import Span
from tracestrict.utils.grouping import (
    get_root_span,
    get_trace_timestamp,
    group_by_trace_id,
    trace_key,
)

LOW = "463ac35c9f6413ad"
TRACE_A = "48485a3953bb6124" + LOW
TRACE_B = "1111111111111111" + LOW


@pytest.fixture
def mixed_spans() -> List[Span]:
    """Spans of two 128-bit traces sharing low bits, plus a 64-bit trace."""
    return [
        Span(traceId=TRACE_A, spanId="a1", service="frontend"),
        Span(traceId="2", spanId="c1", service="backend"),
        Span(traceId=TRACE_B, spanId="b1", service="frontend"),
        Span(traceId=TRACE_A, spanId="a2", parentSpanId="a1", service="backend"),
    ]


class TestTraceKey:
    """Tests for trace_key."""

    def test_strict_uses_full_id(self) -> None:
        """Test strict mode keys by the normalized full ID."""
        assert trace_key(TRACE_A, strict_trace_id=True) == TRACE_A

    def test_loose_uses_low_bits(self) -> None:
        """Test non-strict mode keys by the low 64 bits."""
        assert trace_key(TRACE_A, strict_trace_id=False) == LOW

    def test_normalizes(self) -> None:
        """Test padding variants share a key."""
        assert trace_key("1", True) == trace_key("00000000000000000000000000000001", True)

    def test_invalid_used_as_is(self) -> None:
        """Test unparseable IDs become their own key."""
        assert trace_key("zz", True) == "zz"


class TestGroupByTraceId:
    """Tests for group_by_trace_id."""

    def test_strict_keeps_128_bit_traces_apart(self, mixed_spans: List[Span]) -> None:
        """Test strict grouping separates traces sharing low bits."""
        traces = group_by_trace_id(mixed_spans, strict_trace_id=True)
        assert [[s.spanId for s in t] for t in traces] == [["a1", "a2"], ["c1"], ["b1"]]

    def test_loose_merges_shared_low_bits(self, mixed_spans: List[Span]) -> None:
        """Test non-strict grouping merges traces sharing low bits."""
        traces = group_by_trace_id(mixed_spans, strict_trace_id=False)
        assert [[s.spanId for s in t] for t in traces] == [["a1", "b1", "a2"], ["c1"]]

    def test_empty(self) -> None:
        """Test no spans produce no traces."""
        assert group_by_trace_id([]) == []


class TestTraceTimestamp:
    """Tests for get_root_span and get_trace_timestamp."""

    def test_root_span(self, mixed_spans: List[Span]) -> None:
        """Test the first parentless span is the root."""
        assert get_root_span(mixed_spans).spanId == "a1"

    def test_no_root(self) -> None:
        """Test None when every span has a parent."""
        assert get_root_span([Span(traceId="1", spanId="2", parentSpanId="1")]) is None

    def test_root_timestamp_wins(self) -> None:
        """Test the root's timestamp is used when set."""
        spans = [
            Span(traceId="1", spanId="2", parentSpanId="1", timestamp=5),
            Span(traceId="1", spanId="1", timestamp=10),
        ]
        assert get_trace_timestamp(spans) == 10

    def test_earliest_when_root_untimed(self) -> None:
        """Test the smallest non-zero timestamp is used without a timed root."""
        spans = [
            Span(traceId="1", spanId="1"),
            Span(traceId="1", spanId="2", parentSpanId="1", timestamp=30),
            Span(traceId="1", spanId="3", parentSpanId="1", timestamp=20),
        ]
        assert get_trace_timestamp(spans) == 20

    def test_zero_when_untimed(self) -> None:
        """Test 0 when no span has a timestamp."""
        assert get_trace_timestamp([Span(traceId="1", spanId="1")]) == 0
        assert get_trace_timestamp([]) == 0
