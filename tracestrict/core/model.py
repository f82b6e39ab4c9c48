"""
tracestrict.core.model - Span record and trace identifier normalization.

This module provides the immutable span record that storage returns and
the single normalization routine every component uses to compare trace
identifiers.

Classes:
    Span: Frozen dataclass representing a single recorded span

Functions:
    normalize_trace_id: Canonicalize a 64-bit or 128-bit hex trace ID
    to_lower_trace_id: Return the low 64 bits of a trace ID
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

_HEX_DIGITS = frozenset("0123456789abcdef")


@dataclass(frozen=True)
class Span:
    """Represents a single span as returned by a storage backend.

    The trace identifier is kept exactly as recorded. Comparisons that need
    to fold differently padded identifiers together go through
    :func:`normalize_trace_id`.

    Attributes:
        traceId: Hex trace identifier (64-bit or 128-bit)
        spanId: Unique identifier for this span
        parentSpanId: ID of the parent span (None for root spans)
        service: Local service name that recorded this span
        remoteService: Name of the remote peer, if any
        operation: Name of the operation being traced
        timestamp: Start time in epoch microseconds (0 if unknown)
        duration: Duration in microseconds (0 if unknown)
        tags: String tags recorded on the span
        annotations: Values of the timestamped annotations on the span
    """
    traceId: str
    spanId: str
    parentSpanId: Optional[str] = None
    service: Optional[str] = None
    remoteService: Optional[str] = None
    operation: Optional[str] = None
    timestamp: int = 0
    duration: int = 0
    tags: Mapping[str, str] = field(default_factory=dict)
    annotations: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate span data after initialization."""
        if not self.traceId:
            raise ValueError("traceId cannot be empty")
        if not self.spanId:
            raise ValueError("spanId cannot be empty")
        if self.timestamp < 0:
            raise ValueError("timestamp cannot be negative")
        if self.duration < 0:
            raise ValueError("duration cannot be negative")

    @property
    def is_root(self) -> bool:
        """Whether this span has no parent."""
        return self.parentSpanId is None


# A trace is the list of spans storage believes share one trace ID
Trace = List[Span]


def normalize_trace_id(trace_id: str) -> str:
    """Canonicalize a textual trace ID so equivalent encodings compare equal.

    Identifiers are lower-cased and left-padded with zeros to 16 or 32
    characters. An identifier longer than 16 characters whose high 64 bits
    are zero is reduced to its low 16 characters, so a 64-bit ID and any
    zero-padded form of it normalize to the same string.

    Args:
        trace_id: Hex encoded trace identifier, 1 to 32 characters

    Returns:
        A 16 or 32 character lower-hex string

    Raises:
        ValueError: If the identifier is empty, too long, not hex, or all zeros

    Example:
        >>> normalize_trace_id("1")
        '0000000000000001'
        >>> normalize_trace_id("00000000000000000000000000000001")
        '0000000000000001'
    """
    if trace_id is None:
        raise ValueError("traceId cannot be None")
    value = trace_id.strip().lower()
    length = len(value)
    if length == 0:
        raise ValueError("traceId is empty")
    if length > 32:
        raise ValueError(f"traceId.length > 32: {trace_id}")
    if not set(value) <= _HEX_DIGITS:
        raise ValueError(f"traceId should be hex encoded with no prefix: {trace_id}")

    zeros = length - len(value.lstrip("0"))
    if zeros == length:
        raise ValueError("traceId is all zeros")

    if length == 16:
        return value
    padded = value.rjust(16 if length < 16 else 32, "0")
    if len(padded) == 32 and padded.startswith("0" * 16):
        return padded[16:]
    return padded


def to_lower_trace_id(trace_id: str) -> str:
    """Return the low 64 bits of a trace ID as 16 hex characters.

    Backends that index by the low 64 bits match every 128-bit trace
    sharing them, which is why their results need re-checking.

    Args:
        trace_id: Hex encoded trace identifier

    Returns:
        The last 16 characters of the normalized identifier
    """
    normalized = normalize_trace_id(trace_id)
    return normalized[-16:]
