"""
tracestrict.core.strict_trace_id - Re-check storage results against exact trace IDs.

Backends that index traces by the low 64 bits of their ID return every
128-bit trace sharing those bits. The filters in this module remove the
extra spans or traces so callers only see what they asked for. Each filter
is installed as the mapper of a storage :class:`~tracestrict.core.call.Call`.

Every filter mutates the list it is given and returns that same list. The
caller's reference therefore reflects the filtered contents afterwards.

Classes:
    ResultFilter: Base class removing non-matching elements in place
    FilterSpans: Keeps spans whose trace ID equals a target
    FilterTracesByQuery: Keeps traces that satisfy a QueryRequest
    FilterTracesByIds: Keeps traces whose ID is in a normalized set

Example:
    >>> call = storage_call.map(filter_spans("463ac35c9f6413ad"))
    >>> spans = call.execute()
"""

from __future__ import annotations

import abc
import logging
from typing import FrozenSet, Generic, Iterable, List, Tuple, TypeVar

from tracestrict.core.model import Span, Trace, normalize_trace_id
from tracestrict.core.query import QueryRequest

logger = logging.getLogger(__name__)

E = TypeVar("E")


def filter_spans(trace_id: str) -> "FilterSpans":
    """Return a mapper keeping spans whose trace ID equals ``trace_id``."""
    return FilterSpans(trace_id)


def filter_traces(request: QueryRequest) -> "FilterTracesByQuery":
    """Return a mapper keeping traces that satisfy ``request``."""
    return FilterTracesByQuery(request)


def filter_traces_by_ids(trace_ids: Iterable[str]) -> "FilterTracesByIds":
    """Return a mapper keeping traces whose ID is one of ``trace_ids``."""
    return FilterTracesByIds(trace_ids)


def lenient_normalize(trace_id: str) -> str:
    """Normalize a trace ID, falling back to its raw form if malformed.

    Results already returned by storage should not be dropped because of a
    formatting quirk, so parse failures are logged rather than raised.
    """
    try:
        return normalize_trace_id(trace_id)
    except ValueError as e:
        logger.warning("Could not normalize trace ID %r: %s", trace_id, e)
        return (trace_id or "").strip().lower()


class ResultFilter(abc.ABC, Generic[E]):
    """Removes every candidate that does not match, preserving order."""

    __slots__ = ()

    def __call__(self, candidates: List[E]) -> List[E]:
        """Filter ``candidates`` in place and return the same list.

        Args:
            candidates: Storage results, exclusively owned for this call

        Returns:
            The same list object, now holding only matching elements
        """
        before = len(candidates)
        candidates[:] = [c for c in candidates if self.matches(c)]
        logger.debug("%r kept %d of %d results", self, len(candidates), before)
        return candidates

    @abc.abstractmethod
    def matches(self, candidate: E) -> bool:
        """Return True if ``candidate`` should be kept."""

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")


class FilterSpans(ResultFilter[Span]):
    """Keeps spans whose trace ID is exactly ``trace_id``.

    No normalization is applied: the target must be in the same form the
    storage records span IDs.
    """

    __slots__ = ("trace_id",)

    def __init__(self, trace_id: str) -> None:
        if not trace_id:
            raise ValueError("traceId cannot be empty")
        object.__setattr__(self, "trace_id", trace_id)

    def matches(self, candidate: Span) -> bool:
        return candidate.traceId == self.trace_id

    def __repr__(self) -> str:
        return f"FilterSpans{{traceId={self.trace_id}}}"


class FilterTracesByQuery(ResultFilter[Trace]):
    """Keeps traces for which ``request.test`` returns True.

    Exceptions raised by the request propagate to the caller.
    """

    __slots__ = ("request",)

    def __init__(self, request: QueryRequest) -> None:
        object.__setattr__(self, "request", request)

    def matches(self, candidate: Trace) -> bool:
        return self.request.test(candidate)

    def __repr__(self) -> str:
        return f"FilterTracesByQuery{{request={self.request}}}"


class FilterTracesByIds(ResultFilter[Trace]):
    """Keeps traces whose first span carries one of the accepted trace IDs.

    Accepted IDs are normalized and deduplicated at construction, keeping
    the order they were given in. A trace's own ID is normalized the same
    way before lookup. A trace without spans has no ID and is dropped.
    """

    __slots__ = ("trace_ids", "_lookup")

    def __init__(self, trace_ids: Iterable[str]) -> None:
        normalized: Tuple[str, ...] = tuple(
            dict.fromkeys(lenient_normalize(t) for t in trace_ids)
        )
        lookup: FrozenSet[str] = frozenset(normalized)
        object.__setattr__(self, "trace_ids", normalized)
        object.__setattr__(self, "_lookup", lookup)

    def matches(self, candidate: Trace) -> bool:
        if not candidate:
            return False
        return lenient_normalize(candidate[0].traceId) in self._lookup

    def __repr__(self) -> str:
        return f"FilterTracesByIds{{traceIds={list(self.trace_ids)}}}"
