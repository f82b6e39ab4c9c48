"""
tracestrict.storage.in_memory - Thread-safe in-memory span storage.

Spans are indexed by the low 64 bits of their trace ID, the same loose key
many backends use. A lookup therefore returns every 128-bit trace that
shares those bits. When ``strict_trace_id`` is enabled, each read call is
mapped through the matching filter from
:mod:`tracestrict.core.strict_trace_id` so callers only see exact matches.

Example:
    >>> storage = InMemoryStorage(StorageConfig(strict_trace_id=True))
    >>> storage.accept(spans).execute()
    >>> storage.get_trace("463ac35c9f6413ad48485a3953bb6124").execute()
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections import OrderedDict
from typing import Callable, List, Optional, Sequence, TypeVar

from tracestrict.core.call import Call
from tracestrict.core.model import Span, Trace, normalize_trace_id, to_lower_trace_id
from tracestrict.core.query import QueryRequest
from tracestrict.core.strict_trace_id import filter_spans, filter_traces, filter_traces_by_ids
from tracestrict.storage.config import StorageConfig
from tracestrict.utils.grouping import get_trace_timestamp, group_by_trace_id

logger = logging.getLogger(__name__)

V = TypeVar("V")


class _StorageCall(Call[V]):
    """Defers a storage operation until the call is executed."""

    def __init__(self, name: str, operation: Callable[[], V]) -> None:
        super().__init__()
        self.name = name
        self.operation = operation

    def _do_execute(self) -> V:
        return self.operation()

    def clone(self) -> "Call[V]":
        return _StorageCall(self.name, self.operation)

    def __repr__(self) -> str:
        return f"InMemoryStorage.{self.name}()"


class InMemoryStorage:
    """Stores spans in memory, grouped under their low 64-bit trace ID.

    Attributes:
        config: Storage configuration (strict mode, capacity)

    Example:
        >>> storage = InMemoryStorage()
        >>> storage.accept([span]).execute()
        >>> traces = storage.get_traces(QueryRequest(end_ts=now_millis)).execute()
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        """Initialize the storage.

        Args:
            config: Storage configuration. Defaults to StorageConfig().
        """
        self.config = config or StorageConfig()

        # Insertion order doubles as eviction order
        self._lock = threading.Lock()
        self._spans_by_lower_id: "OrderedDict[str, List[Span]]" = OrderedDict()
        self._span_count = 0

        logger.info(
            "InMemoryStorage initialized: strict_trace_id=%s, max_span_count=%d",
            self.config.strict_trace_id,
            self.config.max_span_count,
        )

    @property
    def strict_trace_id(self) -> bool:
        return self.config.strict_trace_id

    @property
    def span_count(self) -> int:
        with self._lock:
            return self._span_count

    def accept(self, spans: Sequence[Span]) -> Call[None]:
        """Return a call that stores ``spans`` when executed.

        Trace IDs are normalized before storing. Spans whose trace ID cannot
        be normalized are logged and skipped.

        Args:
            spans: Spans to store

        Returns:
            Call yielding None once the spans are stored
        """
        batch = list(spans)
        return _StorageCall("accept", lambda: self._store(batch))

    def get_trace(self, trace_id: str) -> Call[List[Span]]:
        """Return a call yielding the spans of one trace.

        Args:
            trace_id: Hex trace ID, 64-bit or 128-bit

        Returns:
            Call yielding the trace's spans, empty if unknown

        Raises:
            ValueError: If ``trace_id`` is not a valid trace ID
        """
        normalized = normalize_trace_id(trace_id)
        lower_id = to_lower_trace_id(normalized)
        call: Call[List[Span]] = _StorageCall("get_trace", lambda: self._spans_for([lower_id]))
        if self.strict_trace_id:
            call = call.map(filter_spans(normalized))
        return call

    def get_traces(self, request: QueryRequest) -> Call[List[Trace]]:
        """Return a call yielding traces that match ``request``, newest first.

        The index is searched by low trace ID, so in non-strict mode traces
        sharing those bits are returned merged.

        Args:
            request: Search criteria

        Returns:
            Call yielding at most ``request.limit`` traces
        """
        strict = self.strict_trace_id

        def search() -> List[Trace]:
            traces = group_by_trace_id(self._search(request, strict), strict)
            traces.sort(key=get_trace_timestamp, reverse=True)
            return traces

        call: Call[List[Trace]] = _StorageCall("get_traces", search)
        if strict:
            call = call.map(filter_traces(request))
        return call.map(_Limit(request.limit))

    def get_traces_by_ids(self, trace_ids: Sequence[str]) -> Call[List[Trace]]:
        """Return a call yielding the traces with the given IDs.

        Args:
            trace_ids: Hex trace IDs, duplicates and mixed padding allowed

        Returns:
            Call yielding the traces found, in the order their IDs were requested

        Raises:
            ValueError: If any ID is not a valid trace ID
        """
        ids = list(trace_ids)
        lower_ids = list(dict.fromkeys(to_lower_trace_id(t) for t in ids))
        if not lower_ids:
            return Call.empty_list()
        strict = self.strict_trace_id

        def lookup() -> List[Trace]:
            return group_by_trace_id(self._spans_for(lower_ids), strict)

        call: Call[List[Trace]] = _StorageCall("get_traces_by_ids", lookup)
        if strict:
            call = call.map(filter_traces_by_ids(ids))
        return call

    def get_service_names(self) -> Call[List[str]]:
        """Return a call yielding the sorted names of all local services."""

        def names() -> List[str]:
            with self._lock:
                return sorted({
                    span.service
                    for spans in self._spans_by_lower_id.values()
                    for span in spans
                    if span.service
                })

        return _StorageCall("get_service_names", names)

    def clear(self) -> None:
        """Remove all stored spans."""
        with self._lock:
            self._spans_by_lower_id.clear()
            self._span_count = 0

    def _store(self, spans: List[Span]) -> None:
        stored = 0
        with self._lock:
            for span in spans:
                try:
                    normalized = normalize_trace_id(span.traceId)
                except ValueError as e:
                    logger.warning("Dropping span %s with invalid trace ID: %s", span.spanId, e)
                    continue
                if normalized != span.traceId:
                    span = dataclasses.replace(span, traceId=normalized)
                self._spans_by_lower_id.setdefault(to_lower_trace_id(normalized), []).append(span)
                stored += 1
            self._span_count += stored
            self._evict()
        logger.debug("Stored %d of %d spans", stored, len(spans))

    def _evict(self) -> None:
        """Drop the oldest traces while over capacity. Caller holds the lock."""
        while self._span_count > self.config.max_span_count and len(self._spans_by_lower_id) > 1:
            lower_id, evicted = self._spans_by_lower_id.popitem(last=False)
            self._span_count -= len(evicted)
            logger.debug("Evicted %d spans of trace %s", len(evicted), lower_id)

    def _spans_for(self, lower_ids: List[str]) -> List[Span]:
        with self._lock:
            result: List[Span] = []
            for lower_id in lower_ids:
                result.extend(self._spans_by_lower_id.get(lower_id, ()))
            return result

    def _search(self, request: QueryRequest, strict: bool) -> List[Span]:
        """Spans of every low-ID group holding a trace that satisfies ``request``.

        In strict mode a group is split by full trace ID first, so a colliding
        trace cannot hide a match. The group is still returned whole and the
        exact check is left to the mapped filter.
        """
        with self._lock:
            groups = [list(spans) for spans in self._spans_by_lower_id.values()]

        if strict:
            matched = [
                group for group in groups
                if any(request.test(trace) for trace in group_by_trace_id(group, True))
            ]
        else:
            matched = [group for group in groups if request.test(group)]
        logger.debug("Index search matched %d of %d trace groups", len(matched), len(groups))
        return [span for group in matched for span in group]


class _Limit:
    """Truncates a list of traces to at most ``limit`` entries."""

    def __init__(self, limit: int) -> None:
        self.limit = limit

    def __call__(self, traces: List[Trace]) -> List[Trace]:
        del traces[self.limit:]
        return traces

    def __repr__(self) -> str:
        return f"Limit{{limit={self.limit}}}"
