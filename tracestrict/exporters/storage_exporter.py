"""
StorageSpanExporter - OpenTelemetry SpanExporter that writes into trace storage.

This exporter converts finished OpenTelemetry spans into
:class:`~tracestrict.core.model.Span` records and accepts them into an
:class:`~tracestrict.storage.in_memory.InMemoryStorage`, where they can be
read back with strict trace ID filtering.

Example:
    >>> from opentelemetry import trace
    >>> from opentelemetry.sdk.trace import TracerProvider
    >>> from opentelemetry.sdk.trace.export import SimpleSpanProcessor
    >>> from tracestrict.exporters import StorageSpanExporter
    >>> from tracestrict.storage import InMemoryStorage
    >>>
    >>> storage = InMemoryStorage()
    >>> provider = TracerProvider()
    >>> provider.add_span_processor(SimpleSpanProcessor(StorageSpanExporter(storage)))
    >>> trace.set_tracer_provider(provider)
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from opentelemetry.trace import SpanKind, StatusCode

from tracestrict.core.model import Span
from tracestrict.storage.in_memory import InMemoryStorage

logger = logging.getLogger(__name__)

# Semantic convention keys naming the remote peer of a client span
_PEER_SERVICE_KEYS = ("peer.service", "net.peer.name", "server.address")


class StorageSpanExporter(SpanExporter):
    """OpenTelemetry SpanExporter that stores spans for later querying.

    Attributes:
        storage: Storage receiving converted spans
    """

    def __init__(self, storage: InMemoryStorage) -> None:
        """Initialize the exporter.

        Args:
            storage: Storage receiving converted spans.
        """
        self.storage = storage
        self._lock = threading.Lock()
        self._shutdown = False

        logger.info(
            "StorageSpanExporter initialized: strict_trace_id=%s",
            storage.strict_trace_id,
        )

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        """Export a batch of spans.

        Args:
            spans: Sequence of completed spans to export.

        Returns:
            SpanExportResult.SUCCESS once stored, FAILURE after shutdown or
            when the storage rejects the batch.
        """
        with self._lock:
            if self._shutdown:
                logger.warning("Export called after shutdown, dropping %d spans", len(spans))
                return SpanExportResult.FAILURE

        if not spans:
            return SpanExportResult.SUCCESS

        logger.debug("Exporting %d spans", len(spans))
        converted = [self._readable_span_to_span(span) for span in spans]

        try:
            self.storage.accept(converted).execute()
        except Exception as e:
            logger.error("Failed to store %d spans: %s", len(converted), str(e), exc_info=True)
            return SpanExportResult.FAILURE

        return SpanExportResult.SUCCESS

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Spans are stored synchronously, so there is nothing to flush."""
        return True

    def shutdown(self) -> None:
        """Shutdown the exporter. Later exports fail."""
        with self._lock:
            self._shutdown = True
        logger.info("StorageSpanExporter shutdown complete")

    def _readable_span_to_span(self, span: ReadableSpan) -> Span:
        """Convert a ReadableSpan to a storage Span.

        Args:
            span: The OpenTelemetry ReadableSpan to convert.

        Returns:
            Span with hex IDs and microsecond timing.
        """
        context = span.context
        parent_id = span.parent.span_id if span.parent else None

        service_name = None
        if span.resource and span.resource.attributes:
            service_name = span.resource.attributes.get("service.name")

        tags: Dict[str, str] = {}
        if span.attributes:
            for key, value in span.attributes.items():
                tags[key] = str(value)
        if span.status and span.status.status_code == StatusCode.ERROR:
            tags.setdefault("error", span.status.description or "")

        annotations: List[str] = [event.name for event in (span.events or ())]

        start_time = span.start_time or 0
        end_time = span.end_time or 0

        return Span(
            traceId=format(context.trace_id, "032x"),
            spanId=format(context.span_id, "016x"),
            parentSpanId=format(parent_id, "016x") if parent_id else None,
            service=str(service_name) if service_name else None,
            remoteService=self._remote_service(span, tags),
            operation=span.name,
            timestamp=start_time // 1000,
            duration=max(0, end_time - start_time) // 1000 if end_time else 0,
            tags=tags,
            annotations=tuple(annotations),
        )

    def _remote_service(self, span: ReadableSpan, tags: Dict[str, str]) -> Optional[str]:
        if getattr(span, "kind", None) not in (SpanKind.CLIENT, SpanKind.PRODUCER):
            return None
        for key in _PEER_SERVICE_KEYS:
            if tags.get(key):
                return tags[key]
        return None
