"""
tracestrict.exporters - OpenTelemetry SpanExporter implementations.

This subpackage provides a SpanExporter that writes finished OpenTelemetry
spans into tracestrict storage, so they can be queried back with strict
trace ID matching.

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

from tracestrict.exporters.storage_exporter import StorageSpanExporter

__all__ = ["StorageSpanExporter"]
