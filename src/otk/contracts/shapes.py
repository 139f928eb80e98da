# src/otk/contracts/shapes.py
"""Message shapes understood by the decoder.

Shape values are the protobuf message names users type on the command line.
Member order is the catalog order printed by ``otk decode --list``.
"""

from enum import StrEnum


class Shape(StrEnum):
    """One of the OTLP message shapes, or the ``Direct`` passthrough.

    Families:
        - leaf signals: Span, Metric, LogRecord
        - scope-wrapped: ScopeSpans, ScopeMetrics, ScopeLogs
        - resource-wrapped: Resource, ResourceSpans, ResourceMetrics, ResourceLogs
        - collector envelopes: Export*ServiceRequest
    """

    DIRECT = "Direct"
    SPAN = "Span"
    METRIC = "Metric"
    LOG_RECORD = "LogRecord"
    SCOPE_SPANS = "ScopeSpans"
    SCOPE_METRICS = "ScopeMetrics"
    SCOPE_LOGS = "ScopeLogs"
    RESOURCE = "Resource"
    RESOURCE_SPANS = "ResourceSpans"
    RESOURCE_METRICS = "ResourceMetrics"
    RESOURCE_LOGS = "ResourceLogs"
    EXPORT_TRACE_SERVICE_REQUEST = "ExportTraceServiceRequest"
    EXPORT_METRICS_SERVICE_REQUEST = "ExportMetricsServiceRequest"
    EXPORT_LOGS_SERVICE_REQUEST = "ExportLogsServiceRequest"

    @property
    def is_direct(self) -> bool:
        return self is Shape.DIRECT


# Shapes backed by a protobuf message (everything except Direct)
CONCRETE_SHAPES: tuple[Shape, ...] = tuple(s for s in Shape if not s.is_direct)
