# src/otk/codec/dispatcher.py
"""Decode dispatcher: raw bytes -> DecodedMessage.

The dispatcher is the only place that knows which protobuf class backs each
Shape. Adding a shape means adding a Shape member and one case below; the
``assert_never`` fallthrough makes a missing case a type-check failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from google.protobuf.message import DecodeError
from opentelemetry.proto.collector.logs.v1 import logs_service_pb2
from opentelemetry.proto.collector.metrics.v1 import metrics_service_pb2
from opentelemetry.proto.collector.trace.v1 import trace_service_pb2
from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.proto.metrics.v1 import metrics_pb2
from opentelemetry.proto.resource.v1 import resource_pb2
from opentelemetry.proto.trace.v1 import trace_pb2

from otk.contracts.errors import CodecError, ConfigurationError
from otk.contracts.results import DecodedMessage
from otk.contracts.shapes import Shape

if TYPE_CHECKING:
    from google.protobuf.message import Message


def parse_shape(name: str) -> Shape:
    """Resolve a user-supplied shape name.

    Exact names are preferred; a case-insensitive match is accepted so that
    ``exporttraceservicerequest`` works from a shell.

    Raises:
        ConfigurationError: If the name matches no shape
    """
    try:
        return Shape(name)
    except ValueError:
        pass
    folded = name.casefold()
    for shape in Shape:
        if shape.value.casefold() == folded:
            return shape
    known = ", ".join(s.value for s in Shape)
    raise ConfigurationError(f"unknown shape {name!r} (expected one of: {known})")


def _parse(shape: Shape, message_class: type[Message], payload: bytes) -> DecodedMessage:
    # protobuf happily parses b"" into an all-default message
    if not payload:
        raise CodecError(shape, "empty payload")
    message = message_class()
    try:
        message.ParseFromString(payload)
    except DecodeError as e:
        raise CodecError(shape, str(e)) from e
    return DecodedMessage(shape=shape, value=message)


def decode(shape: Shape, payload: bytes) -> DecodedMessage:
    """Decode ``payload`` as ``shape``.

    Either the full message parses or CodecError is raised; a partial
    message is never returned. ``Shape.DIRECT`` skips the codec and wraps
    the payload as-is, so it never fails.

    Args:
        shape: Shape to decode as
        payload: Raw protobuf bytes

    Returns:
        DecodedMessage whose value type matches ``shape``

    Raises:
        CodecError: If the payload is empty or violates the wire format
    """
    match shape:
        case Shape.DIRECT:
            return DecodedMessage(shape=shape, value=bytes(payload))
        case Shape.SPAN:
            return _parse(shape, trace_pb2.Span, payload)
        case Shape.METRIC:
            return _parse(shape, metrics_pb2.Metric, payload)
        case Shape.LOG_RECORD:
            return _parse(shape, logs_pb2.LogRecord, payload)
        case Shape.SCOPE_SPANS:
            return _parse(shape, trace_pb2.ScopeSpans, payload)
        case Shape.SCOPE_METRICS:
            return _parse(shape, metrics_pb2.ScopeMetrics, payload)
        case Shape.SCOPE_LOGS:
            return _parse(shape, logs_pb2.ScopeLogs, payload)
        case Shape.RESOURCE:
            return _parse(shape, resource_pb2.Resource, payload)
        case Shape.RESOURCE_SPANS:
            return _parse(shape, trace_pb2.ResourceSpans, payload)
        case Shape.RESOURCE_METRICS:
            return _parse(shape, metrics_pb2.ResourceMetrics, payload)
        case Shape.RESOURCE_LOGS:
            return _parse(shape, logs_pb2.ResourceLogs, payload)
        case Shape.EXPORT_TRACE_SERVICE_REQUEST:
            return _parse(shape, trace_service_pb2.ExportTraceServiceRequest, payload)
        case Shape.EXPORT_METRICS_SERVICE_REQUEST:
            return _parse(shape, metrics_service_pb2.ExportMetricsServiceRequest, payload)
        case Shape.EXPORT_LOGS_SERVICE_REQUEST:
            return _parse(shape, logs_service_pb2.ExportLogsServiceRequest, payload)
        case _:
            assert_never(shape)
