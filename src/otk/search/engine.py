# src/otk/search/engine.py
"""Trace search over decoded ExportTraceServiceRequest batches.

Traversal order is fixed: resource_spans in order, then scope_spans in
order, then spans in order. The walk never short-circuits, so a visitor
sees every trace id in the batch whether or not one matched.

Only the trace export envelope is searchable.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from otk.contracts.errors import ConfigurationError
from otk.contracts.shapes import Shape

if TYPE_CHECKING:
    from opentelemetry.proto.collector.trace.v1.trace_service_pb2 import ExportTraceServiceRequest

    from otk.contracts.results import DecodedMessage

TRACE_ID_BYTES = 16
_TRACE_ID_PATTERN = re.compile(rf"[0-9a-f]{{{TRACE_ID_BYTES * 2}}}")

# The only envelope the engine understands
SEARCHABLE_SHAPE = Shape.EXPORT_TRACE_SERVICE_REQUEST


@dataclass(frozen=True)
class TraceQuery:
    """A trace id to look for, as 32 lowercase hex digits."""

    trace_id: str

    def __post_init__(self) -> None:
        if not _TRACE_ID_PATTERN.fullmatch(self.trace_id):
            raise ConfigurationError(
                f"invalid trace id {self.trace_id!r}: expected {TRACE_ID_BYTES * 2} lowercase hex digits"
            )

    @classmethod
    def parse(cls, text: str) -> TraceQuery:
        """Build a query from user input, normalizing case and whitespace."""
        return cls(text.strip().lower())


def iter_trace_ids(request: ExportTraceServiceRequest) -> Iterator[str]:
    """Yield the hex trace id of every span, resource-major order."""
    for resource_spans in request.resource_spans:
        for scope_spans in resource_spans.scope_spans:
            for span in scope_spans.spans:
                yield span.trace_id.hex()


def contains_trace(
    request: ExportTraceServiceRequest,
    query: TraceQuery | None,
    on_visit: Callable[[str], None] | None = None,
) -> bool:
    """Check whether any span in ``request`` belongs to the queried trace.

    Args:
        request: Decoded trace export batch
        query: Trace to look for; None matches nothing and visits nothing
        on_visit: Called with every visited trace id, in traversal order

    Returns:
        True if at least one span's trace id equals the query
    """
    if query is None:
        return False

    found = False
    for trace_id in iter_trace_ids(request):
        if on_visit is not None:
            on_visit(trace_id)
        if trace_id == query.trace_id:
            found = True
    return found


def matches(
    decoded: DecodedMessage,
    query: TraceQuery | None,
    on_visit: Callable[[str], None] | None = None,
) -> bool:
    """contains_trace() for a DecodedMessage from the dispatcher.

    Raises:
        ConfigurationError: If the message is not an ExportTraceServiceRequest
    """
    if decoded.shape is not SEARCHABLE_SHAPE:
        raise ConfigurationError(f"search requires {SEARCHABLE_SHAPE.value}, got {decoded.shape.value}")
    request: ExportTraceServiceRequest = decoded.value  # type: ignore[assignment]  # narrowed by shape
    return contains_trace(request, query, on_visit)
