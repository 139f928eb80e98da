"""Shared types for otk.

Re-exports the shape catalog, error hierarchy and result types so callers
can import from ``otk.contracts`` directly.
"""

from otk.contracts.errors import (
    CodecError,
    ConfigurationError,
    EncodingError,
    OtkError,
    ReporterError,
)
from otk.contracts.results import DecodedMessage, RecordOutcome, StreamSummary
from otk.contracts.shapes import CONCRETE_SHAPES, Shape

__all__ = [
    "CONCRETE_SHAPES",
    "CodecError",
    "ConfigurationError",
    "DecodedMessage",
    "EncodingError",
    "OtkError",
    "RecordOutcome",
    "ReporterError",
    "Shape",
    "StreamSummary",
]
