"""Reporting test telemetry to an OTLP collector.

Components:
- exporters: OTLP exporter construction per signal and protocol
- protocols: ReporterProtocol (init/shutdown lifecycle)
- reporters: TraceReporter, MetricReporter, LogReporter and their specs
"""

from otk.report.exporters import create_exporter
from otk.report.protocols import ReporterProtocol
from otk.report.reporters import (
    INSTRUMENTATION_SCOPE,
    LogReporter,
    LogSpec,
    MetricReporter,
    MetricSpec,
    SpanSpec,
    TraceReporter,
)

__all__ = [
    "INSTRUMENTATION_SCOPE",
    "LogReporter",
    "LogSpec",
    "MetricReporter",
    "MetricSpec",
    "ReporterProtocol",
    "SpanSpec",
    "TraceReporter",
    "create_exporter",
]
