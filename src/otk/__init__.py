"""
otk: OpenTelemetry toolkit.

Diagnostic tooling for OTLP payloads: decode captured protobuf batches,
search trace exports for a trace id, and report test telemetry to a collector.
"""

__version__ = "0.2.0"
