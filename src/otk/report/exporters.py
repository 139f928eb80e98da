# src/otk/report/exporters.py
"""OTLP exporter construction.

Builds the OpenTelemetry SDK exporter for one signal (traces, metrics,
logs) from EndpointSettings:

- grpc: opentelemetry-exporter-otlp-proto-grpc. Metadata is sent as gRPC
  metadata (keys lowercased, as gRPC requires). TLS uses
  grpc.ssl_channel_credentials with the optional CA bundle; ``domain``
  overrides the name checked against the server certificate.
- http: opentelemetry-exporter-otlp-proto-http, posting protobuf to
  /v1/<signal>. Metadata is sent as HTTP headers.
- http_json: not available in the Python SDK.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from otk.contracts.errors import ConfigurationError, ReporterError
from otk.core.logging import get_logger

if TYPE_CHECKING:
    from otk.core.config import EndpointSettings

logger = get_logger(__name__)

Signal = Literal["traces", "metrics", "logs"]

_GRPC_EXPORTERS: dict[str, tuple[str, str]] = {
    "traces": ("opentelemetry.exporter.otlp.proto.grpc.trace_exporter", "OTLPSpanExporter"),
    "metrics": ("opentelemetry.exporter.otlp.proto.grpc.metric_exporter", "OTLPMetricExporter"),
    "logs": ("opentelemetry.exporter.otlp.proto.grpc._log_exporter", "OTLPLogExporter"),
}

_HTTP_EXPORTERS: dict[str, tuple[str, str]] = {
    "traces": ("opentelemetry.exporter.otlp.proto.http.trace_exporter", "OTLPSpanExporter"),
    "metrics": ("opentelemetry.exporter.otlp.proto.http.metric_exporter", "OTLPMetricExporter"),
    "logs": ("opentelemetry.exporter.otlp.proto.http._log_exporter", "OTLPLogExporter"),
}


def _load_exporter_class(reporter: str, module_name: str, class_name: str) -> Any:
    import importlib

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        # opentelemetry.exporter.otlp.proto.grpc.x -> opentelemetry-exporter-otlp-proto-grpc
        package = "-".join(module_name.split(".")[:5])
        raise ReporterError(
            reporter,
            f"OpenTelemetry OTLP exporter not installed: {e}. Install with: pip install {package}",
        ) from e
    return getattr(module, class_name)


def _read_ca_cert(reporter: str, endpoint: EndpointSettings) -> bytes | None:
    if endpoint.ca_cert is None:
        return None
    try:
        return endpoint.ca_cert.expanduser().read_bytes()
    except OSError as e:
        raise ReporterError(reporter, f"cannot read CA certificate {endpoint.ca_cert}: {e}") from e


def grpc_exporter_kwargs(reporter: str, endpoint: EndpointSettings) -> dict[str, Any]:
    """Keyword arguments for a gRPC OTLP exporter."""
    kwargs: dict[str, Any] = {
        "endpoint": endpoint.url,
        "insecure": not endpoint.tls,
        "timeout": endpoint.timeout_seconds,
    }
    if endpoint.metadata:
        kwargs["headers"] = tuple((k.lower(), v) for k, v in endpoint.metadata.items())
    if endpoint.tls:
        import grpc

        kwargs["credentials"] = grpc.ssl_channel_credentials(root_certificates=_read_ca_cert(reporter, endpoint))
        if endpoint.domain is not None:
            kwargs["channel_options"] = (("grpc.ssl_target_name_override", endpoint.domain),)
    return kwargs


def http_exporter_kwargs(reporter: str, endpoint: EndpointSettings, signal: Signal) -> dict[str, Any]:
    """Keyword arguments for an HTTP/protobuf OTLP exporter."""
    if endpoint.domain is not None:
        raise ConfigurationError("the http protocol does not support overriding the TLS domain")
    kwargs: dict[str, Any] = {
        "endpoint": f"{endpoint.url}/v1/{signal}",
        "timeout": endpoint.timeout_seconds,
    }
    if endpoint.metadata:
        kwargs["headers"] = dict(endpoint.metadata)
    if endpoint.ca_cert is not None:
        kwargs["certificate_file"] = str(endpoint.ca_cert.expanduser())
    return kwargs


def create_exporter(reporter: str, endpoint: EndpointSettings, signal: Signal) -> Any:
    """Create the OTLP exporter for ``signal`` at ``endpoint``.

    Args:
        reporter: Reporter name, used in error messages
        endpoint: Validated endpoint settings
        signal: "traces", "metrics" or "logs"

    Returns:
        An SDK exporter instance (SpanExporter, MetricExporter or LogExporter)

    Raises:
        ConfigurationError: If the protocol/option combination is unsupported
        ReporterError: If the exporter package is missing or the CA
            certificate cannot be read
    """
    if endpoint.protocol == "http_json":
        raise ConfigurationError("the http_json protocol is not supported, use grpc or http")

    if endpoint.protocol == "grpc":
        module_name, class_name = _GRPC_EXPORTERS[signal]
        kwargs = grpc_exporter_kwargs(reporter, endpoint)
    else:
        module_name, class_name = _HTTP_EXPORTERS[signal]
        kwargs = http_exporter_kwargs(reporter, endpoint, signal)

    exporter_class = _load_exporter_class(reporter, module_name, class_name)
    logger.debug(
        "OTLP exporter configured",
        reporter=reporter,
        signal=signal,
        protocol=endpoint.protocol,
        endpoint=kwargs["endpoint"],
        headers_count=len(endpoint.metadata),
    )
    return exporter_class(**kwargs)
