# src/otk/report/reporters.py
"""Trace, metric and log reporters built on the OpenTelemetry SDK.

Each reporter owns its SDK provider. Nothing is registered globally:
``init()`` builds the provider, ``shutdown()`` flushes and tears it down.

Usage:
    endpoint = EndpointSettings(host="collector", protocol="grpc")
    with TraceReporter(endpoint, {"service.name": "otk"}) as reporter:
        trace_ids = reporter.emit(SpanSpec(name="probe", batch=3))
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Self

from otk.contracts.errors import ConfigurationError, ReporterError
from otk.core.logging import get_logger
from otk.report.exporters import Signal, create_exporter

if TYPE_CHECKING:
    from types import TracebackType

    from opentelemetry.sdk.metrics.export import MetricReader
    from opentelemetry.sdk.resources import Resource

    from otk.core.config import EndpointSettings

logger = get_logger(__name__)

# Instrumentation scope name stamped on everything otk emits
INSTRUMENTATION_SCOPE = "otk.kto"

DEFAULT_HISTOGRAM_BUCKETS: tuple[float, ...] = (10, 20, 30, 40, 50, 60, 70, 80, 90)
METRIC_EXPORT_INTERVAL_MILLIS = 100


def build_resource(attributes: Mapping[str, str]) -> Resource:
    """SDK resource from user attributes, merged over the SDK defaults."""
    from opentelemetry.sdk.resources import Resource

    return Resource.create(dict(attributes))


class Reporter(ABC):
    """Shared lifecycle for the signal reporters.

    Subclasses set ``_name`` and ``_signal`` and implement _build_provider().
    An exporter passed to the constructor is used as-is (tests pass SDK
    in-memory exporters); otherwise one is created from the endpoint.
    """

    _name: str
    _signal: Signal

    def __init__(
        self,
        endpoint: EndpointSettings,
        resource_attributes: Mapping[str, str] | None = None,
        *,
        exporter: Any | None = None,
        scope_name: str = INSTRUMENTATION_SCOPE,
    ) -> None:
        self._endpoint = endpoint
        self._resource_attributes = dict(resource_attributes or {})
        self._exporter = exporter
        self._scope_name = scope_name
        self._provider: Any | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def started(self) -> bool:
        return self._provider is not None

    @property
    def endpoint(self) -> EndpointSettings:
        return self._endpoint

    def init(self) -> None:
        if self._provider is not None:
            raise ReporterError(self._name, "reporter is already initialized")
        resource = build_resource(self._resource_attributes)
        self._provider = self._build_provider(resource)
        logger.debug(
            "Reporter initialized",
            reporter=self._name,
            endpoint=self._endpoint.url,
            resource_attributes=len(self._resource_attributes),
        )

    def shutdown(self) -> None:
        if self._provider is None:
            return
        provider, self._provider = self._provider, None
        provider.shutdown()
        logger.debug("Reporter shut down", reporter=self._name)

    def __enter__(self) -> Self:
        self.init()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    def _get_exporter(self) -> Any:
        if self._exporter is None:
            self._exporter = create_exporter(self._name, self._endpoint, self._signal)
        return self._exporter

    def _require_provider(self) -> Any:
        if self._provider is None:
            raise ReporterError(self._name, "reporter is not initialized, call init() first")
        return self._provider

    @abstractmethod
    def _build_provider(self, resource: Resource) -> Any:
        """Create the SDK provider wired to this reporter's exporter."""


# =============================================================================
# Traces
# =============================================================================


@dataclass(frozen=True)
class SpanSpec:
    """What report-trace sends.

    ``long_attribute`` is ``(text, count)``: an ``ll`` attribute holding
    ``text`` repeated ``count`` times, for probing collector size limits.
    """

    name: str = "otk_test_span"
    attributes: Mapping[str, str] = field(default_factory=dict)
    long_attribute: tuple[str, int] | None = None
    status_message: str | None = None
    duration_ms: int = 0
    batch: int = 1

    def __post_init__(self) -> None:
        if self.batch < 1:
            raise ConfigurationError(f"batch must be >= 1, got {self.batch}")
        if self.duration_ms < 0:
            raise ConfigurationError(f"duration must be >= 0, got {self.duration_ms}")
        if self.long_attribute is not None and self.long_attribute[1] < 0:
            raise ConfigurationError(f"long attribute count must be >= 0, got {self.long_attribute[1]}")


class TraceReporter(Reporter):
    """Emits test spans."""

    _name = "report-trace"
    _signal = "traces"

    def _build_provider(self, resource: Resource) -> Any:
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.sdk.trace.sampling import ALWAYS_ON

        provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)
        provider.add_span_processor(
            BatchSpanProcessor(
                self._get_exporter(),
                export_timeout_millis=int(self._endpoint.timeout_seconds * 1000),
            )
        )
        return provider

    def emit(self, spec: SpanSpec) -> list[str]:
        """Start and end ``spec.batch`` spans.

        Returns:
            Trace id of each span as 32 lowercase hex digits
        """
        from opentelemetry.trace import Status, StatusCode, format_trace_id

        tracer = self._require_provider().get_tracer(self._scope_name)
        trace_ids = []
        for _ in range(spec.batch):
            span = tracer.start_span(spec.name, attributes=dict(spec.attributes))
            if spec.long_attribute is not None:
                text, count = spec.long_attribute
                span.set_attribute("ll", text * count)
            if spec.duration_ms:
                time.sleep(spec.duration_ms / 1000)
            if spec.status_message is None:
                span.set_status(Status(StatusCode.OK))
            else:
                span.set_status(Status(StatusCode.ERROR, spec.status_message))
            span.end()
            trace_ids.append(format_trace_id(span.get_span_context().trace_id))
        logger.info("Spans emitted", reporter=self._name, count=len(trace_ids), name=spec.name)
        return trace_ids


# =============================================================================
# Metrics
# =============================================================================

InstrumentKind = Literal["counter", "up_down_counter", "histogram"]

# Value type aliases accepted on the command line
_VALUE_TYPES: dict[str, str] = {
    "u64": "u64",
    "uint": "u64",
    "i64": "i64",
    "int": "i64",
    "f64": "f64",
    "float": "f64",
}

_VALID_COMBINATIONS = frozenset(
    {
        ("u64", "counter"),
        ("f64", "counter"),
        ("i64", "up_down_counter"),
        ("f64", "up_down_counter"),
        ("u64", "histogram"),
        ("i64", "histogram"),
        ("f64", "histogram"),
    }
)


@dataclass(frozen=True)
class MetricSpec:
    """What report-metric records.

    ``values`` are recorded in order, and the whole sequence is repeated
    ``times`` times.
    """

    name: str = "otk_test_metric"
    kind: str = "counter"
    value_type: str = "f64"
    values: tuple[str, ...] = ("1",)
    times: int = 1
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.times < 1:
            raise ConfigurationError(f"times must be >= 1, got {self.times}")
        if not self.values:
            raise ConfigurationError("at least one metric value is required")

    @property
    def canonical_value_type(self) -> str:
        try:
            return _VALUE_TYPES[self.value_type.lower()]
        except KeyError:
            raise ConfigurationError(
                f"unknown value type {self.value_type!r} (expected one of: {', '.join(sorted(_VALUE_TYPES))})"
            ) from None

    def measurements(self) -> list[int | float]:
        """Parse and validate every value before anything is recorded.

        Raises:
            ConfigurationError: On an invalid type/kind combination or an
                unparsable or out-of-range value
        """
        value_type = self.canonical_value_type
        if (value_type, self.kind) not in _VALID_COMBINATIONS:
            raise ConfigurationError(f"invalid combination: value type {self.value_type!r} with instrument {self.kind!r}")

        parsed: list[int | float] = []
        for raw in self.values:
            try:
                value: int | float = float(raw) if value_type == "f64" else int(raw)
            except ValueError:
                raise ConfigurationError(f"parse metric value failed: {raw!r} is not a valid {value_type}") from None
            if value_type == "u64" and value < 0:
                raise ConfigurationError(f"parse metric value failed: {raw!r} is negative for u64")
            parsed.append(value)
        return parsed * self.times


class MetricReporter(Reporter):
    """Records test measurements on one instrument.

    Histograms use explicit bucket boundaries. A reader passed to the
    constructor replaces the periodic OTLP reader (tests use
    InMemoryMetricReader).
    """

    _name = "report-metric"
    _signal = "metrics"

    def __init__(
        self,
        endpoint: EndpointSettings,
        resource_attributes: Mapping[str, str] | None = None,
        *,
        exporter: Any | None = None,
        scope_name: str = INSTRUMENTATION_SCOPE,
        reader: MetricReader | None = None,
        histogram_buckets: tuple[float, ...] = DEFAULT_HISTOGRAM_BUCKETS,
    ) -> None:
        super().__init__(endpoint, resource_attributes, exporter=exporter, scope_name=scope_name)
        self._reader = reader
        self._histogram_buckets = tuple(sorted(histogram_buckets))

    def _build_provider(self, resource: Resource) -> Any:
        from opentelemetry.sdk.metrics import Histogram, MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.metrics.view import ExplicitBucketHistogramAggregation, View

        reader = self._reader
        if reader is None:
            reader = PeriodicExportingMetricReader(
                self._get_exporter(),
                export_interval_millis=METRIC_EXPORT_INTERVAL_MILLIS,
                export_timeout_millis=self._endpoint.timeout_seconds * 1000,
            )
        histogram_view = View(
            instrument_type=Histogram,
            aggregation=ExplicitBucketHistogramAggregation(boundaries=self._histogram_buckets),
        )
        return MeterProvider(resource=resource, metric_readers=[reader], views=[histogram_view])

    def record(self, spec: MetricSpec, *, wait_secs: float = 0.0) -> int:
        """Record every measurement of ``spec``, then wait ``wait_secs``.

        Returns:
            Number of measurements recorded

        Raises:
            ConfigurationError: If ``spec`` has invalid values or an invalid combination
        """
        measurements = spec.measurements()
        meter = self._require_provider().get_meter(self._scope_name)
        attributes = dict(spec.labels)

        if spec.kind == "counter":
            counter = meter.create_counter(spec.name)
            for value in measurements:
                counter.add(value, attributes=attributes)
        elif spec.kind == "up_down_counter":
            up_down = meter.create_up_down_counter(spec.name)
            for value in measurements:
                up_down.add(value, attributes=attributes)
        else:
            histogram = meter.create_histogram(spec.name)
            for value in measurements:
                histogram.record(value, attributes=attributes)

        logger.info(
            "Measurements recorded",
            reporter=self._name,
            name=spec.name,
            kind=spec.kind,
            count=len(measurements),
        )
        if wait_secs > 0:
            time.sleep(wait_secs)
        return len(measurements)


# =============================================================================
# Logs
# =============================================================================

# Below DEBUG; the SDK handler maps it to the TRACE severity range
TRACE_LEVEL = 5

_SEVERITY_LEVELS: dict[str, int] = {
    "TRACE": TRACE_LEVEL,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
    "CRITICAL": logging.CRITICAL,
}

# LogRecord attributes that cannot be supplied through ``extra``
_RESERVED_LOG_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


@dataclass(frozen=True)
class LogSpec:
    """What report-log sends."""

    body: str
    severity: str = "INFO"
    attributes: Mapping[str, str] = field(default_factory=dict)
    batch: int = 1

    def __post_init__(self) -> None:
        if self.batch < 1:
            raise ConfigurationError(f"batch must be >= 1, got {self.batch}")
        if self.severity.upper() not in _SEVERITY_LEVELS:
            raise ConfigurationError(
                f"unknown severity {self.severity!r} (expected one of: {', '.join(_SEVERITY_LEVELS)})"
            )
        reserved = sorted(set(self.attributes) & _RESERVED_LOG_ATTRIBUTES)
        if reserved:
            raise ConfigurationError(f"reserved log attribute names: {', '.join(reserved)}")

    @property
    def level(self) -> int:
        return _SEVERITY_LEVELS[self.severity.upper()]


class LogReporter(Reporter):
    """Emits test log records through the SDK logging bridge.

    Records go through a private stdlib Logger (never registered with
    logging.getLogger) carrying only the SDK LoggingHandler, so they
    reach the collector without appearing in otk's own diagnostics.
    """

    _name = "report-log"
    _signal = "logs"

    def __init__(
        self,
        endpoint: EndpointSettings,
        resource_attributes: Mapping[str, str] | None = None,
        *,
        exporter: Any | None = None,
        scope_name: str = INSTRUMENTATION_SCOPE,
    ) -> None:
        super().__init__(endpoint, resource_attributes, exporter=exporter, scope_name=scope_name)
        self._bridge: logging.Logger | None = None

    def _build_provider(self, resource: Resource) -> Any:
        from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
        from opentelemetry.sdk._logs.export import BatchLogRecordProcessor

        provider = LoggerProvider(resource=resource)
        provider.add_log_record_processor(BatchLogRecordProcessor(self._get_exporter()))

        bridge = logging.Logger(self._scope_name, level=TRACE_LEVEL)
        bridge.propagate = False
        bridge.addHandler(LoggingHandler(level=logging.NOTSET, logger_provider=provider))
        self._bridge = bridge
        return provider

    def shutdown(self) -> None:
        if self._bridge is not None:
            for handler in list(self._bridge.handlers):
                self._bridge.removeHandler(handler)
            self._bridge = None
        super().shutdown()

    def emit(self, spec: LogSpec) -> int:
        """Emit ``spec.batch`` log records.

        Returns:
            Number of records emitted
        """
        self._require_provider()
        assert self._bridge is not None, "bridge is created together with the provider"
        extra = dict(spec.attributes)
        for _ in range(spec.batch):
            self._bridge.log(spec.level, spec.body, extra=extra)
        logger.info("Log records emitted", reporter=self._name, count=spec.batch, severity=spec.severity)
        return spec.batch
