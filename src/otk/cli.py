# src/otk/cli.py
"""otk Command Line Interface.

Entry point for the otk CLI tool.

Output channels:
    stdout: decoded messages, matching search batches, trace ids
    stderr: diagnostics (per-line decode errors, quarantine file names,
            verbose search traversal, structlog output)

Exit codes:
    0: success (including streams with quarantined lines)
    1: fatal runtime error (unreadable input, undecodable binary payload,
       reporter setup failure)
    2: configuration error (unknown shape, bad trace id, bad option)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer

from otk import __version__
from otk.cli_helpers import (
    build_quarantine_writer,
    parse_key_values,
    parse_long_attribute,
    resolve_endpoint,
    resolve_quarantine_settings,
    resolve_resource,
    resolve_settings,
)
from otk.codec import parse_shape, render
from otk.contracts import CodecError, ConfigurationError, DecodedMessage, OtkError, ReporterError, Shape
from otk.core.config import OtkSettings, QuarantineSettings
from otk.core.logging import configure_logging, get_logger

__all__ = ["app"]

logger = get_logger(__name__)

app = typer.Typer(
    name="otk",
    help="otk: OpenTelemetry toolkit - decode, search and report OTLP telemetry.",
    no_args_is_help=True,
)


@dataclass(frozen=True)
class CliState:
    """Global options shared with subcommands through ``ctx.obj``."""

    settings_path: Path | None = None

    def settings(self) -> OtkSettings:
        return resolve_settings(self.settings_path)

    def quarantine(self) -> QuarantineSettings:
        return resolve_quarantine_settings(self.settings_path)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"otk version {__version__}")
        raise typer.Exit()


def _state(ctx: typer.Context) -> CliState:
    state = ctx.obj
    if isinstance(state, CliState):
        return state
    return CliState()


def _fail(error: BaseException, *, code: int) -> NoReturn:
    typer.secho(f"Error: {error}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code) from None


def _fail_config(error: ConfigurationError) -> NoReturn:
    _fail(error, code=2)


def _echo_err(text: str) -> None:
    typer.echo(text, err=True)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file (OTK_* environment variables also apply).",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Diagnostic log level (DEBUG, INFO, WARNING, ERROR).",
    ),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Emit diagnostic logs as JSON lines on stderr.",
    ),
) -> None:
    """otk: OpenTelemetry toolkit."""
    try:
        configure_logging(json_output=log_json, level=log_level)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from None
    ctx.obj = CliState(settings_path=settings)


# =============================================================================
# Decoding
# =============================================================================


def _require_input(input_path: str | None) -> str:
    if input_path is None:
        raise ConfigurationError("missing INPUT (a file path, or - for stdin)")
    return input_path


def _run_binary(shape: Shape, location: str, on_decoded: Callable[[DecodedMessage], None]) -> None:
    """Decode the whole input once; any failure is fatal."""
    from otk.ingest import decode_binary, open_source, read_payload

    try:
        with open_source(location) as stream:
            payload = read_payload(stream)
        decoded = decode_binary(shape, payload)
    except (CodecError, OSError) as e:
        _fail(e, code=1)
    on_decoded(decoded)


def _run_stream(
    shape: Shape,
    location: str,
    quarantine: QuarantineSettings,
    on_decoded: Callable[[DecodedMessage], None],
) -> None:
    """Decode base64 lines; bad lines are quarantined, I/O errors are fatal."""
    from otk.ingest import StreamingDecoder, iter_lines, open_source

    decoder = StreamingDecoder(shape, build_quarantine_writer(quarantine))
    try:
        with open_source(location) as stream:
            for outcome in decoder.outcomes(iter_lines(stream)):
                if outcome.is_decoded:
                    assert outcome.message is not None
                    on_decoded(outcome.message)
                    continue
                typer.echo(f"error during decoding line {outcome.line_number}: {outcome.error}", err=True)
                typer.echo(f"data dumped as {outcome.quarantine_path}", err=True)
    except OSError as e:
        _fail(e, code=1)


@app.command()
def decode(
    ctx: typer.Context,
    input_path: str | None = typer.Argument(
        None,
        metavar="INPUT",
        help="File to read (- for stdin).",
        show_default=False,
    ),
    name: str = typer.Option(
        Shape.EXPORT_TRACE_SERVICE_REQUEST.value,
        "--name",
        "-n",
        help="Message shape to decode as (see --list).",
    ),
    base64_input: bool = typer.Option(
        False,
        "--base64",
        "-b",
        help="Input is base64, one payload per line (streaming; bad lines are quarantined).",
    ),
    list_shapes: bool = typer.Option(
        False,
        "--list",
        "-l",
        help="List available shapes and exit.",
    ),
    pretty: bool = typer.Option(
        False,
        "--pretty",
        "-p",
        help="Pretty print output.",
    ),
) -> None:
    """Decode OTLP protobuf payloads."""
    if list_shapes:
        for shape in Shape:
            typer.echo(shape.value)
        return

    try:
        shape = parse_shape(name)
        location = _require_input(input_path)
        quarantine = _state(ctx).quarantine()
    except ConfigurationError as e:
        _fail_config(e)

    logger.info("decoding as proto", shape=shape.value, streaming=base64_input)

    def emit(decoded: DecodedMessage) -> None:
        typer.echo(render(decoded, pretty=pretty))

    if base64_input:
        _run_stream(shape, location, quarantine, emit)
    else:
        _run_binary(shape, location, emit)


@app.command()
def search(
    ctx: typer.Context,
    input_path: str = typer.Argument(
        ...,
        metavar="INPUT",
        help="File to read (- for stdin).",
    ),
    trace_id: str | None = typer.Option(
        None,
        "--trace-id",
        help="Trace id to search for (32 lowercase hex digits).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Echo every visited trace id to stderr.",
    ),
    pretty: bool = typer.Option(
        False,
        "--pretty",
        "-p",
        help="Pretty print matching batches.",
    ),
    base64_input: bool = typer.Option(
        True,
        "--base64/--raw",
        help="Input is base64 lines (default) or one raw binary payload.",
    ),
) -> None:
    """Search ExportTraceServiceRequest batches for a trace id.

    Every batch containing a span of the trace is printed in full.
    """
    from otk.search import SEARCHABLE_SHAPE, TraceQuery, matches

    try:
        query = TraceQuery.parse(trace_id) if trace_id is not None else None
        quarantine = _state(ctx).quarantine()
    except ConfigurationError as e:
        _fail_config(e)

    if query is None:
        logger.info("No --trace-id given, nothing will match")

    on_visit = _echo_err if verbose else None

    def report(decoded: DecodedMessage) -> None:
        if matches(decoded, query, on_visit):
            typer.echo(render(decoded, pretty=pretty))

    if base64_input:
        _run_stream(SEARCHABLE_SHAPE, input_path, quarantine, report)
    else:
        _run_binary(SEARCHABLE_SHAPE, input_path, report)


# =============================================================================
# Reporting
# =============================================================================

_PROTOCOL_HELP = "Protocol: grpc, http or http_json (http_json is not supported)."
_PORT_HELP = "Collector port [default: 4317 for grpc, 4318 for http]."


def _run_reporter(reporter_name: str, body: Callable[[], None]) -> None:
    """Run a report body, mapping otk errors to exit codes."""
    try:
        body()
    except ConfigurationError as e:
        _fail_config(e)
    except (ReporterError, OSError) as e:
        logger.error("Report failed", reporter=reporter_name, error=str(e))
        _fail(e, code=1)
    except OtkError as e:
        _fail(e, code=1)


@app.command("report-trace")
def report_trace(
    ctx: typer.Context,
    protocol: str | None = typer.Option(None, "--protocol", help=_PROTOCOL_HELP),
    tls: bool = typer.Option(False, "--tls", help="Use TLS."),
    ca_cert: Path | None = typer.Option(None, "--ca-cert", help="CA certificate (PEM) when TLS is enabled."),
    domain: str | None = typer.Option(None, "--domain", help="Server host name to verify when TLS is enabled."),
    host: str | None = typer.Option(
        None, "--host", envvar="OTK_REPORT_HOST", help="Collector host [default: localhost]."
    ),
    port: int | None = typer.Option(None, "--port", envvar="OTK_REPORT_PORT", help=_PORT_HELP),
    rtags: list[str] | None = typer.Option(None, "--rtag", "-r", help="Resource attribute key=value (repeatable)."),
    metadata: list[str] | None = typer.Option(
        None, "--metadata", "-m", help="Metadata / header key=value (repeatable)."
    ),
    name: str = typer.Option("otk_test_span", "--name", "-n", help="Span name."),
    attrs: list[str] | None = typer.Option(None, "--attr", "-a", help="Span attribute key=value (repeatable)."),
    long_length_tag: str | None = typer.Option(
        None,
        "--long-length-tag",
        help="Add attribute 'll' holding TEXT repeated N times, given as TEXT=N (collector size limit probing).",
    ),
    status_msg: str | None = typer.Option(None, "--status-msg", help="Mark spans as errors with this message."),
    duration: int = typer.Option(0, "--duration", help="Span duration in milliseconds."),
    batch: int = typer.Option(1, "--batch", help="Number of spans to send."),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Export timeout in seconds [default: 10]."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print the trace id of every span."),
) -> None:
    """Report test spans to an OTLP collector."""
    from otk.report import SpanSpec, TraceReporter

    def body() -> None:
        settings = _state(ctx).settings()
        endpoint = resolve_endpoint(
            settings,
            host=host,
            port=port,
            protocol=protocol,
            tls=tls,
            ca_cert=ca_cert,
            domain=domain,
            timeout=timeout,
            metadata=metadata,
        )
        spec = SpanSpec(
            name=name,
            attributes=parse_key_values(attrs),
            long_attribute=parse_long_attribute(long_length_tag),
            status_message=status_msg,
            duration_ms=duration,
            batch=batch,
        )
        if verbose:
            typer.echo(f"reporting {batch} span(s) to {endpoint.url} via {endpoint.protocol}", err=True)
        with TraceReporter(endpoint, resolve_resource(settings, rtags)) as reporter:
            trace_ids = reporter.emit(spec)
        if verbose:
            for emitted in trace_ids:
                typer.echo(emitted)

    _run_reporter("report-trace", body)


@app.command("report-metric")
def report_metric(
    ctx: typer.Context,
    protocol: str | None = typer.Option(None, "--protocol", help=_PROTOCOL_HELP),
    tls: bool = typer.Option(False, "--tls", help="Use TLS."),
    ca_cert: Path | None = typer.Option(None, "--ca-cert", help="CA certificate (PEM) when TLS is enabled."),
    domain: str | None = typer.Option(None, "--domain", help="Server host name to verify when TLS is enabled."),
    host: str | None = typer.Option(
        None, "--host", envvar="OTK_REPORT_HOST", help="Collector host [default: localhost]."
    ),
    port: int | None = typer.Option(None, "--port", envvar="OTK_REPORT_PORT", help=_PORT_HELP),
    rtags: list[str] | None = typer.Option(None, "--rtag", "-r", help="Resource attribute key=value (repeatable)."),
    metadata: list[str] | None = typer.Option(
        None, "--metadata", "-m", help="Metadata / header key=value (repeatable)."
    ),
    library_name: str | None = typer.Option(None, "--library-name", help="Instrumentation scope name [default: otk.kto]."),
    dtype: str = typer.Option("f64", "--dtype", "-d", help="Value type: u64, i64 or f64."),
    mtype: str = typer.Option("counter", "--mtype", help="Instrument: counter, up_down_counter or histogram."),
    name: str = typer.Option("otk_test_metric", "--name", "-n", help="Metric name."),
    values: list[str] | None = typer.Option(None, "--value", "-v", help="Value to record (repeatable) [default: 1]."),
    times: int = typer.Option(1, "--times", help="How many times to record the values."),
    wait_secs: float = typer.Option(0.15, "--wait-secs", "-w", help="Seconds to wait before shutting down."),
    histograms: list[float] | None = typer.Option(
        None, "--histograms", help="Histogram bucket boundary (repeatable) [default: 10..90 step 10]."
    ),
    labels: list[str] | None = typer.Option(None, "--label", "-l", help="Measurement attribute key=value (repeatable)."),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Export timeout in seconds [default: 10]."),
    verbose: bool = typer.Option(False, "--verbose", help="Describe what is being sent on stderr."),
) -> None:
    """Report test measurements to an OTLP collector."""
    from otk.report import INSTRUMENTATION_SCOPE, MetricReporter, MetricSpec
    from otk.report.reporters import DEFAULT_HISTOGRAM_BUCKETS

    def body() -> None:
        settings = _state(ctx).settings()
        endpoint = resolve_endpoint(
            settings,
            host=host,
            port=port,
            protocol=protocol,
            tls=tls,
            ca_cert=ca_cert,
            domain=domain,
            timeout=timeout,
            metadata=metadata,
        )
        spec = MetricSpec(
            name=name,
            kind=mtype,
            value_type=dtype,
            values=tuple(values) if values else ("1",),
            times=times,
            labels=parse_key_values(labels),
        )
        # Fail on bad values before connecting
        spec.measurements()
        resource = resolve_resource(settings, rtags)
        if verbose:
            typer.echo(f"resource: {resource}", err=True)
            typer.echo(f"labels: {dict(spec.labels)}", err=True)
            typer.echo(f"{spec.value_type} {spec.kind}", err=True)
        reporter = MetricReporter(
            endpoint,
            resource,
            scope_name=library_name or INSTRUMENTATION_SCOPE,
            histogram_buckets=tuple(histograms) if histograms else DEFAULT_HISTOGRAM_BUCKETS,
        )
        with reporter:
            reporter.record(spec, wait_secs=wait_secs)

    _run_reporter("report-metric", body)


@app.command("report-log")
def report_log(
    ctx: typer.Context,
    body_text: str = typer.Option(..., "--body", "-b", help="Log body."),
    protocol: str | None = typer.Option(None, "--protocol", help=_PROTOCOL_HELP),
    tls: bool = typer.Option(False, "--tls", help="Use TLS."),
    ca_cert: Path | None = typer.Option(None, "--ca-cert", help="CA certificate (PEM) when TLS is enabled."),
    domain: str | None = typer.Option(None, "--domain", help="Server host name to verify when TLS is enabled."),
    host: str | None = typer.Option(
        None, "--host", envvar="OTK_REPORT_HOST", help="Collector host [default: localhost]."
    ),
    port: int | None = typer.Option(None, "--port", envvar="OTK_REPORT_PORT", help=_PORT_HELP),
    rtags: list[str] | None = typer.Option(None, "--rtag", "-r", help="Resource attribute key=value (repeatable)."),
    metadata: list[str] | None = typer.Option(
        None, "--metadata", "-m", help="Metadata / header key=value (repeatable)."
    ),
    severity: str = typer.Option("INFO", "--severity", "-s", help="Severity text."),
    attrs: list[str] | None = typer.Option(None, "--attr", "-a", help="Log attribute key=value (repeatable)."),
    batch: int = typer.Option(1, "--batch", help="Number of records to send."),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Export timeout in seconds [default: 10]."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Describe what is being sent on stderr."),
) -> None:
    """Report test log records to an OTLP collector."""
    from otk.report import LogReporter, LogSpec

    def body() -> None:
        settings = _state(ctx).settings()
        endpoint = resolve_endpoint(
            settings,
            host=host,
            port=port,
            protocol=protocol,
            tls=tls,
            ca_cert=ca_cert,
            domain=domain,
            timeout=timeout,
            metadata=metadata,
        )
        spec = LogSpec(
            body=body_text,
            severity=severity,
            attributes=parse_key_values(attrs),
            batch=batch,
        )
        if verbose:
            typer.echo(f"reporting {batch} log record(s) to {endpoint.url} via {endpoint.protocol}", err=True)
        with LogReporter(endpoint, resolve_resource(settings, rtags)) as reporter:
            reporter.emit(spec)

    _run_reporter("report-log", body)


# Short aliases, hidden from --help
for _alias in ("d", "de", "dec"):
    app.command(_alias, hidden=True)(decode)
for _alias in ("s", "st"):
    app.command(_alias, hidden=True)(search)
for _alias in ("t", "trace", "rt"):
    app.command(_alias, hidden=True)(report_trace)
for _alias in ("rm", "metric"):
    app.command(_alias, hidden=True)(report_metric)
for _alias in ("l", "rl", "log"):
    app.command(_alias, hidden=True)(report_log)
