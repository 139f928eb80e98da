"""Tests for `otk report-trace`, `report-metric` and `report-log`.

The exporter factory is patched so spans land in an SDK in-memory
exporter instead of a collector.
"""

from unittest.mock import MagicMock, patch

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from typer.testing import CliRunner

from otk.cli import app
from otk.contracts import ReporterError

runner = CliRunner()

CREATE_EXPORTER = "otk.report.reporters.create_exporter"


class TestReportTrace:
    def test_sends_spans_and_prints_trace_ids(self) -> None:
        exporter = InMemorySpanExporter()

        with patch(CREATE_EXPORTER, return_value=exporter) as create:
            result = runner.invoke(
                app,
                [
                    "report-trace",
                    "--batch",
                    "2",
                    "--rtag",
                    "service.name=probe",
                    "--attr",
                    "env=test",
                    "--long-length-tag",
                    "x=4",
                    "-v",
                ],
            )

        assert result.exit_code == 0, result.stderr
        trace_ids = result.stdout.splitlines()
        assert len(trace_ids) == 2
        spans = exporter.get_finished_spans()
        assert sorted(trace_ids) == sorted(format(s.context.trace_id, "032x") for s in spans)
        assert spans[0].resource.attributes["service.name"] == "probe"
        assert spans[0].attributes is not None and spans[0].attributes["ll"] == "xxxx"
        endpoint = create.call_args.args[1]
        assert endpoint.url == "http://localhost:4317"

    def test_host_and_port_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTK_REPORT_HOST", "collector")
        monkeypatch.setenv("OTK_REPORT_PORT", "14317")

        with patch(CREATE_EXPORTER, return_value=InMemorySpanExporter()) as create:
            result = runner.invoke(app, ["rt"])

        assert result.exit_code == 0, result.stderr
        assert create.call_args.args[1].url == "http://collector:14317"

    def test_http_json_is_config_error(self) -> None:
        result = runner.invoke(app, ["report-trace", "--protocol", "http_json"])

        assert result.exit_code == 2
        assert "http_json" in result.stderr

    def test_malformed_attribute_is_config_error(self) -> None:
        result = runner.invoke(app, ["report-trace", "--attr", "novalue"])

        assert result.exit_code == 2

    def test_reporter_failure_exits_1(self) -> None:
        with patch(CREATE_EXPORTER, side_effect=ReporterError("report-trace", "exporter not installed")):
            result = runner.invoke(app, ["report-trace"])

        assert result.exit_code == 1
        assert "exporter not installed" in result.stderr


class TestReportMetric:
    def test_invalid_combination_fails_before_connecting(self) -> None:
        with patch(CREATE_EXPORTER) as create:
            result = runner.invoke(app, ["report-metric", "--dtype", "i64", "--mtype", "counter"])

        assert result.exit_code == 2
        assert "invalid combination" in result.stderr
        create.assert_not_called()

    def test_unparsable_value(self) -> None:
        result = runner.invoke(app, ["report-metric", "--dtype", "u64", "-v", "1", "-v", "x"])

        assert result.exit_code == 2
        assert "parse metric value failed" in result.stderr


class TestReportLog:
    def test_sends_records(self) -> None:
        exporter = MagicMock()

        with patch(CREATE_EXPORTER, return_value=exporter):
            result = runner.invoke(app, ["report-log", "--body", "hello", "--severity", "warn", "--batch", "3"])

        assert result.exit_code == 0, result.stderr
        assert exporter.export.called
        assert exporter.shutdown.called

    def test_body_required(self) -> None:
        result = runner.invoke(app, ["report-log"])

        assert result.exit_code == 2

    def test_unknown_severity(self) -> None:
        result = runner.invoke(app, ["report-log", "--body", "x", "--severity", "LOUD"])

        assert result.exit_code == 2
