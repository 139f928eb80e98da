# tests/core/test_logging.py
"""Tests for structured logging configuration."""

import json
import logging

import pytest

from otk.core.logging import configure_logging, get_logger


class TestLoggingConfig:
    """Tests for logging configuration."""

    def test_get_logger_returns_logger(self) -> None:
        logger = get_logger("test")
        assert hasattr(logger, "info")
        assert hasattr(logger, "bind")

    def test_json_output_goes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Diagnostics never mix with decoded output on stdout."""
        configure_logging(json_output=True, level="INFO")

        get_logger("test").info("test message", key="value")

        captured = capsys.readouterr()
        assert captured.out == ""
        data = json.loads(captured.err.strip().split("\n")[-1])
        assert data["event"] == "test message"
        assert data["key"] == "value"
        assert data["level"] == "info"

    def test_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=False, level="INFO")

        get_logger("test").info("test message", key="value")

        captured = capsys.readouterr()
        assert "test message" in captured.err
        assert not captured.err.strip().startswith("{")

    def test_default_level_hides_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging()

        get_logger("test").info("quiet")
        get_logger("test").warning("loud")

        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "loud" in err

    def test_stdlib_loggers_emit_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Records from stdlib loggers (SDK, gRPC) share the structlog format."""
        configure_logging(json_output=True, level="INFO")

        logging.getLogger("test.stdlib.module").info("message from stdlib logger")

        data = json.loads(capsys.readouterr().err.strip().split("\n")[-1])
        assert data["event"] == "message from stdlib logger"
        assert "timestamp" in data

    def test_noisy_third_party_loggers_silenced(self) -> None:
        configure_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        for name in ("grpc", "urllib3", "opentelemetry", "opentelemetry.sdk"):
            assert logging.getLogger(name).getEffectiveLevel() >= logging.WARNING

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(level="CHATTY")
