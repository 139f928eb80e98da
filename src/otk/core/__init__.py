# src/otk/core/__init__.py
"""Core infrastructure: Configuration, Logging."""

from otk.core.config import (
    DEFAULT_PORTS,
    EndpointSettings,
    OtkSettings,
    QuarantineSettings,
    ReportSettings,
    load_settings,
    override_endpoint,
)
from otk.core.logging import configure_logging, get_logger

__all__ = [
    "DEFAULT_PORTS",
    "EndpointSettings",
    "OtkSettings",
    "QuarantineSettings",
    "ReportSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "override_endpoint",
]
