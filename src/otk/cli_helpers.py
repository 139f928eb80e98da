"""CLI helper functions for option parsing and settings resolution."""

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from otk.contracts.errors import ConfigurationError

if TYPE_CHECKING:
    from otk.core.config import EndpointSettings, OtkSettings, QuarantineSettings
    from otk.ingest.quarantine import QuarantineWriter


def parse_key_value(text: str) -> tuple[str, str]:
    """Split ``key=value`` on the first ``=``.

    The value may itself contain ``=`` (``auth=Bearer a=b`` -> ``("auth", "Bearer a=b")``).

    Raises:
        ConfigurationError: If there is no ``=`` or the key is empty
    """
    key, sep, value = text.partition("=")
    if not sep:
        raise ConfigurationError(f"invalid format {text!r} (expect key=value)")
    if not key:
        raise ConfigurationError(f"invalid format {text!r} (empty key)")
    return key, value


def parse_key_values(items: Iterable[str] | None) -> dict[str, str]:
    """Parse repeated ``key=value`` options; later keys win."""
    return dict(parse_key_value(item) for item in items or ())


def parse_long_attribute(text: str | None) -> tuple[str, int] | None:
    """Parse ``text=count`` for the long-length span attribute.

    Raises:
        ConfigurationError: If count is not a non-negative integer
    """
    if text is None:
        return None
    fragment, count = parse_key_value(text)
    try:
        repeat = int(count)
    except ValueError:
        raise ConfigurationError(f"invalid repeat count {count!r} in {text!r}") from None
    if repeat < 0:
        raise ConfigurationError(f"repeat count must be >= 0, got {repeat}")
    return fragment, repeat


def resolve_settings(settings_path: Path | None) -> "OtkSettings":
    """Load settings from ``--settings`` (or environment/defaults only).

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    from otk.core.config import load_settings

    return load_settings(settings_path.expanduser() if settings_path is not None else None)


def resolve_quarantine_settings(settings_path: Path | None) -> "QuarantineSettings":
    """Load only the quarantine section; decode and search need nothing else.

    Raises:
        ConfigurationError: If the file is missing or unreadable, or the section is invalid
    """
    from otk.core.config import load_quarantine_settings

    return load_quarantine_settings(settings_path.expanduser() if settings_path is not None else None)


def build_quarantine_writer(settings: "QuarantineSettings") -> "QuarantineWriter":
    from otk.ingest.quarantine import QuarantineWriter

    return QuarantineWriter(prefix=settings.prefix, directory=settings.directory)


def resolve_endpoint(
    settings: "OtkSettings",
    *,
    host: str | None,
    port: int | None,
    protocol: str | None,
    tls: bool,
    ca_cert: Path | None,
    domain: str | None,
    timeout: float | None,
    metadata: list[str] | None,
) -> "EndpointSettings":
    """Merge report CLI options over the settings endpoint.

    ``tls`` is a flag, so False means "not given" and keeps the configured value.

    Raises:
        ConfigurationError: If an option is malformed or the result is invalid
    """
    from otk.core.config import override_endpoint

    return override_endpoint(
        settings.report.endpoint,
        host=host,
        port=port,
        protocol=protocol,
        tls=True if tls else None,
        ca_cert=ca_cert,
        domain=domain,
        timeout_seconds=timeout,
        metadata=parse_key_values(metadata) or None,
    )


def resolve_resource(settings: "OtkSettings", rtags: list[str] | None) -> dict[str, str]:
    """Resource attributes: settings first, ``--rtag`` options on top."""
    return {**settings.report.resource, **parse_key_values(rtags)}
