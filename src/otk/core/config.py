# src/otk/core/config.py
"""
Configuration schema and loading for otk.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from otk.contracts.errors import ConfigurationError

Protocol = Literal["grpc", "http", "http_json"]

# OTLP default ports
DEFAULT_PORTS: dict[str, int] = {
    "grpc": 4317,
    "http": 4318,
    "http_json": 4318,
}

# Top-level sections accepted from settings files and OTK_* variables.
# Everything else Dynaconf picks up from the environment is ignored.
_SECTIONS = frozenset({"quarantine", "report"})

# Maps whose keys are user data (header names, resource attribute keys)
_FREE_FORM_KEYS = frozenset({"metadata", "resource"})


def _as_text(value: Any) -> Any:
    """Undo Dynaconf's TOML typing of scalars (OTK_QUARANTINE__PREFIX=123 arrives as int)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return value


def _as_text_mapping(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _as_text(v) for k, v in value.items()}
    return value


class QuarantineSettings(BaseModel):
    """Where streaming decode failures are written.

    Example YAML:
        quarantine:
          prefix: capture
          directory: /var/tmp/otk
    """

    model_config = {"frozen": True, "extra": "forbid"}

    prefix: str = Field(default="otk", min_length=1, description="Quarantine filename prefix")
    directory: Path = Field(default=Path("."), description="Directory for quarantine files")

    @field_validator("prefix", mode="before")
    @classmethod
    def coerce_prefix(cls, v: Any) -> Any:
        return _as_text(v)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if "/" in v or "\\" in v:
            raise ValueError("prefix must be a file name, not a path (use 'directory')")
        return v


class EndpointSettings(BaseModel):
    """OTLP collector endpoint used by the report commands.

    The port defaults by protocol (gRPC 4317, HTTP 4318). ``ca_cert`` and
    ``domain`` only make sense with ``tls`` enabled.

    Example YAML:
        report:
          endpoint:
            host: collector.internal
            protocol: grpc
            tls: true
            ca_cert: /etc/ssl/collector-ca.pem
            metadata:
              x-tenant: team-a
    """

    model_config = {"frozen": True, "extra": "forbid"}

    host: str = Field(default="localhost", min_length=1)
    port: int | None = Field(default=None, ge=1, le=65535)
    protocol: Protocol = "grpc"
    tls: bool = False
    ca_cert: Path | None = None
    domain: str | None = None
    timeout_seconds: float = Field(default=10.0, gt=0)
    metadata: dict[str, str] = Field(default_factory=dict, description="gRPC metadata / HTTP headers")

    @field_validator("host", "domain", mode="before")
    @classmethod
    def coerce_names(cls, v: Any) -> Any:
        return _as_text(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def coerce_metadata(cls, v: Any) -> Any:
        return _as_text_mapping(v)

    @model_validator(mode="after")
    def validate_tls_options(self) -> "EndpointSettings":
        if not self.tls:
            if self.ca_cert is not None:
                raise ValueError("ca_cert requires tls to be enabled")
            if self.domain is not None:
                raise ValueError("domain requires tls to be enabled")
        return self

    @property
    def resolved_port(self) -> int:
        return self.port if self.port is not None else DEFAULT_PORTS[self.protocol]

    @property
    def scheme(self) -> str:
        return "https" if self.tls else "http"

    @property
    def url(self) -> str:
        """Base endpoint URL, e.g. ``http://localhost:4317``."""
        return f"{self.scheme}://{self.host}:{self.resolved_port}"


class ReportSettings(BaseModel):
    """Settings shared by report-trace, report-metric and report-log."""

    model_config = {"frozen": True, "extra": "forbid"}

    endpoint: EndpointSettings = Field(default_factory=EndpointSettings)
    resource: dict[str, str] = Field(default_factory=dict, description="Resource attributes")

    @field_validator("resource", mode="before")
    @classmethod
    def coerce_resource(cls, v: Any) -> Any:
        return _as_text_mapping(v)


class OtkSettings(BaseModel):
    """Top-level otk settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    quarantine: QuarantineSettings = Field(default_factory=QuarantineSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)


def _lowercase_keys(data: Any) -> Any:
    """Lowercase schema keys; OTK_* variables arrive uppercased."""
    if not isinstance(data, dict):
        return data
    return {
        k.lower(): dict(v) if k.lower() in _FREE_FORM_KEYS and isinstance(v, dict) else _lowercase_keys(v)
        for k, v in data.items()
    }


def format_validation_error(error: ValidationError) -> str:
    """One ``loc: msg`` line per Pydantic error."""
    details = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        details.append(f"{loc}: {item['msg']}" if loc else item["msg"])
    return "; ".join(details)


def _validate(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid {model.__name__}: {format_validation_error(e)}") from e


def _load_raw(config_path: Path | None) -> dict[str, Any]:
    """Merged settings sections from the file and OTK_* variables, unvalidated.

    Raises:
        ConfigurationError: If the file is missing or cannot be parsed
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise ConfigurationError(f"Settings file not found: {config_path}")

    # Dynaconf loads lazily and surfaces parser errors (ruamel, toml) unwrapped
    try:
        dynaconf_settings = Dynaconf(
            envvar_prefix="OTK",
            settings_files=[str(config_path)] if config_path is not None else [],
            environments=False,
            load_dotenv=False,
            merge_enabled=True,
        )
        loaded = dynaconf_settings.as_dict()
    except Exception as e:
        source = config_path if config_path is not None else "from OTK_* environment"
        raise ConfigurationError(f"cannot read settings {source}: {e}") from e

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    return {k: v for k, v in _lowercase_keys(loaded).items() if k in _SECTIONS}


def load_settings(config_path: Path | None = None) -> OtkSettings:
    """Load settings from an optional YAML file with environment overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (OTK_*) - highest priority
    2. Config file (when given)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: OTK_REPORT__ENDPOINT__HOST for nested keys.

    Args:
        config_path: Path to YAML configuration file, or None for env/defaults only

    Returns:
        Validated OtkSettings instance

    Raises:
        ConfigurationError: If the file is missing, unparsable or validation fails
    """
    settings: OtkSettings = _validate(OtkSettings, _load_raw(config_path))
    return settings


def load_quarantine_settings(config_path: Path | None = None) -> QuarantineSettings:
    """Load and validate only the ``quarantine`` section.

    decode and search need nothing else, so a broken ``report`` section
    never blocks them.

    Raises:
        ConfigurationError: If the file is missing, unparsable or the
            quarantine section is invalid
    """
    section = _load_raw(config_path).get("quarantine", {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"invalid QuarantineSettings: expected a mapping, got {type(section).__name__}")
    settings: QuarantineSettings = _validate(QuarantineSettings, section)
    return settings


def override_endpoint(base: EndpointSettings, **overrides: Any) -> EndpointSettings:
    """Apply CLI overrides to endpoint settings and re-validate.

    None values mean "not given on the command line" and keep the base value.
    ``metadata`` is merged over the base metadata rather than replacing it.

    Raises:
        ConfigurationError: If the merged settings are invalid
    """
    data = base.model_dump()
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "metadata":
            data["metadata"] = {**data["metadata"], **value}
        else:
            data[key] = value
    endpoint: EndpointSettings = _validate(EndpointSettings, data)
    return endpoint
