# tests/core/test_config.py
"""Tests for settings schema and Dynaconf loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from otk.contracts import ConfigurationError
from otk.core.config import (
    EndpointSettings,
    OtkSettings,
    QuarantineSettings,
    load_quarantine_settings,
    load_settings,
    override_endpoint,
)


class TestQuarantineSettings:
    def test_defaults(self) -> None:
        settings = QuarantineSettings()

        assert settings.prefix == "otk"
        assert settings.directory == Path(".")

    @pytest.mark.parametrize("prefix", ["dir/name", "dir\\name", ""])
    def test_prefix_must_be_plain_name(self, prefix: str) -> None:
        with pytest.raises(ValidationError):
            QuarantineSettings(prefix=prefix)

    def test_settings_are_frozen(self) -> None:
        settings = QuarantineSettings()
        with pytest.raises(ValidationError):
            settings.prefix = "other"  # type: ignore[misc]


class TestEndpointSettings:
    def test_default_ports_by_protocol(self) -> None:
        assert EndpointSettings().url == "http://localhost:4317"
        assert EndpointSettings(protocol="http").url == "http://localhost:4318"

    def test_explicit_port_and_tls(self) -> None:
        endpoint = EndpointSettings(host="collector", port=443, tls=True)

        assert endpoint.url == "https://collector:443"

    @pytest.mark.parametrize("port", [0, 65536])
    def test_port_range(self, port: int) -> None:
        with pytest.raises(ValidationError):
            EndpointSettings(port=port)

    def test_unknown_protocol(self) -> None:
        with pytest.raises(ValidationError):
            EndpointSettings(protocol="udp")  # type: ignore[arg-type]

    @pytest.mark.parametrize("option", [{"ca_cert": Path("ca.pem")}, {"domain": "otel.example.com"}])
    def test_tls_options_require_tls(self, option: dict[str, object]) -> None:
        with pytest.raises(ValidationError, match="requires tls"):
            EndpointSettings(**option)  # type: ignore[arg-type]

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EndpointSettings(hostname="collector")  # type: ignore[call-arg]


class TestLoadSettings:
    """Test Dynaconf-based settings loading."""

    def test_defaults_without_file(self) -> None:
        assert load_settings() == OtkSettings()

    def test_load_from_yaml_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
quarantine:
  prefix: capture
  directory: /var/tmp/otk
report:
  endpoint:
    host: collector.internal
    protocol: http
    metadata:
      X-Tenant: team-a
  resource:
    service.name: probe
""")
        settings = load_settings(config_file)

        assert settings.quarantine.prefix == "capture"
        assert settings.quarantine.directory == Path("/var/tmp/otk")
        assert settings.report.endpoint.url == "http://collector.internal:4318"
        assert settings.report.endpoint.metadata == {"X-Tenant": "team-a"}
        assert settings.report.resource == {"service.name": "probe"}

    def test_load_with_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
report:
  endpoint:
    host: collector.internal
""")
        # Environment variable should override YAML
        monkeypatch.setenv("OTK_REPORT__ENDPOINT__HOST", "override.internal")
        monkeypatch.setenv("OTK_REPORT__ENDPOINT__PORT", "14317")

        settings = load_settings(config_file)

        assert settings.report.endpoint.host == "override.internal"
        assert settings.report.endpoint.resolved_port == 14317

    def test_env_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTK_QUARANTINE__PREFIX", "capture")

        assert load_settings().quarantine.prefix == "capture"

    def test_unrelated_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTK_SOMETHING_ELSE", "x")

        assert load_settings() == OtkSettings()

    def test_invalid_values_raise_configuration_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
report:
  endpoint:
    port: 70000
""")
        with pytest.raises(ConfigurationError, match=r"report\.endpoint\.port"):
            load_settings(config_file)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Settings file not found"):
            load_settings(tmp_path / "nonexistent.yaml")


class TestOverrideEndpoint:
    def test_none_keeps_base(self) -> None:
        base = EndpointSettings(host="collector", port=9000)

        assert override_endpoint(base, host=None, port=None) == base

    def test_values_replace_base(self) -> None:
        endpoint = override_endpoint(EndpointSettings(), host="collector", protocol="http")

        assert endpoint.url == "http://collector:4318"

    def test_metadata_merged(self) -> None:
        base = EndpointSettings(metadata={"a": "1", "b": "2"})

        endpoint = override_endpoint(base, metadata={"b": "3", "c": "4"})

        assert endpoint.metadata == {"a": "1", "b": "3", "c": "4"}

    def test_invalid_combination_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="requires tls"):
            override_endpoint(EndpointSettings(), domain="otel.example.com")


class TestSettingsRobustness:
    """Environment typing, unreadable files and section isolation."""

    def test_unparsable_yaml_raises_configuration_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("quarantine: [unclosed\n")

        with pytest.raises(ConfigurationError, match="cannot read settings"):
            load_settings(config_file)

    def test_numeric_prefix_from_env_is_text(self, monkeypatch: pytest.MonkeyPatch) -> None:
        # Dynaconf parses "123" as a TOML integer
        monkeypatch.setenv("OTK_QUARANTINE__PREFIX", "123")

        assert load_settings().quarantine.prefix == "123"

    def test_numeric_metadata_and_resource_values_are_text(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
report:
  endpoint:
    metadata:
      x-tenant: 42
  resource:
    build: 7
    canary: true
""")
        settings = load_settings(config_file)

        assert settings.report.endpoint.metadata == {"x-tenant": "42"}
        assert settings.report.resource == {"build": "7", "canary": "true"}

    def test_quarantine_section_loads_despite_bad_report(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTK_REPORT__ENDPOINT__PORT", "notaport")
        monkeypatch.setenv("OTK_QUARANTINE__PREFIX", "capture")

        assert load_quarantine_settings().prefix == "capture"
        with pytest.raises(ConfigurationError, match=r"report\.endpoint\.port"):
            load_settings()

    def test_quarantine_section_still_validated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTK_QUARANTINE__PREFIX", "a/b")

        with pytest.raises(ConfigurationError, match="prefix"):
            load_quarantine_settings()
