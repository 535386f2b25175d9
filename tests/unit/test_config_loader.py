"""Tests for the metrics config loader."""

from __future__ import annotations

import pytest

from payid_metrics import MetricsConfigError, load_metrics_config
from payid_metrics.config import load_logging_settings

pytestmark = [pytest.mark.config]

_ENV_VARS = (
    "PUSH_PAYID_METRICS",
    "PAYID_DOMAIN",
    "PUSH_GATEWAY_URL",
    "PUSH_METRICS_INTERVAL",
    "PAYID_COUNT_REFRESH_INTERVAL",
    "PAYID_SERVER_AGENT",
    "PAYID_PROTOCOL_VERSION",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_load_metrics_config_falls_back_to_defaults(monkeypatch, tmp_path):
    """Missing profiles should use the built-in defaults."""

    monkeypatch.setenv("PAYID_METRICS_CONFIG_PROFILE", "missing")
    monkeypatch.setenv("PAYID_METRICS_CONFIG_DIR", str(tmp_path))

    config = load_metrics_config()

    assert config.push_metrics is True
    assert config.domain == "missing_domain"
    assert config.gateway_url == "https://push00.mon.payid.tech/"
    assert config.push_interval_seconds == 15
    assert config.payid_count_refresh_interval_seconds == 60
    assert config.server_agent is None
    assert config.payid_protocol_version == "1.0"


def test_load_metrics_config_reads_yaml_profile(tmp_path):
    """The loader should parse the ``metrics`` section of a YAML profile."""

    profiles_dir = tmp_path / "profiles"
    profiles_dir.mkdir()
    (profiles_dir / "staging.yml").write_text(
        """
metrics:
  push_metrics: false
  domain: payid.example.org
  gateway_url: "http://gateway:9091"
  push_interval_seconds: 30
  payid_count_refresh_interval_seconds: 120.5
  server_agent: "payid-server:2.0.0"
  payid_protocol_version: "1.1"

logging:
  level: DEBUG
""",
        encoding="utf-8",
    )

    config = load_metrics_config(profile="staging", config_dir=profiles_dir)

    assert config.push_metrics is False
    assert config.domain == "payid.example.org"
    assert config.gateway_url == "http://gateway:9091"
    assert config.push_interval_seconds == 30
    assert config.payid_count_refresh_interval_seconds == 120.5
    assert config.server_agent == "payid-server:2.0.0"
    assert config.payid_protocol_version == "1.1"
    assert load_logging_settings("staging", profiles_dir) == {"level": "DEBUG"}


def test_environment_overrides_profile(monkeypatch, tmp_path):
    (tmp_path / "dev.yaml").write_text(
        "metrics:\n  push_metrics: true\n  domain: from-profile.com\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("PUSH_PAYID_METRICS", "false")
    monkeypatch.setenv("PAYID_DOMAIN", "from-env.com")
    monkeypatch.setenv("PUSH_METRICS_INTERVAL", "45")
    monkeypatch.setenv("PAYID_COUNT_REFRESH_INTERVAL", "300")
    monkeypatch.setenv("PAYID_SERVER_AGENT", "env-agent")

    config = load_metrics_config(profile="dev", config_dir=tmp_path)

    assert config.push_metrics is False
    assert config.domain == "from-env.com"
    assert config.push_interval_seconds == 45
    assert config.payid_count_refresh_interval_seconds == 300
    assert config.server_agent == "env-agent"


@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("FALSE", False)])
def test_push_flag_is_enabled_unless_false(monkeypatch, tmp_path, raw, expected):
    monkeypatch.setenv("PUSH_PAYID_METRICS", raw)

    config = load_metrics_config(profile="missing", config_dir=tmp_path)

    assert config.push_metrics is expected


@pytest.mark.parametrize(
    "value, expected",
    [('"false"', False), ('" False "', False), ('"true"', True), ('"off"', True)],
)
def test_quoted_profile_push_flag_follows_env_rule(tmp_path, value, expected):
    (tmp_path / "dev.yaml").write_text(
        f"metrics:\n  push_metrics: {value}\n", encoding="utf-8"
    )

    config = load_metrics_config(profile="dev", config_dir=tmp_path)

    assert config.push_metrics is expected


def test_unparsable_interval_raises_config_error(monkeypatch, tmp_path):
    monkeypatch.setenv("PUSH_METRICS_INTERVAL", "soon")

    with pytest.raises(MetricsConfigError, match="PUSH_METRICS_INTERVAL"):
        load_metrics_config(profile="missing", config_dir=tmp_path)


def test_out_of_range_interval_is_loaded_as_is(monkeypatch, tmp_path):
    monkeypatch.setenv("PAYID_COUNT_REFRESH_INTERVAL", "-1")

    config = load_metrics_config(profile="missing", config_dir=tmp_path)

    assert config.payid_count_refresh_interval_seconds == -1


def test_non_mapping_profile_is_rejected(tmp_path):
    (tmp_path / "dev.yaml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(RuntimeError, match="must be a mapping"):
        load_metrics_config(profile="dev", config_dir=tmp_path)


def test_malformed_yaml_is_rejected(tmp_path):
    (tmp_path / "dev.yaml").write_text("metrics: [unclosed\n", encoding="utf-8")

    with pytest.raises(RuntimeError, match="Failed to parse"):
        load_metrics_config(profile="dev", config_dir=tmp_path)
