"""Metrics configuration loader with profile and environment support."""

from __future__ import annotations

import copy
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .check import MetricsConfigError

DEFAULT_PUSH_METRICS = True
DEFAULT_DOMAIN = "missing_domain"
DEFAULT_GATEWAY_URL = "https://push00.mon.payid.tech/"
DEFAULT_PUSH_INTERVAL_SECONDS = 15
DEFAULT_PAYID_COUNT_REFRESH_INTERVAL_SECONDS = 60
DEFAULT_PAYID_PROTOCOL_VERSION = "1.0"
DEFAULT_METRICS_PROFILE: dict[str, Any] = {
    "push_metrics": DEFAULT_PUSH_METRICS,
    "domain": DEFAULT_DOMAIN,
    "gateway_url": DEFAULT_GATEWAY_URL,
    "push_interval_seconds": DEFAULT_PUSH_INTERVAL_SECONDS,
    "payid_count_refresh_interval_seconds": (
        DEFAULT_PAYID_COUNT_REFRESH_INTERVAL_SECONDS
    ),
    "server_agent": None,
    "payid_protocol_version": DEFAULT_PAYID_PROTOCOL_VERSION,
}
DEFAULT_PROFILE_DICT: dict[str, Any] = {
    "metrics": DEFAULT_METRICS_PROFILE,
    "logging": {"level": "INFO"},
}
CONFIG_PROFILE_ENV = "PAYID_METRICS_CONFIG_PROFILE"
CONFIG_DIR_ENV = "PAYID_METRICS_CONFIG_DIR"
DEFAULT_PROFILE = "dev"
DEFAULT_CONFIG_ROOT = Path(__file__).resolve().parents[2] / "config" / "profiles"
CONFIG_EXTENSIONS = (".yaml", ".yml")

# Environment variable names, one per MetricsConfig field.
PUSH_METRICS_ENV = "PUSH_PAYID_METRICS"
DOMAIN_ENV = "PAYID_DOMAIN"
GATEWAY_URL_ENV = "PUSH_GATEWAY_URL"
PUSH_INTERVAL_ENV = "PUSH_METRICS_INTERVAL"
REFRESH_INTERVAL_ENV = "PAYID_COUNT_REFRESH_INTERVAL"
SERVER_AGENT_ENV = "PAYID_SERVER_AGENT"
PROTOCOL_VERSION_ENV = "PAYID_PROTOCOL_VERSION"


@dataclass
class MetricsConfig:
    """Settings controlling how PayID metrics are generated and pushed.

    Instances are owned by the caller. ``Metrics`` only reads them, and
    re-validates on every scheduling call, so a corrected value takes effect on
    the next ``schedule_*`` invocation.
    """

    push_metrics: bool = DEFAULT_PUSH_METRICS
    domain: str | None = DEFAULT_DOMAIN
    gateway_url: str | None = DEFAULT_GATEWAY_URL
    push_interval_seconds: float = DEFAULT_PUSH_INTERVAL_SECONDS
    payid_count_refresh_interval_seconds: float = (
        DEFAULT_PAYID_COUNT_REFRESH_INTERVAL_SECONDS
    )
    server_agent: str | None = None
    payid_protocol_version: str = DEFAULT_PAYID_PROTOCOL_VERSION


def load_metrics_config(
    profile: str | None = None, config_dir: str | Path | None = None
) -> MetricsConfig:
    """Build a ``MetricsConfig`` from the requested profile plus env overrides.

    Only parse errors are raised here; range checks run at scheduling time in
    ``check_metrics_configuration``.
    """

    config_data = _load_config_data(profile, config_dir)
    metrics_cfg = dict(DEFAULT_METRICS_PROFILE)
    metrics_cfg.update(config_data.get("metrics") or {})

    return MetricsConfig(
        push_metrics=_env_flag(PUSH_METRICS_ENV, metrics_cfg["push_metrics"]),
        domain=os.getenv(DOMAIN_ENV, metrics_cfg["domain"]),
        gateway_url=os.getenv(GATEWAY_URL_ENV, metrics_cfg["gateway_url"]),
        push_interval_seconds=_env_number(
            PUSH_INTERVAL_ENV, metrics_cfg["push_interval_seconds"]
        ),
        payid_count_refresh_interval_seconds=_env_number(
            REFRESH_INTERVAL_ENV,
            metrics_cfg["payid_count_refresh_interval_seconds"],
        ),
        server_agent=os.getenv(SERVER_AGENT_ENV, metrics_cfg["server_agent"]),
        payid_protocol_version=str(
            os.getenv(PROTOCOL_VERSION_ENV, metrics_cfg["payid_protocol_version"])
        ),
    )


def load_logging_settings(
    profile: str | None = None, config_dir: str | Path | None = None
) -> dict[str, Any]:
    """Return the ``logging`` section of the active profile."""

    config_data = _load_config_data(profile, config_dir)
    return dict(config_data.get("logging") or {})


def _load_config_data(
    profile: str | None, config_dir: str | Path | None
) -> dict[str, Any]:
    profile_name = profile or os.getenv(CONFIG_PROFILE_ENV, DEFAULT_PROFILE)
    config_root = Path(
        config_dir or os.getenv(CONFIG_DIR_ENV, DEFAULT_CONFIG_ROOT)
    ).expanduser()
    config_data = _load_profile_dict(profile_name, config_root)
    if not config_data:
        config_data = copy.deepcopy(DEFAULT_PROFILE_DICT)
    return config_data


def _load_profile_dict(profile_name: str, config_root: Path) -> dict[str, Any]:
    """Load the YAML profile if available, otherwise return an empty dict."""

    if not config_root.exists():
        return {}

    for extension in CONFIG_EXTENSIONS:
        candidate = config_root / f"{profile_name}{extension}"
        if not candidate.exists():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise RuntimeError(
                f"Failed to parse config profile {candidate}: {exc}"
            ) from exc
        if not isinstance(loaded, dict):
            raise RuntimeError(
                f"Config profile {candidate} must be a mapping at the root"
            )
        return loaded

    return {}


def _env_flag(name: str, default: Any) -> bool:
    raw = os.getenv(name)
    if raw is None:
        if not isinstance(default, str):
            return bool(default)
        raw = default
    return raw.strip().lower() != "false"


def _env_number(name: str, default: Any) -> float:
    raw = os.getenv(name)
    value = default if raw is None else raw.strip()
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise MetricsConfigError(
            f'Invalid {name} value: "{value}". Must be a number of seconds.'
        ) from exc
    if math.isfinite(number) and number.is_integer():
        return int(number)
    return number
