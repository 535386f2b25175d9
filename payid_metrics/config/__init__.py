"""Config package exporting loader and validation helpers."""

from .check import MetricsConfigError, check_metrics_configuration
from .loader import (
    MetricsConfig,
    load_logging_settings,
    load_metrics_config,
)

__all__ = [
    "MetricsConfig",
    "MetricsConfigError",
    "check_metrics_configuration",
    "load_logging_settings",
    "load_metrics_config",
]
