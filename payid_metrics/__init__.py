"""In-process Prometheus metrics for a PayID server."""

from .config import (
    MetricsConfig,
    MetricsConfigError,
    check_metrics_configuration,
    load_metrics_config,
)
from .domain import AddressCount
from .infra.metrics import Metrics
from .lifecycle import metrics_lifespan

__all__ = [
    "AddressCount",
    "Metrics",
    "MetricsConfig",
    "MetricsConfigError",
    "check_metrics_configuration",
    "load_metrics_config",
    "metrics_lifespan",
]
