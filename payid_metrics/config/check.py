"""Validation for the metrics configuration."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .loader import MetricsConfig

ONE_DAY_IN_SECONDS = 86_400


class MetricsConfigError(ValueError):
    """Raised when metrics cannot be generated or pushed with the given config."""


def check_metrics_configuration(config: "MetricsConfig") -> None:
    """Make sure metrics are good to go with ``config``.

    The refresh interval is always checked. The gateway URL, domain and push
    interval are only checked when pushing is enabled. The first problem found
    is raised; nothing on ``config`` is modified.

    Raises:
        MetricsConfigError: if metrics cannot be generated, or if pushing is
            enabled but its settings are missing or malformed.
    """

    refresh_interval = config.payid_count_refresh_interval_seconds
    if not _is_number(refresh_interval) or not (
        0 < refresh_interval < ONE_DAY_IN_SECONDS
    ):
        raise MetricsConfigError(
            f'Invalid PAYID_COUNT_REFRESH_INTERVAL value: "{refresh_interval}". '
            "Must be a positive number less than 86400 seconds. "
            "PayID count metrics will not be generated."
        )

    # Everything below only matters for pushing.
    if not config.push_metrics:
        return

    if not is_valid_url(config.gateway_url):
        raise MetricsConfigError(
            "Push metrics are enabled, but the environment variable "
            f'PUSH_GATEWAY_URL is not a valid url: "{config.gateway_url}".'
        )

    if config.domain is None or not is_valid_url(f"https://{config.domain}"):
        raise MetricsConfigError(
            "Push metrics are enabled, but the environment variable "
            f'PAYID_DOMAIN is not a valid url: "{config.domain}".'
        )

    push_interval = config.push_interval_seconds
    if not _is_number(push_interval) or not (
        0 < push_interval <= ONE_DAY_IN_SECONDS
    ):
        raise MetricsConfigError(
            "Push metrics are enabled, but the environment variable "
            f'PUSH_METRICS_INTERVAL has an invalid value: "{push_interval}". '
            "Must be positive and less than one day in seconds."
        )


def is_valid_url(value: Any) -> bool:
    """Return True for an absolute URL with a scheme and a host.

    Surrounding whitespace is ignored and whitespace is only rejected inside
    the host, so ``https://example.com/a b`` passes. A URL needs ``//`` before
    its host: ``http:/host`` is rejected, although WHATWG URL parsers repair it.
    """

    if not isinstance(value, str):
        return False
    value = value.strip()
    if not value:
        return False
    try:
        parts = urlsplit(value)
        # Accessing ``port`` raises for non-numeric or out-of-range ports.
        parts.port
    except ValueError:
        return False
    host = parts.hostname
    if not parts.scheme or not host:
        return False
    return not any(char.isspace() for char in host)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)
