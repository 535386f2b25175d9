"""Stub data access and config builders for metrics tests."""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable, List, Optional, Set

from prometheus_client.parser import text_string_to_metric_families

from payid_metrics import AddressCount, MetricsConfig


def make_config(**overrides) -> MetricsConfig:
    """Return a fresh, valid config with push enabled."""

    values = dict(
        push_metrics=True,
        domain="example.com",
        gateway_url="https://push00.mon.payid.tech/",
        push_interval_seconds=15,
        payid_count_refresh_interval_seconds=60,
        server_agent="unittest:1.2.3",
        payid_protocol_version="1.0.0",
    )
    values.update(overrides)
    return MetricsConfig(**values)


async def get_address_counts() -> List[AddressCount]:
    return [AddressCount(payment_network="XRPL", environment="TESTNET", count=1)]


async def get_payid_count() -> int:
    return 1


class FlakyFetcher:
    """Async fetcher that raises for the first ``failures`` calls."""

    def __init__(self, results: Iterable, *, failures: int = 1) -> None:
        self._results = list(results)
        self.failures = failures
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"store unavailable (call {self.calls})")
        index = min(self.calls - self.failures, len(self._results)) - 1
        return self._results[index]


def metric_value(text: str, name: str, **labels: str) -> Optional[float]:
    """Return the sample value for ``name`` with exactly ``labels``.

    Parses the exposition text, so label ordering in the output does not matter.
    """

    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            if sample.name == name and sample.labels == labels:
                return sample.value
    return None


def sample_names(text: str) -> Set[str]:
    return {
        sample.name
        for family in text_string_to_metric_families(text)
        for sample in family.samples
    }


async def wait_until(
    predicate: Callable[[], bool], *, timeout: float = 5.0, step: float = 0.005
) -> None:
    """Poll ``predicate`` on the running loop until it holds or ``timeout`` passes."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(step)

    await asyncio.wait_for(_poll(), timeout)
