"""PayID metrics: lookup counters, directory-size gauges, and their schedules."""

from __future__ import annotations

import asyncio
import os
import socket
from typing import Any, Awaitable, Callable, List, Optional, Set

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from ..config import MetricsConfig, check_metrics_configuration
from ..domain.types import AddressCount, AddressCountFetcher, PayIdCountFetcher
from .logging import get_logger
from .pushgateway import AdditivePushGateway, ReplacingPushGateway
from .timers import RecurringTimer

_default_logger = get_logger(__name__)

COUNTER_JOB_NAME = "payid_counter_metrics"
GAUGE_JOB_NAME = "payid_gauge_metrics"
UNKNOWN_SERVER_AGENT = "unknown"


class _WithoutCreatedSamples:
    """Registers a metric while leaving out its ``<name>_created`` samples.

    Scoped to one registry, unlike ``prometheus_client.disable_created_metrics``
    which changes every registry in the process.
    """

    def __init__(self, metric: Any):
        self._metric = metric

    def describe(self):
        return self._metric.describe()

    def collect(self):
        for family in self._metric.collect():
            created = f"{family.name}_created"
            family.samples = [s for s in family.samples if s.name != created]
            yield family


class Metrics:
    """Holds PayID metric state and the timers that refresh and push it.

    Lookup counts live in their own registry so that, when several PayID
    servers push to the same gateway, their counters are summed per instance.
    The gauges share a second registry pushed under the bare domain so the
    newest snapshot replaces the previous one.

    Address gauges are set for every (network, environment) pair the fetcher
    reports. Pairs that stop being reported keep their last value.
    """

    def __init__(
        self,
        config: MetricsConfig,
        address_count_fetcher: AddressCountFetcher,
        payid_count_fetcher: PayIdCountFetcher,
        *,
        logger: Any = None,
    ):
        """Create the registries and series. Nothing is scheduled yet.

        Args:
            config: Metrics configuration, re-validated on each schedule call.
            address_count_fetcher: Async callable returning address counts
                grouped by payment network and environment.
            payid_count_fetcher: Async callable returning the number of PayIDs.
            logger: Sink for warnings from scheduled work. Defaults to the
                package logger.
        """
        self.config = config
        self._get_address_counts = address_count_fetcher
        self._get_payid_count = payid_count_fetcher
        self._logger = logger if logger is not None else _default_logger

        self.lookup_counter_registry = CollectorRegistry(auto_describe=True)
        self.gauge_registry = CollectorRegistry(auto_describe=True)

        # Exposed as payid_lookup_request_total, with no _created series.
        self._lookup_counter = Counter(
            "payid_lookup_request",
            "count of requests to lookup a PayID",
            ["paymentNetwork", "environment", "org", "result"],
            registry=None,
        )
        self.lookup_counter_registry.register(
            _WithoutCreatedSamples(self._lookup_counter)
        )
        # Historical name; this gauge reports address counts.
        self._address_gauge = Gauge(
            "payid_count",
            "count of addresses by (paymentNetwork, environment)",
            ["paymentNetwork", "environment", "org"],
            registry=self.gauge_registry,
        )
        self._payid_gauge = Gauge(
            "actual_payid_count",
            "count of total PayIDs",
            ["org"],
            registry=self.gauge_registry,
        )
        self._server_info_gauge = Gauge(
            "payid_server_info",
            "version information for server",
            ["org", "serverAgent", "protocolVersion"],
            registry=self.gauge_registry,
        )

        self._generation_timer: Optional[RecurringTimer] = None
        self._push_timer: Optional[RecurringTimer] = None
        self._counter_gateway: Optional[AdditivePushGateway] = None
        self._gauge_gateway: Optional[ReplacingPushGateway] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def content_type(self) -> str:
        """Content type for serving ``get_metrics_text`` over HTTP."""

        return CONTENT_TYPE_LATEST

    def is_running(self) -> bool:
        return any(
            timer is not None and timer.active
            for timer in (self._generation_timer, self._push_timer)
        )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def schedule_recurring_generation(self) -> None:
        """Refresh the gauges now and then every refresh interval.

        Must be called from inside a running event loop. A previously armed
        generation timer is cancelled first.

        Raises:
            MetricsConfigError: if the configuration is invalid.
            RuntimeError: if no event loop is running.
        """
        check_metrics_configuration(self.config)
        interval = self.config.payid_count_refresh_interval_seconds
        asyncio.get_running_loop()

        self._cancel_generation_timer()
        self._spawn_generation("initial")
        self._update_info_gauge()

        timer = RecurringTimer(
            interval,
            lambda: self._spawn_generation("scheduled"),
            name="payid-metrics-generation",
        )
        timer.start()
        self._generation_timer = timer
        self._logger.info(
            "metrics_generation_scheduled", extra={"interval_seconds": interval}
        )

    def schedule_recurring_push(self) -> None:
        """Push both registries to the gateway every push interval.

        Does nothing when pushing is disabled. A previously armed push timer
        is cancelled first.

        Raises:
            MetricsConfigError: if the configuration is invalid.
        """
        if not self.config.push_metrics:
            return

        check_metrics_configuration(self.config)
        interval = self.config.push_interval_seconds
        asyncio.get_running_loop()

        self._cancel_push_timer()
        self._build_gateways()

        timer = RecurringTimer(
            interval, self._spawn_push, name="payid-metrics-push"
        )
        timer.start()
        self._push_timer = timer
        self._logger.info(
            "metrics_push_scheduled",
            extra={
                "interval_seconds": interval,
                "gateway_url": self.config.gateway_url,
            },
        )

    def stop_metrics(self) -> None:
        """Cancel both timers. Work already started by a tick runs to completion."""

        self._cancel_generation_timer()
        self._cancel_push_timer()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def record_lookup_result(
        self, found: bool, payment_network: str, environment: str = "null"
    ) -> None:
        """Count one PayID lookup, split by outcome and (network, environment)."""

        self._lookup_counter.labels(
            paymentNetwork=payment_network,
            environment=environment,
            org=self.config.domain,
            result="found" if found else "not_found",
        ).inc(1)

    def record_lookup_bad_accept_header(self) -> None:
        """Count a lookup rejected because of its Accept header."""

        self._lookup_counter.labels(
            paymentNetwork="unknown",
            environment="unknown",
            org=self.config.domain,
            result="error: bad_accept_header",
        ).inc(1)

    def get_metrics_text(self) -> str:
        """Render both registries in the Prometheus text exposition format."""

        return (
            generate_latest(self.lookup_counter_registry).decode("utf-8")
            + generate_latest(self.gauge_registry).decode("utf-8")
        )

    # ------------------------------------------------------------------
    # Generation and push
    # ------------------------------------------------------------------
    async def generate_address_count_metrics(self) -> None:
        """Set the address gauge for every (network, environment) pair reported."""

        address_counts = await self._get_address_counts()
        for record in address_counts:
            address_count = AddressCount.coerce(record)
            self._address_gauge.labels(
                paymentNetwork=address_count.payment_network,
                environment=address_count.environment,
                org=self.config.domain,
            ).set(address_count.count)

    async def generate_payid_count_metrics(self) -> None:
        """Set the PayID gauge to the current total."""

        payid_count = await self._get_payid_count()
        self._payid_gauge.labels(org=self.config.domain).set(payid_count)

    async def push_metrics(self) -> None:
        """Run one push round with both gateways; failures are logged."""

        if not self.config.push_metrics:
            return
        if self._counter_gateway is None or self._gauge_gateway is None:
            check_metrics_configuration(self.config)
            self._build_gateways()
        await asyncio.gather(*self._push_round())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _update_info_gauge(self) -> None:
        self._server_info_gauge.labels(
            org=self.config.domain,
            serverAgent=self.config.server_agent or UNKNOWN_SERVER_AGENT,
            protocolVersion=self.config.payid_protocol_version,
        ).set(1)

    def _build_gateways(self) -> None:
        domain = str(self.config.domain)
        gateway_url = str(self.config.gateway_url)
        # Counters are summed across replicas, so each replica needs its own group.
        self._counter_gateway = AdditivePushGateway(
            gateway_url,
            self.lookup_counter_registry,
            job_name=COUNTER_JOB_NAME,
            instance=f"{domain}_{socket.gethostname()}_{os.getpid()}",
        )
        self._gauge_gateway = ReplacingPushGateway(
            gateway_url,
            self.gauge_registry,
            job_name=GAUGE_JOB_NAME,
            instance=domain,
        )

    def _spawn_generation(self, phase: str) -> None:
        self._spawn(
            self._logged(
                self.generate_address_count_metrics,
                "address_count_metrics_failed",
                phase=phase,
            )
        )
        self._spawn(
            self._logged(
                self.generate_payid_count_metrics,
                "payid_count_metrics_failed",
                phase=phase,
            )
        )

    def _spawn_push(self) -> None:
        for push in self._push_round():
            self._spawn(push)

    def _push_round(self) -> List[Awaitable[None]]:
        return [
            self._logged(
                self._counter_gateway.push,
                "counter_metrics_push_failed",
                job=COUNTER_JOB_NAME,
            ),
            self._logged(
                self._gauge_gateway.push,
                "gauge_metrics_push_failed",
                job=GAUGE_JOB_NAME,
            ),
        ]

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _logged(
        self, fn: Callable[[], Awaitable[None]], event: str, **context: Any
    ) -> None:
        try:
            await fn()
        except Exception as exc:
            self._logger.warning(
                event, extra={**context, "error": str(exc)}, exc_info=exc
            )

    def _cancel_generation_timer(self) -> None:
        if self._generation_timer is not None:
            self._generation_timer.cancel()
            self._generation_timer = None

    def _cancel_push_timer(self) -> None:
        if self._push_timer is not None:
            self._push_timer.cancel()
            self._push_timer = None
