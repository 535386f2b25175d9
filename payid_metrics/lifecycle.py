"""Startup and shutdown sequencing for a host-owned ``Metrics`` instance."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from .infra.logging import get_logger
from .infra.metrics import Metrics

logger = get_logger(__name__)


@asynccontextmanager
async def metrics_lifespan(
    metrics: Metrics, *, flush_on_exit: bool = True
) -> AsyncIterator[Metrics]:
    """Schedule generation and push on entry, stop them on exit.

    Configuration errors raised while scheduling propagate before the body
    runs. With ``flush_on_exit`` a final push round is sent after the timers
    are stopped.
    """

    metrics.schedule_recurring_generation()
    try:
        metrics.schedule_recurring_push()
    except Exception:
        metrics.stop_metrics()
        raise
    logger.info("metrics_started")
    try:
        yield metrics
    finally:
        metrics.stop_metrics()
        if flush_on_exit:
            await metrics.push_metrics()
        logger.info("metrics_stopped")
