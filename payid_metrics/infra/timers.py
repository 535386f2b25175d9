"""Recurring timer built on the running asyncio event loop."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from .logging import get_logger

logger = get_logger(__name__)


class RecurringTimer:
    """Call ``callback`` every ``interval_seconds`` until cancelled.

    The first call happens one full interval after ``start``. The callback is
    synchronous and should hand any slow work to its own tasks; the timer
    never waits for that work, so cycles may overlap.
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], None],
        *,
        name: str = "recurring-timer",
    ):
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Arm the timer on the running loop. Raises RuntimeError without one."""

        if self.active:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=self.name)
        logger.debug(
            "timer_started",
            extra={"timer": self.name, "interval_seconds": self.interval_seconds},
        )

    def cancel(self) -> None:
        """Stop future ticks. Safe to call repeatedly."""

        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.debug("timer_cancelled", extra={"timer": self.name})

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.callback()
            except Exception as exc:
                logger.warning(
                    "timer_tick_failed",
                    extra={"timer": self.name, "error": str(exc)},
                    exc_info=exc,
                )
