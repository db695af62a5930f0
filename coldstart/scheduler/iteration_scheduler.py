"""Fixed-cadence driver for benchmark iterations."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class IterationScheduler:
    """
    Runs an iteration, then sleeps so that iterations start every
    ``interval_seconds`` regardless of how long each one took.

    An iteration that overruns the interval is followed immediately by the
    next one. A failing iteration is logged and the schedule continues.
    """

    def __init__(
        self,
        iteration: Callable[[], Awaitable[object]],
        *,
        interval_seconds: float,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.iteration = iteration
        self.interval_seconds = float(interval_seconds)
        self.clock = clock
        self.sleep = sleep
        self.iterations_run = 0
        self.iterations_failed = 0

    async def run_once(self) -> float:
        """Run one iteration; returns its elapsed time in seconds."""
        started = self.clock()
        try:
            await self.iteration()
        except Exception:
            self.iterations_failed += 1
            logger.exception("Iteration failed", iteration=self.iterations_run + 1)
        finally:
            self.iterations_run += 1
        return self.clock() - started

    def remaining_wait(self, elapsed: float) -> float:
        return self.interval_seconds - float(elapsed)

    async def run(self, max_iterations: Optional[int] = None) -> int:
        """Loop until ``max_iterations`` have run (forever when None)."""
        logger.info("Scheduler started", interval_seconds=self.interval_seconds, max_iterations=max_iterations)
        while max_iterations is None or self.iterations_run < max_iterations:
            elapsed = await self.run_once()
            if max_iterations is not None and self.iterations_run >= max_iterations:
                break

            remaining = self.remaining_wait(elapsed)
            if remaining > 0:
                logger.info(
                    "Iteration complete",
                    elapsed_seconds=round(elapsed, 3),
                    sleep_seconds=round(remaining, 3),
                )
                await self.sleep(remaining)
            elif remaining < 0:
                logger.warning(
                    "Iteration overran interval; starting next iteration immediately",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=self.interval_seconds,
                )
        return self.iterations_run
