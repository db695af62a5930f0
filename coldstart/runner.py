"""One benchmark iteration: estimate, plan, probe, persist."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, AsyncContextManager, Callable, Optional

import structlog

from .config import BenchmarkConfig
from .probing import BrowserSession, ProbeExecutor
from .results import ResultLog, ResultRecord
from .scheduler import ProbeTarget, RunNumberEstimator, plan_iteration

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], AsyncContextManager[Any]]


class BenchmarkRunner:
    """Wires the result log, rotation planner and probe executor together."""

    def __init__(
        self,
        config: BenchmarkConfig,
        *,
        result_log: Optional[ResultLog] = None,
        executor: Optional[ProbeExecutor] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.config = config
        self.result_log = result_log or ResultLog(config.results_file)
        self.executor = executor or ProbeExecutor.from_config(config)
        self.session_factory = session_factory or (lambda: BrowserSession(config.browser))

    def estimator(self) -> RunNumberEstimator:
        return RunNumberEstimator(
            self.result_log,
            paths=self.config.path_names,
            backends=self.config.backends,
        )

    def next_plan(self) -> tuple[int, list[ProbeTarget]]:
        """Run number and ordered targets for the upcoming iteration."""
        run_number = self.estimator().estimate()
        plan = plan_iteration(run_number, self.config.paths, self.config.backends)
        return run_number, plan

    async def run_iteration(self) -> list[ResultRecord]:
        started_at = datetime.now(timezone.utc)
        run_number, plan = self.next_plan()
        start_index = run_number % len(self.config.paths) if self.config.paths else 0

        logger.info(
            "Starting benchmark run",
            started_at=started_at.isoformat(),
            run_number=run_number,
            start_index=start_index,
            first_path=plan[0].path if plan else None,
            probes=len(plan),
            results_file=str(self.result_log.path),
        )
        if not plan:
            logger.warning("Nothing to probe; check backends and paths configuration")
            return []

        async with self.session_factory() as page:
            records = await self.executor.execute_plan(plan, page, self.result_log)

        degraded = sum(1 for r in records if r.is_unavailable())
        logger.info(
            "Benchmark run completed",
            finished_at=datetime.now(timezone.utc).isoformat(),
            run_number=run_number,
            records=len(records),
            failed_probes=degraded,
        )
        return records
