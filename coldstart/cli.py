"""Command-line entry point for the cold-start benchmark monitor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional, Sequence

import structlog

from .config import DEFAULT_CONFIG_PATH, BenchmarkConfig, load_config
from .errors import ConfigError
from .runner import BenchmarkRunner
from .scheduler import IterationScheduler

logger = structlog.get_logger(__name__)


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, str(level).upper(), logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def print_plan(runner: BenchmarkRunner) -> None:
    run_number, plan = runner.next_plan()
    print(f"Result log: {runner.result_log.path}")
    print(f"Run number: {run_number}")
    for i, target in enumerate(plan, 1):
        print(f"  {i:>3}. [{target.mode}] {target.url}")


async def run_monitor(config: BenchmarkConfig, *, once: bool) -> int:
    runner = BenchmarkRunner(config)
    scheduler = IterationScheduler(runner.run_iteration, interval_seconds=config.iteration_interval_seconds)

    logger.info(
        "Cold start benchmark monitor started",
        backends=config.backends,
        paths=config.path_names,
        interval_seconds=config.iteration_interval_seconds,
        results_file=config.results_file,
    )
    await scheduler.run(max_iterations=1 if once else None)
    return 1 if once and scheduler.iterations_failed else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Cold start benchmark monitor")
    parser.add_argument(
        "--config",
        default=os.getenv("COLDSTART_CONFIG", DEFAULT_CONFIG_PATH),
        help="Path to YAML config",
    )
    parser.add_argument("--once", action="store_true", help="Run one iteration and exit")
    parser.add_argument("--show-plan", action="store_true", help="Print the next iteration's probe order and exit")
    parser.add_argument("--log-level", default=None, help="Logging level (INFO, WARNING, ...)")
    args = parser.parse_args(argv)

    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        logger.error("Invalid configuration", error=str(exc))
        return 2

    if args.log_level is None and config.log_level:
        configure_logging(config.log_level)

    if args.show_plan:
        print_plan(BenchmarkRunner(config))
        return 0

    try:
        return asyncio.run(run_monitor(config, once=bool(args.once)))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception:
        logger.exception("Fatal error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
