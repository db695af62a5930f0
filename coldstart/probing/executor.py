"""Runs one measurement per (backend, path) and always yields a record."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

import structlog
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from ..config import DEFAULT_PAYLOAD_FIELDS, BenchmarkConfig
from ..errors import is_browser_infra_error
from ..results import METRIC_FIELDS, ResultLog, ResultRecord
from ..scheduler.rotation import ProbeTarget
from .extraction import (
    FieldResult,
    extract_payload_field,
    fold_record,
    read_element_text,
    render_time_field,
)
from .network_timing import ResponseCapture, time_to_first_byte_ms

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ProbeExecutor:
    """Measures cold-start fields for each planned target on a shared page."""

    def __init__(
        self,
        *,
        settle_delay_seconds: float = 5.0,
        inter_probe_delay_seconds: float = 20.0,
        navigation_timeout_seconds: float = 30.0,
        data_capture_timeout_seconds: float = 30.0,
        payload_fields: Optional[Mapping[str, str]] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settle_delay_seconds = float(settle_delay_seconds)
        self.inter_probe_delay_seconds = float(inter_probe_delay_seconds)
        self.navigation_timeout_ms = int(float(navigation_timeout_seconds) * 1000)
        self.data_capture_timeout_seconds = float(data_capture_timeout_seconds)
        self.payload_fields = dict(payload_fields if payload_fields is not None else DEFAULT_PAYLOAD_FIELDS)
        self.sleep = sleep

    @classmethod
    def from_config(cls, config: BenchmarkConfig, *, sleep: Sleep = asyncio.sleep) -> "ProbeExecutor":
        return cls(
            settle_delay_seconds=config.settle_delay_seconds,
            inter_probe_delay_seconds=config.inter_probe_delay_seconds,
            navigation_timeout_seconds=config.navigation_timeout_seconds,
            data_capture_timeout_seconds=config.data_capture_timeout_seconds,
            payload_fields=config.payload_fields,
            sleep=sleep,
        )

    async def _probe_page(self, target: ProbeTarget, page: Any) -> dict[str, FieldResult]:
        await page.goto(target.url, wait_until="load", timeout=self.navigation_timeout_ms)
        await self.sleep(self.settle_delay_seconds)
        return {field: await read_element_text(page, field) for field in METRIC_FIELDS}

    async def _read_payload(self, response: Any) -> tuple[Any, Optional[str]]:
        if response is None:
            return None, "no_response_captured"
        try:
            return await response.json(), None
        except (json.JSONDecodeError, UnicodeDecodeError, PlaywrightError) as exc:
            return None, f"payload_unreadable: {type(exc).__name__}: {exc}"

    async def _probe_data(self, target: ProbeTarget, page: Any) -> dict[str, FieldResult]:
        async with ResponseCapture(page, target.url, timeout_seconds=self.data_capture_timeout_seconds) as capture:
            nav_response = await page.goto(target.url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
            captured = await capture.wait()

        payload, payload_error = await self._read_payload(captured if captured is not None else nav_response)

        results: dict[str, FieldResult] = {}
        for field, key in self.payload_fields.items():
            if payload_error is not None:
                results[field] = FieldResult.failed(field, payload_error)
            else:
                results[field] = extract_payload_field(payload, field, key)

        ttfb = time_to_first_byte_ms(captured) if captured is not None else None
        results["start-render-time"] = render_time_field(ttfb)
        return results

    async def execute(self, target: ProbeTarget, page: Any) -> ResultRecord:
        """Probe one target. Probe-level failures yield an all-sentinel record."""
        started = time.perf_counter()
        try:
            if target.data:
                fields = await self._probe_data(target, page)
            else:
                fields = await self._probe_page(target, page)
        except PlaywrightTimeoutError as exc:
            logger.warning(
                "Probe timed out",
                url=target.url,
                mode=target.mode,
                error=str(exc).splitlines()[0] if str(exc) else "timeout",
                elapsed_ms=round((time.perf_counter() - started) * 1000.0, 3),
            )
            return ResultRecord.unavailable(target.backend, target.path)
        except PlaywrightError as exc:
            logger.warning(
                "Probe failed",
                url=target.url,
                mode=target.mode,
                error=f"{type(exc).__name__}: {exc}",
                browser_infra_error=is_browser_infra_error(exc),
            )
            return ResultRecord.unavailable(target.backend, target.path)
        except Exception as exc:
            logger.warning(
                "Probe failed unexpectedly",
                url=target.url,
                mode=target.mode,
                error=f"{type(exc).__name__}: {exc}",
                exc_info=True,
            )
            return ResultRecord.unavailable(target.backend, target.path)

        record = fold_record(target.backend, target.path, fields)
        logger.info(
            "Probe complete",
            url=target.url,
            mode=target.mode,
            elapsed_ms=round((time.perf_counter() - started) * 1000.0, 3),
            **{field.replace("-", "_"): value for field, value in record.metrics().items()},
        )
        return record

    async def execute_plan(
        self,
        plan: Sequence[ProbeTarget],
        page: Any,
        result_log: ResultLog,
    ) -> list[ResultRecord]:
        """
        Probe every target in order, appending each record to the log as soon
        as it is known, with the inter-probe delay between probes.
        """
        records: list[ResultRecord] = []
        total = len(plan)
        for idx, target in enumerate(plan, 1):
            logger.info("Probing", position=f"{idx}/{total}", url=target.url, mode=target.mode)
            record = await self.execute(target, page)
            result_log.append([record])
            records.append(record)

            if idx < total and self.inter_probe_delay_seconds > 0:
                logger.debug("Waiting before next probe", seconds=self.inter_probe_delay_seconds)
                await self.sleep(self.inter_probe_delay_seconds)
        return records
