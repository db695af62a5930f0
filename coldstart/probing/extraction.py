"""
Per-field extraction results.

Every output field is produced as a FieldResult holding either a value or an
ExtractionFailure. The record is built by folding those results with a single
sentinel default, so a missing element or JSON key only affects its own field.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog

from ..errors import ExtractionFailure
from ..results import METRIC_FIELDS, SENTINEL, ResultRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FieldResult:
    field: str
    value: Optional[str] = None
    failure: Optional[ExtractionFailure] = None

    @classmethod
    def ok(cls, field: str, value: str) -> "FieldResult":
        return cls(field=field, value=value)

    @classmethod
    def failed(cls, field: str, reason: str) -> "FieldResult":
        return cls(field=field, failure=ExtractionFailure(field, reason))

    @property
    def is_ok(self) -> bool:
        return self.failure is None and bool(self.value)

    def or_sentinel(self) -> str:
        return self.value if self.is_ok else SENTINEL


def fold_record(backend: str, path: str, results: Mapping[str, FieldResult]) -> ResultRecord:
    """Build a record; any field without a usable result becomes the sentinel."""
    metrics: dict[str, str] = {}
    for field in METRIC_FIELDS:
        result = results.get(field)
        if result is None:
            result = FieldResult.failed(field, "not_extracted")
        if result.failure is not None:
            logger.debug("Field unavailable", backend=backend, path=path, field=field, reason=result.failure.reason)
        metrics[field] = result.or_sentinel()
    return ResultRecord.from_metrics(backend, path, metrics)


async def read_element_text(page: Any, element_id: str) -> FieldResult:
    """Inner text of ``#element_id``, trimmed."""
    try:
        element = await page.query_selector(f"#{element_id}")
        if element is None:
            return FieldResult.failed(element_id, "element_not_found")
        text = (await element.inner_text() or "").strip()
    except Exception as exc:
        return FieldResult.failed(element_id, f"{type(exc).__name__}: {exc}")
    if not text:
        return FieldResult.failed(element_id, "element_empty")
    return FieldResult.ok(element_id, text)


def _lookup(payload: Any, dotted_key: str) -> Any:
    value = payload
    for part in dotted_key.split("."):
        if isinstance(value, dict):
            if part not in value:
                raise KeyError(part)
            value = value[part]
        elif isinstance(value, list) and part.isdigit():
            value = value[int(part)]
        else:
            raise KeyError(part)
    return value


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def extract_payload_field(payload: Any, field: str, dotted_key: str) -> FieldResult:
    """Value at ``dotted_key`` (e.g. ``timing.instanceAge``) of a JSON payload."""
    try:
        value = _lookup(payload, dotted_key)
    except (KeyError, IndexError):
        return FieldResult.failed(field, f"payload_missing_key: {dotted_key}")
    if value is None:
        return FieldResult.failed(field, f"payload_null: {dotted_key}")
    return FieldResult.ok(field, _stringify(value))


def render_time_field(ttfb_ms: Optional[float]) -> FieldResult:
    field = "start-render-time"
    if ttfb_ms is None:
        return FieldResult.failed(field, "timing_unavailable")
    return FieldResult.ok(field, f"{round(float(ttfb_ms), 1)}ms")
