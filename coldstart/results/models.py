"""Result record written once per probe."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

SENTINEL = "N/A"

# On-page element ids and log column names share these identifiers.
METRIC_FIELDS: tuple[str, ...] = (
    "cold-start-indicator",
    "request-count",
    "instance-age",
    "page-processing-time",
    "start-render-time",
    "initialized-from",
)

HEADER: tuple[str, ...] = ("BACKEND", "PATH", *METRIC_FIELDS)

# Single-backend log shape written before backends were introduced.
LEGACY_HEADER: tuple[str, ...] = ("URL", *METRIC_FIELDS)


def _attr_name(field: str) -> str:
    return field.replace("-", "_")


@dataclass(frozen=True)
class ResultRecord:
    backend: str
    path: str
    cold_start_indicator: str = SENTINEL
    request_count: str = SENTINEL
    instance_age: str = SENTINEL
    page_processing_time: str = SENTINEL
    start_render_time: str = SENTINEL
    initialized_from: str = SENTINEL

    @classmethod
    def unavailable(cls, backend: str, path: str) -> "ResultRecord":
        """Record for a probe that failed as a whole."""
        return cls(backend=backend, path=path)

    @classmethod
    def from_metrics(cls, backend: str, path: str, metrics: Mapping[str, str]) -> "ResultRecord":
        values = {}
        for field in METRIC_FIELDS:
            value = metrics.get(field)
            values[_attr_name(field)] = value if value else SENTINEL
        return cls(backend=backend, path=path, **values)

    @property
    def url(self) -> str:
        return f"{self.backend}{self.path}"

    def metrics(self) -> dict[str, str]:
        return {field: getattr(self, _attr_name(field)) for field in METRIC_FIELDS}

    def is_unavailable(self) -> bool:
        return all(v == SENTINEL for v in self.metrics().values())

    def to_row(self) -> list[str]:
        return [self.backend, self.path, *self.metrics().values()]
