"""
Run-number estimation and rotation planning.

Rotation progress is not stored anywhere: every iteration recomputes it from the
result log. Each path's occurrence count, divided by the number of backends,
is the number of iterations that covered that path; the minimum over the
configured paths is the run number. Restarts, crashes, manual log edits and
newly added paths therefore never desynchronize the planner from what has
actually been measured.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import structlog

from ..config import EndpointPath
from ..results import ResultLog

logger = structlog.get_logger(__name__)

PATH_COLUMN = "PATH"


@dataclass(frozen=True)
class ProbeTarget:
    backend: str
    path: str
    data: bool = False

    @property
    def url(self) -> str:
        return f"{self.backend}{self.path}"

    @property
    def mode(self) -> str:
        return "data" if self.data else "page"


def _as_endpoint(item: EndpointPath | str) -> EndpointPath:
    if isinstance(item, EndpointPath):
        return item
    return EndpointPath(path=item)


def plan_iteration(
    run_number: int,
    paths: Sequence[EndpointPath | str],
    backends: Sequence[str],
) -> list[ProbeTarget]:
    """
    Ordered probe list for one iteration.

    Paths are rotated so that paths[run_number % len(paths)] comes first; every
    path is probed on all backends, in the configured backend order, before the
    next path.
    """
    if not paths or not backends:
        return []

    endpoints = [_as_endpoint(p) for p in paths]
    start = int(run_number) % len(endpoints)
    rotated = endpoints[start:] + endpoints[:start]

    return [
        ProbeTarget(backend=backend, path=endpoint.path, data=endpoint.data)
        for endpoint in rotated
        for backend in backends
    ]


def find_column(header: Optional[Sequence[str]], name: str) -> int | None:
    if not header:
        return None
    wanted = name.strip().lower()
    for idx, cell in enumerate(header):
        if str(cell or "").strip().lower() == wanted:
            return idx
    return None


def count_paths(rows: Iterable[Sequence[str]], *, path_index: int, row_width: int) -> Counter[str]:
    """Occurrences of every raw path value; short (partial) rows are skipped."""
    counts: Counter[str] = Counter()
    for row in rows:
        if len(row) < row_width or len(row) <= path_index:
            continue
        counts[row[path_index]] += 1
    return counts


class RunNumberEstimator:
    """Derives the number of completed rotation cycles from the result log."""

    def __init__(
        self,
        result_log: ResultLog,
        *,
        paths: Optional[Sequence[str]] = None,
        backends: Optional[Sequence[str]] = None,
    ) -> None:
        self.result_log = result_log
        self.paths = list(paths) if paths is not None else None
        self.backends = list(backends) if backends is not None else None

    def _backend_count(self) -> int:
        return max(1, len(self.backends or []))

    def _fallback(self, data_row_count: int) -> int:
        per_iteration = len(self.backends or []) * len(self.paths or [])
        if per_iteration <= 0:
            return 0
        return data_row_count // per_iteration

    def estimate(self) -> int:
        """
        Completed iterations so far. Path counts are divided by the backend
        count because one iteration writes a row per backend for every path.
        """
        header, rows = self.result_log.read()
        if not rows:
            return 0

        path_index = find_column(header, PATH_COLUMN)
        if path_index is None:
            estimate = self._fallback(len(rows))
            logger.warning(
                "Result log has no PATH column; estimating run number from row count",
                path=str(self.result_log.path),
                header=header,
                rows=len(rows),
                run_number=estimate,
            )
            return estimate

        counts = count_paths(rows, path_index=path_index, row_width=len(header))
        skipped = len(rows) - sum(counts.values())
        if skipped:
            logger.warning("Skipped malformed result log rows", path=str(self.result_log.path), skipped=skipped)

        keys = self.paths if self.paths is not None else list(counts)
        if not keys:
            return 0

        backend_count = self._backend_count()
        return min(counts.get(path, 0) // backend_count for path in keys)
