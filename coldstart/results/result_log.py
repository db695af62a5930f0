"""Append-only CSV log of probe results.

The log is the only persisted state of the monitor: rotation progress is
recomputed from it on every iteration, so it is never rewritten or compacted.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Sequence

import structlog

from .models import HEADER, ResultRecord

logger = structlog.get_logger(__name__)

DELIMITER = ","
QUOTE = '"'
LINE_TERMINATOR = "\n"


def _writer(f):
    return csv.writer(
        f,
        delimiter=DELIMITER,
        quotechar=QUOTE,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator=LINE_TERMINATOR,
    )


class ResultLog:
    """CSV file holding one row per completed probe."""

    def __init__(self, path: str | Path, header: Sequence[str] = HEADER) -> None:
        self.path = Path(path)
        self.header = tuple(header)

    def __repr__(self) -> str:
        return f"<ResultLog {self.path}>"

    def exists(self) -> bool:
        return self.path.exists()

    def _read_bytes(self) -> bytes:
        if not self.path.exists():
            return b""
        return self.path.read_bytes()

    @staticmethod
    def _repair_prefix(content: bytes) -> str:
        """
        Text that terminates a row left half-written by a crashed writer.

        Every complete row holds an even number of quote characters, so an odd
        total means the file stops inside a quoted field; that field is closed
        before the row is ended.
        """
        prefix = ""
        if content.count(QUOTE.encode("ascii")) % 2:
            prefix += QUOTE
        if prefix or not content.endswith((b"\n", b"\r")):
            prefix += LINE_TERMINATOR
        return prefix

    def append(self, records: Iterable[ResultRecord]) -> int:
        """Append records in order; returns how many rows were written."""
        rows = [record.to_row() for record in records]
        if not rows:
            return 0

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Bytes only: a crash may have cut a multi-byte character in half.
        content = self._read_bytes()
        if not content.strip():
            with open(self.path, "w", encoding="utf-8", newline="") as f:
                _writer(f).writerow(self.header)
            logger.info("Result log created", path=str(self.path))
            content = b""

        prefix = self._repair_prefix(content) if content else ""
        if prefix:
            logger.warning(
                "Result log ends with a partial row; isolating it",
                path=str(self.path),
                closed_quote=prefix.startswith(QUOTE),
            )

        with open(self.path, "a", encoding="utf-8", newline="") as f:
            f.write(prefix)
            _writer(f).writerows(rows)
            f.flush()

        logger.debug("Result log appended", path=str(self.path), rows=len(rows))
        return len(rows)

    def read_rows(self) -> list[list[str]]:
        """Raw rows including the header line; blank lines are dropped."""
        if not self.path.exists():
            return []

        rows: list[list[str]] = []
        with open(self.path, "r", encoding="utf-8", errors="replace", newline="") as f:
            reader = csv.reader(f, delimiter=DELIMITER, quotechar=QUOTE)
            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    break
                except csv.Error as exc:
                    logger.warning(
                        "Skipping unreadable result log line",
                        path=str(self.path),
                        line=reader.line_num,
                        error=str(exc),
                    )
                    continue
                if not row or all(not cell.strip() for cell in row):
                    continue
                rows.append(row)
        return rows

    def read(self) -> tuple[list[str] | None, list[list[str]]]:
        """Returns (header, data_rows); header is None for an empty log."""
        rows = self.read_rows()
        if not rows:
            return None, []
        return rows[0], rows[1:]
