from __future__ import annotations

from pathlib import Path

from coldstart.results import HEADER, SENTINEL, ResultLog, ResultRecord
from coldstart.scheduler.rotation import RunNumberEstimator


def _record(path: str = "/p0", **metrics: str) -> ResultRecord:
    return ResultRecord(backend="https://b0.test", path=path, **metrics)


def test_first_append_writes_header(tmp_path: Path) -> None:
    log = ResultLog(tmp_path / "out" / "results.csv")
    written = log.append([_record(cold_start_indicator="COLD")])

    assert written == 1
    lines = log.path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == ",".join(HEADER)
    assert lines[0].startswith("BACKEND,PATH,cold-start-indicator,")
    assert lines[1] == f"https://b0.test,/p0,COLD,{','.join([SENTINEL] * 5)}"


def test_header_written_once_across_appends(tmp_path: Path) -> None:
    log = ResultLog(tmp_path / "results.csv")
    log.append([_record("/a")])
    log.append([_record("/b"), _record("/c")])

    header, rows = log.read()
    assert header == list(HEADER)
    assert [r[1] for r in rows] == ["/a", "/b", "/c"]


def test_empty_file_gets_header(tmp_path: Path) -> None:
    p = tmp_path / "results.csv"
    p.write_text("\n", encoding="utf-8")
    log = ResultLog(p)
    log.append([_record()])

    header, rows = log.read()
    assert header == list(HEADER)
    assert len(rows) == 1


def test_append_nothing_does_not_create_file(tmp_path: Path) -> None:
    log = ResultLog(tmp_path / "results.csv")
    assert log.append([]) == 0
    assert not log.exists()
    assert log.read() == (None, [])


def test_values_with_delimiter_quotes_and_newlines_round_trip(tmp_path: Path) -> None:
    tricky = 'warm, "reused" instance\nsecond line'
    log = ResultLog(tmp_path / "results.csv")
    log.append([_record(initialized_from=tricky, request_count="3")])

    _header, rows = log.read()
    assert len(rows) == 1
    assert rows[0][-1] == tricky
    assert rows[0][3] == "3"


def test_fields_are_quoted_only_when_needed(tmp_path: Path) -> None:
    log = ResultLog(tmp_path / "results.csv")
    log.append([_record(cold_start_indicator="plain", request_count="1,024", instance_age='say "hi"')])

    line = log.path.read_text(encoding="utf-8").splitlines()[1]
    assert line.startswith('https://b0.test,/p0,plain,"1,024","say ""hi""",')


def test_append_after_row_cut_inside_quoted_field(tmp_path: Path) -> None:
    p = tmp_path / "results.csv"
    p.write_text(",".join(HEADER) + '\nhttps://b0.test,/a,COLD,"1,0', encoding="utf-8")
    log = ResultLog(p)

    for _ in range(3):
        log.append([_record("/a"), _record("/b")])

    _header, rows = log.read()
    assert rows[0][:3] == ["https://b0.test", "/a", "COLD"]
    assert len(rows) == 7
    assert all(len(row) == len(HEADER) for row in rows[1:])
    estimator = RunNumberEstimator(log, paths=["/a", "/b"], backends=["https://b0.test"])
    assert estimator.estimate() == 3


def test_append_after_row_cut_inside_multibyte_character(tmp_path: Path) -> None:
    p = tmp_path / "results.csv"
    p.write_bytes((",".join(HEADER) + "\nhttps://b0.test,/a,COLD,1,0.4s,12").encode("utf-8") + b"\xc2")
    log = ResultLog(p)

    assert log.append([_record("/b")]) == 1

    header, rows = log.read()
    assert header == list(HEADER)
    assert rows[-1][:2] == ["https://b0.test", "/b"]
    assert len(rows[-1]) == len(HEADER)


def test_partial_row_without_newline_is_isolated(tmp_path: Path) -> None:
    p = tmp_path / "results.csv"
    p.write_text(",".join(HEADER) + "\nhttps://b0.test,/p0,COL", encoding="utf-8")
    log = ResultLog(p)
    log.append([_record("/p1")])

    _header, rows = log.read()
    assert rows[0] == ["https://b0.test", "/p0", "COL"]
    assert rows[1][:2] == ["https://b0.test", "/p1"]
    assert len(rows[1]) == len(HEADER)


def test_unterminated_quote_does_not_raise(tmp_path: Path) -> None:
    p = tmp_path / "results.csv"
    p.write_text(",".join(HEADER) + '\nhttps://b0.test,/p0,"half written', encoding="utf-8")
    header, rows = ResultLog(p).read()
    assert header == list(HEADER)
    assert len(rows) == 1
    assert rows[0][:2] == ["https://b0.test", "/p0"]
