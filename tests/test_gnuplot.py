from __future__ import annotations

import io
from datetime import date, datetime, timedelta, timezone

from artifact_audit.detectors.dumps import DumpAnomalyDetector, DumpAudit
from artifact_audit.features.day_index import index_dumps
from artifact_audit.io.schema import ArtifactRecord
from artifact_audit.report.gnuplot import GnuplotDumpRenderer, gnuplot_quote

END = date(2024, 1, 10)


def _record(shard: str, day: date, elapsed_ms: int, size_mb: int) -> ArtifactRecord:
    start = datetime(day.year, day.month, day.day, 0, 30, tzinfo=timezone.utc)
    return ArtifactRecord(
        shard=shard,
        day=day,
        size_mb=size_mb,
        elapsed_ms=elapsed_ms,
        start=start,
        end=start + timedelta(milliseconds=elapsed_ms),
        unpacked=True,
        late=False,
    )


def _render(audit: DumpAudit, **kwargs: object) -> str:
    stream = io.StringIO()
    GnuplotDumpRenderer(**kwargs).render(audit, stream)  # type: ignore[arg-type]
    return stream.getvalue()


def _audit(records: list[ArtifactRecord], shards: list[str], days: int = 2) -> DumpAudit:
    return DumpAnomalyDetector().run(
        index_dumps(records, end_date=END, days=days, shards=shards)
    )


def test_gnuplot_script_has_two_panels_and_inline_datasets() -> None:
    records = [
        _record("2.moray", date(2024, 1, 9), 600_000, 100),
        _record("2.moray", date(2024, 1, 10), 630_500, 110),
        _record("1.moray", date(2024, 1, 10), 90_000, 2048),
    ]
    script = _render(_audit(records, ["2.moray", "1.moray"]), deadline_seconds=3600)
    lines = script.splitlines()

    assert "set multiplot layout 2,1 title 'Dump summary'" in lines
    assert "set xrange ['2024-01-08':'2024-01-11']" in lines
    assert "deadline = 3600" in lines
    assert lines[-1] == "unset multiplot"

    elapsed_2 = lines.index("$elapsed_2 << EOD")
    assert lines[elapsed_2 - 1] == "# shard 2.moray"
    assert lines[elapsed_2 + 1 : elapsed_2 + 4] == ["2024-01-09 600", "2024-01-10 630.5", "EOD"]

    size_1 = lines.index("$size_1 << EOD")
    assert lines[size_1 - 1] == "# shard 1.moray"
    assert lines[size_1 + 1 : size_1 + 3] == ["2024-01-10 2048", "EOD"]

    assert "deadline title 'deadline' with lines dashtype 2" in script
    assert "$elapsed_1 using 1:2 title '1.moray' with linespoints" in script
    assert "$size_2 using 1:2 title '2.moray' with linespoints" in script
    assert script.index("set title 'Elapsed time'") < script.index("set title 'Dump size'")


def test_gnuplot_missing_days_are_left_out_of_dataset() -> None:
    script = _render(_audit([], ["1.moray"]))
    lines = script.splitlines()

    start = lines.index("$elapsed_1 << EOD")
    assert lines[start + 1] == "EOD"


def test_gnuplot_without_shards_keeps_preamble() -> None:
    script = _render(_audit([], []))

    assert "set multiplot layout 2,1 title 'Dump summary'" in script
    assert "<< EOD" not in script
    assert "plot deadline title 'deadline' with lines dashtype 2" in script
    assert "plot NaN notitle" in script


def test_gnuplot_without_days_still_emits_structure() -> None:
    audit = DumpAudit(days=(), shards=("1.moray",), statuses={})
    script = _render(audit, terminal="dumb")

    assert "set terminal dumb" in script
    assert "set xrange" not in script
    assert "$elapsed_1 << EOD\nEOD" in script


def test_gnuplot_quote_escapes_single_quotes() -> None:
    assert gnuplot_quote("shard 'a'") == "'shard ''a'''"
