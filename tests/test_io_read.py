from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pandas as pd
import pytest

from artifact_audit.io.read import load_dump_inventory, load_metering_inventory, load_table


def _write_csv(path: Path, rows: list[dict[str, object]]) -> Path:
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def test_load_dump_inventory_parses_records(tmp_path: Path) -> None:
    path = _write_csv(
        tmp_path / "dumps.csv",
        [
            {
                "shard": "1.moray",
                "day": "2024-01-10",
                "path": "/dumps/1.moray/2024/01/10",
                "size_mb": "2048",
                "elapsed_ms": "725000",
                "start": "2024-01-10T00:30:00Z",
                "end": "2024-01-10T00:42:05Z",
                "unpacked": "true",
                "late": "no",
                "objects": "users;buckets; ;uploads",
            }
        ],
    )

    records, errors = load_dump_inventory(path)

    assert errors == []
    assert len(records) == 1
    record = records[0]
    assert record.shard == "1.moray"
    assert record.day == date(2024, 1, 10)
    assert record.size_mb == 2048
    assert record.start == datetime(2024, 1, 10, 0, 30, tzinfo=timezone.utc)
    assert record.unpacked is True
    assert record.late is False
    assert record.objects == ("users", "buckets", "uploads")


def test_load_dump_inventory_defaults_day_to_start_day(tmp_path: Path) -> None:
    path = _write_csv(
        tmp_path / "dumps.csv",
        [
            {
                "shard": "1.moray",
                "size_mb": "1",
                "elapsed_ms": "1",
                "start": "2024-01-10T23:30:00Z",
                "end": "2024-01-11T00:10:00Z",
                "unpacked": "1",
                "late": "0",
            }
        ],
    )

    records, _ = load_dump_inventory(path)

    assert records[0].day == date(2024, 1, 10)
    assert records[0].objects == ()


def test_load_dump_inventory_collects_bad_rows(tmp_path: Path) -> None:
    good = {
        "shard": "1.moray",
        "size_mb": "10",
        "elapsed_ms": "1000",
        "start": "2024-01-10T00:30:00Z",
        "end": "2024-01-10T00:31:00Z",
        "unpacked": "true",
        "late": "false",
        "path": "",
    }
    path = _write_csv(
        tmp_path / "dumps.csv",
        [
            good,
            {**good, "shard": "2.moray", "start": "not a time"},
            {**good, "shard": "3.moray", "size_mb": "-5", "path": "/dumps/3.moray"},
            {**good, "shard": ""},
        ],
    )

    records, errors = load_dump_inventory(path)

    assert [record.shard for record in records] == ["1.moray"]
    messages = [str(error) for error in errors]
    assert messages[0] == (
        "shard 2.moray: ambiguous or invalid start timestamp: 'not a time' (dumps.csv row 2)"
    )
    assert messages[1] == "shard 3.moray: size_mb must be >= 0, got -5 (/dumps/3.moray)"
    assert messages[2] == "missing shard (dumps.csv row 4)"


def test_load_dump_inventory_collects_ambiguous_local_times(tmp_path: Path) -> None:
    good = {
        "shard": "1.moray",
        "day": "2024-11-03",
        "size_mb": "10",
        "elapsed_ms": "300000",
        "start": "2024-11-03 03:00:00",
        "end": "2024-11-03 03:05:00",
        "unpacked": "true",
        "late": "false",
        "path": "",
    }
    path = _write_csv(
        tmp_path / "dumps.csv",
        [
            {**good, "shard": "2.moray", "start": "2024-11-03 01:30:00"},
            {**good, "shard": "3.moray", "day": "", "start": "2024-11-03 01:30:00"},
            good,
        ],
    )

    records, errors = load_dump_inventory(path, timezone="America/New_York")

    assert [record.shard for record in records] == ["1.moray"]
    assert [str(error) for error in errors] == [
        "shard 2.moray: ambiguous or invalid start timestamp: '2024-11-03 01:30:00'"
        " (dumps.csv row 1)",
        "shard 3.moray: ambiguous or invalid start timestamp: '2024-11-03 01:30:00'"
        " (dumps.csv row 2)",
    ]


def test_load_dump_inventory_requires_columns(tmp_path: Path) -> None:
    path = _write_csv(tmp_path / "dumps.csv", [{"shard": "1.moray"}])

    with pytest.raises(ValueError, match="dump inventory missing columns"):
        load_dump_inventory(path)


def test_load_table_rejects_unknown_suffix(tmp_path: Path) -> None:
    path = tmp_path / "dumps.txt"
    path.write_text("shard\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported table file type"):
        load_table(path)


def test_load_metering_inventory_groups_by_day(tmp_path: Path) -> None:
    rows: list[dict[str, object]] = [
        {"day": "2024-02-01", "category": "summary", "hour": "", "entries": "750"},
        {"day": "2024-02-01", "category": "storage", "hour": "", "entries": "20"},
        {"day": "2024-02-01", "category": "Compute", "hour": "0", "entries": ""},
        {"day": "2024-02-01", "category": "compute", "hour": "1", "entries": ""},
        {"day": "2024-02-02", "category": "request", "hour": "23", "entries": ""},
    ]
    path = _write_csv(tmp_path / "metering.csv", rows)

    observations, errors = load_metering_inventory(path)

    assert errors == []
    assert sorted(observations) == [date(2024, 2, 1), date(2024, 2, 2)]
    first = observations[date(2024, 2, 1)]
    assert first.summary_entries == 750
    assert first.storage_entries == 20
    assert first.compute_hours == frozenset({0, 1})
    assert first.request_hours == frozenset()
    second = observations[date(2024, 2, 2)]
    assert second.summary_entries is None
    assert second.request_hours == frozenset({23})


def test_load_metering_inventory_collects_errors(tmp_path: Path) -> None:
    rows: list[dict[str, object]] = [
        {"day": "2024-02-01", "category": "summary", "hour": "", "entries": "750"},
        {"day": "2024-02-01", "category": "summary", "hour": "", "entries": "900"},
        {"day": "2024-02-01", "category": "billing", "hour": "", "entries": "1"},
        {"day": "2024-02-01", "category": "compute", "hour": "", "entries": ""},
        {"day": "someday", "category": "storage", "hour": "", "entries": "5"},
    ]
    path = _write_csv(tmp_path / "metering.csv", rows)

    observations, errors = load_metering_inventory(path)

    assert observations[date(2024, 2, 1)].summary_entries == 750
    messages = [str(error) for error in errors]
    assert messages == [
        "2024-02-01: unknown metering category 'billing' (metering.csv row 3)",
        "2024-02-01: compute report: missing hour (metering.csv row 4)",
        "invalid day: 'someday' (metering.csv row 5)",
        "2024-02-01: found 2 summary reports; using the first",
    ]


def test_load_metering_inventory_reports_duplicate_hours(tmp_path: Path) -> None:
    rows: list[dict[str, object]] = [
        {"day": "2024-02-01", "category": "compute", "hour": "1", "entries": ""},
        {"day": "2024-02-01", "category": "compute", "hour": "1", "entries": ""},
        {"day": "2024-02-01", "category": "compute", "hour": "2", "entries": ""},
        {"day": "2024-02-01", "category": "request", "hour": "7", "entries": ""},
        {"day": "2024-02-01", "category": "request", "hour": "7", "entries": ""},
        {"day": "2024-02-01", "category": "request", "hour": "7", "entries": ""},
    ]
    path = _write_csv(tmp_path / "metering.csv", rows)

    observations, errors = load_metering_inventory(path)

    day = observations[date(2024, 2, 1)]
    assert day.compute_hours == frozenset({1, 2})
    assert day.request_hours == frozenset({7})
    assert [str(error) for error in errors] == [
        "2024-02-01: found 2 compute reports for hour 1; using the first",
        "2024-02-01: found 3 request reports for hour 7; using the first",
    ]
