from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from artifact_audit.io.schema import (
    DAILY_CATEGORIES,
    DUMP_OPTIONAL_COLUMNS,
    DUMP_REQUIRED_COLUMNS,
    HOURLY_CATEGORIES,
    METERING_CATEGORIES,
    METERING_OPTIONAL_COLUMNS,
    METERING_REQUIRED_COLUMNS,
    ArtifactRecord,
    MeteringObservations,
    ReconciliationError,
)
from artifact_audit.preprocess.time import DEFAULT_TIMEZONE, calendar_day, to_timestamp

LOGGER = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_VALUES = frozenset({"false", "f", "no", "n", "0"})


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # Cells stay strings; each row is parsed on its own so one bad cell only costs that row.
        return pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def _validate_columns(
    df: pd.DataFrame,
    required: list[str],
    optional: list[str],
    kind: str,
) -> pd.DataFrame:
    missing = [column for column in required if column not in df.columns]
    if missing:
        raise ValueError(f"{kind} inventory missing columns: {', '.join(missing)}")
    absent = [column for column in optional if column not in df.columns]
    if absent:
        LOGGER.debug("%s inventory has no %s columns", kind, ", ".join(absent))
    return df


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if pd.api.types.is_list_like(value):
        return len(value) == 0
    return bool(pd.isna(value))


def _parse_int(value: Any, field_name: str) -> int:
    if _is_blank(value):
        raise ReconciliationError(f"missing {field_name}")
    try:
        number = int(value.strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as exc:
        raise ReconciliationError(f"invalid {field_name}: {value!r}") from exc
    if number < 0:
        raise ReconciliationError(f"{field_name} must be >= 0, got {number}")
    return number


def _parse_bool(value: Any, field_name: str) -> bool:
    text = "" if _is_blank(value) else str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ReconciliationError(f"invalid {field_name} flag: {value!r}")


def _parse_timestamp(value: Any, field_name: str, timezone: str) -> datetime:
    if _is_blank(value):
        raise ReconciliationError(f"missing {field_name} timestamp")
    try:
        return to_timestamp(value, timezone).to_pydatetime()
    except (TypeError, ValueError) as exc:
        raise ReconciliationError(
            f"ambiguous or invalid {field_name} timestamp: {value!r}"
        ) from exc


def _parse_day(value: Any) -> date:
    if _is_blank(value):
        raise ReconciliationError("missing day")
    try:
        parsed = pd.Timestamp(value)
    except (TypeError, ValueError) as exc:
        raise ReconciliationError(f"invalid day: {value!r}") from exc
    if pd.isna(parsed):
        raise ReconciliationError(f"invalid day: {value!r}")
    return parsed.date()


def _parse_objects(value: Any) -> tuple[str, ...]:
    if _is_blank(value):
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(";") if part.strip())
    return tuple(str(part) for part in value)


def _text(value: Any) -> str:
    return "" if _is_blank(value) else str(value).strip()


def _row_source(row: dict[str, Any], path: Path, index: int) -> str:
    return _text(row.get("path")) or f"{path.name} row {index + 1}"


def _dump_record_from_row(row: dict[str, Any], timezone: str) -> ArtifactRecord:
    shard = _text(row.get("shard"))
    if not shard:
        raise ReconciliationError("missing shard")
    try:
        start = _parse_timestamp(row.get("start"), "start", timezone)
        end = _parse_timestamp(row.get("end"), "end", timezone)
        day_value = row.get("day")
        day = calendar_day(start, timezone) if _is_blank(day_value) else _parse_day(day_value)
        return ArtifactRecord(
            shard=shard,
            day=day,
            size_mb=_parse_int(row.get("size_mb"), "size_mb"),
            elapsed_ms=_parse_int(row.get("elapsed_ms"), "elapsed_ms"),
            start=start,
            end=end,
            unpacked=_parse_bool(row.get("unpacked"), "unpacked"),
            late=_parse_bool(row.get("late"), "late"),
            objects=_parse_objects(row.get("objects")),
            path=_text(row.get("path")),
        )
    except ReconciliationError as exc:
        raise ReconciliationError(f"shard {shard}: {exc.description}") from exc


def load_dump_inventory(
    path: Path,
    timezone: str = DEFAULT_TIMEZONE,
) -> tuple[list[ArtifactRecord], list[ReconciliationError]]:
    """Load dump records found by discovery; unreadable rows come back as errors."""
    frame = _validate_columns(
        load_table(path), DUMP_REQUIRED_COLUMNS, DUMP_OPTIONAL_COLUMNS, "dump"
    )
    records: list[ArtifactRecord] = []
    errors: list[ReconciliationError] = []
    for index, row in enumerate(frame.to_dict("records")):
        try:
            records.append(_dump_record_from_row(row, timezone))
        except ReconciliationError as exc:
            errors.append(
                ReconciliationError(
                    exc.description,
                    day=exc.day,
                    source=_row_source(row, path, index),
                )
            )
    LOGGER.info(
        "Loaded %d dump records from %s (%d rows rejected)", len(records), path, len(errors)
    )
    return records, errors


def _metering_row(row: dict[str, Any]) -> dict[str, Any]:
    day = _parse_day(row.get("day"))
    category = _text(row.get("category")).lower()
    if category not in METERING_CATEGORIES:
        raise ReconciliationError(f"unknown metering category {category!r}", day=day)
    try:
        if category in DAILY_CATEGORIES:
            return {
                "day": day,
                "category": category,
                "hour": None,
                "entries": _parse_int(row.get("entries"), "entries"),
            }
        return {
            "day": day,
            "category": category,
            "hour": _parse_int(row.get("hour"), "hour"),
            "entries": None,
        }
    except ReconciliationError as exc:
        raise ReconciliationError(f"{category} report: {exc.description}", day=day) from exc


def _observations_for_day(
    day: date,
    group: pd.DataFrame,
    errors: list[ReconciliationError],
) -> MeteringObservations:
    daily: dict[str, int | None] = {}
    for category in DAILY_CATEGORIES:
        reports = group[group["category"] == category]
        if reports.empty:
            daily[category] = None
            continue
        if len(reports) > 1:
            errors.append(
                ReconciliationError(
                    f"found {len(reports)} {category} reports; using the first",
                    day=day,
                )
            )
        daily[category] = int(reports["entries"].iloc[0])

    hourly: dict[str, frozenset[int]] = {}
    for category in HOURLY_CATEGORIES:
        counts = group.loc[group["category"] == category, "hour"].astype(int).value_counts()
        for hour, count in counts[counts > 1].sort_index().items():
            errors.append(
                ReconciliationError(
                    f"found {count} {category} reports for hour {hour}; using the first",
                    day=day,
                )
            )
        hourly[category] = frozenset(int(hour) for hour in counts.index)
    return MeteringObservations(
        day=day,
        summary_entries=daily["summary"],
        storage_entries=daily["storage"],
        compute_hours=hourly["compute"],
        request_hours=hourly["request"],
    )


def load_metering_inventory(
    path: Path,
) -> tuple[dict[date, MeteringObservations], list[ReconciliationError]]:
    frame = _validate_columns(
        load_table(path), METERING_REQUIRED_COLUMNS, METERING_OPTIONAL_COLUMNS, "metering"
    )
    rows: list[dict[str, Any]] = []
    errors: list[ReconciliationError] = []
    for index, row in enumerate(frame.to_dict("records")):
        try:
            rows.append(_metering_row(row))
        except ReconciliationError as exc:
            errors.append(
                ReconciliationError(
                    exc.description,
                    day=exc.day,
                    source=_row_source(row, path, index),
                )
            )

    parsed = pd.DataFrame(rows, columns=["day", "category", "hour", "entries"])
    observations = {
        day: _observations_for_day(day, group, errors)
        for day, group in parsed.groupby("day", sort=True)
    }
    LOGGER.info(
        "Loaded metering reports for %d days from %s (%d rows rejected)",
        len(observations),
        path,
        len(errors),
    )
    return observations, errors
