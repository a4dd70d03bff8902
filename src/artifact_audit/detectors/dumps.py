from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from artifact_audit.features.day_index import DayIndex
from artifact_audit.io.schema import ArtifactRecord, ReconciliationError
from artifact_audit.preprocess.time import DEFAULT_TIMEZONE, calendar_day, to_timestamp

STARTED_ON_OTHER_DAY = "started on a different day than expected"
FINISHED_ON_OTHER_DAY = "finished on a different day than started"
FINISHED_BEFORE_START = "finished before it started"


def elapsed_seconds(record: ArtifactRecord) -> float:
    return record.elapsed_ms / 1000.0


def size_megabytes(record: ArtifactRecord) -> float:
    return float(record.size_mb)


@dataclass(frozen=True)
class DumpStatus:
    day: date
    shard: str
    record: ArtifactRecord | None = None
    problem: bool = False
    late: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def missing(self) -> bool:
        return self.record is None


@dataclass(frozen=True)
class DumpAudit:
    days: tuple[date, ...]
    shards: tuple[str, ...]
    statuses: Mapping[tuple[date, str], DumpStatus]
    errors: tuple[ReconciliationError, ...] = ()

    def status(self, day: date, shard: str) -> DumpStatus:
        return self.statuses.get((day, shard)) or DumpStatus(day=day, shard=shard)

    def summary(self) -> dict[str, Any]:
        statuses = list(self.statuses.values())
        return {
            "n_days": len(self.days),
            "n_shards": len(self.shards),
            "n_missing": sum(1 for status in statuses if status.missing),
            "n_problem": sum(1 for status in statuses if status.problem),
            "n_late": sum(1 for status in statuses if status.late),
            "n_errors": len(self.errors),
        }


class DumpAnomalyDetector:
    name = "dumps"

    def __init__(self, timezone: str = DEFAULT_TIMEZONE) -> None:
        self.timezone = timezone

    def inspect(self, day: date, shard: str, record: ArtifactRecord | None) -> DumpStatus:
        if record is None:
            return DumpStatus(day=day, shard=shard)

        warnings: list[str] = []
        start_day = calendar_day(record.start, self.timezone)
        end_day = calendar_day(record.end, self.timezone)
        if start_day != day:
            warnings.append(f"{STARTED_ON_OTHER_DAY} ({start_day.isoformat()})")
        if start_day != end_day:
            warnings.append(f"{FINISHED_ON_OTHER_DAY} ({end_day.isoformat()})")
        if to_timestamp(record.end, self.timezone) < to_timestamp(record.start, self.timezone):
            warnings.append(FINISHED_BEFORE_START)

        # Partially unpacked dumps are not distinguished from unpacked ones upstream.
        problem = bool(warnings) or not record.unpacked
        return DumpStatus(
            day=day,
            shard=shard,
            record=record,
            problem=problem,
            late=record.late,
            warnings=tuple(warnings),
        )

    def run(self, index: DayIndex) -> DumpAudit:
        statuses = {
            (day, shard): self.inspect(day, shard, index.record(day, shard))
            for day in index.days
            for shard in index.shards
        }
        return DumpAudit(
            days=index.days,
            shards=index.shards,
            statuses=statuses,
            errors=index.errors,
        )
