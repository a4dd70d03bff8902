from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping

from artifact_audit.io.schema import MeteringObservations, ReconciliationError
from artifact_audit.preprocess.time import window_days

HOURS = frozenset(range(24))
DEFAULT_MIN_EXPECTED_ENTRIES = 500


def missing_hours(present: Iterable[int]) -> tuple[int, ...]:
    return tuple(sorted(HOURS - set(present)))


@dataclass(frozen=True)
class MeteringDayResult:
    day: date
    summary_entries: int | None
    storage_entries: int | None
    compute_present: int
    compute_missing: tuple[int, ...]
    request_present: int
    request_missing: tuple[int, ...]
    summary_too_small: bool = False
    storage_too_small: bool = False


@dataclass(frozen=True)
class MeteringAudit:
    days: tuple[MeteringDayResult, ...]
    errors: tuple[ReconciliationError, ...] = ()
    min_expected_entries: int = DEFAULT_MIN_EXPECTED_ENTRIES

    def summary(self) -> dict[str, Any]:
        return {
            "n_days": len(self.days),
            "n_summary_missing": sum(1 for day in self.days if day.summary_entries is None),
            "n_storage_missing": sum(1 for day in self.days if day.storage_entries is None),
            "n_too_small": sum(
                int(day.summary_too_small) + int(day.storage_too_small) for day in self.days
            ),
            "n_compute_hours_missing": sum(len(day.compute_missing) for day in self.days),
            "n_request_hours_missing": sum(len(day.request_missing) for day in self.days),
            "n_errors": len(self.errors),
        }


class MeteringAggregator:
    name = "metering"

    def __init__(self, min_expected_entries: int = DEFAULT_MIN_EXPECTED_ENTRIES) -> None:
        self.min_expected_entries = int(min_expected_entries)

    def _too_small(self, entries: int | None) -> bool:
        return entries is not None and entries < self.min_expected_entries

    def _present_hours(
        self,
        day: date,
        category: str,
        hours: Iterable[int],
        errors: list[ReconciliationError],
    ) -> frozenset[int]:
        present = {int(hour) for hour in hours}
        for hour in sorted(present - HOURS):
            errors.append(
                ReconciliationError(f"ignoring {category} report for unknown hour {hour}", day=day)
            )
        return frozenset(present & HOURS)

    def aggregate_day(
        self,
        observations: MeteringObservations,
        errors: list[ReconciliationError],
    ) -> MeteringDayResult:
        day = observations.day
        compute = self._present_hours(day, "compute", observations.compute_hours, errors)
        request = self._present_hours(day, "request", observations.request_hours, errors)
        return MeteringDayResult(
            day=day,
            summary_entries=observations.summary_entries,
            storage_entries=observations.storage_entries,
            compute_present=len(compute),
            compute_missing=missing_hours(compute),
            request_present=len(request),
            request_missing=missing_hours(request),
            summary_too_small=self._too_small(observations.summary_entries),
            storage_too_small=self._too_small(observations.storage_entries),
        )

    def run(
        self,
        observations: Mapping[date, MeteringObservations],
        *,
        end_date: date,
        days: int,
        errors: Iterable[ReconciliationError] = (),
    ) -> MeteringAudit:
        collected = list(errors)
        results = [
            self.aggregate_day(observations.get(day) or MeteringObservations(day=day), collected)
            for day in window_days(end_date, days)
        ]
        return MeteringAudit(
            days=tuple(results),
            errors=tuple(collected),
            min_expected_entries=self.min_expected_entries,
        )
