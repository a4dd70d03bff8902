from __future__ import annotations

from typing import Sequence, TextIO

from artifact_audit.detectors.dumps import DumpAudit, DumpStatus
from artifact_audit.detectors.metering import HOURS, MeteringAudit, MeteringDayResult
from artifact_audit.io.schema import ReconciliationError
from artifact_audit.preprocess.keys import sort_subkeys
from artifact_audit.preprocess.time import DEFAULT_TIMEZONE, format_clock, format_elapsed
from artifact_audit.report.base import DumpReportRenderer

PROBLEM_MARKER = "!"
LATE_MARKER = "L"
MISSING = "MISSING"

DEFAULT_ERRORS_SHOWN = 5
DEFAULT_MISSING_HOURS_SHOWN = 4

# Wide enough for an ISO date, so markers sit under the day column.
_LEAD_WIDTH = 10
_MIN_SHARD_WIDTH = 5
_DETAIL_INDENT = " " * (_LEAD_WIDTH + 4)


def format_error_summary(
    errors: Sequence[ReconciliationError],
    limit: int = DEFAULT_ERRORS_SHOWN,
) -> list[str]:
    if not errors:
        return []
    limit = max(0, int(limit))
    lines = [f"errors ({len(errors)}):"]
    lines.extend(f"    {error}" for error in errors[:limit])
    remaining = len(errors) - limit
    if remaining > 0:
        noun = "error" if remaining == 1 else "errors"
        lines.append(f"    and {remaining} more {noun}")
    return lines


def format_missing_hours(
    hours: Sequence[int],
    *,
    verbose: bool = False,
    limit: int = DEFAULT_MISSING_HOURS_SHOWN,
) -> str:
    limit = max(0, int(limit))
    if verbose or len(hours) <= limit:
        return ", ".join(str(hour) for hour in hours)
    parts = [str(hour) for hour in hours[:limit]]
    parts.append(f"and {len(hours) - limit} more")
    return ", ".join(parts)


def status_markers(status: DumpStatus) -> str:
    return (PROBLEM_MARKER if status.problem else "") + (LATE_MARKER if status.late else "")


class DumpTableRenderer(DumpReportRenderer):
    name = "table"

    def __init__(
        self,
        timezone: str = DEFAULT_TIMEZONE,
        errors_shown: int = DEFAULT_ERRORS_SHOWN,
        verbose: bool = False,
    ) -> None:
        self.timezone = timezone
        self.errors_shown = errors_shown
        self.verbose = verbose

    def _header(self, day_label: str, width: int) -> str:
        return (
            f"{day_label:<{_LEAD_WIDTH}}  {'SHARD':<{width}}  {'SIZE':>9}  {'ELAPSED':>7}"
            f"  {'FINISHED':>9}  {'OBJECTS':>7}"
        )

    def _rows(self, status: DumpStatus, width: int) -> list[str]:
        record = status.record
        if record is None:
            return [f"{'':<{_LEAD_WIDTH}}  {status.shard:<{width}}  {MISSING}"]

        lines = [
            f"{status_markers(status):>{_LEAD_WIDTH}}  {status.shard:<{width}}"
            f"  {f'{record.size_mb}MB':>9}  {format_elapsed(record.elapsed_ms):>7}"
            f"  {format_clock(record.end, self.timezone):>9}  {record.object_count:>7}"
        ]
        lines.extend(f"{_DETAIL_INDENT}warning: {warning}" for warning in status.warnings)
        if status.warnings or self.verbose:
            lines.append(f"{_DETAIL_INDENT}path:  {record.path or '-'}")
            lines.append(f"{_DETAIL_INDENT}start: {record.start.isoformat()}")
            lines.append(f"{_DETAIL_INDENT}end:   {record.end.isoformat()}")
        return lines

    def render(self, audit: DumpAudit, stream: TextIO) -> None:
        shards = sort_subkeys(audit.shards)
        width = max([_MIN_SHARD_WIDTH, *(len(shard) for shard in shards)])
        lines = [f"dump report: {len(audit.days)} day(s), {len(shards)} shard(s)"]
        for day in sorted(audit.days):
            lines.append(self._header(day.isoformat(), width))
            for shard in shards:
                lines.extend(self._rows(audit.status(day, shard), width))
        lines.extend(format_error_summary(audit.errors, self.errors_shown))
        stream.write("\n".join(lines) + "\n")


class MeteringTableRenderer:
    name = "table"

    def __init__(
        self,
        *,
        verbose: bool = False,
        missing_hours_shown: int = DEFAULT_MISSING_HOURS_SHOWN,
        errors_shown: int = DEFAULT_ERRORS_SHOWN,
    ) -> None:
        self.verbose = verbose
        self.missing_hours_shown = missing_hours_shown
        self.errors_shown = errors_shown

    def _entries(self, entries: int | None, too_small: bool, minimum: int) -> str:
        if entries is None:
            return MISSING
        text = f"{entries} entries"
        if too_small:
            text += f" (too small, expected at least {minimum})"
        return text

    def _hours(self, present: int, missing: Sequence[int]) -> str:
        text = f"{present}/{len(HOURS)} present"
        if missing:
            listed = format_missing_hours(
                missing,
                verbose=self.verbose,
                limit=self.missing_hours_shown,
            )
            text += f" (hours missing: {listed})"
        return text

    def _day_lines(self, result: MeteringDayResult, minimum: int) -> list[str]:
        summary = self._entries(result.summary_entries, result.summary_too_small, minimum)
        storage = self._entries(result.storage_entries, result.storage_too_small, minimum)
        return [
            result.day.isoformat(),
            f"    summary: {summary}",
            f"    storage: {storage}",
            f"    compute: {self._hours(result.compute_present, result.compute_missing)}",
            f"    request: {self._hours(result.request_present, result.request_missing)}",
        ]

    def render(self, audit: MeteringAudit, stream: TextIO) -> None:
        lines = [f"metering report: {len(audit.days)} day(s)"]
        for result in sorted(audit.days, key=lambda item: item.day):
            lines.extend(self._day_lines(result, audit.min_expected_entries))
        lines.extend(format_error_summary(audit.errors, self.errors_shown))
        stream.write("\n".join(lines) + "\n")
