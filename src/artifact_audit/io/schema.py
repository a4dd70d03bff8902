from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

DUMP_REQUIRED_COLUMNS = ["shard", "size_mb", "elapsed_ms", "start", "end", "unpacked", "late"]
DUMP_OPTIONAL_COLUMNS = ["day", "path", "objects"]

METERING_REQUIRED_COLUMNS = ["day", "category"]
METERING_OPTIONAL_COLUMNS = ["hour", "entries", "path"]

DAILY_CATEGORIES = ("summary", "storage")
HOURLY_CATEGORIES = ("compute", "request")
METERING_CATEGORIES = DAILY_CATEGORIES + HOURLY_CATEGORIES


class ReconciliationError(ValueError):
    """A problem assembling one day's or one record's data.

    These are collected alongside results rather than raised to the caller.
    """

    def __init__(
        self,
        description: str,
        *,
        day: date | None = None,
        source: str | None = None,
    ) -> None:
        super().__init__(description)
        self.description = description
        self.day = day
        self.source = source

    def __str__(self) -> str:
        prefix = f"{self.day.isoformat()}: " if self.day is not None else ""
        suffix = f" ({self.source})" if self.source else ""
        return f"{prefix}{self.description}{suffix}"


@dataclass(frozen=True)
class ArtifactRecord:
    shard: str
    day: date
    size_mb: int
    elapsed_ms: int
    start: datetime
    end: datetime
    unpacked: bool
    late: bool
    objects: tuple[str, ...] = ()
    path: str = ""

    @property
    def object_count(self) -> int:
        return len(self.objects)


@dataclass(frozen=True)
class MeteringObservations:
    day: date
    summary_entries: int | None = None
    storage_entries: int | None = None
    compute_hours: frozenset[int] = field(default_factory=frozenset)
    request_hours: frozenset[int] = field(default_factory=frozenset)
