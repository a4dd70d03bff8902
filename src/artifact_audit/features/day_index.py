from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping

from artifact_audit.io.schema import ArtifactRecord, ReconciliationError
from artifact_audit.preprocess.keys import sort_subkeys
from artifact_audit.preprocess.time import window_days

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayIndex:
    days: tuple[date, ...]
    shards: tuple[str, ...]
    buckets: Mapping[date, Mapping[str, ArtifactRecord]]
    errors: tuple[ReconciliationError, ...] = field(default=())

    def record(self, day: date, shard: str) -> ArtifactRecord | None:
        return self.buckets.get(day, {}).get(shard)


def index_dumps(
    records: Iterable[ArtifactRecord],
    *,
    end_date: date,
    days: int,
    shards: Iterable[str],
    errors: Iterable[ReconciliationError] = (),
) -> DayIndex:
    """Group dump records by calendar day and shard over a trailing window.

    ``shards`` is the expected set; it is never widened by what was found, so an expected
    shard with no record on a given day stays visible as missing.
    """
    window = window_days(end_date, days)
    buckets: dict[date, dict[str, ArtifactRecord]] = {day: {} for day in window}
    collected = list(errors)
    expected = sort_subkeys(set(shards))
    expected_set = set(expected)

    n_outside_window = 0
    unexpected_shards: set[str] = set()
    for record in records:
        bucket = buckets.get(record.day)
        if bucket is None:
            n_outside_window += 1
            continue
        if record.shard in bucket:
            collected.append(
                ReconciliationError(
                    f"duplicate dump for shard {record.shard}; keeping the first one",
                    day=record.day,
                    source=record.path or None,
                )
            )
            continue
        if record.shard not in expected_set:
            unexpected_shards.add(record.shard)
        bucket[record.shard] = record

    if n_outside_window:
        LOGGER.debug("Ignored %d dump records outside the requested window", n_outside_window)
    if unexpected_shards:
        LOGGER.debug(
            "Found dumps for shards that are not expected: %s",
            ", ".join(sort_subkeys(unexpected_shards)),
        )

    return DayIndex(
        days=tuple(window),
        shards=tuple(expected),
        buckets=buckets,
        errors=tuple(collected),
    )
