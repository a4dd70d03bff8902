from __future__ import annotations

from datetime import date, datetime
from typing import Any

import pandas as pd

DEFAULT_TIMEZONE = "UTC"


def to_timestamp(value: Any, timezone: str = DEFAULT_TIMEZONE) -> pd.Timestamp:
    """Parse ``value`` into a timezone-aware timestamp in ``timezone``.

    Naive inputs are taken to already be in ``timezone``.
    """
    parsed = value if isinstance(value, pd.Timestamp) else pd.Timestamp(value)
    if pd.isna(parsed):
        raise ValueError(f"not a timestamp: {value!r}")
    if parsed.tzinfo is not None:
        return parsed.tz_convert(timezone)
    localized = parsed.tz_localize(timezone, nonexistent="shift_forward", ambiguous="NaT")
    # Wall-clock times repeated by a DST fall-back cannot be placed on the timeline.
    if pd.isna(localized):
        raise ValueError(f"ambiguous local time {value!r} in {timezone}")
    return localized


def calendar_day(value: datetime | pd.Timestamp, timezone: str = DEFAULT_TIMEZONE) -> date:
    return to_timestamp(value, timezone).date()


def window_days(end_date: date, days: int) -> list[date]:
    """Return ``days`` consecutive calendar days ending at ``end_date``, ascending."""
    if days <= 0:
        return []
    stamps = pd.date_range(end=pd.Timestamp(end_date), periods=days, freq="D")
    return [stamp.date() for stamp in stamps]


def resolve_end_date(end_date: date | None, timezone: str = DEFAULT_TIMEZONE) -> date:
    if end_date is not None:
        return end_date
    return pd.Timestamp.now(tz=timezone).date()


def format_elapsed(elapsed_ms: int) -> str:
    total_seconds = max(0, int(elapsed_ms)) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def format_clock(value: datetime | pd.Timestamp, timezone: str = DEFAULT_TIMEZONE) -> str:
    stamp = to_timestamp(value, timezone)
    suffix = "Z" if timezone == DEFAULT_TIMEZONE else ""
    return f"{stamp:%H:%M:%S}{suffix}"
