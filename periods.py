"""Period token resolution into a current and a comparison window."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any

import pandas as pd

ONE_MS = pd.Timedelta(milliseconds=1)

ROLLING_PERIODS = {
    "7d": pd.DateOffset(days=7),
    "30d": pd.DateOffset(days=30),
    "3m": pd.DateOffset(months=3),
    "6m": pd.DateOffset(months=6),
    "1y": pd.DateOffset(years=1),
}
CALENDAR_PERIODS = ("this_month", "this_quarter", "ytd")
SUPPORTED_PERIODS = tuple(ROLLING_PERIODS) + CALENDAR_PERIODS + ("all", "custom")


@dataclass(frozen=True)
class DateWindow:
    """Current window plus the equal-length window right before it."""

    start: pd.Timestamp
    end: pd.Timestamp
    previous_start: pd.Timestamp | None = None
    previous_end: pd.Timestamp | None = None

    @property
    def has_previous(self) -> bool:
        if self.previous_start is None or self.previous_end is None:
            return False
        return bool(self.previous_start < self.previous_end)


def _as_timestamp(value: Any, end_of_day: bool = False) -> pd.Timestamp:
    date_only = isinstance(value, datetime.date) and not isinstance(value, datetime.datetime)
    if isinstance(value, str):
        date_only = len(value.strip()) <= 10
    stamp = pd.Timestamp(value)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_localize(None)
    if end_of_day and date_only:
        return stamp.normalize() + pd.Timedelta(days=1) - ONE_MS
    return stamp


def _quarter_start(now: pd.Timestamp) -> pd.Timestamp:
    month = 3 * ((now.month - 1) // 3) + 1
    return pd.Timestamp(year=now.year, month=month, day=1)


def resolve_period(
    period: str = "30d",
    custom_start: Any = None,
    custom_end: Any = None,
    now: Any = None,
    earliest_entry: Any = None,
    latest_entry: Any = None,
) -> DateWindow:
    """Resolve a period token (or explicit bounds) into a ``DateWindow``.

    Rolling periods end at ``now`` and compare against the immediately
    preceding window of the same length, ending 1ms before ``start`` so that
    no timestamp belongs to both. ``all`` has no comparison window.
    """
    now_ts = _as_timestamp(now) if now is not None else pd.Timestamp.now()
    token = str(period or "30d").strip().lower()

    if custom_start is not None or custom_end is not None:
        if custom_start is None or custom_end is None:
            raise ValueError("custom_start and custom_end must be given together")
        start = _as_timestamp(custom_start)
        end = _as_timestamp(custom_end, end_of_day=True)
        duration = end - start
        return DateWindow(start, end, start - duration, start - ONE_MS)

    if token in ROLLING_PERIODS:
        offset = ROLLING_PERIODS[token]
        start = now_ts - offset
        return DateWindow(start, now_ts, start - offset, start - ONE_MS)

    if token == "ytd":
        start = pd.Timestamp(year=now_ts.year, month=1, day=1)
        previous_start = pd.Timestamp(year=now_ts.year - 1, month=1, day=1)
        return DateWindow(start, now_ts, previous_start, now_ts - pd.DateOffset(years=1))

    if token == "this_month":
        start = now_ts.normalize().replace(day=1)
        end = start + pd.DateOffset(months=1) - ONE_MS
        return DateWindow(start, end, start - pd.DateOffset(months=1), start - ONE_MS)

    if token == "this_quarter":
        start = _quarter_start(now_ts)
        end = start + pd.DateOffset(months=3) - ONE_MS
        return DateWindow(start, end, start - pd.DateOffset(months=3), start - ONE_MS)

    if token == "all":
        if earliest_entry is not None and not pd.isna(earliest_entry):
            start = _as_timestamp(earliest_entry)
        else:
            start = pd.Timestamp(year=now_ts.year, month=1, day=1)
        end = now_ts
        if latest_entry is not None and not pd.isna(latest_entry):
            end = max(end, _as_timestamp(latest_entry))
        return DateWindow(start, end)

    if token == "custom":
        raise ValueError("custom period requires custom_start and custom_end")
    raise ValueError(f"Unsupported period: {period}")
