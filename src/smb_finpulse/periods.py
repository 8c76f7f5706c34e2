# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB FinPulse.

This module defines the DateRange value object used by every other module,
and helpers to:

- parse calendar dates coming from heterogeneous inputs,
- count inclusive days and overlaps between windows,
- derive reporting periods (today, week, month, quarter, year, fiscal year),
- derive comparison periods (previous period, same period last year),
- split a range into calendar months.

A ``None`` range is accepted wherever a DateRange is expected and means
"unbounded / all time".
"""

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd

PERIOD_NAMES: tuple[str, ...] = ("today", "week", "month", "quarter", "year")


@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] window with an optional human-readable label."""

    start: date
    end: date
    label: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"DateRange end ({self.end}) cannot be before start ({self.start})."
            )

    @property
    def days(self) -> int:
        """Number of days in the range, both ends included."""
        return days_between(self.start, self.end) + 1

    def contains(self, day: Optional[date]) -> bool:
        if day is None:
            return False
        return self.start <= day <= self.end

    def overlap(self, other: "DateRange") -> Optional["DateRange"]:
        """Return the intersection of both ranges, or None if they are disjoint."""
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start > end:
            return None
        return DateRange(start=start, end=end)


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date from the formats found in raw dashboard records.

    Accepted inputs:
        - ``date`` / ``datetime`` / ``pandas.Timestamp`` objects,
        - ``YYYY-MM-DD`` and ``YYYY/MM/DD`` strings,
        - ISO timestamps such as ``2025-05-21T17:00:00.000Z``.

    Returns None for empty or unparseable values instead of raising.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if pd.isna(value):
            return None
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, float) and pd.isna(value):
        return None

    text = str(value).strip()
    if not text:
        return None

    try:
        if "T" in text:
            # fromisoformat only accepts a trailing 'Z' from Python 3.11 on.
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            return datetime.fromisoformat(text).date()
        if "/" in text:
            year, month, day = (int(part) for part in text.split("/"))
            return date(year, month, day)
        return date.fromisoformat(text)
    except ValueError:
        return None


def days_between(start: date, end: date) -> int:
    """Signed number of days from ``start`` to ``end`` (0 for the same day)."""
    return (end - start).days


def month_key(day: date) -> str:
    """Sortable month identifier used as dictionary key (e.g. '2024-01')."""
    return f"{day.year:04d}-{day.month:02d}"


def month_range(year: int, month: int) -> DateRange:
    """Full calendar month as a DateRange."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month!r}, expected 1..12.")
    last_day = monthrange(year, month)[1]
    start = date(year, month, 1)
    return DateRange(
        start=start,
        end=date(year, month, last_day),
        label=month_key(start),
    )


def current_month_range() -> DateRange:
    today = _today()
    return month_range(today.year, today.month)


def _quarter_range(year: int, quarter_index: int) -> DateRange:
    first_month = quarter_index * 3 + 1
    start = date(year, first_month, 1)
    end = month_range(year, first_month + 2).end
    return DateRange(start=start, end=end, label=f"{year} Q{quarter_index + 1}")


def _week_start(day: date) -> date:
    # Weeks run Sunday to Saturday, as on the dashboard calendar.
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _shift_year(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year.
        return day.replace(year=day.year + years, day=28)


def period_range(period: str, reference: Optional[date] = None) -> DateRange:
    """
    Date range for one of the predefined periods around a reference date.

    Args:
        period: One of 'today', 'week', 'month', 'quarter', 'year'.
        reference: Reference date (defaults to today).

    Raises:
        ValueError: if the period name is unknown.
    """
    ref = reference or _today()

    if period == "today":
        return DateRange(start=ref, end=ref, label="Today")
    if period == "week":
        start = _week_start(ref)
        return DateRange(start=start, end=start + timedelta(days=6), label="Week")
    if period == "month":
        return month_range(ref.year, ref.month)
    if period == "quarter":
        return _quarter_range(ref.year, (ref.month - 1) // 3)
    if period == "year":
        return DateRange(
            start=date(ref.year, 1, 1),
            end=date(ref.year, 12, 31),
            label=f"Year {ref.year}",
        )
    raise ValueError(
        f"Unknown period: {period!r}. Expected one of: {', '.join(PERIOD_NAMES)}."
    )


def previous_period_range(
    period: str, reference: Optional[date] = None
) -> Optional[DateRange]:
    """
    The period immediately preceding ``period_range(period, reference)``.

    Returns None when the current period already starts on ``date.min``.
    """
    current = period_range(period, reference)
    if current.start == date.min:
        return None

    if period in ("today", "week"):
        return preceding_range(current)
    if period == "month":
        last = current.start - timedelta(days=1)
        return month_range(last.year, last.month)
    if period == "quarter":
        last = current.start - timedelta(days=1)
        return _quarter_range(last.year, (last.month - 1) // 3)
    # year
    prev_year = current.start.year - 1
    return DateRange(
        start=date(prev_year, 1, 1),
        end=date(prev_year, 12, 31),
        label=f"Year {prev_year}",
    )


def same_period_last_year(period: str, reference: Optional[date] = None) -> DateRange:
    """Year-over-year counterpart of ``period_range(period, reference)``."""
    ref = _shift_year(reference or _today(), -1)
    result = period_range(period, ref)
    return DateRange(start=result.start, end=result.end, label=f"{result.label} (N-1)")


def preceding_range(date_range: DateRange) -> Optional[DateRange]:
    """
    Range of the same length that ends the day before ``date_range`` starts.

    The range is clipped at ``date.min``; None when nothing precedes it.
    """
    if date_range.start == date.min:
        return None
    end = date_range.start - timedelta(days=1)
    span = min(date_range.days - 1, days_between(date.min, end))
    start = end - timedelta(days=span)
    return DateRange(start=start, end=end, label="Previous period")


def custom_range(start_raw: Any, end_raw: Any) -> Optional[DateRange]:
    """
    Build a DateRange from two raw values.

    Unparseable bounds give None (unbounded); swapped bounds are reordered
    rather than rejected, since they usually come from a date picker.
    """
    start = parse_date(start_raw)
    end = parse_date(end_raw)
    if start is None or end is None:
        return None
    if end < start:
        start, end = end, start
    return DateRange(start=start, end=end, label=f"Custom period ({start} → {end})")


def split_by_month(date_range: DateRange) -> list[DateRange]:
    """
    Split a range into consecutive calendar months, clipped to the range.

    The first and last chunks may be partial months; every chunk carries its
    month key as label.
    """
    chunks: list[DateRange] = []
    cursor = date_range.start
    while cursor <= date_range.end:
        month = month_range(cursor.year, cursor.month)
        end = min(month.end, date_range.end)
        chunks.append(DateRange(start=cursor, end=end, label=month.label))
        if end == date_range.end:
            break
        cursor = end + timedelta(days=1)
    return chunks


def fiscal_year(day: date, start_month: int = 1) -> int:
    """Fiscal year a date belongs to, for fiscal years starting on ``start_month``."""
    if day.month < start_month:
        return day.year - 1
    return day.year


def fiscal_year_range(year: int, start_month: int = 1) -> DateRange:
    """Full fiscal year ``year`` as a DateRange."""
    start = date(year, start_month, 1)
    next_start = _shift_year(start, 1)
    return DateRange(
        start=start,
        end=next_start - timedelta(days=1),
        label=f"Fiscal year {year}",
    )


def filter_frame_by_range(
    frame: pd.DataFrame,
    date_range: Optional[DateRange],
    column: str = "date",
) -> pd.DataFrame:
    """
    Filter a records DataFrame to keep only rows dated within the range.

    Rows with a missing date are dropped when a range is given and kept
    when ``date_range`` is None.
    """
    if date_range is None:
        return frame.copy()

    dates = pd.to_datetime(frame[column], errors="coerce")
    mask = (dates >= pd.Timestamp(date_range.start)) & (
        dates <= pd.Timestamp(date_range.end)
    )
    return frame.loc[mask].copy()
