from datetime import date, datetime

import pandas as pd
import pytest

import smb_finpulse.periods as periods
from smb_finpulse.periods import DateRange


def test_date_range_rejects_inverted_bounds() -> None:
    """A DateRange whose end precedes its start should be rejected."""
    with pytest.raises(ValueError):
        DateRange(start=date(2024, 2, 1), end=date(2024, 1, 1))


def test_date_range_days_and_overlap_are_inclusive() -> None:
    """Both ends count as days, and overlaps keep both shared ends."""
    january = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))
    window = DateRange(start=date(2024, 1, 20), end=date(2024, 2, 10))

    assert january.days == 31
    assert DateRange(start=date(2024, 1, 5), end=date(2024, 1, 5)).days == 1

    overlap = january.overlap(window)
    assert overlap == DateRange(start=date(2024, 1, 20), end=date(2024, 1, 31))
    assert overlap.days == 12

    february = periods.month_range(2024, 2)
    assert january.overlap(february) is None


def test_parse_date_accepts_dashboard_formats() -> None:
    """Dates, ISO strings, slash dates and ISO timestamps should all parse."""
    assert periods.parse_date(date(2024, 3, 1)) == date(2024, 3, 1)
    assert periods.parse_date(datetime(2024, 3, 1, 15, 30)) == date(2024, 3, 1)
    assert periods.parse_date(pd.Timestamp("2024-03-01")) == date(2024, 3, 1)
    assert periods.parse_date("2024-03-01") == date(2024, 3, 1)
    assert periods.parse_date("2024/03/01") == date(2024, 3, 1)
    assert periods.parse_date("2025-05-21T17:00:00.000Z") == date(2025, 5, 21)


@pytest.mark.parametrize("value", [None, "", "   ", "not a date", "2024-13-01"])
def test_parse_date_returns_none_for_invalid_values(value) -> None:
    assert periods.parse_date(value) is None


def test_month_range_handles_leap_years() -> None:
    feb = periods.month_range(2024, 2)

    assert feb.start == date(2024, 2, 1)
    assert feb.end == date(2024, 2, 29)
    assert feb.label == "2024-02"
    assert periods.month_range(2023, 2).end == date(2023, 2, 28)

    with pytest.raises(ValueError):
        periods.month_range(2024, 13)


def test_period_range_for_predefined_periods() -> None:
    """Weeks start on Sunday; quarters and years are calendar based."""
    ref = date(2024, 5, 15)  # Wednesday

    assert periods.period_range("today", ref) == DateRange(ref, ref)
    assert periods.period_range("week", ref) == DateRange(
        date(2024, 5, 12), date(2024, 5, 18)
    )
    assert periods.period_range("month", ref) == DateRange(
        date(2024, 5, 1), date(2024, 5, 31)
    )
    assert periods.period_range("quarter", ref) == DateRange(
        date(2024, 4, 1), date(2024, 6, 30)
    )
    assert periods.period_range("year", ref) == DateRange(
        date(2024, 1, 1), date(2024, 12, 31)
    )

    with pytest.raises(ValueError):
        periods.period_range("decade", ref)


def test_period_range_defaults_to_today(monkeypatch) -> None:
    """Without a reference date, period_range should use the patched today."""
    monkeypatch.setattr(periods, "_today", lambda: date(2024, 8, 20))

    assert periods.period_range("month").label == "2024-08"
    assert periods.current_month_range() == periods.month_range(2024, 8)


def test_previous_period_range_crosses_year_boundaries() -> None:
    ref = date(2024, 1, 10)

    assert periods.previous_period_range("month", ref) == periods.month_range(2023, 12)
    assert periods.previous_period_range("quarter", ref) == DateRange(
        date(2023, 10, 1), date(2023, 12, 31)
    )
    assert periods.previous_period_range("year", ref) == DateRange(
        date(2023, 1, 1), date(2023, 12, 31)
    )
    assert periods.previous_period_range("today", ref) == DateRange(
        date(2024, 1, 9), date(2024, 1, 9)
    )


def test_same_period_last_year_handles_29_february() -> None:
    result = periods.same_period_last_year("today", date(2024, 2, 29))

    assert result == DateRange(date(2023, 2, 28), date(2023, 2, 28))
    assert result.label.endswith("(N-1)")


def test_preceding_range_has_same_length() -> None:
    current = DateRange(date(2024, 3, 1), date(2024, 3, 31))

    previous = periods.preceding_range(current)

    assert previous.end == date(2024, 2, 29)
    assert previous.days == current.days


def test_preceding_range_at_the_start_of_the_calendar() -> None:
    """Nothing precedes date.min; ranges just after it are clipped."""
    first_days = DateRange(date.min, date(1, 1, 10))
    early = DateRange(date(1, 1, 6), date(1, 1, 20))

    assert periods.preceding_range(first_days) is None
    assert periods.preceding_range(early) == DateRange(date.min, date(1, 1, 5))
    assert periods.previous_period_range("today", date.min) is None


def test_custom_range_swaps_bounds_and_ignores_garbage() -> None:
    swapped = periods.custom_range("2024-03-31", "2024-03-01")

    assert swapped == DateRange(date(2024, 3, 1), date(2024, 3, 31))
    assert periods.custom_range("2024-03-01", "garbage") is None


def test_split_by_month_clips_first_and_last_months() -> None:
    chunks = periods.split_by_month(DateRange(date(2024, 1, 15), date(2024, 3, 10)))

    assert [c.label for c in chunks] == ["2024-01", "2024-02", "2024-03"]
    assert chunks[0] == DateRange(date(2024, 1, 15), date(2024, 1, 31))
    assert chunks[1] == periods.month_range(2024, 2)
    assert chunks[2] == DateRange(date(2024, 3, 1), date(2024, 3, 10))
    assert sum(c.days for c in chunks) == 17 + 29 + 10


def test_split_by_month_reaches_the_last_representable_day() -> None:
    chunks = periods.split_by_month(DateRange(date(9999, 11, 15), date.max))

    assert [c.label for c in chunks] == ["9999-11", "9999-12"]
    assert chunks[-1] == DateRange(date(9999, 12, 1), date.max)


def test_fiscal_year_helpers() -> None:
    assert periods.fiscal_year(date(2024, 3, 31), start_month=4) == 2023
    assert periods.fiscal_year(date(2024, 4, 1), start_month=4) == 2024

    fy = periods.fiscal_year_range(2024, start_month=4)
    assert fy == DateRange(date(2024, 4, 1), date(2025, 3, 31))


def test_filter_frame_by_range_inclusive_bounds() -> None:
    """filter_frame_by_range should keep rows with dates in [start, end]."""
    df = pd.DataFrame(
        {
            "date": pd.to_datetime(
                ["2025-01-01", "2025-02-15", "2025-03-10", "2025-04-01", None]
            ),
            "amount": [10, 20, 5, 15, 30],
        }
    )

    filtered = periods.filter_frame_by_range(
        df, DateRange(date(2025, 2, 1), date(2025, 4, 1))
    )

    assert list(filtered["amount"]) == [20, 5, 15]
    assert len(periods.filter_frame_by_range(df, None)) == 5
