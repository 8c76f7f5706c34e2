from datetime import date

import pytest

from smb_finpulse.allocation import actual_amount, allocated_amount, daily_rate
from smb_finpulse.periods import DateRange, month_range
from smb_finpulse.records import ExpenseRecord

JANUARY_2024 = DateRange(date(2024, 1, 1), date(2024, 1, 31))


def _prepaid(amount: float, start: date, end: date, **kwargs) -> ExpenseRecord:
    return ExpenseRecord(
        amount=amount,
        currency=kwargs.pop("currency", "VND"),
        date=start,
        category=kwargs.pop("category", "Hosting"),
        is_allocatable=True,
        validity_end=end,
        **kwargs,
    )


def test_allocated_amount_prorates_per_day() -> None:
    """32-day window, 31 days in January: 31 * 1,200,000 / 32."""
    expense = _prepaid(1_200_000, date(2024, 1, 1), date(2024, 2, 1))

    assert daily_rate(expense) == pytest.approx(37_500.0)
    assert allocated_amount(expense, JANUARY_2024) == pytest.approx(1_162_500.0)
    assert allocated_amount(expense, month_range(2024, 2)) == pytest.approx(37_500.0)


def test_actual_amount_is_all_or_nothing() -> None:
    expense = _prepaid(1_200_000, date(2024, 1, 1), date(2024, 2, 1))

    assert actual_amount(expense, JANUARY_2024) == 1_200_000.0
    assert actual_amount(expense, month_range(2024, 2)) == 0.0
    assert actual_amount(expense, None) == 1_200_000.0


def test_allocated_amount_is_conserved_over_a_year() -> None:
    """Summing monthly allocations over the covering months gives the amount back."""
    expense = _prepaid(3_650_000, date(2024, 3, 17), date(2024, 11, 2))

    total = sum(allocated_amount(expense, month_range(2024, m)) for m in range(1, 13))

    assert total == pytest.approx(3_650_000)


def test_allocated_amount_without_range_recognizes_whole_window() -> None:
    expense = _prepaid(900, date(2024, 1, 1), date(2024, 3, 31))

    assert allocated_amount(expense, None) == pytest.approx(900)


@pytest.mark.parametrize(
    "expense",
    [
        ExpenseRecord(amount=1000, date=date(2024, 1, 1)),
        ExpenseRecord(
            amount=1000,
            date=date(2024, 1, 1),
            is_allocatable=True,
            validity_end=None,
        ),
        ExpenseRecord(
            amount=1000,
            date=date(2024, 1, 10),
            is_allocatable=True,
            validity_end=date(2024, 1, 10),
        ),
        ExpenseRecord(
            amount=1000,
            date=date(2024, 1, 10),
            is_allocatable=True,
            validity_end=date(2024, 1, 1),
        ),
    ],
)
def test_allocated_amount_is_zero_without_valid_window(expense) -> None:
    assert daily_rate(expense) == 0.0
    assert allocated_amount(expense, JANUARY_2024) == 0.0


def test_allocated_amount_bounded_by_expense_amount() -> None:
    expense = _prepaid(500, date(2023, 12, 15), date(2024, 1, 14))
    year = DateRange(date(2023, 1, 1), date(2024, 12, 31))

    assert 0 <= allocated_amount(expense, JANUARY_2024) <= 500
    assert allocated_amount(expense, year) == pytest.approx(500)
    june = DateRange(date(2024, 6, 1), date(2024, 6, 30))
    assert allocated_amount(expense, june) == 0


def test_actual_amount_ignores_undated_expenses() -> None:
    assert actual_amount(ExpenseRecord(amount=100), JANUARY_2024) == 0.0
    assert actual_amount(ExpenseRecord(amount=100), None) == 0.0
