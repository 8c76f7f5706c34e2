from datetime import date

import pytest

import smb_finpulse.periods as periods
from smb_finpulse.breakdown import CurrencyBreakdown, monthly_breakdown
from smb_finpulse.records import ExpenseRecord


def _expenses() -> list[ExpenseRecord]:
    return [
        ExpenseRecord(
            amount=1_200_000,
            currency="VND",
            date=date(2024, 1, 1),
            category="Hosting",
            is_allocatable=True,
            validity_end=date(2024, 2, 1),
        ),
        ExpenseRecord(
            amount=300_000, currency="VND", date=date(2024, 1, 15), category="Ads"
        ),
        ExpenseRecord(amount=20, currency="USD", date=date(2024, 2, 2), category="Ads"),
        ExpenseRecord(amount=5, currency="EUR", date=date(2024, 1, 3), category="Ads"),
    ]


def test_monthly_breakdown_allocated_vs_actual() -> None:
    """January: the prepaid hosting is partly allocated and fully paid."""
    result = monthly_breakdown(_expenses(), year=2024, month=1)

    assert result.target_month == "2024-01"
    assert result.date_range == periods.month_range(2024, 1)
    assert set(result.currency_breakdown) == {"VND", "USD", "NGN"}

    vnd = result.currency_breakdown["VND"]
    assert vnd.allocated == pytest.approx(1_162_500.0)
    assert vnd.actual == pytest.approx(1_500_000.0)
    assert result.currency_breakdown["USD"] == CurrencyBreakdown(0.0, 0.0)

    hosting = result.category_breakdown["Hosting"]["VND"]
    assert hosting.allocated == pytest.approx(1_162_500.0)
    assert hosting.actual == pytest.approx(1_200_000.0)
    assert result.category_breakdown["Ads"]["VND"].allocated == 0.0

    assert [d.expense.category for d in result.allocated_details] == ["Hosting"]
    assert [d.amount for d in result.actual_details] == [1_200_000.0, 300_000.0]
    assert result.total_allocated is None


def test_monthly_breakdown_following_month() -> None:
    result = monthly_breakdown(_expenses(), year=2024, month=2)

    assert result.allocated_totals()["VND"] == pytest.approx(37_500.0)
    assert result.actual_totals() == {"VND": 0.0, "USD": 20.0, "NGN": 0.0}
    assert "EUR" not in result.currency_breakdown
    assert result.actual_details[0].currency == "USD"


def test_monthly_breakdown_converted_totals() -> None:
    result = monthly_breakdown(
        _expenses(),
        year=2024,
        month=2,
        exchange_rates={"VND": 1.0, "USD": 25_000.0, "NGN": 15.0},
    )

    assert result.total_allocated == pytest.approx(37_500.0)
    assert result.total_actual == pytest.approx(500_000.0)


def test_monthly_breakdown_defaults_to_current_month(monkeypatch) -> None:
    monkeypatch.setattr(periods, "_today", lambda: date(2024, 2, 14))

    result = monthly_breakdown(_expenses())

    assert result.target_month == "2024-02"


def test_monthly_breakdown_rejects_invalid_month() -> None:
    with pytest.raises(ValueError):
        monthly_breakdown(_expenses(), year=2024, month=0)
