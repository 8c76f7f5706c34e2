from datetime import date

import pytest

from smb_finpulse.io import normalize_expense
from smb_finpulse.periods import DateRange, month_range
from smb_finpulse.records import ExpenseRecord
from smb_finpulse.views import (
    AccrualView,
    MonthlyDifference,
    accrual_smoothness,
    accrual_view,
    cash_flow_trends,
    cash_flow_view,
    category_comparison_frame,
    compare_views,
    comparison_frame,
    reconcile,
)

JANUARY_2024 = month_range(2024, 1)
Q1_2024 = DateRange(date(2024, 1, 1), date(2024, 3, 31))


def _hosting() -> ExpenseRecord:
    return ExpenseRecord(
        amount=1_200_000,
        currency="VND",
        date=date(2024, 1, 1),
        category="Hosting",
        is_allocatable=True,
        validity_end=date(2024, 2, 1),
    )


def _expenses() -> list[ExpenseRecord]:
    return [
        _hosting(),
        ExpenseRecord(
            amount=12_000_000,
            currency="VND",
            date=date(2024, 1, 10),
            category="Licences",
            is_allocatable=True,
            validity_end=date(2024, 12, 31),
        ),
        ExpenseRecord(
            amount=400_000, currency="VND", date=date(2024, 2, 5), category="Ads"
        ),
        ExpenseRecord(amount=99, currency="USD", date=date(2024, 1, 5), category="Ads"),
        # Flagged for allocation but without a renewal date: recognized as paid.
        ExpenseRecord(
            amount=10_000_000,
            currency="VND",
            date=date(2024, 3, 1),
            category="Equipment",
            is_allocatable=True,
        ),
    ]


def test_cash_flow_view_counts_payments_in_full() -> None:
    view = cash_flow_view([_hosting()], JANUARY_2024)

    assert view.total == 1_200_000.0
    assert view.by_month == {"2024-01": 1_200_000.0}
    assert view.by_category == {"Hosting": 1_200_000.0}
    assert view.large_payments == []


def test_cash_flow_view_large_payments_strictly_above_threshold() -> None:
    view = cash_flow_view(_expenses(), Q1_2024)

    assert [p.amount for p in view.large_payments] == [12_000_000.0]
    assert view.total == pytest.approx(1_200_000 + 12_000_000 + 400_000 + 10_000_000)
    assert list(view.by_month) == ["2024-01", "2024-02", "2024-03"]


def test_accrual_view_spreads_allocatable_expenses() -> None:
    view = accrual_view([_hosting()], JANUARY_2024)

    assert view.total == pytest.approx(1_162_500.0)
    assert view.by_month == {"2024-01": pytest.approx(1_162_500.0)}
    assert len(view.allocated_expenses) == 1
    assert view.allocated_expenses[0].window_days == 32


def test_accrual_view_without_range_recognizes_everything() -> None:
    view = accrual_view([_hosting()], None)

    assert view.total == pytest.approx(1_200_000.0)
    assert view.by_month["2024-01"] == pytest.approx(1_162_500.0)
    assert view.by_month["2024-02"] == pytest.approx(37_500.0)


def test_accrual_view_falls_back_to_payment_date_without_window() -> None:
    view = accrual_view(_expenses(), Q1_2024)

    assert view.by_category["Equipment"] == 10_000_000.0
    assert view.by_category["Ads"] == 400_000.0
    assert [a.expense.category for a in view.allocated_expenses] == [
        "Hosting",
        "Licences",
    ]


def test_views_are_single_currency() -> None:
    cash = cash_flow_view(_expenses(), Q1_2024, currency="USD")
    accrual = accrual_view(_expenses(), Q1_2024, currency="USD")

    assert cash.total == 99.0
    assert accrual.total == 99.0
    assert cash.currency == accrual.currency == "USD"


def test_compare_views_totals_and_months() -> None:
    cash = cash_flow_view([_hosting()], None)
    accrual = accrual_view([_hosting()], None)

    comparison = compare_views(cash, accrual)

    assert comparison.total_difference == pytest.approx(0.0)
    assert list(comparison.monthly_differences) == ["2024-01", "2024-02"]
    jan = comparison.monthly_differences["2024-01"]
    assert jan.difference == pytest.approx(37_500.0)
    assert comparison.monthly_differences["2024-02"].cash_flow == 0.0


def test_compare_views_percent_difference_relative_to_accrual() -> None:
    cash = cash_flow_view([_hosting()], JANUARY_2024)
    accrual = accrual_view([_hosting()], JANUARY_2024)

    comparison = compare_views(cash, accrual)

    assert comparison.total_difference == pytest.approx(37_500.0)
    assert comparison.percent_difference == pytest.approx(37_500 / 1_162_500 * 100)


def test_compare_views_zero_accrual_gives_zero_percent() -> None:
    cash = cash_flow_view([], JANUARY_2024)
    accrual = accrual_view([], JANUARY_2024)

    comparison = compare_views(cash, accrual)

    assert comparison.percent_difference == 0.0
    assert comparison.monthly_differences == {}


def test_reconcile_explains_the_whole_difference() -> None:
    """Timing adjustments of allocatable expenses add up to the gap."""
    expenses = _expenses()
    comparison = compare_views(
        cash_flow_view(expenses, Q1_2024), accrual_view(expenses, Q1_2024)
    )

    result = reconcile(expenses, comparison)

    assert [adj.expense.category for adj in result.adjustments] == [
        "Hosting",
        "Licences",
    ]
    assert result.explained_difference == pytest.approx(comparison.total_difference)
    assert result.unexplained_difference == pytest.approx(0.0, abs=1e-6)
    assert "2024-01" in result.significant_months


def test_comparison_frame_has_cumulative_columns() -> None:
    cash = cash_flow_view([_hosting()], None)
    accrual = accrual_view([_hosting()], None)

    frame = comparison_frame(compare_views(cash, accrual))

    assert list(frame["month"]) == ["2024-01", "2024-02"]
    assert frame["cash_flow_cumulative"].iloc[-1] == pytest.approx(1_200_000.0)
    assert frame["accrual_cumulative"].iloc[-1] == pytest.approx(1_200_000.0)
    # No cash paid in February: percentage relative to cash flow falls back to 0.
    assert frame["percent_difference"].iloc[1] == 0.0


def test_category_comparison_frame() -> None:
    expenses = _expenses()
    frame = category_comparison_frame(
        cash_flow_view(expenses, JANUARY_2024), accrual_view(expenses, JANUARY_2024)
    ).set_index("category")

    assert set(frame.index) == {"Hosting", "Licences"}
    assert frame.loc["Hosting", "difference"] == pytest.approx(37_500.0)


def test_monthly_difference_sign() -> None:
    assert MonthlyDifference(cash_flow=10.0, accrual=25.0).difference == -15.0


def test_accrual_view_with_renewal_on_the_last_representable_day() -> None:
    """A renewal date of 9999-12-31 is allocated up to the end of the calendar."""
    record = normalize_expense(
        {
            "soTien": "1200000",
            "ngayTao": "2024-01-01",
            "phanBo": "Có",
            "ngayTaiTuc": "9999-12-31",
        }
    )

    view = accrual_view([record], None)

    assert view.total == pytest.approx(1_200_000.0)
    assert next(iter(view.by_month)) == "2024-01"
    assert list(view.by_month)[-1] == "9999-12"
    assert view.allocated_expenses[0].window_months == (9999 - 2024) * 12 + 12


def test_allocated_expense_window_months_counts_touched_months() -> None:
    view = accrual_view([_hosting()], None)

    assert view.allocated_expenses[0].window_months == 2


def test_cash_flow_trends() -> None:
    trends = cash_flow_trends(cash_flow_view(_expenses(), Q1_2024))

    assert trends.average == pytest.approx(23_600_000 / 3)
    assert (trends.max_month, trends.max_value) == ("2024-01", 13_200_000.0)
    assert (trends.min_month, trends.min_value) == ("2024-02", 400_000.0)
    assert trends.volatility == pytest.approx(12_800_000.0)
    assert [c.month for c in trends.monthly_changes] == ["2024-02", "2024-03"]
    assert trends.monthly_changes[0].change == pytest.approx(-96.9697, rel=1e-4)
    assert trends.monthly_changes[1].change == pytest.approx(2400.0)
    assert trends.monthly_changes[1].value == 10_000_000.0


def test_cash_flow_trends_needs_two_months() -> None:
    assert cash_flow_trends(cash_flow_view([_hosting()], JANUARY_2024)) is None


def _accrual_by_month(by_month: dict[str, float]) -> AccrualView:
    return AccrualView(
        currency="VND",
        date_range=None,
        total=sum(by_month.values()),
        by_month=by_month,
        by_category={},
        allocated_expenses=[],
    )


@pytest.mark.parametrize(
    "by_month, label, coefficient",
    [
        ({"2024-01": 100.0, "2024-02": 100.0}, "very_smooth", 0.0),
        ({"2024-01": 100.0, "2024-02": 200.0}, "fairly_smooth", 1 / 3),
        ({"2024-01": 1_162_500.0, "2024-02": 37_500.0}, "uneven", 0.9375),
        ({"2024-01": 100.0}, "n/a", 0.0),
    ],
)
def test_accrual_smoothness(by_month, label, coefficient) -> None:
    smoothness = accrual_smoothness(_accrual_by_month(by_month))

    assert smoothness.label == label
    assert smoothness.coefficient == pytest.approx(coefficient)
