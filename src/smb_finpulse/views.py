# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-flow and accrual views of expenses over a reporting range.

The dashboard shows the same expenses under two lenses:

- cash flow view: each expense is counted in full on its payment date,
- accrual view:   allocatable expenses are spread day by day over their
                  validity window (through ``allocated_amount``), while
                  other expenses are counted on their payment date.

Both views are computed for a single currency and broken down by month
('YYYY-MM') and by category. ``compare_views`` lines them up month by
month, ``reconcile`` explains the gap expense by expense, and the
``*_frame`` helpers return the comparison as DataFrames for tables and
charts. ``cash_flow_trends`` and ``accrual_smoothness`` summarize how the
two views move from month to month.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .allocation import actual_amount, allocated_amount
from .money import DEFAULT_CURRENCY
from .periods import DateRange, month_key, split_by_month
from .records import ExpenseRecord

DEFAULT_LARGE_PAYMENT_THRESHOLD = 10_000_000.0


@dataclass(frozen=True)
class LargePayment:
    expense: ExpenseRecord
    amount: float


@dataclass(frozen=True)
class AllocatedExpense:
    """An allocatable expense and the part of it recognized in the range."""

    expense: ExpenseRecord
    allocated_amount: float
    window_days: int

    @property
    def window_months(self) -> int:
        """Calendar months touched by the validity window."""
        start, end = self.expense.date, self.expense.validity_end
        return (end.year - start.year) * 12 + end.month - start.month + 1


@dataclass(frozen=True)
class CashFlowView:
    currency: str
    date_range: Optional[DateRange]
    total: float
    by_month: dict[str, float]
    by_category: dict[str, float]
    large_payments: list[LargePayment]


@dataclass(frozen=True)
class AccrualView:
    currency: str
    date_range: Optional[DateRange]
    total: float
    by_month: dict[str, float]
    by_category: dict[str, float]
    allocated_expenses: list[AllocatedExpense]


@dataclass(frozen=True)
class MonthlyDifference:
    cash_flow: float
    accrual: float

    @property
    def difference(self) -> float:
        return self.cash_flow - self.accrual


@dataclass(frozen=True)
class ViewComparison:
    """
    Side-by-side totals of a cash flow view and an accrual view.

    Attributes:
        total_difference: cash flow total - accrual total.
        percent_difference: total_difference / accrual total * 100, 0 when
            the accrual total is 0.
        monthly_differences: {month -> MonthlyDifference}, months sorted.
    """

    currency: str
    date_range: Optional[DateRange]
    cash_flow_total: float
    accrual_total: float
    total_difference: float
    percent_difference: float
    monthly_differences: dict[str, MonthlyDifference]


@dataclass(frozen=True)
class TimingAdjustment:
    """Cash vs accrual gap caused by one allocatable expense."""

    expense: ExpenseRecord
    cash_amount: float
    accrued_amount: float

    @property
    def amount(self) -> float:
        return self.cash_amount - self.accrued_amount


@dataclass(frozen=True)
class Reconciliation:
    adjustments: list[TimingAdjustment]
    explained_difference: float
    unexplained_difference: float
    significant_months: list[str]


@dataclass(frozen=True)
class MonthlyChange:
    """Month-over-month change of cash flow, in percent of the previous month."""

    month: str
    change: float
    value: float


@dataclass(frozen=True)
class CashFlowTrends:
    average: float
    max_month: str
    max_value: float
    min_month: str
    min_value: float
    volatility: float
    monthly_changes: list[MonthlyChange]


@dataclass(frozen=True)
class AccrualSmoothness:
    """
    How evenly accrued costs are spread over the months of a view.

    ``label`` is 'very_smooth' (coefficient <= 0.25), 'fairly_smooth'
    (<= 0.5), 'uneven' (above), or 'n/a' with fewer than two months.
    """

    label: str
    coefficient: float


def _add(bucket: dict[str, float], key: str, amount: float) -> None:
    bucket[key] = bucket.get(key, 0.0) + amount


def cash_flow_view(
    expenses: Iterable[ExpenseRecord],
    date_range: Optional[DateRange] = None,
    currency: str = DEFAULT_CURRENCY,
    large_payment_threshold: float = DEFAULT_LARGE_PAYMENT_THRESHOLD,
) -> CashFlowView:
    """
    Money actually paid out in ``date_range`` (all time when None).

    Payments strictly above ``large_payment_threshold`` are listed in
    ``large_payments``.
    """
    total = 0.0
    by_month: dict[str, float] = {}
    by_category: dict[str, float] = {}
    large_payments: list[LargePayment] = []

    for expense in expenses:
        if expense.currency != currency:
            continue
        amount = actual_amount(expense, date_range)
        if not amount:
            continue

        total += amount
        _add(by_month, month_key(expense.date), amount)
        _add(by_category, expense.category, amount)

        if amount > large_payment_threshold:
            large_payments.append(LargePayment(expense=expense, amount=amount))

    return CashFlowView(
        currency=currency,
        date_range=date_range,
        total=total,
        by_month=dict(sorted(by_month.items())),
        by_category=by_category,
        large_payments=large_payments,
    )


def accrual_view(
    expenses: Iterable[ExpenseRecord],
    date_range: Optional[DateRange] = None,
    currency: str = DEFAULT_CURRENCY,
) -> AccrualView:
    """
    Expenses recognized in ``date_range`` on an accrual basis.

    Allocatable expenses with a valid window contribute their prorated share
    to every month the window overlaps; any other expense is recognized in
    full on its payment date.
    """
    total = 0.0
    by_month: dict[str, float] = {}
    by_category: dict[str, float] = {}
    allocated_expenses: list[AllocatedExpense] = []

    for expense in expenses:
        if expense.currency != currency:
            continue

        if not expense.has_valid_window:
            amount = actual_amount(expense, date_range)
            if amount:
                total += amount
                _add(by_month, month_key(expense.date), amount)
                _add(by_category, expense.category, amount)
            continue

        window = DateRange(start=expense.date, end=expense.validity_end)
        overlap = window if date_range is None else window.overlap(date_range)
        if overlap is None:
            continue

        allocated = 0.0
        for chunk in split_by_month(overlap):
            share = allocated_amount(expense, chunk)
            _add(by_month, chunk.label, share)
            allocated += share

        total += allocated
        _add(by_category, expense.category, allocated)
        allocated_expenses.append(
            AllocatedExpense(
                expense=expense,
                allocated_amount=allocated,
                window_days=window.days,
            )
        )

    return AccrualView(
        currency=currency,
        date_range=date_range,
        total=total,
        by_month=dict(sorted(by_month.items())),
        by_category=by_category,
        allocated_expenses=allocated_expenses,
    )


def compare_views(cash_flow: CashFlowView, accrual: AccrualView) -> ViewComparison:
    """Line up both views and compute their total and monthly differences."""
    total_difference = cash_flow.total - accrual.total
    if accrual.total == 0:
        percent_difference = 0.0
    else:
        percent_difference = total_difference / accrual.total * 100

    months = sorted(set(cash_flow.by_month) | set(accrual.by_month))
    monthly = {
        month: MonthlyDifference(
            cash_flow=cash_flow.by_month.get(month, 0.0),
            accrual=accrual.by_month.get(month, 0.0),
        )
        for month in months
    }

    return ViewComparison(
        currency=cash_flow.currency,
        date_range=cash_flow.date_range,
        cash_flow_total=cash_flow.total,
        accrual_total=accrual.total,
        total_difference=total_difference,
        percent_difference=percent_difference,
        monthly_differences=monthly,
    )


def reconcile(
    expenses: Iterable[ExpenseRecord],
    comparison: ViewComparison,
    significant_share: float = 0.2,
) -> Reconciliation:
    """
    Explain the cash vs accrual gap of ``comparison``.

    Every allocatable expense paid or accrued in the range yields a timing
    adjustment (cash amount - accrued amount). Their sum is the explained
    difference; whatever remains is unexplained and should be 0 up to
    rounding. Months whose difference exceeds ``significant_share`` of the
    total difference (in absolute value) are reported as significant.
    """
    adjustments: list[TimingAdjustment] = []
    for expense in expenses:
        if expense.currency != comparison.currency or not expense.has_valid_window:
            continue
        cash = actual_amount(expense, comparison.date_range)
        accrued = allocated_amount(expense, comparison.date_range)
        if cash or accrued:
            adjustments.append(
                TimingAdjustment(
                    expense=expense, cash_amount=cash, accrued_amount=accrued
                )
            )

    explained = sum(adj.amount for adj in adjustments)
    limit = abs(comparison.total_difference) * significant_share
    significant = [
        month
        for month, diff in comparison.monthly_differences.items()
        if diff.difference and abs(diff.difference) > limit
    ]

    return Reconciliation(
        adjustments=adjustments,
        explained_difference=explained,
        unexplained_difference=comparison.total_difference - explained,
        significant_months=significant,
    )


def _percent_of_cash(difference: float, cash_flow: float) -> float:
    return difference / cash_flow * 100 if cash_flow > 0 else 0.0


def comparison_frame(comparison: ViewComparison) -> pd.DataFrame:
    """
    Monthly comparison table.

    Columns: month, cash_flow, accrual, difference, percent_difference
    (difference relative to cash flow), cash_flow_cumulative,
    accrual_cumulative. One row per month, in chronological order.
    """
    columns = ["month", "cash_flow", "accrual", "difference", "percent_difference"]
    rows = [
        {
            "month": month,
            "cash_flow": diff.cash_flow,
            "accrual": diff.accrual,
            "difference": diff.difference,
            "percent_difference": _percent_of_cash(diff.difference, diff.cash_flow),
        }
        for month, diff in comparison.monthly_differences.items()
    ]
    frame = pd.DataFrame(rows, columns=columns)
    frame["cash_flow_cumulative"] = frame["cash_flow"].cumsum()
    frame["accrual_cumulative"] = frame["accrual"].cumsum()
    return frame


def category_comparison_frame(
    cash_flow: CashFlowView,
    accrual: AccrualView,
) -> pd.DataFrame:
    """
    Per-category comparison table, categories with no amount in either view dropped.

    Columns: category, cash_flow, accrual, difference, percent_difference.
    """
    categories = list(dict.fromkeys([*cash_flow.by_category, *accrual.by_category]))
    rows = []
    for category in categories:
        cf = cash_flow.by_category.get(category, 0.0)
        ac = accrual.by_category.get(category, 0.0)
        if cf <= 0 and ac <= 0:
            continue
        rows.append(
            {
                "category": category,
                "cash_flow": cf,
                "accrual": ac,
                "difference": cf - ac,
                "percent_difference": _percent_of_cash(cf - ac, cf),
            }
        )
    return pd.DataFrame(
        rows,
        columns=[
            "category", "cash_flow", "accrual", "difference", "percent_difference"
        ],
    )


def cash_flow_trends(cash_flow: CashFlowView) -> Optional[CashFlowTrends]:
    """
    Average, extremes, volatility and month-over-month changes of a cash flow view.

    Only months with payments are considered; None with fewer than two.
    A change against a month of 0 is reported as 0.
    """
    months = list(cash_flow.by_month)
    if len(months) < 2:
        return None

    values = [cash_flow.by_month[m] for m in months]
    max_value = max(values)
    min_value = min(values)

    changes = [
        MonthlyChange(
            month=months[i],
            change=_percent_change(values[i], values[i - 1]),
            value=values[i],
        )
        for i in range(1, len(values))
    ]

    return CashFlowTrends(
        average=sum(values) / len(values),
        max_month=months[values.index(max_value)],
        max_value=max_value,
        min_month=months[values.index(min_value)],
        min_value=min_value,
        volatility=max_value - min_value,
        monthly_changes=changes,
    )


def _percent_change(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def accrual_smoothness(accrual: AccrualView) -> AccrualSmoothness:
    """Coefficient of variation of the monthly accrued amounts."""
    if len(accrual.by_month) < 2:
        return AccrualSmoothness(label="n/a", coefficient=0.0)

    values = pd.Series(list(accrual.by_month.values()), dtype=float)
    mean = float(values.mean())
    coefficient = float(values.std(ddof=0)) / mean if mean > 0 else 0.0

    if coefficient > 0.5:
        label = "uneven"
    elif coefficient > 0.25:
        label = "fairly_smooth"
    else:
        label = "very_smooth"
    return AccrualSmoothness(label=label, coefficient=coefficient)
