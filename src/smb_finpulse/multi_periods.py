# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Multi-period (monthly) series of revenue, cash expenses and accrued expenses.

This module provides the entry point used to feed time-series charts and
tables: ``compute_monthly_series()`` walks every calendar month of a
reporting range and, for each configured currency, computes

- revenue            : revenue recognized in the month,
- cash_expense       : expenses paid in the month (cash basis),
- accrual_expense    : expenses recognized in the month (accrual basis),
- cash_profit        : revenue - cash_expense,
- accrual_profit     : revenue - accrual_expense,
- difference         : cash_expense - accrual_expense.

The result is a long-format DataFrame with one row per (period_label,
currency), where ``period_label`` is the month key ('YYYY-MM'). Partial
first/last months are clipped to the reporting range.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional, Union

import pandas as pd

from .money import DEFAULT_CURRENCIES, to_amount
from .periods import DateRange, month_key, split_by_month
from .records import ExpenseRecord, RevenueRecord
from .views import accrual_view

SERIES_COLUMNS: list[str] = [
    "period_label",
    "start",
    "end",
    "currency",
    "revenue",
    "cash_expense",
    "accrual_expense",
    "cash_profit",
    "accrual_profit",
    "difference",
]


@dataclass(frozen=True)
class MonthlySeries:
    """
    Multi-period result.

    Attributes
    ----------
    data :
        Long-format DataFrame with the columns listed in SERIES_COLUMNS.
    date_range :
        Range the series covers, or None when there was nothing to cover.
    """

    data: pd.DataFrame
    date_range: Optional[DateRange]

    def for_currency(self, currency: str) -> pd.DataFrame:
        """Rows of one currency, indexed by period_label."""
        rows = self.data[self.data["currency"] == currency]
        return rows.set_index("period_label")


def _records_span(
    expenses: Sequence[ExpenseRecord],
    revenues: Sequence[RevenueRecord],
) -> Optional[DateRange]:
    days = [r.date for r in [*expenses, *revenues] if r.date is not None]
    days.extend(e.validity_end for e in expenses if e.has_valid_window)
    if not days:
        return None
    return DateRange(start=min(days), end=max(days))


def _monthly_totals(
    records: Sequence[Union[ExpenseRecord, RevenueRecord]],
    span: DateRange,
    currency: str,
) -> dict[str, float]:
    """Cash-basis amounts of one currency bucketed by month key."""
    totals: dict[str, float] = {}
    for record in records:
        if record.currency != currency or not span.contains(record.date):
            continue
        key = month_key(record.date)
        totals[key] = totals.get(key, 0.0) + to_amount(record.amount)
    return totals


def compute_monthly_series(
    expenses: Sequence[ExpenseRecord],
    revenues: Sequence[RevenueRecord],
    date_range: Optional[DateRange] = None,
    currencies: Sequence[str] = DEFAULT_CURRENCIES,
) -> MonthlySeries:
    """
    Compute the monthly cash vs accrual series over a range.

    Parameters
    ----------
    expenses :
        Canonical expense records.
    revenues :
        Canonical revenue records.
    date_range :
        Reporting range. When None, the range spans all record dates
        (including the validity windows of allocatable expenses).
    currencies :
        Currencies to report; every month has one row per currency.

    Returns
    -------
    MonthlySeries
        The long-format series. Empty (with the expected columns) when
        there is no range to cover.
    """
    expenses = list(expenses)
    revenues = list(revenues)

    span = date_range if date_range is not None else _records_span(expenses, revenues)
    if span is None:
        return MonthlySeries(data=pd.DataFrame(columns=SERIES_COLUMNS), date_range=None)

    # Each currency is bucketed once over the whole span, then read per month.
    buckets = {
        code: (
            _monthly_totals(revenues, span, code),
            _monthly_totals(expenses, span, code),
            accrual_view(expenses, span, currency=code).by_month,
        )
        for code in currencies
    }

    rows: list[dict[str, Any]] = []
    for month in split_by_month(span):
        for code in currencies:
            revenue_by_month, cash_by_month, accrual_by_month = buckets[code]
            revenue = revenue_by_month.get(month.label, 0.0)
            cash = cash_by_month.get(month.label, 0.0)
            accrual = accrual_by_month.get(month.label, 0.0)
            rows.append(
                {
                    "period_label": month.label,
                    "start": month.start,
                    "end": month.end,
                    "currency": code,
                    "revenue": revenue,
                    "cash_expense": cash,
                    "accrual_expense": accrual,
                    "cash_profit": revenue - cash,
                    "accrual_profit": revenue - accrual,
                    "difference": cash - accrual,
                }
            )

    data = pd.DataFrame(rows, columns=SERIES_COLUMNS)
    return MonthlySeries(data=data, date_range=span)
