# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Monthly expense breakdown: allocated (accrual) vs actual (cash) amounts.

For a target calendar month, every expense is evaluated once against the
month's range with both recognition rules of allocation.py. The result
holds:

- per-currency allocated/actual totals,
- per-category, per-currency allocated/actual totals,
- drill-down detail lists with only the non-zero contributions,
- optionally, grand totals converted into a base currency.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from .allocation import actual_amount, allocated_amount
from .money import DEFAULT_CURRENCIES, convert_totals
from .periods import DateRange, current_month_range, month_range
from .records import ExpenseRecord


@dataclass(frozen=True)
class CurrencyBreakdown:
    allocated: float = 0.0
    actual: float = 0.0


@dataclass(frozen=True)
class BreakdownDetail:
    """One non-zero contribution of an expense to the month."""

    expense: ExpenseRecord
    amount: float

    @property
    def currency(self) -> str:
        return self.expense.currency


@dataclass(frozen=True)
class MonthlyBreakdown:
    """
    Allocated vs actual expenses for one calendar month.

    Attributes
    ----------
    target_month :
        Month label ('YYYY-MM').
    date_range :
        Full calendar month the amounts were computed for.
    currency_breakdown :
        {currency -> CurrencyBreakdown}, every configured currency present.
    category_breakdown :
        {category -> {currency -> CurrencyBreakdown}} for categories with at
        least one non-zero contribution.
    allocated_details / actual_details :
        Non-zero contributions, in input order.
    total_allocated / total_actual :
        Grand totals in the base currency when an exchange-rate table was
        given, else None.
    """

    target_month: str
    date_range: DateRange
    currency_breakdown: dict[str, CurrencyBreakdown]
    category_breakdown: dict[str, dict[str, CurrencyBreakdown]]
    allocated_details: list[BreakdownDetail]
    actual_details: list[BreakdownDetail]
    total_allocated: Optional[float] = None
    total_actual: Optional[float] = None

    def allocated_totals(self) -> dict[str, float]:
        return {code: b.allocated for code, b in self.currency_breakdown.items()}

    def actual_totals(self) -> dict[str, float]:
        return {code: b.actual for code, b in self.currency_breakdown.items()}


def monthly_breakdown(
    expenses: Iterable[ExpenseRecord],
    year: Optional[int] = None,
    month: Optional[int] = None,
    currencies: Sequence[str] = DEFAULT_CURRENCIES,
    exchange_rates: Optional[Mapping[str, float]] = None,
) -> MonthlyBreakdown:
    """
    Build the allocated/actual breakdown of ``expenses`` for one month.

    Args:
        expenses: Canonical expense records.
        year, month: Target month; each defaults to the current one.
        currencies: Currency codes always present in ``currency_breakdown``.
            Expenses in other currencies are ignored.
        exchange_rates: Optional {currency -> rate} table used to compute
            the converted grand totals.

    Raises:
        ValueError: if ``month`` is not within 1..12.
    """
    if year is None or month is None:
        current = current_month_range().start
        year = current.year if year is None else year
        month = current.month if month is None else month
    target = month_range(year, month)

    allocated: dict[str, float] = {code: 0.0 for code in currencies}
    actual: dict[str, float] = {code: 0.0 for code in currencies}
    by_category: dict[str, dict[str, list[float]]] = {}
    allocated_details: list[BreakdownDetail] = []
    actual_details: list[BreakdownDetail] = []

    for expense in expenses:
        code = expense.currency
        if code not in allocated:
            continue

        alloc = allocated_amount(expense, target)
        paid = actual_amount(expense, target)

        allocated[code] += alloc
        actual[code] += paid

        if alloc:
            allocated_details.append(BreakdownDetail(expense=expense, amount=alloc))
        if paid:
            actual_details.append(BreakdownDetail(expense=expense, amount=paid))

        if alloc or paid:
            cell = by_category.setdefault(expense.category, {}).setdefault(
                code, [0.0, 0.0]
            )
            cell[0] += alloc
            cell[1] += paid

    total_allocated: Optional[float] = None
    total_actual: Optional[float] = None
    if exchange_rates is not None:
        total_allocated = convert_totals(allocated, exchange_rates)
        total_actual = convert_totals(actual, exchange_rates)

    return MonthlyBreakdown(
        target_month=target.label,
        date_range=target,
        currency_breakdown={
            code: CurrencyBreakdown(allocated=allocated[code], actual=actual[code])
            for code in currencies
        },
        category_breakdown={
            category: {
                code: CurrencyBreakdown(allocated=values[0], actual=values[1])
                for code, values in cells.items()
            }
            for category, cells in by_category.items()
        },
        allocated_details=allocated_details,
        actual_details=actual_details,
        total_allocated=total_allocated,
        total_actual=total_actual,
    )
