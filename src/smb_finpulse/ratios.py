# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Computation of financial ratios and growth rates for SMB FinPulse.

1. Financial analysis
   -------------------
   ``analyze(revenue_totals, expense_totals)`` derives, for every currency:

       profit         = revenue - expense
       profit_margin  = profit / revenue * 100     (0 when revenue is 0)
       expense_ratio  = expense / revenue * 100    (0 when revenue is 0)

   and a consolidated summary across currencies (total revenue, total
   expenses, total profit, overall margin).

   The consolidated summary is only meaningful with an exchange-rate table.
   Without one, amounts of different currencies are summed as raw numbers,
   which reproduces the historical dashboard figure; the summary is then
   flagged with ``is_converted=False`` and a warning is logged whenever
   more than one currency is involved.

2. Growth rates
   -------------
   ``growth_rate(current, previous)`` compares two scalar values and returns
   a signed direction plus an absolute percentage. When the previous value
   is 0 the comparison is flagged as "new":

       previous == 0 and current > 0   -> 100 %, 'up',      is_new
       previous == 0 and current <= 0  ->   0 %, 'neutral', is_new

   ``period_growth`` applies it per currency between two reporting periods.

Division by zero never produces NaN or infinity: every such branch returns
an explicit value.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from .aggregation import Record, currency_totals
from .money import DEFAULT_CURRENCIES, convert_totals, to_amount
from .periods import DateRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinancialSummary:
    """
    Consolidated figures across all currencies.

    Attributes:
        total_revenue: Sum of revenue over all currencies.
        total_expenses: Sum of expenses over all currencies.
        total_profit: total_revenue - total_expenses.
        overall_margin: total_profit / total_revenue * 100 (0 without revenue).
        is_converted: True when amounts were converted with exchange rates.
        base_currency: Currency the totals are expressed in, when converted.
    """

    total_revenue: float
    total_expenses: float
    total_profit: float
    overall_margin: float
    is_converted: bool
    base_currency: Optional[str] = None


@dataclass(frozen=True)
class FinancialAnalysis:
    """Per-currency profit, margin and expense ratio plus the consolidated summary."""

    profit: dict[str, float]
    profit_margin: dict[str, float]
    expense_ratio: dict[str, float]
    summary: FinancialSummary


@dataclass(frozen=True)
class GrowthRate:
    """Absolute growth percentage with its direction ('up', 'down', 'neutral')."""

    rate: float
    direction: str
    is_new: bool


def _percent(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


def _summary(
    revenue_totals: Mapping[str, float],
    expense_totals: Mapping[str, float],
    exchange_rates: Optional[Mapping[str, float]],
    base_currency: Optional[str],
) -> FinancialSummary:
    total_revenue: Optional[float] = None
    total_expenses: Optional[float] = None

    if exchange_rates is not None:
        total_revenue = convert_totals(revenue_totals, exchange_rates)
        total_expenses = convert_totals(expense_totals, exchange_rates)

    if total_revenue is not None and total_expenses is not None:
        is_converted = True
    else:
        is_converted = False
        base_currency = None
        total_revenue = sum(to_amount(v) for v in revenue_totals.values())
        total_expenses = sum(to_amount(v) for v in expense_totals.values())

        active = {
            code
            for totals in (revenue_totals, expense_totals)
            for code, value in totals.items()
            if to_amount(value)
        }
        if len(active) > 1:
            logger.warning(
                "Consolidated summary adds amounts in %s without conversion; "
                "configure exchange rates to get a meaningful total.",
                ", ".join(sorted(active)),
            )

    total_profit = total_revenue - total_expenses
    return FinancialSummary(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        total_profit=total_profit,
        overall_margin=_percent(total_profit, total_revenue),
        is_converted=is_converted,
        base_currency=base_currency,
    )


def analyze(
    revenue_totals: Mapping[str, float],
    expense_totals: Mapping[str, float],
    exchange_rates: Optional[Mapping[str, float]] = None,
    base_currency: Optional[str] = None,
) -> FinancialAnalysis:
    """
    Derive profit, margins and ratios from revenue and expense totals.

    Args:
        revenue_totals: Revenue per currency.
        expense_totals: Expenses per currency.
        exchange_rates: Optional {currency -> rate in base currency} table
            used for the consolidated summary.
        base_currency: Label of the currency the rates convert into.

    Returns:
        A FinancialAnalysis. Every currency appearing in either input is
        present in the per-currency mappings.
    """
    currencies = list(dict.fromkeys([*revenue_totals, *expense_totals]))

    profit: dict[str, float] = {}
    profit_margin: dict[str, float] = {}
    expense_ratio: dict[str, float] = {}

    for code in currencies:
        revenue = to_amount(revenue_totals.get(code, 0.0))
        expense = to_amount(expense_totals.get(code, 0.0))

        profit[code] = revenue - expense
        profit_margin[code] = _percent(revenue - expense, revenue)
        expense_ratio[code] = _percent(expense, revenue)

    return FinancialAnalysis(
        profit=profit,
        profit_margin=profit_margin,
        expense_ratio=expense_ratio,
        summary=_summary(revenue_totals, expense_totals, exchange_rates, base_currency),
    )


def growth_rate(current: Any, previous: Any) -> GrowthRate:
    """
    Compare a current and a previous value.

    Numeric strings are accepted; anything unparseable counts as 0.
    """
    cur = to_amount(current)
    prev = to_amount(previous)

    if prev == 0:
        if cur > 0:
            return GrowthRate(rate=100.0, direction="up", is_new=True)
        return GrowthRate(rate=0.0, direction="neutral", is_new=True)

    rate = abs(cur - prev) / abs(prev) * 100
    if cur > prev:
        direction = "up"
    elif cur < prev:
        direction = "down"
    else:
        direction = "neutral"
    return GrowthRate(rate=rate, direction=direction, is_new=False)


def period_growth(
    records: Iterable[Record],
    current_range: DateRange,
    previous_range: DateRange,
    currencies: Sequence[str] = DEFAULT_CURRENCIES,
) -> dict[str, GrowthRate]:
    """Per-currency growth of record totals between two periods."""
    records = list(records)
    current = currency_totals(records, current_range, currencies=currencies)
    previous = currency_totals(records, previous_range, currencies=currencies)
    return {code: growth_rate(current[code], previous[code]) for code in currencies}
