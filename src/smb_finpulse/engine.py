# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Single-call orchestration of the SMB FinPulse engine.

``run_analysis()`` is the entry point used by the dashboard. For one
reporting range and one selected currency it executes the whole pipeline,
bottom-up:

1. revenue and expense totals per currency (cash basis), plus accrued
   expense totals per currency (accrual basis),
2. financial analysis (profit, margins, ratios) on both bases,
3. growth of revenue and expenses against the preceding period of the
   same length,
4. cash flow and accrual views for the selected currency, their
   comparison and reconciliation,
5. cash flow trends, accrual smoothness and allocation effectiveness,
6. rule-based insights and recommendations, and recurring expenses.

Every run is a pure function of (expenses, revenues, date_range, config,
currency): nothing is cached and the inputs are never mutated.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from .aggregation import currency_totals
from .config import EngineConfig
from .insights import (
    AllocationEffectiveness,
    InsightReport,
    RecurringExpense,
    allocation_effectiveness,
    detect_recurring_expenses,
    generate_insights,
)
from .money import CurrencyTotals
from .periods import DateRange, preceding_range
from .ratios import FinancialAnalysis, GrowthRate, analyze, growth_rate
from .records import ExpenseRecord, RevenueRecord
from .views import (
    AccrualSmoothness,
    AccrualView,
    CashFlowTrends,
    CashFlowView,
    Reconciliation,
    ViewComparison,
    accrual_smoothness,
    accrual_view,
    cash_flow_trends,
    cash_flow_view,
    compare_views,
    reconcile,
)


@dataclass(frozen=True)
class AnalysisResult:
    """
    Everything the dashboard needs for one reporting range.

    Attributes
    ----------
    date_range :
        Reporting range (None for all time).
    previous_range :
        Preceding range of the same length used for growth rates, None when
        the reporting range is unbounded or starts on ``date.min``.
    currency :
        Currency of the cash flow / accrual views and insights.
    revenue_totals, expense_totals, accrued_expense_totals :
        Per-currency totals (every configured currency present).
    analysis, accrual_analysis :
        Financial analysis on the cash basis and on the accrual basis.
    revenue_growth, expense_growth :
        Per-currency growth against ``previous_range`` (empty when unbounded).
    cash_flow, accrual, comparison, reconciliation :
        Views of the selected currency and how they differ.
    cash_flow_trends :
        Monthly trends of the cash flow view (None with fewer than two months).
    accrual_smoothness, allocation_effectiveness :
        How evenly costs are accrued and how expenses are allocated.
    insights :
        Insight report for the selected currency.
    recurring_expenses :
        Categories with stable monthly spend in the selected currency.
    """

    date_range: Optional[DateRange]
    previous_range: Optional[DateRange]
    currency: str
    revenue_totals: CurrencyTotals
    expense_totals: CurrencyTotals
    accrued_expense_totals: CurrencyTotals
    analysis: FinancialAnalysis
    accrual_analysis: FinancialAnalysis
    revenue_growth: dict[str, GrowthRate]
    expense_growth: dict[str, GrowthRate]
    cash_flow: CashFlowView
    accrual: AccrualView
    comparison: ViewComparison
    reconciliation: Reconciliation
    cash_flow_trends: Optional[CashFlowTrends]
    accrual_smoothness: AccrualSmoothness
    allocation_effectiveness: AllocationEffectiveness
    insights: InsightReport
    recurring_expenses: list[RecurringExpense]


def run_analysis(
    expenses: Iterable[ExpenseRecord],
    revenues: Iterable[RevenueRecord],
    date_range: Optional[DateRange] = None,
    config: Optional[EngineConfig] = None,
    currency: Optional[str] = None,
) -> AnalysisResult:
    """
    Run the full cash flow vs accrual analysis for a reporting range.

    Parameters
    ----------
    expenses, revenues :
        Canonical records (see io.normalize_expenses / normalize_revenues).
    date_range :
        Reporting range; None means all time.
    config :
        Engine configuration; built-in defaults when None.
    currency :
        Currency of the views and insights; the configured default when None.

    Returns
    -------
    AnalysisResult

    Raises
    ------
    ValueError
        If ``currency`` is not one of the configured currencies.
    """
    cfg = config or EngineConfig()
    selected = currency or cfg.default_currency
    if selected not in cfg.currencies:
        raise ValueError(f"Currency {selected!r} is not a configured currency.")

    expenses = list(expenses)
    revenues = list(revenues)

    # 1) Totals per currency, cash and accrual bases.
    revenue_totals = currency_totals(revenues, date_range, currencies=cfg.currencies)
    expense_totals = currency_totals(expenses, date_range, currencies=cfg.currencies)
    accruals = {
        code: accrual_view(expenses, date_range, currency=code)
        for code in cfg.currencies
    }
    accrued_totals = {code: view.total for code, view in accruals.items()}

    # 2) Financial analysis
    analysis = analyze(
        revenue_totals, expense_totals, cfg.exchange_rates, cfg.base_currency
    )
    accrual_analysis = analyze(
        revenue_totals, accrued_totals, cfg.exchange_rates, cfg.base_currency
    )

    # 3) Growth against the preceding period
    previous_range = preceding_range(date_range) if date_range is not None else None
    revenue_growth: dict[str, GrowthRate] = {}
    expense_growth: dict[str, GrowthRate] = {}
    if previous_range is not None:
        prev_revenue = currency_totals(
            revenues, previous_range, currencies=cfg.currencies
        )
        prev_expense = currency_totals(
            expenses, previous_range, currencies=cfg.currencies
        )
        for code in cfg.currencies:
            revenue_growth[code] = growth_rate(revenue_totals[code], prev_revenue[code])
            expense_growth[code] = growth_rate(expense_totals[code], prev_expense[code])

    # 4) Views of the selected currency
    cash_flow = cash_flow_view(
        expenses,
        date_range,
        currency=selected,
        large_payment_threshold=cfg.thresholds.large_payment_threshold_for(selected),
    )
    accrual = accruals[selected]
    comparison = compare_views(cash_flow, accrual)
    reconciliation = reconcile(expenses, comparison)

    # 5) Trends and allocation quality
    trends = cash_flow_trends(cash_flow)
    smoothness = accrual_smoothness(accrual)
    effectiveness = allocation_effectiveness(accrual, cfg.thresholds)

    # 6) Insights
    insights = generate_insights(cash_flow, accrual, comparison, cfg.thresholds)
    recurring = detect_recurring_expenses(
        expenses, currency=selected, date_range=date_range
    )

    return AnalysisResult(
        date_range=date_range,
        previous_range=previous_range,
        currency=selected,
        revenue_totals=revenue_totals,
        expense_totals=expense_totals,
        accrued_expense_totals=accrued_totals,
        analysis=analysis,
        accrual_analysis=accrual_analysis,
        revenue_growth=revenue_growth,
        expense_growth=expense_growth,
        cash_flow=cash_flow,
        accrual=accrual,
        comparison=comparison,
        reconciliation=reconciliation,
        cash_flow_trends=trends,
        accrual_smoothness=smoothness,
        allocation_effectiveness=effectiveness,
        insights=insights,
        recurring_expenses=recurring,
    )
