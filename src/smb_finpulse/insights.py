# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Rule-based insights and recommendations on cash flow vs accrual.

Rules are declared in an ordered table of ``Rule(code, predicate, build)``
entries. Each rule is evaluated independently against the same
``InsightContext`` and appends at most one item, so the output order is
the table order:

    1. large_payments          info insight: payments above the threshold of
                               the view currency, with their share of cash flow
    2. highest_spending_month  info insight: month with the largest cash outflow
    3. cash_volatility         warning insight when max month - min month
                               exceeds ``volatility_share`` of the cash total
    4. allocated_expenses      info insight: expenses spread over time
    5. most_allocated_category info insight: category with the largest
                               allocated amount
    6. balance                 success / info / warning insight depending on
                               |percent_difference|
    7. monthly_variance        info insight: average monthly gap between views
    8. balance_review          high / medium priority recommendation when the
                               gap reaches the moderate threshold
    9. difference_direction    recommendation depending on the sign of the gap
   10. seasonality             low priority recommendation when monthly cash
                               flow varies strongly across calendar quarters
                               (needs 12+ months of history)
   11. variance_control        medium priority recommendation when several
                               months carry a large share of the total gap

``allocation_effectiveness`` and ``detect_recurring_expenses`` give further
detail on allocated and recurring expenses outside the rule table.

Thresholds live in ``InsightThresholds`` and can be tuned from the
configuration file (see config.py). Messages are plain English and carry no
currency formatting; ``code`` identifies the rule for callers that localize.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Optional, Union

import pandas as pd

from .aggregation import group_by_month
from .money import DEFAULT_CURRENCY
from .periods import DateRange
from .records import ExpenseRecord
from .views import (
    AccrualView,
    CashFlowTrends,
    CashFlowView,
    ViewComparison,
    cash_flow_trends,
)

INSIGHT_TYPES: tuple[str, ...] = ("info", "warning", "success")
PRIORITIES: tuple[str, ...] = ("high", "medium", "low")


@dataclass(frozen=True)
class InsightThresholds:
    """
    Business-tunable constants of the insight rules.

    Attributes:
        large_payment_threshold: A payment strictly above this amount is large,
            in default currency (VND) units.
        large_payment_thresholds: Per-currency overrides of
            ``large_payment_threshold`` ({code -> amount}).
        balanced_pct: |percent_difference| below this is "well balanced".
        moderate_pct: |percent_difference| from this on triggers a warning.
        critical_pct: |percent_difference| from this on is high priority.
        seasonal_min_months: Months of history needed for the seasonal rule.
        seasonal_variation: Coefficient of variation of quarterly means above
            which a seasonal pattern is reported.
        volatility_share: Cash flow volatility (max month - min month) above
            this share of the cash flow total is reported.
        variance_share: A month whose |difference| exceeds this share of
            |total_difference| counts as a large-variance month.
        variance_min_months: Large-variance months needed for the
            variance control recommendation.
        short_allocation_months: Average allocation windows shorter than this
            (in months) are flagged for review.
    """

    large_payment_threshold: float = 10_000_000.0
    large_payment_thresholds: dict[str, float] = field(
        default_factory=lambda: {"USD": 400.0, "NGN": 600_000.0}
    )
    balanced_pct: float = 5.0
    moderate_pct: float = 15.0
    critical_pct: float = 30.0
    seasonal_min_months: int = 12
    seasonal_variation: float = 0.2
    volatility_share: float = 0.5
    variance_share: float = 0.2
    variance_min_months: int = 3
    short_allocation_months: int = 3

    def large_payment_threshold_for(self, currency: str) -> float:
        return self.large_payment_thresholds.get(
            currency, self.large_payment_threshold
        )


@dataclass(frozen=True)
class Insight:
    type: str
    title: str
    message: str
    code: str = ""


@dataclass(frozen=True)
class Recommendation:
    type: str
    priority: str
    title: str
    message: str
    code: str = ""


@dataclass(frozen=True)
class InsightReport:
    status: str
    insights: list[Insight]
    recommendations: list[Recommendation]


@dataclass(frozen=True)
class InsightContext:
    cash_flow: CashFlowView
    accrual: AccrualView
    comparison: ViewComparison
    thresholds: InsightThresholds

    @property
    def abs_percent(self) -> float:
        return abs(self.comparison.percent_difference)

    @property
    def trends(self) -> Optional[CashFlowTrends]:
        return cash_flow_trends(self.cash_flow)

    @property
    def variance_months(self) -> list[str]:
        """Months whose |difference| is large relative to the total gap."""
        share = self.thresholds.variance_share
        limit = abs(self.comparison.total_difference) * share
        return [
            month
            for month, diff in self.comparison.monthly_differences.items()
            if abs(diff.difference) > limit
        ]


@dataclass(frozen=True)
class Rule:
    code: str
    predicate: Callable[[InsightContext], bool]
    build: Callable[[InsightContext], Union[Insight, Recommendation]]


@dataclass(frozen=True)
class RecurringExpense:
    category: str
    average_monthly_amount: float
    months: int
    variation: float


@dataclass(frozen=True)
class AllocationEffectiveness:
    """How much of the accrual view comes from spread expenses, and over how long."""

    total_allocated: float
    allocation_count: int
    average_allocation_months: float
    recommendations: list[Recommendation]


def difference_status(
    percent_difference: float,
    thresholds: InsightThresholds = InsightThresholds(),
) -> str:
    """Classify a cash vs accrual gap as excellent, good, warning or critical."""
    gap = abs(percent_difference)
    if gap < thresholds.balanced_pct:
        return "excellent"
    if gap < thresholds.moderate_pct:
        return "good"
    if gap < thresholds.critical_pct:
        return "warning"
    return "critical"


def has_seasonal_pattern(
    comparison: ViewComparison,
    min_months: int = 12,
    variation: float = 0.2,
) -> bool:
    """
    Detect seasonality in monthly cash flow.

    Months are bucketed by calendar quarter (Q1..Q4, all years together) and
    the mean cash flow of each bucket is compared: the pattern is seasonal
    when the coefficient of variation of the bucket means exceeds
    ``variation``.
    """
    months = comparison.monthly_differences
    if len(months) < min_months:
        return False

    series = pd.Series(
        [diff.cash_flow for diff in months.values()],
        index=[(int(month[5:7]) - 1) // 3 for month in months],
    )
    quarter_means = series.groupby(level=0).mean()
    if len(quarter_means) < 2:
        return False

    overall = quarter_means.mean()
    if overall == 0:
        return False
    return float(quarter_means.std(ddof=0) / abs(overall)) > variation


def _large_payments(ctx: InsightContext) -> Insight:
    payments = ctx.cash_flow.large_payments
    large_total = sum(payment.amount for payment in payments)
    share = large_total / ctx.cash_flow.total * 100 if ctx.cash_flow.total else 0.0
    return Insight(
        type="info",
        title="Large payments",
        message=(
            f"{len(payments)} payment(s) exceed the large payment threshold and "
            f"make up {share:.1f}% of cash flow; consider allocating them over "
            "their validity period for a more accurate view."
        ),
        code="large_payments",
    )


def _highest_spending_month(ctx: InsightContext) -> Insight:
    by_month = ctx.cash_flow.by_month
    month = max(by_month, key=by_month.get)
    return Insight(
        type="info",
        title="Highest spending month",
        message=f"{month} has the highest cash outflow ({by_month[month]:,.0f}).",
        code="highest_spending_month",
    )


def _cash_volatility(ctx: InsightContext) -> Insight:
    trends = ctx.trends
    return Insight(
        type="warning",
        title="Volatile cash flow",
        message=(
            "Cash flow swings strongly between months (gap of "
            f"{trends.volatility:,.0f} between {trends.min_month} and "
            f"{trends.max_month})."
        ),
        code="cash_volatility",
    )


def _is_volatile(ctx: InsightContext) -> bool:
    trends = ctx.trends
    if trends is None:
        return False
    return trends.volatility > ctx.cash_flow.total * ctx.thresholds.volatility_share


def _allocated_expenses(ctx: InsightContext) -> Insight:
    count = len(ctx.accrual.allocated_expenses)
    return Insight(
        type="info",
        title="Allocated expenses",
        message=f"{count} expense(s) are spread over their validity period.",
        code="allocated_expenses",
    )


def _most_allocated_category(ctx: InsightContext) -> Insight:
    per_category: dict[str, float] = {}
    for item in ctx.accrual.allocated_expenses:
        category = item.expense.category
        per_category[category] = per_category.get(category, 0.0) + item.allocated_amount
    category = max(per_category, key=per_category.get)
    return Insight(
        type="info",
        title="Most allocated category",
        message=(
            f"'{category}' carries the largest allocated amount "
            f"({per_category[category]:,.0f})."
        ),
        code="most_allocated_category",
    )


def _balance(ctx: InsightContext) -> Insight:
    pct = round(ctx.comparison.percent_difference, 1)
    if ctx.abs_percent < ctx.thresholds.balanced_pct:
        return Insight(
            type="success",
            title="Well balanced",
            message=f"Cash flow and accrual views differ by only {pct}%.",
            code="balance",
        )
    if ctx.abs_percent < ctx.thresholds.moderate_pct:
        return Insight(
            type="info",
            title="Moderate difference",
            message=f"Cash flow and accrual views differ by {pct}%.",
            code="balance",
        )
    return Insight(
        type="warning",
        title="Large difference",
        message=f"Cash flow and accrual views differ by {pct}%.",
        code="balance",
    )


def _monthly_variance(ctx: InsightContext) -> Insight:
    gaps = [
        abs(diff.difference)
        for diff in ctx.comparison.monthly_differences.values()
        if diff.difference != 0
    ]
    average = sum(gaps) / len(gaps)
    return Insight(
        type="info",
        title="Monthly variance",
        message=(
            f"{len(gaps)} month(s) differ between cash flow and accrual, by "
            f"{average:,.0f} on average."
        ),
        code="monthly_variance",
    )


def _has_monthly_variance(ctx: InsightContext) -> bool:
    return any(
        diff.difference != 0 for diff in ctx.comparison.monthly_differences.values()
    )


def _balance_review(ctx: InsightContext) -> Recommendation:
    critical = ctx.abs_percent >= ctx.thresholds.critical_pct
    return Recommendation(
        type="control",
        priority="high" if critical else "medium",
        title="Review allocation policy",
        message=(
            "The gap between cash flow and accrual is significant; review which "
            "expenses are allocated and over which periods."
        ),
        code="balance_review",
    )


def _difference_direction(ctx: InsightContext) -> Recommendation:
    if ctx.comparison.total_difference > 0:
        return Recommendation(
            type="optimization",
            priority="medium",
            title="Cash flow above accrual",
            message=(
                "More cash went out than was recognized, most likely because of "
                "large one-off payments; examine their timing."
            ),
            code="cash_above_accrual",
        )
    return Recommendation(
        type="planning",
        priority="medium",
        title="Accrual above cash flow",
        message=(
            "More cost was recognized than paid; review under-recognized "
            "allocations and plan the upcoming payments."
        ),
        code="accrual_above_cash",
    )


def _seasonality(ctx: InsightContext) -> Recommendation:
    return Recommendation(
        type="forecasting",
        priority="low",
        title="Seasonal pattern",
        message="Spending varies by quarter; plan budgets around this seasonality.",
        code="seasonality",
    )


def _variance_control(ctx: InsightContext) -> Recommendation:
    return Recommendation(
        type="control",
        priority="medium",
        title="Control monthly variance",
        message=(
            f"{len(ctx.variance_months)} months show a large gap between cash "
            "flow and accrual; review the cost allocation policy."
        ),
        code="variance_control",
    )


RULES: tuple[Rule, ...] = (
    Rule(
        code="large_payments",
        predicate=lambda ctx: bool(ctx.cash_flow.large_payments),
        build=_large_payments,
    ),
    Rule(
        code="highest_spending_month",
        predicate=lambda ctx: bool(ctx.cash_flow.by_month),
        build=_highest_spending_month,
    ),
    Rule(code="cash_volatility", predicate=_is_volatile, build=_cash_volatility),
    Rule(
        code="allocated_expenses",
        predicate=lambda ctx: bool(ctx.accrual.allocated_expenses),
        build=_allocated_expenses,
    ),
    Rule(
        code="most_allocated_category",
        predicate=lambda ctx: bool(ctx.accrual.allocated_expenses),
        build=_most_allocated_category,
    ),
    Rule(code="balance", predicate=lambda ctx: True, build=_balance),
    Rule(
        code="monthly_variance",
        predicate=_has_monthly_variance,
        build=_monthly_variance,
    ),
    Rule(
        code="balance_review",
        predicate=lambda ctx: ctx.abs_percent >= ctx.thresholds.moderate_pct,
        build=_balance_review,
    ),
    Rule(
        code="difference_direction",
        predicate=lambda ctx: ctx.comparison.total_difference != 0,
        build=_difference_direction,
    ),
    Rule(
        code="seasonality",
        predicate=lambda ctx: has_seasonal_pattern(
            ctx.comparison,
            ctx.thresholds.seasonal_min_months,
            ctx.thresholds.seasonal_variation,
        ),
        build=_seasonality,
    ),
    Rule(
        code="variance_control",
        predicate=lambda ctx: (
            len(ctx.variance_months) >= ctx.thresholds.variance_min_months
        ),
        build=_variance_control,
    ),
)


def generate_insights(
    cash_flow: CashFlowView,
    accrual: AccrualView,
    comparison: ViewComparison,
    thresholds: InsightThresholds = InsightThresholds(),
    rules: Sequence[Rule] = RULES,
) -> InsightReport:
    """
    Evaluate the rule table and collect insights and recommendations.

    Args:
        cash_flow: Cash flow view of the period.
        accrual: Accrual view of the same period and currency.
        comparison: ``compare_views(cash_flow, accrual)``.
        thresholds: Rule thresholds.
        rules: Rule table, evaluated in order (defaults to RULES).

    Returns:
        An InsightReport with the overall difference status and the items
        produced by matching rules, in rule order.
    """
    ctx = InsightContext(
        cash_flow=cash_flow,
        accrual=accrual,
        comparison=comparison,
        thresholds=thresholds,
    )

    insights: list[Insight] = []
    recommendations: list[Recommendation] = []
    for rule in rules:
        if not rule.predicate(ctx):
            continue
        item = rule.build(ctx)
        if isinstance(item, Recommendation):
            recommendations.append(item)
        else:
            insights.append(item)

    return InsightReport(
        status=difference_status(comparison.percent_difference, thresholds),
        insights=insights,
        recommendations=recommendations,
    )


def allocation_effectiveness(
    accrual: AccrualView,
    thresholds: InsightThresholds = InsightThresholds(),
) -> AllocationEffectiveness:
    """
    Summarize the allocated expenses of an accrual view.

    The average allocation period counts the calendar months touched by each
    validity window. A view without allocations suggests allocating recurring
    costs; a short average period (below ``short_allocation_months``) asks to
    review how long-term costs are allocated.
    """
    allocated = accrual.allocated_expenses
    count = len(allocated)
    average_months = (
        sum(item.window_months for item in allocated) / count if count else 0.0
    )

    recommendations: list[Recommendation] = []
    if count == 0:
        recommendations.append(
            Recommendation(
                type="suggestion",
                priority="low",
                title="No allocated expenses",
                message=(
                    "No expense is spread over time yet; consider allocating "
                    "recurring costs for a more accurate report."
                ),
                code="no_allocations",
            )
        )
    elif average_months < thresholds.short_allocation_months:
        recommendations.append(
            Recommendation(
                type="review",
                priority="low",
                title="Short allocation periods",
                message=(
                    f"Expenses are allocated over {average_months:.1f} months on "
                    "average; check that long-term costs are allocated correctly."
                ),
                code="short_allocation_period",
            )
        )

    return AllocationEffectiveness(
        total_allocated=sum(item.allocated_amount for item in allocated),
        allocation_count=count,
        average_allocation_months=average_months,
        recommendations=recommendations,
    )


def detect_recurring_expenses(
    expenses: Sequence[ExpenseRecord],
    currency: str = DEFAULT_CURRENCY,
    date_range: Optional[DateRange] = None,
    min_months: int = 3,
    max_variation: float = 0.3,
) -> list[RecurringExpense]:
    """
    Find categories whose monthly spend is stable over time.

    A category is recurring when it has payments in at least ``min_months``
    distinct months and the standard deviation of its monthly totals is
    below ``max_variation`` times their mean.
    """
    monthly = group_by_month(
        expenses, currency=currency, date_range=date_range, sort_by="month"
    )
    if monthly.empty:
        return []

    per_category = monthly.groupby(["category", "month"])["amount"].sum()

    recurring: list[RecurringExpense] = []
    for category, amounts in per_category.groupby(level=0):
        if len(amounts) < min_months:
            continue
        average = float(amounts.mean())
        if average <= 0:
            continue
        variation = float(amounts.std(ddof=0)) / average
        if variation < max_variation:
            recurring.append(
                RecurringExpense(
                    category=str(category),
                    average_monthly_amount=average,
                    months=len(amounts),
                    variation=variation,
                )
            )
    return recurring
