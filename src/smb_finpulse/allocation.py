# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Per-record recognition rules.

Two functions answer the same question for one expense and one reporting
range, "how much of this cost belongs to the range?", under the two bases
the dashboard reports side by side:

- ``allocated_amount``: accrual basis. An allocatable expense is amortized
  evenly per day over its validity window ``[date, validity_end]`` (both
  ends included) and the range receives ``daily_rate * overlapping_days``.
- ``actual_amount``: cash basis. The full amount is recognized on the
  payment date, all or nothing.

For a non-allocatable expense the two differ on purpose (allocated is 0,
actual is the full amount in the payment range): that gap is the
reconciliation signal shown on the dashboard.
"""

from typing import Optional

from .money import to_amount
from .periods import DateRange, days_between
from .records import ExpenseRecord


def daily_rate(expense: ExpenseRecord) -> float:
    """
    Amount recognized per day of the validity window.

    Returns 0.0 when the expense has no valid allocation window.
    """
    if not expense.has_valid_window:
        return 0.0
    total_days = days_between(expense.date, expense.validity_end) + 1
    return to_amount(expense.amount) / total_days


def allocated_amount(
    expense: ExpenseRecord,
    date_range: Optional[DateRange],
) -> float:
    """
    Portion of ``expense.amount`` attributable to ``date_range`` on an accrual basis.

    Args:
        expense: Canonical expense record.
        date_range: Reporting range; None means unbounded, in which case the
            whole validity window is recognized.

    Returns:
        The allocated amount, between 0 and ``expense.amount``. Expenses that
        are not allocatable, or whose validity window is missing or not after
        the payment date, give 0.0.
    """
    if not expense.has_valid_window:
        return 0.0

    window = DateRange(start=expense.date, end=expense.validity_end)
    overlap = window if date_range is None else window.overlap(date_range)
    if overlap is None:
        return 0.0

    return daily_rate(expense) * overlap.days


def actual_amount(
    expense: ExpenseRecord,
    date_range: Optional[DateRange],
) -> float:
    """
    Cash-basis amount of ``expense`` within ``date_range``.

    The full amount if the payment date falls inside the range (both ends
    included; None means unbounded), else 0.0. Undated expenses give 0.0.
    The allocation flag is ignored.
    """
    if expense.date is None:
        return 0.0
    if date_range is not None and not date_range.contains(expense.date):
        return 0.0
    return to_amount(expense.amount)
