# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Canonical record shapes consumed by the engine.

Raw records coming from the dashboard backend use several field-name
variants (English and Vietnamese) and string-typed flags. They are mapped
once, at the input boundary, onto these frozen dataclasses (see io.py).
Every computation module only ever reads the canonical fields below.
"""

import datetime
from dataclasses import dataclass
from typing import Optional

from .money import DEFAULT_CURRENCY

DEFAULT_CATEGORY = "Other"


@dataclass(frozen=True)
class ExpenseRecord:
    """
    A single expense.

    Attributes:
        amount: Paid amount, non-negative.
        currency: Currency code (e.g. 'VND').
        date: Payment date, used for cash-basis recognition.
        category: Grouping label (e.g. 'Hosting', 'Marketing').
        description: Free text shown in drill-down lists.
        is_allocatable: Whether the cost is spread over its validity window.
        validity_end: Last day of the validity window (renewal date).
    """

    amount: float
    currency: str = DEFAULT_CURRENCY
    date: Optional[datetime.date] = None
    category: str = DEFAULT_CATEGORY
    description: str = ""
    is_allocatable: bool = False
    validity_end: Optional[datetime.date] = None

    @property
    def has_valid_window(self) -> bool:
        """True when the expense can be spread over [date, validity_end]."""
        return (
            self.is_allocatable
            and self.date is not None
            and self.validity_end is not None
            and self.validity_end > self.date
        )


@dataclass(frozen=True)
class RevenueRecord:
    """A revenue transaction. ``status`` is carried for the surrounding report."""

    amount: float
    currency: str = DEFAULT_CURRENCY
    date: Optional[datetime.date] = None
    category: str = DEFAULT_CATEGORY
    description: str = ""
    status: str = ""
