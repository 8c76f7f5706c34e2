# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Multi-currency aggregation of monetary records.

``currency_totals`` is the single aggregation primitive used for revenue
and expenses alike (both are normalized to an ``amount`` field before they
reach this module). Its result always carries every configured currency
key, so callers can index by currency without existence checks.

The grouping helpers return long-format pandas DataFrames ready to be
sorted, pivoted or charted by the presentation layer.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Optional, Union

import pandas as pd

from .io import records_to_frame
from .money import DEFAULT_CURRENCIES, CurrencyTotals, empty_totals, to_amount
from .periods import DateRange, filter_frame_by_range, month_key
from .records import ExpenseRecord, RevenueRecord

logger = logging.getLogger(__name__)

Record = Union[ExpenseRecord, RevenueRecord]

SORT_KEYS: tuple[str, ...] = ("month", "amount", "category")


def currency_totals(
    records: Iterable[Record],
    date_range: Optional[DateRange] = None,
    target_date: Optional[date] = None,
    currency: Optional[str] = None,
    currencies: Sequence[str] = DEFAULT_CURRENCIES,
) -> CurrencyTotals:
    """
    Sum record amounts per currency, with optional filters.

    Args:
        records: Expense or revenue records.
        date_range: Keep only records dated within the range (inclusive).
        target_date: Keep only records dated exactly on this day. When both
            filters are given, ``target_date`` wins.
        currency: Populate only this currency's bucket; the others stay 0.
        currencies: Currency codes always present in the result.

    Returns:
        A mapping {currency -> total}. Non-numeric amounts count as 0 and
        records in an unknown currency are skipped; neither raises.
    """
    totals = empty_totals(currencies)

    for record in records:
        code = record.currency
        if currency is not None and code != currency:
            continue
        if code not in totals:
            logger.debug("Skipping record in unsupported currency %r.", code)
            continue

        if target_date is not None:
            if record.date != target_date:
                continue
        elif date_range is not None and not date_range.contains(record.date):
            continue

        totals[code] += to_amount(record.amount)

    return totals


def _sorted(frame: pd.DataFrame, sort_by: str, descending: bool) -> pd.DataFrame:
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_by!r}, expected one of {SORT_KEYS}.")
    return frame.sort_values(
        [sort_by, "currency"],
        ascending=[not descending, True],
        kind="stable",
    ).reset_index(drop=True)


def group_by_month(
    records: Sequence[Record],
    currency: Optional[str] = None,
    date_range: Optional[DateRange] = None,
    sort_by: str = "month",
    descending: bool = True,
) -> pd.DataFrame:
    """
    Total amounts per (month, category, currency).

    Parameters
    ----------
    records:
        Expense or revenue records. Undated records are ignored.
    currency:
        Keep only this currency (all currencies when None).
    date_range:
        Optional reporting range.
    sort_by:
        'month', 'amount' or 'category'.
    descending:
        Sort direction (most recent month first by default).

    Returns
    -------
    pandas.DataFrame
        Columns: month ('YYYY-MM'), category, currency, amount.
    """
    frame = records_to_frame(records)
    frame = frame[frame["date"].notna()]
    frame = filter_frame_by_range(frame, date_range)
    if currency is not None:
        frame = frame[frame["currency"] == currency]

    if frame.empty:
        return pd.DataFrame(columns=["month", "category", "currency", "amount"])

    frame = frame.assign(month=frame["date"].map(lambda ts: month_key(ts.date())))
    grouped = frame.groupby(["month", "category", "currency"], as_index=False)[
        "amount"
    ].sum()
    return _sorted(grouped, sort_by, descending)


def group_by_category(
    records: Sequence[Record],
    currency: Optional[str] = None,
    date_range: Optional[DateRange] = None,
) -> pd.DataFrame:
    """
    Total amounts per (category, currency), largest first.

    Undated records are kept when ``date_range`` is None.
    """
    frame = records_to_frame(records)
    frame = filter_frame_by_range(frame, date_range)
    if currency is not None:
        frame = frame[frame["currency"] == currency]

    if frame.empty:
        return pd.DataFrame(columns=["category", "currency", "amount"])

    grouped = frame.groupby(["category", "currency"], as_index=False)["amount"].sum()
    return grouped.sort_values(
        ["amount", "category"], ascending=[False, True], kind="stable"
    ).reset_index(drop=True)
