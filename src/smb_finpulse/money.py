# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Currency and amount helpers.

Currencies are kept strictly separate: every per-currency structure carries
one key per configured currency code, and amounts are only ever combined
across currencies through an explicit exchange-rate table.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_CURRENCIES: tuple[str, ...] = ("VND", "USD", "NGN")
DEFAULT_CURRENCY = "VND"

CurrencyTotals = dict[str, float]


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a raw amount, returning None when it is not a finite number.

    Strings may carry thousands separators (``"1,200,000"``) or spaces.
    Booleans, NaN and infinite values are not amounts.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        value = value.replace(",", "").replace(" ", "").strip()
        if not value:
            return None

    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None

    if pd.isna(amount) or amount in (float("inf"), float("-inf")):
        return None
    return amount


def to_amount(value: Any) -> float:
    """Convert a raw amount to float, treating anything unparseable as 0.0."""
    amount = parse_amount(value)
    return 0.0 if amount is None else amount


def normalize_currency(value: Any, default: str = DEFAULT_CURRENCY) -> str:
    """Upper-case currency code, falling back to ``default`` when empty."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    code = str(value).strip().upper()
    return code or default


def empty_totals(currencies: Iterable[str] = DEFAULT_CURRENCIES) -> CurrencyTotals:
    """A CurrencyTotals mapping with every currency present and set to 0.0."""
    return {code: 0.0 for code in currencies}


def convert_totals(
    totals: Mapping[str, float],
    exchange_rates: Mapping[str, float],
) -> Optional[float]:
    """
    Sum per-currency totals into a single base-currency amount.

    Args:
        totals: Per-currency amounts.
        exchange_rates: Rate of each currency expressed in the base currency
            (the base currency itself has rate 1.0).

    Returns:
        The converted sum, or None if a non-zero amount has no known rate.
    """
    converted = 0.0
    for code, amount in totals.items():
        if not amount:
            continue
        rate = exchange_rates.get(code)
        if rate is None:
            logger.debug("No exchange rate for %s, cannot consolidate totals.", code)
            return None
        converted += float(amount) * float(rate)
    return converted
