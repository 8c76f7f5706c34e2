# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB FinPulse.

This module is the input boundary of the engine. It maps raw expense and
revenue records, as produced by the dashboard backend or read from CSV
exports, onto the canonical ExpenseRecord / RevenueRecord shapes.

Field aliases
-------------
Raw records use English or Vietnamese field names interchangeably. The
first alias present (and non-empty) wins:

Expenses
    - amount        : ``amount``, ``soTien``, ``Số tiền``
    - currency      : ``currency``, ``loaiTien``
    - date          : ``date``, ``ngayTao``, ``ngay``, ``Ngày chi``,
                      ``transactionDate``
    - category      : ``category``, ``danhMuc``, ``type``
    - description   : ``description``, ``moTa``, ``product``, ``note``,
                      ``Tên sản phẩm/Dịch vụ``
    - allocation    : ``periodicAllocation``, ``phanBo``, ``Phân bổ``,
                      ``allocation``
    - validity end  : ``renewDate``, ``ngayTaiTuc``, ``Ngày tái tục``,
                      ``renewalDate``

Revenue
    - amount        : ``revenue``, ``amount``, ``doanhThu``
    - date          : ``transactionDate``, ``date``, ``ngayGiaoDich``
    - status        : ``status``, ``trangThai``

Flags
-----
The allocation flag may be a real boolean or a string such as ``"Có"`` /
``"Không"`` or ``"Yes"`` / ``"No"``. It is normalized to a boolean here so
that the engine's contract stays boolean-only.

Invalid values never raise: unparseable amounts become 0.0 and unparseable
dates become None. Such records are logged at DEBUG level.
"""

import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional, Union

import pandas as pd

from .money import DEFAULT_CURRENCY, normalize_currency, parse_amount, to_amount
from .periods import parse_date
from .records import DEFAULT_CATEGORY, ExpenseRecord, RevenueRecord

logger = logging.getLogger(__name__)

EXPENSE_ALIASES: dict[str, tuple[str, ...]] = {
    "amount": ("amount", "soTien", "Số tiền"),
    "currency": ("currency", "loaiTien"),
    "date": ("date", "ngayTao", "ngay", "Ngày chi", "transactionDate"),
    "category": ("category", "danhMuc", "type"),
    "description": (
        "description",
        "moTa",
        "product",
        "note",
        "Tên sản phẩm/Dịch vụ",
    ),
    "allocation": ("periodicAllocation", "phanBo", "Phân bổ", "allocation"),
    "validity_end": ("renewDate", "ngayTaiTuc", "Ngày tái tục", "renewalDate"),
}

REVENUE_ALIASES: dict[str, tuple[str, ...]] = {
    "amount": ("revenue", "amount", "doanhThu"),
    "currency": ("currency", "loaiTien"),
    "date": ("transactionDate", "date", "ngayGiaoDich"),
    "category": ("category", "softwareName", "danhMuc"),
    "description": ("description", "customerName", "moTa", "note"),
    "status": ("status", "trangThai"),
}

TRUE_FLAGS = frozenset({"có", "co", "yes", "y", "true", "1", "x"})


def _pick(raw: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """Return the first non-empty value among ``aliases`` in ``raw``."""
    for key in aliases:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, float) and pd.isna(value):
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def parse_flag(value: Any) -> bool:
    """Normalize an allocation flag ('Có', 'Yes', True, 1, ...) to a boolean."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return not pd.isna(value) and value != 0
    return str(value).strip().lower() in TRUE_FLAGS


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip() or default


def normalize_expense(
    raw: Mapping[str, Any],
    default_currency: str = DEFAULT_CURRENCY,
) -> ExpenseRecord:
    """
    Map a raw expense mapping onto an ExpenseRecord.

    Args:
        raw: Raw record with English or Vietnamese field names.
        default_currency: Currency used when the record carries none.

    Returns:
        The canonical ExpenseRecord. Never raises on malformed values.
    """
    raw_amount = _pick(raw, EXPENSE_ALIASES["amount"])
    raw_date = _pick(raw, EXPENSE_ALIASES["date"])

    amount = parse_amount(raw_amount)
    day = parse_date(raw_date)

    if raw_amount is not None and amount is None:
        logger.debug("Expense amount %r is not numeric, counted as 0.", raw_amount)
    if raw_date is not None and day is None:
        logger.debug("Expense date %r could not be parsed.", raw_date)

    return ExpenseRecord(
        amount=0.0 if amount is None else amount,
        currency=normalize_currency(
            _pick(raw, EXPENSE_ALIASES["currency"]), default_currency
        ),
        date=day,
        category=_text(_pick(raw, EXPENSE_ALIASES["category"]), DEFAULT_CATEGORY),
        description=_text(_pick(raw, EXPENSE_ALIASES["description"])),
        is_allocatable=parse_flag(_pick(raw, EXPENSE_ALIASES["allocation"])),
        validity_end=parse_date(_pick(raw, EXPENSE_ALIASES["validity_end"])),
    )


def normalize_revenue(
    raw: Mapping[str, Any],
    default_currency: str = DEFAULT_CURRENCY,
) -> RevenueRecord:
    """Map a raw revenue/transaction mapping onto a RevenueRecord."""
    raw_amount = _pick(raw, REVENUE_ALIASES["amount"])
    raw_date = _pick(raw, REVENUE_ALIASES["date"])

    amount = parse_amount(raw_amount)
    day = parse_date(raw_date)

    if raw_amount is not None and amount is None:
        logger.debug("Revenue amount %r is not numeric, counted as 0.", raw_amount)
    if raw_date is not None and day is None:
        logger.debug("Revenue date %r could not be parsed.", raw_date)

    return RevenueRecord(
        amount=0.0 if amount is None else amount,
        currency=normalize_currency(
            _pick(raw, REVENUE_ALIASES["currency"]), default_currency
        ),
        date=day,
        category=_text(_pick(raw, REVENUE_ALIASES["category"]), DEFAULT_CATEGORY),
        description=_text(_pick(raw, REVENUE_ALIASES["description"])),
        status=_text(_pick(raw, REVENUE_ALIASES["status"])),
    )


def normalize_expenses(
    raws: Iterable[Mapping[str, Any]],
    default_currency: str = DEFAULT_CURRENCY,
) -> list[ExpenseRecord]:
    """Normalize a collection of raw expenses; non-mapping items are skipped."""
    records: list[ExpenseRecord] = []
    for raw in raws:
        if not isinstance(raw, Mapping):
            logger.debug("Skipping non-mapping expense record: %r", raw)
            continue
        records.append(normalize_expense(raw, default_currency))
    return records


def normalize_revenues(
    raws: Iterable[Mapping[str, Any]],
    default_currency: str = DEFAULT_CURRENCY,
) -> list[RevenueRecord]:
    """Normalize a collection of raw revenue records; non-mappings are skipped."""
    records: list[RevenueRecord] = []
    for raw in raws:
        if not isinstance(raw, Mapping):
            logger.debug("Skipping non-mapping revenue record: %r", raw)
            continue
        records.append(normalize_revenue(raw, default_currency))
    return records


def _read_raw_csv(path: Union[str, "os.PathLike[str]"]) -> list[dict[str, Any]]:
    # Keep every column as text: parsing is the job of the normalizers.
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip() for c in df.columns]
    return df.to_dict(orient="records")


def read_expenses_csv(
    path: Union[str, "os.PathLike[str]"],
    default_currency: str = DEFAULT_CURRENCY,
) -> list[ExpenseRecord]:
    """
    Read an expenses CSV export and normalize it.

    Column names may use any of the aliases listed in the module docstring.

    Parameters
    ----------
    path:
        Path to the CSV file.
    default_currency:
        Currency used for rows without a currency column/value.

    Returns
    -------
    list[ExpenseRecord]
        One canonical record per CSV row.
    """
    return normalize_expenses(_read_raw_csv(path), default_currency)


def read_revenues_csv(
    path: Union[str, "os.PathLike[str]"],
    default_currency: str = DEFAULT_CURRENCY,
) -> list[RevenueRecord]:
    """Read a revenue/transactions CSV export and normalize it."""
    return normalize_revenues(_read_raw_csv(path), default_currency)


def records_to_frame(
    records: Sequence[Union[ExpenseRecord, RevenueRecord]],
) -> pd.DataFrame:
    """
    Convert canonical records into a DataFrame.

    The frame always has the columns ``date``, ``currency``, ``category``,
    ``description`` and ``amount``; ``date`` is datetime64 (NaT when missing).
    """
    columns = ["date", "currency", "category", "description", "amount"]
    rows: list[dict[str, Optional[Any]]] = [
        {
            "date": r.date,
            "currency": r.currency,
            "category": r.category,
            "description": r.description,
            "amount": to_amount(r.amount),
        }
        for r in records
    ]
    frame = pd.DataFrame(rows, columns=columns)
    frame["date"] = pd.to_datetime(frame["date"], errors="coerce")
    frame["amount"] = frame["amount"].astype(float)
    return frame
