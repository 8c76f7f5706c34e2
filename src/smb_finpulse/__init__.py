# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB FinPulse
------------

A Python computation engine that compares the cash flow view of a small
business's expenses (money leaves when it is paid) with their accrual view
(cost is recognized evenly over the period it covers).

Main capabilities:
- canonical expense / revenue records normalized from loosely typed input,
- per-currency totals and month / category groupings (VND, USD, NGN),
- daily accrual allocation of prepaid expenses over their validity window,
- profit, margin, expense ratio and period-over-period growth,
- monthly accrual breakdown with allocated vs paid details,
- cash flow vs accrual views, their comparison and reconciliation,
- rule-based insights and recommendations,
- monthly multi-period series for charts.

Configuration lives in an optional TOML file (``smb_finpulse_config.toml``).
Diagnostics go through the standard ``logging`` module under the
``smb_finpulse`` logger.

Version: 0.1.0
"""

import logging

__all__ = ["engine", "views", "insights", "io"]

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
