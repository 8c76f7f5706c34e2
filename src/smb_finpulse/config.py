# SMB FinPulse - Cash-flow & Accrual Analysis engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB FinPulse.

This module is responsible for:
- loading the engine configuration from a TOML file,
- exposing the typed EngineConfig dataclass used by the rest of the library.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .insights import InsightThresholds
from .money import DEFAULT_CURRENCIES, DEFAULT_CURRENCY

DEFAULT_CONFIG_FILENAME = "smb_finpulse_config.toml"


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine-wide configuration for SMB FinPulse.

    This aggregates:
    - the fixed set of currency codes and the default currency,
    - the optional exchange-rate table used for consolidated totals,
    - the thresholds of the insight rules.
    """

    currencies: tuple[str, ...] = DEFAULT_CURRENCIES
    default_currency: str = DEFAULT_CURRENCY
    base_currency: Optional[str] = None
    exchange_rates: Optional[dict[str, float]] = None
    thresholds: InsightThresholds = field(default_factory=InsightThresholds)


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _parse_currencies(raw: Mapping[str, Any]) -> tuple[tuple[str, ...], str]:
    """
    Extract the currency codes and the default currency.

    Raises:
        ValueError: if the default currency is not one of the codes.
    """
    section = _section(raw, "currencies")

    codes_raw = section.get("codes")
    if isinstance(codes_raw, list) and codes_raw:
        codes = tuple(
            dict.fromkeys(str(c).strip().upper() for c in codes_raw if str(c).strip())
        )
    else:
        codes = DEFAULT_CURRENCIES

    default = str(section.get("default") or codes[0]).strip().upper()
    if default not in codes:
        raise ValueError(
            f"Default currency {default!r} is not listed in [currencies].codes."
        )

    return codes, default


def _parse_exchange_rates(
    raw: Mapping[str, Any],
    currencies: tuple[str, ...],
) -> tuple[Optional[str], Optional[dict[str, float]]]:
    """
    Extract the optional [exchange_rates] table.

    Every currency other than the base must have a positive numeric rate
    expressing one unit of it in the base currency.

    Raises:
        ValueError: if the base currency is unknown or a rate is invalid.
    """
    section = _section(raw, "exchange_rates")
    if not section:
        return None, None

    base = str(section.get("base") or currencies[0]).strip().upper()
    if base not in currencies:
        raise ValueError(f"Exchange-rate base {base!r} is not a configured currency.")

    rates: dict[str, float] = {base: 1.0}
    for code in currencies:
        if code == base:
            continue
        value = section.get(code)
        try:
            rate = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Missing or invalid exchange rate for {code!r} in [exchange_rates]."
            ) from exc
        if rate <= 0:
            raise ValueError(f"Exchange rate for {code!r} must be positive.")
        rates[code] = rate

    return base, rates


def _parse_large_payment_thresholds(
    section: Mapping[str, Any], defaults: Mapping[str, float]
) -> dict[str, float]:
    """Per-currency large payment thresholds, merged over the defaults."""
    thresholds = dict(defaults)
    table = _section(section, "large_payment_thresholds")
    for code, value in table.items():
        try:
            amount = float(value)
        except (TypeError, ValueError):
            continue
        if amount > 0:
            thresholds[str(code).strip().upper()] = amount
    return thresholds


def _parse_thresholds(raw: Mapping[str, Any]) -> InsightThresholds:
    section = _section(raw, "insights")
    defaults = InsightThresholds()

    values: dict[str, Any] = {}
    for name in (
        "large_payment_threshold",
        "balanced_pct",
        "moderate_pct",
        "critical_pct",
        "seasonal_variation",
        "volatility_share",
        "variance_share",
    ):
        try:
            values[name] = float(section.get(name, getattr(defaults, name)))
        except (TypeError, ValueError):
            # Ignore values that cannot be converted to float
            values[name] = getattr(defaults, name)

    for name in (
        "seasonal_min_months",
        "variance_min_months",
        "short_allocation_months",
    ):
        try:
            values[name] = int(section.get(name, getattr(defaults, name)))
        except (TypeError, ValueError):
            values[name] = getattr(defaults, name)

    values["large_payment_thresholds"] = _parse_large_payment_thresholds(
        section, defaults.large_payment_thresholds
    )

    if not values["balanced_pct"] <= values["moderate_pct"] <= values["critical_pct"]:
        raise ValueError(
            "Insight thresholds must satisfy balanced_pct <= moderate_pct "
            "<= critical_pct."
        )

    return InsightThresholds(**values)


def load_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load the SMB FinPulse engine configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [currencies]
        ``codes`` (list of currency codes always reported, default
        ["VND", "USD", "NGN"]) and ``default`` (currency of records that
        carry none, default the first code).

    [exchange_rates]
        Optional. ``base`` plus one rate per other currency. When present,
        consolidated totals are converted into the base currency instead
        of being summed as raw numbers.

    [insights]
        Optional thresholds of the insight rules (see InsightThresholds).
        The sub-table [insights.large_payment_thresholds] maps currency
        codes to their own large payment threshold.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. When omitted, the file
        ``smb_finpulse_config.toml`` of the working directory is used if it
        exists; otherwise the built-in defaults are returned.

    Returns
    -------
    EngineConfig
        Parsed and validated configuration.

    Raises
    ------
    FileNotFoundError
        If an explicit ``config_path`` does not exist.
    ValueError
        If the file cannot be parsed or contains invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILENAME).resolve()
        if not config_file.is_file():
            return EngineConfig()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)

    currencies, default_currency = _parse_currencies(raw)
    base_currency, exchange_rates = _parse_exchange_rates(raw, currencies)
    thresholds = _parse_thresholds(raw)

    return EngineConfig(
        currencies=currencies,
        default_currency=default_currency,
        base_currency=base_currency,
        exchange_rates=exchange_rates,
        thresholds=thresholds,
    )
