"""Conversions between raw magnitudes and compact display strings."""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from metis_yield.constants import COMPOUNDING_PERIODS

_FORMATTED_RE = re.compile(r"^([\d.]+)([KMB])?$", re.IGNORECASE)
_LEADING_FLOAT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

_SUFFIX_MULTIPLIERS = {
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}

# (unit, suffix, decimals) from smallest to largest
_SCALES = (
    (1, "", 2),
    (1_000, "K", 1),
    (1_000_000, "M", 2),
    (1_000_000_000, "B", 2),
)


def _leading_float(text: str) -> float:
    """Parse the numeric prefix of ``text``; NaN when there is none."""
    m = _LEADING_FLOAT_RE.match(text.strip())
    if not m:
        return math.nan
    return float(m.group(0))


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        return _leading_float(value)
    return math.nan


def format_amount(amount: Any) -> str:
    """Format a magnitude as e.g. ``1.23M``, ``131.7K`` or ``12.50``.

    Anything that is not a finite number formats as ``"0.00"``. No currency
    symbol is added.
    """
    value = _to_float(amount)
    if not math.isfinite(value):
        return "0.00"

    tier = 0
    for i, (threshold, _, _) in enumerate(_SCALES):
        if value >= threshold:
            tier = i
    threshold, suffix, digits = _SCALES[tier]
    text = f"{value / threshold:.{digits}f}"
    # Rounding can carry the mantissa up to 1000; show it in the next unit
    if float(text) >= 1000 and tier + 1 < len(_SCALES):
        threshold, suffix, digits = _SCALES[tier + 1]
        text = f"{value / threshold:.{digits}f}"
    return text + suffix


def parse_formatted_amount(formatted: Any) -> float:
    """Inverse of :func:`format_amount`: ``'$131.7K'`` -> ``131700.0``.

    Plain numeric strings parse as-is; empty or unparsable input gives 0.
    """
    if formatted is None or formatted == "":
        return 0.0
    if isinstance(formatted, (int, float, Decimal)) and not isinstance(formatted, bool):
        value = float(formatted)
        return value if math.isfinite(value) else 0.0

    cleaned = re.sub(r"[$,]", "", str(formatted)).strip()
    m = _FORMATTED_RE.match(cleaned)
    if not m:
        value = _leading_float(cleaned)
        return value if math.isfinite(value) else 0.0

    num_part, suffix = m.groups()
    base = _leading_float(num_part)
    if math.isnan(base):
        return 0.0
    if suffix:
        return base * _SUFFIX_MULTIPLIERS[suffix.upper()]
    return base


def apy_from_apr(apr: float, periods: int = COMPOUNDING_PERIODS) -> float:
    """APY (%) from APR (%) compounded ``periods`` times a year."""
    apr_decimal = apr / 100
    try:
        return (math.pow(1 + apr_decimal / periods, periods) - 1) * 100
    except OverflowError:
        return math.inf


def format_units(raw: Any, decimals: int = 18) -> str:
    """Render an integer token amount in whole units, e.g. ``10**18`` -> ``"1.0"``."""
    try:
        value = Decimal(str(raw)).scaleb(-decimals)
    except InvalidOperation:
        return "0.0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0")
        if text.endswith("."):
            text += "0"
    else:
        text += ".0"
    return text
