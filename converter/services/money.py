"""Money / rounding helpers.

Centralized so the page pipeline, the rate API and the hydration script use
identical rounding semantics (half away from zero, two decimals).
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_money(value: float) -> str:
    """Thousands separators and exactly two decimals, e.g. ``1,764.71``."""
    return f"{round2(value):,.2f}"


def format_rate(rate: float) -> str:
    rounded = Decimal(str(rate)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
    return f"{rounded:,.4f}"


def format_amount_param(amount: float) -> str:
    """Shortest path form of an amount: ``10`` rather than ``10.0``."""
    if float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))
