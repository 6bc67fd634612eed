"""Cross-rate resolution against a single-base rate table.

Every table stores ``1 base = rates[X] X``; any pair is derived through the
shared base, so one table serves all conversions.
"""

from __future__ import annotations

import math
from typing import Mapping, Protocol

from converter.core.errors import ComputationError, RateNotFound


class SupportsRateTable(Protocol):
    base: str
    rates: Mapping[str, float]


def _lookup(table: SupportsRateTable, code: str) -> float:
    value = table.rates.get(code)
    if value is None:
        raise RateNotFound(f"Currency not found: {code}")
    return value


def resolve_rate(table: SupportsRateTable, from_code: str, to_code: str) -> float:
    """Return how many ``to_code`` units one ``from_code`` unit buys."""
    if from_code == to_code:
        return 1.0
    try:
        if from_code == table.base:
            rate = _lookup(table, to_code)
        elif to_code == table.base:
            rate = 1 / _lookup(table, from_code)
        else:
            target = _lookup(table, to_code)
            source = _lookup(table, from_code)
            rate = target / source
    except ZeroDivisionError:
        rate = math.inf
    if not math.isfinite(rate) or rate <= 0:
        raise ComputationError(f"Unable to calculate rate for {from_code} to {to_code}")
    return rate
