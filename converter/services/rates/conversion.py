"""Amount conversion at a resolved rate.

Rounding happens once, here; the unrounded rate travels alongside so the
browser can recompute other amounts without compounding rounding error.
"""

from __future__ import annotations

from dataclasses import dataclass

from converter.core.errors import InvalidAmount
from converter.services.money import round2


@dataclass(frozen=True)
class ConversionResult:
    rate: float
    amount: float
    converted_amount: float


def convert(rate: float, amount: float) -> ConversionResult:
    converted = round2(amount * rate)
    # a positive amount never converts to 0.00
    if converted <= 0:
        raise InvalidAmount("Amount too small to convert")
    return ConversionResult(rate=rate, amount=amount, converted_amount=converted)
