"""Pydantic domain models for the currency converter."""

from .constants import CURRENCY_CODE_RE, rates_key  # re-export
from .rates import ConversionRequest, RateTable, normalize_currency, parse_amount

__all__ = [
    "CURRENCY_CODE_RE",
    "rates_key",
    "ConversionRequest",
    "RateTable",
    "normalize_currency",
    "parse_amount",
]
