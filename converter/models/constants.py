"""Domain constants shared by validation, the rate store and the page pipeline."""

import re
from typing import Pattern

CURRENCY_CODE_RE: Pattern[str] = re.compile(r"^[A-Z]{3}$")
# ASCII decimal with optional exponent
AMOUNT_RE: Pattern[str] = re.compile(r"^[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$")

# Key layout in the rate key-value store, written by the external fetch job.
RATES_KEY_PREFIX = "rates:"
DEFAULT_RATES_SOURCE = "exchangerate.host"

DEFAULT_AMOUNT = 1.0
DEFAULT_API_FROM = "USD"
DEFAULT_API_TO = "EUR"


def rates_key(base: str) -> str:
    return f"{RATES_KEY_PREFIX}{base.upper()}"
