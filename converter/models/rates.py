from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from converter.core.errors import InvalidAmount, InvalidCurrency
from .constants import AMOUNT_RE, CURRENCY_CODE_RE, DEFAULT_AMOUNT, DEFAULT_RATES_SOURCE

logger = logging.getLogger("converter.models.rates")


def normalize_currency(raw: str | None) -> str:
    """Upper-case a currency code and reject anything but three ASCII letters."""
    code = (raw or "").strip().upper()
    if not CURRENCY_CODE_RE.match(code):
        raise InvalidCurrency("Invalid currency code")
    return code


def parse_amount(raw: str | float | None) -> float:
    if raw is None or raw == "":
        return DEFAULT_AMOUNT
    if isinstance(raw, str) and not AMOUNT_RE.fullmatch(raw):
        raise InvalidAmount("Invalid amount")
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        raise InvalidAmount("Invalid amount") from None
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmount("Invalid amount")
    return amount


class RateTable(BaseModel):
    """Snapshot of one base currency's rates, as written by the fetch job.

    The base never appears in ``rates``; its rate against itself is implicitly 1.0.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base: str
    as_of: datetime = Field(..., alias="at")
    rates: Dict[str, float]
    source: str = DEFAULT_RATES_SOURCE

    @field_validator("base")
    @classmethod
    def valid_base(cls, v: str) -> str:
        v = v.upper()
        if not CURRENCY_CODE_RE.match(v):
            raise ValueError("base must be a 3-letter currency code")
        return v

    @field_validator("rates")
    @classmethod
    def clean_rates(cls, v: Dict[str, float], info: ValidationInfo) -> Dict[str, float]:
        base = info.data.get("base")
        cleaned: Dict[str, float] = {}
        for code, value in v.items():
            code = code.upper()
            if code == base:
                continue
            if not CURRENCY_CODE_RE.match(code):
                logger.warning("dropping rate with malformed code %r", code)
                continue
            if not math.isfinite(value) or value <= 0:
                logger.warning("dropping non-positive rate %s=%r", code, value)
                continue
            cleaned[code] = value
        return cleaned

    @classmethod
    def from_store(cls, base: str, payload: Mapping[str, Any]) -> "RateTable":
        return cls(
            base=base,
            at=payload["at"],
            rates=payload["rates"],
            source=payload.get("source") or DEFAULT_RATES_SOURCE,
        )

    def to_store(self) -> Dict[str, Any]:
        return {
            "rates": dict(self.rates),
            "at": self.as_of.isoformat(),
            "source": self.source,
        }


class ConversionRequest(BaseModel):
    from_currency: str
    to_currency: str
    amount: float = Field(DEFAULT_AMOUNT, gt=0, allow_inf_nan=False)

    @classmethod
    def from_path(
        cls, from_raw: str, to_raw: str, amount_raw: str | None = None
    ) -> "ConversionRequest":
        """Validate raw path segments; raises before anything is fetched."""
        from_code = normalize_currency(from_raw)
        to_code = normalize_currency(to_raw)
        amount = parse_amount(amount_raw)
        return cls(from_currency=from_code, to_currency=to_code, amount=amount)
