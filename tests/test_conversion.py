from __future__ import annotations

import pytest

from converter.core.errors import InvalidAmount, InvalidCurrency
from converter.models.rates import ConversionRequest, RateTable
from converter.services.money import format_amount_param, format_money, format_rate, round2
from converter.services.rates.conversion import convert
from converter.services.rates.resolver import resolve_rate


@pytest.mark.parametrize(
    "src,dst,amount,expected",
    [
        ("EUR", "JPY", 10, 1764.71),
        ("USD", "EUR", 1, 0.85),
        ("JPY", "USD", 100, 0.67),
    ],
)
def test_conversion_scenarios(
    usd_table: RateTable, src: str, dst: str, amount: float, expected: float
) -> None:
    result = convert(resolve_rate(usd_table, src, dst), amount)
    assert result.converted_amount == expected
    assert result.amount == amount


def test_rate_is_kept_unrounded(usd_table: RateTable) -> None:
    result = convert(resolve_rate(usd_table, "EUR", "JPY"), 10)
    assert result.rate == 150.0 / 0.85


def test_rounding_is_half_away_from_zero() -> None:
    assert round2(0.125) == 0.13
    assert round2(2.675) == 2.68
    assert round2(-0.125) == -0.13
    assert convert(1.0, 0.005).converted_amount == 0.01


def test_conversion_is_monotonic_in_amount() -> None:
    rate = 150.0 / 0.85
    amounts = [0.01, 0.5, 1, 1.005, 2, 10, 99.99, 1000, 123456.78]
    converted = [convert(rate, a).converted_amount for a in amounts]
    assert converted == sorted(converted)


def test_formatting_helpers() -> None:
    assert format_money(1764.7058823529412) == "1,764.71"
    assert format_money(0.85) == "0.85"
    assert format_rate(150.0 / 0.85) == "176.4706"
    assert format_rate(1 / 150) == "0.0067"
    assert format_rate(12345.6) == "12,345.6000"
    assert format_amount_param(10.0) == "10"
    assert format_amount_param(2.5) == "2.5"


def test_request_from_path_defaults_amount() -> None:
    req = ConversionRequest.from_path("usd", "eur")
    assert (req.from_currency, req.to_currency, req.amount) == ("USD", "EUR", 1.0)
    assert ConversionRequest.from_path("gbp", "jpy", "500").amount == 500.0


@pytest.mark.parametrize(
    "raw", ["-5", "0", "abc", "nan", "inf", "-inf", "1e400", "\u0661\u0662", "12abc", "1_000", " 5", "0x10"]
)
def test_request_rejects_bad_amount(raw: str) -> None:
    with pytest.raises(InvalidAmount):
        ConversionRequest.from_path("usd", "eur", raw)


@pytest.mark.parametrize("code", ["us", "usdd", "u1d", "", "€€€"])
def test_request_rejects_bad_currency(code: str) -> None:
    with pytest.raises(InvalidCurrency):
        ConversionRequest.from_path(code, "eur")


@pytest.mark.parametrize("raw,amount", [("1e3", 1000.0), (".5", 0.5), ("10.", 10.0), ("+2.25", 2.25)])
def test_request_accepts_plain_decimal_forms(raw: str, amount: float) -> None:
    assert ConversionRequest.from_path("usd", "eur", raw).amount == amount


def test_amount_converting_to_zero_is_rejected() -> None:
    with pytest.raises(InvalidAmount):
        convert(1 / 150.0, 0.001)
    assert convert(1 / 150.0, 1.5).converted_amount == 0.01
