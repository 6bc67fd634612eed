from __future__ import annotations

import json
import math
import re

import pytest

from converter.services.hydration import (
    HYDRATION_ELEMENT_ID,
    behavior_script,
    embed_json,
    homepage_script,
    hydration_script,
)
from converter.services.money import round2


def test_embedded_json_never_contains_markup_characters() -> None:
    data = {"note": "</script><script>alert(1)</script> & more"}
    text = embed_json(data)
    assert "<" not in text and ">" not in text and "&" not in text
    assert json.loads(text) == data


def test_hydration_script_carries_unrounded_rate() -> None:
    rate = 150.0 / 0.85
    markup = hydration_script("EUR", "JPY", rate, 10.0)
    match = re.fullmatch(
        r'<script type="application/json" id="%s">(.*)</script>' % HYDRATION_ELEMENT_ID, markup
    )
    assert match is not None
    assert json.loads(match.group(1)) == {"rate": rate, "from": "EUR", "to": "JPY", "amount": 10.0}


def test_behavior_script_recomputes_amount_and_navigates_on_currency_change() -> None:
    script = behavior_script()
    assert script.startswith("<script>") and script.endswith("</script>")
    assert HYDRATION_ELEMENT_ID in script
    assert 'amountEl.addEventListener("input", update)' in script
    assert 'fromEl.addEventListener("change", navigate)' in script
    assert "history.replaceState" in script
    assert "%(" not in script


def test_homepage_script_wires_convert_button() -> None:
    script = homepage_script()
    assert 'getElementById("button")' in script
    assert "pairPath" in script
    assert "%(" not in script


def _browser_round2(x: float) -> float:
    """Same steps as the script's round2: shift the shortest repr, Math.round, shift back."""
    sign = -1 if x < 0 else 1
    mantissa, _, exp = repr(abs(x)).partition("e")
    cents = math.floor(float(f"{mantissa}e{int(exp or 0) + 2}") + 0.5)
    return sign * float(f"{cents}e-2")


def test_browser_rounding_uses_decimal_string_shift() -> None:
    script = behavior_script()
    assert 'String(Math.abs(x)).split("e")' in script
    assert 'Math.round(Number(parts[0] + "e" + (exp + 2)))' in script
    assert 'Number(cents + "e-2")' in script
    assert "Number.EPSILON" not in script


@pytest.mark.parametrize(
    "value",
    [10.075, 1.005, 2.675, 1234.565, 0.125, 0.005, -2.675, 150.0 / 0.85 * 10, 1e-07, 12345678.915],
)
def test_browser_and_server_round_alike(value: float) -> None:
    assert _browser_round2(value) == round2(value)
