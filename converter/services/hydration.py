"""Client-side hydration for the conversion page.

The server embeds ``{rate, from, to, amount}`` as a JSON data block; the
behavior script re-runs the conversion in the browser when only the amount
changes and rewrites the address bar to match. Changing either currency
needs a rate the browser does not have, so it navigates to a fresh page.

Rounding in the script mirrors ``money.round2``: half away from zero, two
decimals, applied to the unrounded rate times the new amount.
"""

from __future__ import annotations

import json
from typing import Any, Dict

HYDRATION_ELEMENT_ID = "fx-hydration"

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def hydration_payload(from_code: str, to_code: str, rate: float, amount: float) -> Dict[str, Any]:
    return {"rate": rate, "from": from_code, "to": to_code, "amount": amount}


def embed_json(data: Dict[str, Any]) -> str:
    """Serialize for a ``<script>`` block; markup characters never appear literally."""
    text = json.dumps(data, separators=(",", ":"), allow_nan=False)
    for char, replacement in _JSON_ESCAPES.items():
        text = text.replace(char, replacement)
    return text


def hydration_script(from_code: str, to_code: str, rate: float, amount: float) -> str:
    payload = embed_json(hydration_payload(from_code, to_code, rate, amount))
    return (
        f'<script type="application/json" id="{HYDRATION_ELEMENT_ID}">'
        f"{payload}</script>"
    )


_PATH_HELPERS = """
  function pairPath(from, to, amount) {
    var path = "/" + from.toLowerCase() + "-to-" + to.toLowerCase();
    if (amount && Number(amount) !== 1) {
      path += "/" + amount;
    }
    return path;
  }
"""

BEHAVIOR_SCRIPT = (
    """<script>
(function() {
  var dataEl = document.getElementById("%(data_id)s");
  var amountEl = document.getElementById("amount");
  var fromEl = document.getElementById("from");
  var toEl = document.getElementById("to");
  if (!dataEl || !amountEl || !fromEl || !toEl) return;
  var data = JSON.parse(dataEl.textContent);
%(helpers)s
  function round2(x) {
    // shift the shortest decimal form by two places, like Decimal(str(x))
    var sign = x < 0 ? -1 : 1;
    var parts = String(Math.abs(x)).split("e");
    var exp = parts.length > 1 ? Number(parts[1]) : 0;
    var cents = Math.round(Number(parts[0] + "e" + (exp + 2)));
    return sign * Number(cents + "e-2");
  }
  function fmt(x) {
    return x.toLocaleString("en-US", {minimumFractionDigits: 2, maximumFractionDigits: 2});
  }
  function update() {
    var raw = amountEl.value.trim();
    var amount = parseFloat(raw);
    if (!isFinite(amount) || amount <= 0) return;
    var converted = round2(amount * data.rate);
    if (converted <= 0) return;
    var line = document.querySelector("#conversion .fx-conversion-text");
    if (line) {
      line.textContent = fmt(amount) + " " + data.from + " = " + fmt(converted) + " " + data.to;
    }
    history.replaceState(null, "", pairPath(data.from, data.to, raw));
  }
  function navigate() {
    window.location.href = pairPath(fromEl.value, toEl.value, amountEl.value.trim());
  }
  amountEl.addEventListener("input", update);
  fromEl.addEventListener("change", navigate);
  toEl.addEventListener("change", navigate);

  var holder = document.querySelector(".div-block-2");
  if (holder && !document.getElementById("button")) {
    var button = document.createElement("a");
    button.id = "button";
    button.href = "#";
    button.className = "w-button";
    button.textContent = "Convert";
    button.addEventListener("click", function(e) {
      e.preventDefault();
      navigate();
    });
    holder.prepend(button);
  }
})();
</script>"""
    % {"data_id": HYDRATION_ELEMENT_ID, "helpers": _PATH_HELPERS}
)

HOMEPAGE_SCRIPT = (
    """<script>
(function() {
  var button = document.getElementById("button");
  var amountEl = document.getElementById("amount");
  var fromEl = document.getElementById("from");
  var toEl = document.getElementById("to");
  if (!button || !amountEl || !fromEl || !toEl) return;
%(helpers)s
  button.addEventListener("click", function(e) {
    e.preventDefault();
    window.location.href = pairPath(fromEl.value, toEl.value, amountEl.value.trim());
  });
})();
</script>"""
    % {"helpers": _PATH_HELPERS}
)


def behavior_script() -> str:
    return BEHAVIOR_SCRIPT


def homepage_script() -> str:
    return HOMEPAGE_SCRIPT
