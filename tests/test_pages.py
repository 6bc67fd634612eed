from __future__ import annotations

import re
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from converter.services.hydration import HYDRATION_ELEMENT_ID

NO_STORE = "no-cache, no-store, must-revalidate"


def _select_block(html: str, select_id: str) -> str:
    match = re.search(r'<select id="%s".*?</select>' % select_id, html, re.S)
    assert match is not None
    return match.group(0)


def test_conversion_page_with_amount(client: TestClient) -> None:
    r = client.get("/eur-to-jpy/10")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert r.headers["cache-control"] == NO_STORE
    assert r.headers["pragma"] == "no-cache"
    body = r.text
    assert "<title>10.00 EUR to JPY - 1,764.71 JPY | Currency Converter</title>" in body
    assert '<div class="fx-conversion-text"' in body
    assert "10.00 EUR = 1,764.71 JPY" in body
    assert "1 EUR = 176.4706 JPY" in body
    assert "Last updated: 2026-10-17 06:00 UTC" in body
    assert "{{CONVERSION}}" not in body

    from_select = _select_block(body, "from")
    assert '<option value="EUR" selected="selected">' in from_select
    assert from_select.count('selected="selected"') == 1
    assert 'data-selected="EUR"' in from_select
    to_select = _select_block(body, "to")
    assert '<option value="JPY" selected="selected">' in to_select
    assert to_select.count('selected="selected"') == 1

    assert 'id="amount" type="number" step="any" value="10"' in body
    assert '<a id="button"' not in body
    assert f'id="{HYDRATION_ELEMENT_ID}"' in body
    assert '<link href="/css/converter.css" rel="stylesheet" type="text/css">' in body
    assert '<img src="/images/logo.svg"' in body
    assert "history.replaceState" in body
    assert body.rstrip().endswith("</html>")


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/usd-to-eur", "1.00 USD = 0.85 EUR"),
        ("/USD-to-EUR/1", "1.00 USD = 0.85 EUR"),
        ("/jpy-to-usd/100", "100.00 JPY = 0.67 USD"),
        ("/gbp-to-gbp/2.5", "2.50 GBP = 2.50 GBP"),
    ],
)
def test_conversion_scenarios(client: TestClient, path: str, expected: str) -> None:
    r = client.get(path)
    assert r.status_code == 200
    assert expected in r.text


def test_unknown_currency_is_404(client: TestClient) -> None:
    r = client.get("/usd-to-xyz")
    assert r.status_code == 404
    assert r.text == "Currency not found: XYZ"


def test_malformed_currency_is_404(client: TestClient) -> None:
    r = client.get("/us-to-eur")
    assert r.status_code == 404
    assert r.text == "Invalid currency code"


class _SpyRates:
    def __init__(self) -> None:
        self.calls = 0

    def get_table(self, base: str):
        self.calls += 1
        return None


class _SpyTemplates:
    def __init__(self) -> None:
        self.calls = 0

    async def open(self, path: str):
        self.calls += 1
        raise AssertionError("template opened")


@pytest.mark.parametrize("amount", ["-5", "0", "abc"])
def test_invalid_amount_fails_before_any_fetch(app: FastAPI, amount: str) -> None:
    rates, templates = _SpyRates(), _SpyTemplates()
    app.state.rate_store = rates
    app.state.template_store = templates
    r = TestClient(app, raise_server_exceptions=False).get(f"/usd-to-eur/{amount}")
    assert r.status_code == 400
    assert r.text == "Invalid amount"
    assert rates.calls == 0
    assert templates.calls == 0


def test_missing_rate_table_is_503(empty_client: TestClient) -> None:
    r = empty_client.get("/usd-to-eur")
    assert r.status_code == 503
    assert r.text == "Exchange rates not available"


def test_missing_template_is_404(client: TestClient, static_dir: Path) -> None:
    (static_dir / "template.html").unlink()
    r = client.get("/usd-to-eur")
    assert r.status_code == 404
    assert r.text == "Template not found"


def test_unexpected_failure_is_500(app: FastAPI, monkeypatch) -> None:
    def boom(base: str):
        raise RuntimeError("boom")

    monkeypatch.setattr(app.state.rate_store, "get_table", boom)
    r = TestClient(app, raise_server_exceptions=False).get("/usd-to-eur")
    assert r.status_code == 500
    assert r.text == "Error: boom"


def test_homepage_is_shared_cacheable(client: TestClient) -> None:
    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["cache-control"] == "public, max-age=600, s-maxage=3600"
    assert '<a id="button"' in r.text
    assert "pairPath" in r.text
    assert '<link href="/css/converter.css"' in r.text
    assert HYDRATION_ELEMENT_ID not in r.text


def test_static_assets_are_served(client: TestClient) -> None:
    r = client.get("/css/converter.css")
    assert r.status_code == 200
    assert "text/css" in r.headers["content-type"]


def test_request_id_is_echoed(client: TestClient) -> None:
    r = client.get("/usd-to-eur", headers={"X-Request-ID": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"
    assert client.get("/health").headers["x-request-id"]


def test_health_reports_rate_table(client: TestClient) -> None:
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["base"] == "USD"
    assert body["rates_available"] is True
    assert body["rates_as_of"].startswith("2026-10-17T06:00:00")


def test_health_without_rates(empty_client: TestClient) -> None:
    body = empty_client.get("/health").json()
    assert body["rates_available"] is False
    assert body["rates_as_of"] is None


def test_non_ascii_digits_are_not_an_amount(client: TestClient) -> None:
    r = client.get("/usd-to-eur/%D9%A1%D9%A2")
    assert r.status_code == 400
    assert r.text == "Invalid amount"


def test_amount_too_small_to_convert_is_400(client: TestClient) -> None:
    r = client.get("/jpy-to-usd/0.001")
    assert r.status_code == 400
    assert r.text == "Amount too small to convert"
