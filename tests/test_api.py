from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


def test_rate_for_pair(client: TestClient) -> None:
    r = client.get("/api/rate", params={"from": "EUR", "to": "JPY"})
    assert r.status_code == 200
    assert float(r.text) == pytest.approx(150.0 / 0.85)
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["cache-control"] == "no-cache, no-store, must-revalidate"


def test_rate_defaults_to_usd_eur(client: TestClient) -> None:
    r = client.get("/api/rate")
    assert r.status_code == 200
    assert r.text == "0.85"


def test_rate_codes_are_case_insensitive(client: TestClient) -> None:
    r = client.get("/api/rate", params={"from": "jpy", "to": "usd"})
    assert float(r.text) == pytest.approx(1 / 150.0)


def test_rate_rejects_malformed_code(client: TestClient) -> None:
    r = client.get("/api/rate", params={"from": "us"})
    assert r.status_code == 400
    assert r.text == "Invalid currency code"


def test_rate_unknown_code_is_404(client: TestClient) -> None:
    r = client.get("/api/rate", params={"to": "XYZ"})
    assert r.status_code == 404
    assert r.text == "Currency not found: XYZ"


def test_rate_without_table_is_503(empty_client: TestClient) -> None:
    r = empty_client.get("/api/rate")
    assert r.status_code == 503


def test_rates_table(client: TestClient) -> None:
    r = client.get("/api/rates")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["base"] == "USD"
    assert body["rates"] == {"EUR": 0.85, "JPY": 150.0, "GBP": 0.79}
    assert body["source"] == "test"
    assert body["timestamp"].startswith("2026-10-17T06:00:00")
    assert r.headers["cache-control"] == "public, max-age=300"
    assert r.headers["access-control-allow-origin"] == "*"


def test_rates_unknown_base_is_404(client: TestClient) -> None:
    r = client.get("/api/rates", params={"base": "gbp"})
    assert r.status_code == 404
    assert r.json()["error"] == "No rates found for base currency: GBP"


def test_rates_malformed_base_is_400(client: TestClient) -> None:
    r = client.get("/api/rates", params={"base": "xx"})
    assert r.status_code == 400
    assert "Invalid base currency" in r.json()["error"]


def test_rates_store_failure_is_500(client: TestClient, monkeypatch) -> None:
    def broken(base: str):
        raise RuntimeError("disk gone")

    monkeypatch.setattr(client.app.state.rate_store, "get_table", broken)
    r = client.get("/api/rates")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch rates", "message": "disk gone"}
