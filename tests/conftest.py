from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any, Dict

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from converter.core.config import Settings
from converter.main import create_app
from converter.models.rates import RateTable

PACKAGE_STATIC = Path(__file__).resolve().parent.parent / "converter" / "static"

USD_PAYLOAD: Dict[str, Any] = {
    "rates": {"EUR": 0.85, "JPY": 150.0, "GBP": 0.79},
    "at": "2026-10-17T06:00:00Z",
    "source": "test",
}


@pytest.fixture
def usd_table() -> RateTable:
    return RateTable.from_store("USD", USD_PAYLOAD)


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    target = tmp_path / "static"
    shutil.copytree(PACKAGE_STATIC, target)
    return target


@pytest.fixture
def settings(tmp_path: Path, static_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        static_dir=static_dir,
        debug=False,
    )


@pytest.fixture
def empty_app(settings: Settings) -> FastAPI:
    return create_app(settings_override=settings)


@pytest.fixture
def app(empty_app: FastAPI, usd_table: RateTable) -> FastAPI:
    empty_app.state.rate_store.put_table(usd_table)
    return empty_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def empty_client(empty_app: FastAPI) -> TestClient:
    return TestClient(empty_app, raise_server_exceptions=False)
