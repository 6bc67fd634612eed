from __future__ import annotations

import importlib

import pytest


@pytest.mark.parametrize(
    "module",
    [
        "converter.routers.api",
        "converter.routers.pages",
        "converter.services.cache_policy",
        "converter.services.response_cache",
        "converter.services.templates",
        "converter.services.rates.conversion",
        "converter.services.rates.resolver",
        "converter.services.rates.store",
        "converter.services.rewriter",
        "converter.services.hydration",
    ],
)
def test_module_docstring_is_set(module: str) -> None:
    doc = importlib.import_module(module).__doc__
    assert doc and doc.strip()
