"""Rate API.

Endpoints:
    - GET /api/rate?from=USD&to=EUR  -> plain-text rate, never cached
    - GET /api/rates?base=USD        -> stored table for a base as JSON

Both answer cross-origin requests from any site.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from converter.core.errors import InvalidCurrency, InvalidInput
from converter.models.constants import DEFAULT_API_FROM, DEFAULT_API_TO
from converter.models.rates import normalize_currency
from converter.routers.deps import get_render_context
from converter.services.cache_policy import CacheDirective, cache_headers, decide_cache_directive
from converter.services.page import RenderContext, load_rate_table
from converter.services.rates.resolver import resolve_rate

logger = logging.getLogger("converter.api")

router = APIRouter(prefix="/api", tags=["rates"])

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


@router.get("/rate", response_class=PlainTextResponse, summary="Rate for one currency pair")
async def get_rate(
    from_: str = Query(DEFAULT_API_FROM, alias="from"),
    to: str = Query(DEFAULT_API_TO),
    ctx: RenderContext = Depends(get_render_context),
):
    try:
        src = normalize_currency(from_)
        dst = normalize_currency(to)
    except InvalidCurrency as e:
        raise InvalidInput(e.message) from e
    table = load_rate_table(ctx)
    rate = resolve_rate(table, src, dst)
    return PlainTextResponse(
        str(rate),
        headers={**cache_headers(CacheDirective.no_store()), **CORS_HEADERS},
    )


@router.get("/rates", summary="Stored rate table for a base currency")
async def get_rates(
    request: Request,
    base: str = Query(DEFAULT_API_FROM),
    ctx: RenderContext = Depends(get_render_context),
):
    try:
        code = normalize_currency(base)
    except InvalidCurrency:
        return JSONResponse(
            {"error": "Invalid base currency. Must be 3-letter code (e.g., USD, EUR)"},
            status_code=400,
            headers=CORS_HEADERS,
        )
    try:
        table = ctx.rates.get_table(code)
    except Exception as e:
        logger.exception("failed to read rates for %s", code)
        return JSONResponse(
            {"error": "Failed to fetch rates", "message": str(e)},
            status_code=500,
            headers=CORS_HEADERS,
        )
    if table is None:
        return JSONResponse(
            {
                "error": f"No rates found for base currency: {code}",
                "message": "The rate fetch job may not have stored this base yet.",
            },
            status_code=404,
            headers=CORS_HEADERS,
        )
    directive = decide_cache_directive(
        request.method, "application/json", rate_sensitive=True, settings=ctx.settings
    )
    return JSONResponse(
        {
            "success": True,
            "base": table.base,
            "rates": table.rates,
            "timestamp": table.as_of.isoformat(),
            "source": table.source,
        },
        headers={**cache_headers(directive), **CORS_HEADERS},
    )
