"""HTML pages.

    - GET /                              -> index.html with the Convert button wired up
    - GET /{from}-to-{to}[/{amount}]     -> conversion page, never cached downstream
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, StreamingResponse

from converter.models.rates import ConversionRequest
from converter.routers.deps import get_render_context
from converter.services.cache_policy import cache_headers, decide_cache_directive
from converter.services.page import RenderContext, render_conversion_page, render_homepage

router = APIRouter(tags=["pages"])

HTML_MEDIA_TYPE = "text/html; charset=utf-8"


@router.get("/", response_class=HTMLResponse, summary="Homepage")
async def homepage(request: Request, ctx: RenderContext = Depends(get_render_context)):
    stream = await render_homepage(ctx)
    directive = decide_cache_directive(
        request.method, "text/html", rate_sensitive=False, settings=ctx.settings
    )
    return StreamingResponse(stream, media_type=HTML_MEDIA_TYPE, headers=cache_headers(directive))


@router.get(
    "/{from_code}-to-{to_code}",
    response_class=HTMLResponse,
    summary="Conversion page for a currency pair (amount 1)",
)
@router.get(
    "/{from_code}-to-{to_code}/{amount}",
    response_class=HTMLResponse,
    summary="Conversion page for a currency pair and amount",
)
async def conversion_page(
    request: Request,
    from_code: str,
    to_code: str,
    amount: Optional[str] = None,
    ctx: RenderContext = Depends(get_render_context),
):
    conversion = ConversionRequest.from_path(from_code, to_code, amount)
    stream = await render_conversion_page(ctx, conversion)
    # the body is HTML whatever the client advertised in Accept
    directive = decide_cache_directive(
        request.method, "text/html", rate_sensitive=True, settings=ctx.settings
    )
    return StreamingResponse(stream, media_type=HTML_MEDIA_TYPE, headers=cache_headers(directive))
