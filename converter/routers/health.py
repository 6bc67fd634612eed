from fastapi import APIRouter, Depends

from converter.routers.deps import get_render_context
from converter.services.page import RenderContext

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness and rate table presence")
async def health(ctx: RenderContext = Depends(get_render_context)):
    base = ctx.settings.base_currency
    table = ctx.rates.get_table(base)
    return {
        "status": "ok",
        "version": ctx.settings.version,
        "base": base,
        "rates_available": table is not None,
        "rates_as_of": table.as_of.isoformat() if table else None,
    }
