from fastapi import Request

from converter.services.page import RenderContext


def get_render_context(request: Request) -> RenderContext:
    """Fresh context per request over the app-wide stores; nothing is fetched here."""
    state = request.app.state
    return RenderContext(
        rates=state.rate_store,
        templates=state.template_store,
        settings=state.settings,
    )
