import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .routers import api, health, pages
from .services.rates.store import RateStore, SqliteKeyValueStore
from .services.response_cache import ResponseCache, make_edge_cache_middleware
from .services.templates import make_template_store


def create_app(settings_override: Settings | None = None) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB, fixture templates). Falls back to cached get_settings().
    """
    settings = settings_override or get_settings()
    if settings_override is not None:
        settings.init_post_load()
    # Initialize logging early
    init_logging(debug=settings.debug)

    rate_store = RateStore(SqliteKeyValueStore(settings.db_path))  # type: ignore[arg-type]
    if settings.rates_seed_path is not None:
        try:
            rate_store.seed_from_file(settings.rates_seed_path, settings.rates_ttl_seconds)
        except Exception:
            # A broken seed file is fatal; re-raise after logging
            logging.getLogger("converter").exception("failed to seed rates on startup")
            raise

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version
    )
    app.state.settings = settings
    app.state.rate_store = rate_store
    app.state.template_store = make_template_store(settings)
    app.state.response_cache = ResponseCache(settings.edge_cache_max_entries)

    # Middleware: the last registered runs first, so request ids wrap cache hits too
    if settings.enable_edge_cache:
        app.middleware("http")(make_edge_cache_middleware(app.state.response_cache))
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(errors.ConverterError, errors.converter_error_handler)
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(api.router)
    app.include_router(pages.router)

    # Remaining paths are static assets (css, images, the raw templates)
    app.mount("/", StaticFiles(directory=settings.static_dir), name="static")

    return app


app = create_app()
