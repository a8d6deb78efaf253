"""
FastAPI application entrypoint for the Bling to Wix sync service.
"""

from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bling_wix_sync import __version__
from bling_wix_sync.api.routes import router as api_router
from bling_wix_sync.core.config import get_settings
from bling_wix_sync.core.errors import ConfigError
from bling_wix_sync.core.logging import configure_logging


async def _config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.SERVICE_UNAVAILABLE, content=exc.to_payload()
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Bling to Wix Stock Sync",
        version=__version__,
        description="Synchronizes Bling ERP stock levels into a Wix storefront.",
    )
    app.add_exception_handler(ConfigError, _config_error_handler)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
