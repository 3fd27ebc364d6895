"""
FastAPI application entry point for the AAC backend.
"""

from __future__ import annotations

from fastapi import FastAPI

from backend import __version__
from backend.config import get_settings
from backend.errors import register_error_handlers
from backend.routes import health_router, router


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="AAC Board Backend (FastAPI)", version=__version__)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
