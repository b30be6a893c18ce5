"""
FastAPI application entrypoint for the mailroom service.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mailroom.api.routes import callback_router, router as api_router
from mailroom.core.config import get_settings
from mailroom.core.exceptions import register_exception_handlers
from mailroom.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Mailroom",
        version="0.1.0",
        description="Gmail sender search gated by admin-issued access tokens.",
    )
    if settings.frontend_origin:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[settings.frontend_origin],
            allow_methods=["*"],
            allow_headers=["authorization", "content-type", "x-access-token"],
            allow_credentials=True,
        )
    register_exception_handlers(app)
    # Google redirects to the callback path registered in the console, with or
    # without the /api prefix depending on how the deployment was set up.
    app.include_router(callback_router)
    app.include_router(callback_router, prefix="/api")
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
