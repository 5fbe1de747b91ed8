"""
Standalone FastAPI app wiring for AppControl.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.db import DB, init_db
from app.middleware import configure_middleware
from app.routes.apps import router as apps_router
from app.routes.health import router as health_router
from app.routes.root import router as root_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize on startup, cleanup on shutdown."""
    init_db()
    try:
        yield
    finally:
        if DB.engine:
            DB.engine.dispose()


def build_app(use_lifespan: bool = True) -> FastAPI:
    application = FastAPI(
        title="AppControl",
        redirect_slashes=False,
        lifespan=lifespan if use_lifespan else None,
    )
    configure_middleware(application)
    application.include_router(health_router)
    application.include_router(root_router)
    application.include_router(apps_router)
    return application


app = build_app()
