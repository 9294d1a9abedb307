"""GitVision REST API: FastAPI application factory."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gitvision.api.deps import dispose_service, init_service
from gitvision.api.errors import register_error_handlers
from gitvision.api.routers import commits, dashboard, repositories, settings, user
from gitvision.core.logging import setup_logging


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: build the data service and start the cache sweeper. Shutdown: close it."""
    service = init_service()
    await service.start()
    yield
    await dispose_service()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="GitVision",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    cors_origins = os.environ.get("GITVISION_CORS_ORIGINS", "http://localhost:5173")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cors_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["dashboard"])
    app.include_router(
        repositories.router, prefix="/api/v1/repositories", tags=["repositories"]
    )
    app.include_router(commits.router, prefix="/api/v1/commits", tags=["commits"])
    app.include_router(user.router, prefix="/api/v1/user", tags=["user"])
    app.include_router(settings.router, prefix="/api/v1/settings", tags=["settings"])

    return app
