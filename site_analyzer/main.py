"""
Site Analyzer - API entry point.
FastAPI application that registers projects and starts, observes and
cancels website analyses.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from site_analyzer.api.v1.routes import analyses, exclusion_patterns, health, projects
from site_analyzer.core.config import get_settings
from site_analyzer.core.database import get_engine
from site_analyzer.core.logging import configure_logging

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    configure_logging()
    logger.info("Starting Site Analyzer", version=settings.APP_VERSION, env=settings.ENV)

    yield

    await get_engine().dispose()
    logger.info("Application shutdown complete")


def create_application() -> FastAPI:
    app = FastAPI(
        title="Site Analyzer API",
        description="Website crawler and SEO analysis engine.",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.ENV != "production" else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(projects.router, prefix="/api/v1/projects", tags=["Projects"])
    app.include_router(analyses.router, prefix="/api/v1/analyses", tags=["Analyses"])
    app.include_router(exclusion_patterns.router, prefix="/api/v1/exclusion-patterns", tags=["Exclusion Patterns"])

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "request_id": request.headers.get("x-request-id")},
        )

    return app


app = create_application()
