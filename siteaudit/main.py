"""
FastAPI application entry point for SiteAudit.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siteaudit.api.v1.router import api_router
from siteaudit.config import Settings, get_settings
from siteaudit.context import AppContext, build_context
from siteaudit.database import init_db
from siteaudit.logging import setup_logging
from siteaudit.worker import celery_app

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """Build the API application.

    A given `context` is used as-is and left open on shutdown; otherwise one
    is built from `settings` at startup and closed at shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        owned = context is None
        ctx = build_context(settings, celery_app) if owned else context
        if owned:
            await init_db(ctx.engine)
        app.state.context = ctx
        logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started ({settings.ENVIRONMENT})")
        yield
        if owned:
            await ctx.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_V1_STR)

    if context is not None:
        app.state.context = context

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.VERSION}

    return app


setup_logging(get_settings().LOG_LEVEL)
app = create_app()
