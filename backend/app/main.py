"""Gigarena API: FastAPI entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from app.api.auth import router as auth_router
from app.api.gamification import router as gamification_router
from app.api.pages import router as pages_router
from app.core.config import Settings, settings as default_settings
from app.core.database import Database
from app.core.errors import register_error_handlers
from app.middleware.route_guard import RouteGuardMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database at startup and close it at shutdown."""
    database: Database = app.state.database
    logger.info("Starting %s v%s", app.title, app.version)
    database.open()
    await database.create_all()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down")
    await database.close()


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Build the application around an explicitly constructed database."""
    settings = settings or default_settings

    app = FastAPI(
        lifespan=lifespan,
        title=settings.app_name,
        description="Freelancing marketplace API: contests, freelancers, profiles and gamification",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.database = database or Database(settings.database_url, echo=settings.debug)

    register_error_handlers(app)

    app.add_middleware(RouteGuardMiddleware, settings=settings)
    # Session cookies need credentialed CORS, so origins are listed explicitly
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API routes
    app.include_router(router, prefix="/api/v1")
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(gamification_router, prefix="/api/v1")

    # Pages
    app.include_router(pages_router)

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": VERSION,
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


app = create_app()
