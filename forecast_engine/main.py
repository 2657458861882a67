"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forecast_engine.core.config import get_settings
from forecast_engine.core.exceptions import register_exception_handlers
from forecast_engine.core.health import router as health_router
from forecast_engine.core.logging import configure_logging, get_logger
from forecast_engine.core.middleware import RequestIdMiddleware
from forecast_engine.features.forecasting.routes import router as forecasting_router
from forecast_engine.features.forecasting.service import get_forecasting_service

logger = get_logger(__name__)

# Dashboard dev server, allowed only in development
DEV_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging on startup and report cache use on shutdown."""
    settings = get_settings()
    configure_logging()

    logger.info(
        "app.startup_completed",
        app_name=settings.app_name,
        app_env=settings.app_env,
        season_length=settings.forecast_season_length,
        search_candidates=len(settings.forecast_alpha_grid)
        * len(settings.forecast_beta_grid)
        * len(settings.forecast_gamma_grid),
        search_n_jobs=settings.forecast_search_n_jobs,
    )

    yield

    cache = get_forecasting_service().cache
    logger.info(
        "app.shutdown_completed",
        cache_entries=len(cache),
        cache_hits=cache.hits,
        cache_misses=cache.misses,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Seasonal demand forecasting engine for monthly business metrics",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # First added = outermost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=DEV_ORIGINS if settings.is_development else [],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time-Ms"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(forecasting_router)

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "forecast_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        reload=settings.is_development and settings.debug,
    )
