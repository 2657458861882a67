"""Health check endpoint."""

from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from forecast_engine.core.config import get_settings
from forecast_engine.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal["ok", "degraded", "unhealthy"]
    app_name: str
    season_length: int


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check; the engine has no external dependencies to probe.

    Returns:
        Health status response.
    """
    settings = get_settings()
    logger.debug("health.check_started")
    return HealthResponse(
        status="ok",
        app_name=settings.app_name,
        season_length=settings.forecast_season_length,
    )
