"""Forecasting API routes."""

import asyncio
import contextvars
import functools

from fastapi import APIRouter, Depends, status

from forecast_engine.core.config import get_settings
from forecast_engine.core.exceptions import ForecastTimeoutError
from forecast_engine.core.logging import get_logger
from forecast_engine.features.forecasting.schemas import ForecastRequest, ForecastResult
from forecast_engine.features.forecasting.service import (
    ForecastingService,
    get_forecasting_service,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/forecasting", tags=["forecasting"])


@router.post(
    "/seasonal",
    response_model=ForecastResult,
    status_code=status.HTTP_200_OK,
    summary="Forecast a monthly series",
    description="""
Forecast the next months of a monthly series with seasonal Holt-Winters.

**Pipeline:**
- Outliers are winsorized (capped, never removed)
- Smoothing weights are grid-searched unless `manual_parameters` is given
- The first month is blended with `current_period_partial` when supplied
- Accuracy comes from walk-forward (out-of-sample) backtesting

**Degraded results:** Short, all-zero, or otherwise unusable series return
zero projections with `confidence="low"`; `diagnostics` explains why.
""",
)
async def forecast_seasonal(
    request: ForecastRequest,
    service: ForecastingService = Depends(get_forecasting_service),
) -> ForecastResult:
    """Forecast a monthly series.

    Args:
        request: Forecast request.
        service: Forecasting service from dependency.

    Returns:
        Forecast with accuracy and outlier diagnostics.

    Raises:
        ForecastTimeoutError: If the forecast exceeds the configured timeout.
    """
    settings = get_settings()

    logger.info(
        "forecasting.request_received",
        n_observations=len(request.historical_series),
        season_length=request.season_length,
        horizon=request.forecast_horizon,
        manual_parameters=request.manual_parameters is not None,
    )

    # The worker thread keeps the request context so engine logs carry request_id.
    # On timeout the thread is abandoned, not interrupted.
    context = contextvars.copy_context()
    loop = asyncio.get_running_loop()
    try:
        result = await asyncio.wait_for(
            loop.run_in_executor(None, functools.partial(context.run, service.forecast, request)),
            timeout=settings.forecast_timeout_seconds,
        )
    except TimeoutError as e:
        logger.warning(
            "forecasting.request_timed_out",
            timeout_seconds=settings.forecast_timeout_seconds,
            n_observations=len(request.historical_series),
        )
        raise ForecastTimeoutError(settings.forecast_timeout_seconds) from e

    logger.info(
        "forecasting.request_completed",
        monthly_forecast=result.monthly_forecast,
        confidence=result.confidence,
        diagnostics=result.diagnostic_codes,
    )
    return result
