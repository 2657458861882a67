"""Forecasting module for seasonal demand forecasts.

Exports:
    Model:
        - fit_and_forecast: Multiplicative Holt-Winters fit and forecast
        - FittedModel: Level, trend, seasonal components and forecast

    Forecasters:
        - BaseForecaster: Abstract base class for all forecasters
        - NaiveForecaster: Predicts last observed value
        - SeasonalNaiveForecaster: Predicts value from same season
        - HoltWintersForecaster: Holt-Winters with fixed weights

    Search:
        - ParameterSearch, SearchResult, search_best_parameters

    Orchestration:
        - ForecastOrchestrator: Full pipeline, never raises
        - ForecastingService: Caller-side memoization

    Schemas:
        - ModelParameters, CurrentPeriodPartial
        - ForecastRequest, ForecastResult
"""

from forecast_engine.features.forecasting.holt_winters import FittedModel, fit_and_forecast
from forecast_engine.features.forecasting.models import (
    BaseForecaster,
    HoltWintersForecaster,
    NaiveForecaster,
    SeasonalNaiveForecaster,
)
from forecast_engine.features.forecasting.orchestrator import ForecastOrchestrator
from forecast_engine.features.forecasting.schemas import (
    BlendSummary,
    CurrentPeriodPartial,
    Diagnostic,
    ForecastRequest,
    ForecastResult,
    ModelParameters,
    OutlierSummary,
)
from forecast_engine.features.forecasting.search import (
    ParameterSearch,
    SearchResult,
    search_best_parameters,
)
from forecast_engine.features.forecasting.service import ForecastingService

__all__ = [
    # Forecasters
    "BaseForecaster",
    # Schemas
    "BlendSummary",
    "CurrentPeriodPartial",
    "Diagnostic",
    # Model
    "FittedModel",
    # Orchestration
    "ForecastOrchestrator",
    "ForecastRequest",
    "ForecastResult",
    "ForecastingService",
    "HoltWintersForecaster",
    "ModelParameters",
    "NaiveForecaster",
    "OutlierSummary",
    # Search
    "ParameterSearch",
    "SearchResult",
    "SeasonalNaiveForecaster",
    "fit_and_forecast",
    "search_best_parameters",
]
