"""Forecast orchestrator: the engine's only public entry point.

Linear pipeline, no branching back:
1. Validate configuration and sanitize the series
2. Treat outliers (winsorize)
3. Select parameters (grid search or manual)
4. Fit, forecast, and annualize
5. Blend the first month with the partial current period
6. Walk-forward backtest on the treated series
7. Assemble the ForecastResult

CRITICAL: run() never raises. Every failure resolves to a structurally
valid ForecastResult whose diagnostics say why trust was reduced.
"""

from __future__ import annotations

import math
import time
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
import structlog

from forecast_engine.core.config import Settings, get_settings
from forecast_engine.core.exceptions import (
    BacktestBaselineOnlyWarning,
    ConstantSeriesWarning,
    DegenerateSeriesWarning,
    ForecastEngineWarning,
    InputSanitizedWarning,
    InsufficientHistoryWarning,
    InvalidConfigurationWarning,
    InvalidCurrentPeriodWarning,
    InvalidManualParametersWarning,
    ParameterSearchExhaustionWarning,
)
from forecast_engine.features.backtesting.schemas import WalkForwardConfig
from forecast_engine.features.backtesting.validator import WalkForwardValidator
from forecast_engine.features.forecasting.holt_winters import fit_and_forecast
from forecast_engine.features.forecasting.models import (
    HoltWintersForecaster,
    NaiveForecaster,
    SeasonalNaiveForecaster,
)
from forecast_engine.features.forecasting.schemas import (
    MONTHS_PER_YEAR,
    BlendSummary,
    CurrentPeriodPartial,
    Diagnostic,
    ForecastResult,
    ModelParameters,
    OutlierSummary,
    ParameterSource,
)
from forecast_engine.features.forecasting.search import ParameterSearch
from forecast_engine.features.outliers.treatment import assess_data_quality, detect_and_treat

logger = structlog.get_logger()

FloatArray = np.ndarray[Any, np.dtype[np.floating[Any]]]

PartialInput = CurrentPeriodPartial | Mapping[str, float] | None
ParametersInput = ModelParameters | Mapping[str, float] | Sequence[float] | None


class ForecastOrchestrator:
    """Run the full forecasting pipeline for one monthly series.

    Stateless between calls; identical inputs give bit-identical results.

    Attributes:
        settings: Engine settings.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Engine settings (defaults to get_settings()).
        """
        self.settings = settings or get_settings()

    def run(
        self,
        historical_series: Sequence[float] | FloatArray,
        current_period_partial: PartialInput = None,
        target_horizon: int | None = None,
        manual_parameters: ParametersInput = None,
        season_length: int | None = None,
    ) -> ForecastResult:
        """Forecast the next months of a series.

        Args:
            historical_series: Monthly totals, oldest first.
            current_period_partial: Partial observation for the current month.
            target_horizon: Months to forecast (defaults to settings).
            manual_parameters: Smoothing weights that bypass the search.
            season_length: Periods per seasonal cycle (defaults to settings).

        Returns:
            ForecastResult; degenerate (zero projections, low confidence)
            when the series cannot support a forecast.
        """
        start_time = time.perf_counter()
        horizon = (
            target_horizon if target_horizon is not None else self.settings.forecast_default_horizon
        )
        period = season_length if season_length is not None else self.settings.forecast_season_length

        try:
            result = self._run(
                historical_series, current_period_partial, horizon, manual_parameters, period
            )
        except Exception as e:
            logger.error(
                "forecasting.run_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            result = ForecastResult.degenerate(
                diagnostics=[
                    Diagnostic(code="unexpected_error", message=f"{type(e).__name__}: {e}")
                ],
            )

        logger.info(
            "forecasting.run_completed",
            monthly_forecast=result.monthly_forecast,
            confidence=result.confidence,
            data_quality=result.data_quality,
            parameter_source=result.parameter_source,
            diagnostics=result.diagnostic_codes,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        return result

    def _run(
        self,
        historical_series: Sequence[float] | FloatArray,
        current_period_partial: PartialInput,
        horizon: int,
        manual_parameters: ParametersInput,
        season_length: int,
    ) -> ForecastResult:
        settings = self.settings
        diagnostics: list[Diagnostic] = []

        def record(warning: ForecastEngineWarning) -> None:
            diagnostics.append(Diagnostic.from_warning(warning))
            logger.warning("forecasting.degraded", code=warning.code, reason=str(warning))

        # 1. Validate
        config_errors = _configuration_errors(season_length, horizon, settings.forecast_max_horizon)
        if config_errors:
            record(InvalidConfigurationWarning("; ".join(config_errors)))
            return ForecastResult.degenerate(diagnostics=diagnostics)

        values, n_replaced = _sanitize(historical_series)
        n = len(values)
        if n_replaced:
            record(InputSanitizedWarning(f"{n_replaced} negative or non-finite values replaced by 0"))

        logger.info(
            "forecasting.run_started",
            n_observations=n,
            season_length=season_length,
            horizon=horizon,
            manual_parameters=manual_parameters is not None,
            partial_period=current_period_partial is not None,
        )

        min_required = 2 * season_length
        if n < min_required:
            record(
                InsufficientHistoryWarning(
                    f"Need at least {min_required} months of history, got {n}"
                )
            )
            return ForecastResult.degenerate(
                horizon=horizon,
                season_length=season_length,
                historical_average=float(np.mean(values)) if n else 0.0,
                diagnostics=diagnostics,
            )

        # 2. Treat outliers
        report = detect_and_treat(values)
        treated = report.winsorized_data
        outliers = OutlierSummary.from_report(report)
        historical_average = float(np.mean(treated))

        if not np.any(treated > 0):
            record(DegenerateSeriesWarning("Series is zero in every month"))
            return ForecastResult.degenerate(
                horizon=horizon,
                season_length=season_length,
                outliers=outliers,
                diagnostics=diagnostics,
            )
        if float(np.ptp(treated)) == 0.0:
            record(ConstantSeriesWarning("Series is constant; no seasonality to estimate"))

        # 3. Select parameters
        parameters: ModelParameters | None = None
        source: ParameterSource
        if manual_parameters is not None:
            try:
                parameters = _coerce_parameters(manual_parameters)
            except (TypeError, ValueError) as e:
                record(InvalidManualParametersWarning(f"Manual parameters rejected: {e}"))

        # 4. Fit and forecast
        if parameters is not None:
            fitted = fit_and_forecast(
                treated, season_length, horizon, *parameters.as_tuple()
            )
            source = "manual"
        else:
            search = ParameterSearch(settings, season_length=season_length).run(treated, horizon)
            fitted = search.fitted
            source = search.source
            if search.exhausted:
                record(
                    ParameterSearchExhaustionWarning(
                        f"No grid candidate could be scored; using default "
                        f"parameters {search.parameters.as_tuple()}"
                    )
                )

        forecast_path = [float(v) for v in fitted.forecast]

        # 5. Blend with partial current period
        blend = BlendSummary()
        if current_period_partial is not None:
            try:
                partial = _coerce_partial(current_period_partial)
                forecast_path[0], blend = self._blend(forecast_path[0], partial)
            except (TypeError, ValueError) as e:
                record(InvalidCurrentPeriodWarning(f"Partial period rejected: {e}"))

        monthly_forecast = forecast_path[0]
        annual_forecast = monthly_forecast * MONTHS_PER_YEAR
        variance_pct = (
            (monthly_forecast - historical_average) / historical_average * 100.0
            if historical_average > 0
            else 0.0
        )

        # 6. Walk-forward backtest on the treated series
        min_train = max(
            1,
            min(
                settings.backtest_min_train_size,
                math.floor(settings.backtest_min_train_fraction * n),
            ),
        )
        fold_forecaster = _FoldForecaster(
            settings, season_length, parameters if source == "manual" else None
        )
        validator = WalkForwardValidator(
            fold_forecaster,
            WalkForwardConfig(min_train_size=min_train, step=settings.backtest_step),
            season_length,
        )
        backtest = validator.run(treated).model_copy(
            update={
                "model_folds": fold_forecaster.model_folds,
                "baseline_folds": fold_forecaster.baseline_folds,
            }
        )
        accuracy = backtest.accuracy
        baseline_only = backtest.model_folds == 0
        if baseline_only:
            record(
                BacktestBaselineOnlyWarning(
                    f"No backtest fold had {2 * season_length} months to fit Holt-Winters; "
                    f"accuracy reflects {backtest.baseline_folds} baseline folds"
                )
            )

        # 7. Assemble
        confidence = "low" if report.impact == "high" or baseline_only else accuracy.confidence

        return ForecastResult(
            monthly_forecast=monthly_forecast,
            annual_forecast=annual_forecast,
            forecast_path=forecast_path,
            variance_pct=variance_pct,
            historical_average=historical_average,
            accuracy=accuracy,
            confidence=confidence,
            data_quality=assess_data_quality(report),
            outliers=outliers,
            backtest=backtest,
            parameters=fitted.parameters,
            parameter_source=source,
            blend=blend,
            season_length=season_length,
            diagnostics=diagnostics,
        )

    def _blend(self, model_forecast: float, partial: CurrentPeriodPartial) -> tuple[float, BlendSummary]:
        """Blend the model forecast with the partial month's run rate.

        run_rate = observed / min(elapsed, max_elapsed)
        blended  = w * model + (1 - w) * run_rate

        Blending only applies once more than ``forecast_blend_min_elapsed``
        of the month has passed and the run rate is positive.

        Raises:
            ValueError: If the run rate or its annual projection overflows.
        """
        settings = self.settings
        elapsed = min(partial.elapsed_fraction, settings.forecast_blend_max_elapsed)
        if partial.elapsed_fraction <= settings.forecast_blend_min_elapsed:
            return model_forecast, BlendSummary(elapsed_fraction=elapsed)

        run_rate = partial.observed_value / elapsed
        if not math.isfinite(run_rate):
            raise ValueError(f"run rate {partial.observed_value} / {elapsed} is not finite")
        if not run_rate > 0:
            return model_forecast, BlendSummary(elapsed_fraction=elapsed)

        weight = settings.forecast_blend_model_weight
        blended = weight * model_forecast + (1 - weight) * run_rate
        if not math.isfinite(blended * MONTHS_PER_YEAR):
            raise ValueError(f"blended forecast {blended} cannot be annualized")
        logger.info(
            "forecasting.partial_period_blended",
            model_forecast=model_forecast,
            run_rate=run_rate,
            blended=blended,
            elapsed_fraction=elapsed,
        )
        return blended, BlendSummary(
            applied=True,
            run_rate=run_rate,
            model_weight=weight,
            elapsed_fraction=elapsed,
        )

class _FoldForecaster:
    """Per-fold forecaster that only sees the training prefix.

    Holt-Winters when the prefix holds two seasons, the seasonal naive
    baseline when it holds more than one, and the naive baseline otherwise.
    Counts the folds each kind of model forecast.
    """

    def __init__(
        self, settings: Settings, season_length: int, parameters: ModelParameters | None
    ) -> None:
        self.settings = settings
        self.season_length = season_length
        self.parameters = parameters
        self.model_folds = 0
        self.baseline_folds = 0

    def __call__(self, train: FloatArray, steps: int) -> FloatArray:
        if len(train) >= 2 * self.season_length:
            forecast = self._holt_winters(train, steps)
            self.model_folds += 1
            return forecast
        if len(train) > self.season_length:
            forecast = SeasonalNaiveForecaster(self.season_length).fit(train).predict(steps)
        else:
            forecast = NaiveForecaster().fit(train).predict(steps)
        self.baseline_folds += 1
        return forecast

    def _holt_winters(self, train: FloatArray, steps: int) -> FloatArray:
        if self.parameters is not None:
            weights = self.parameters
        elif self.settings.backtest_refit_parameters:
            search = ParameterSearch(self.settings, season_length=self.season_length)
            return search.run(train, steps).fitted.forecast
        else:
            weights = ModelParameters.defaults(self.settings)
        model = HoltWintersForecaster(
            season_length=self.season_length,
            alpha=weights.alpha,
            beta=weights.beta,
            gamma=weights.gamma,
        )
        return model.fit(train).predict(steps)


def _configuration_errors(season_length: Any, horizon: Any, max_horizon: int) -> list[str]:
    errors: list[str] = []
    if isinstance(season_length, bool) or not isinstance(season_length, int) or season_length < 2:
        errors.append(f"season_length must be an integer >= 2, got {season_length!r}")
    if isinstance(horizon, bool) or not isinstance(horizon, int) or not 1 <= horizon <= max_horizon:
        errors.append(f"horizon must be an integer in [1, {max_horizon}], got {horizon!r}")
    return errors


def _sanitize(series: Sequence[float] | FloatArray) -> tuple[FloatArray, int]:
    """Copy the series, replacing negative and non-finite values by zero."""
    values = np.array(series, dtype=np.float64).reshape(-1)
    invalid = ~np.isfinite(values) | (values < 0)
    n_replaced = int(np.count_nonzero(invalid))
    if n_replaced:
        values[invalid] = 0.0
    return values, n_replaced


def _coerce_parameters(value: ParametersInput) -> ModelParameters:
    if isinstance(value, ModelParameters):
        return value
    if isinstance(value, Mapping):
        return ModelParameters.model_validate(dict(value))
    alpha, beta, gamma = value  # type: ignore[misc]
    return ModelParameters(alpha=alpha, beta=beta, gamma=gamma)


def _coerce_partial(value: PartialInput) -> CurrentPeriodPartial:
    if isinstance(value, CurrentPeriodPartial):
        return value
    return CurrentPeriodPartial.model_validate(value)
