"""Walk-forward validation of a forecasting function.

Orchestrates:
- Generating expanding training prefixes
- Forecasting ``step`` points past each prefix
- Collecting out-of-sample errors
- Aggregating them into one AccuracyReport

The forecasting function only ever receives a read-only copy of the
training prefix, so it has no way to see the points it is asked to forecast.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np
import structlog

from forecast_engine.core.config import get_settings
from forecast_engine.core.exceptions import ForecastEngineError
from forecast_engine.features.backtesting.metrics import MetricsCalculator
from forecast_engine.features.backtesting.schemas import (
    AccuracyReport,
    BacktestReport,
    WalkForwardConfig,
)
from forecast_engine.features.backtesting.splitter import WalkForwardSplitter

logger = structlog.get_logger()

FloatArray = np.ndarray[Any, np.dtype[np.floating[Any]]]
ForecastFn = Callable[[FloatArray, int], Sequence[float] | FloatArray]


class WalkForwardValidator:
    """Backtest a forecasting function with walk-forward validation.

    Attributes:
        forecast_fn: Callable ``(train_prefix, steps) -> forecasts``.
        config: Walk-forward configuration.
        season_length: Seasonality period used for MASE scaling.
    """

    def __init__(
        self,
        forecast_fn: ForecastFn,
        config: WalkForwardConfig,
        season_length: int | None = None,
    ) -> None:
        """Initialize the validator.

        Args:
            forecast_fn: Callable ``(train_prefix, steps) -> forecasts``.
            config: Walk-forward configuration.
            season_length: Seasonality period (defaults to settings).
        """
        self.forecast_fn = forecast_fn
        self.config = config
        self.season_length = season_length or get_settings().forecast_season_length
        self.metrics_calculator = MetricsCalculator()

    def run(self, series: Sequence[float] | FloatArray) -> BacktestReport:
        """Run walk-forward validation over a series.

        A fold whose forecast function raises ForecastEngineError or
        ValueError, or returns too few values, is counted as failed and
        skipped. Negative or non-finite forecasts are clamped to zero.

        Args:
            series: Chronological observations.

        Returns:
            BacktestReport with per-point results and aggregate accuracy.
        """
        start_time = time.perf_counter()
        y = np.asarray(series, dtype=np.float64)
        splitter = WalkForwardSplitter(self.config)

        forecast_indices: list[int] = []
        actuals: list[float] = []
        predictions: list[float] = []
        n_folds = 0
        failed_folds = 0

        for split in splitter.split(len(y)):
            train = y[split.train_indices].copy()
            train.setflags(write=False)
            steps = len(split.test_indices)

            try:
                raw = np.asarray(self.forecast_fn(train, steps), dtype=np.float64)
            except (ForecastEngineError, ValueError) as e:
                failed_folds += 1
                logger.warning(
                    "backtesting.fold_failed",
                    fold_index=split.fold_index,
                    train_size=len(train),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            if raw.ndim != 1 or len(raw) < steps:
                failed_folds += 1
                logger.warning(
                    "backtesting.fold_short_forecast",
                    fold_index=split.fold_index,
                    expected=steps,
                    received=int(raw.size),
                )
                continue

            fold_predictions = np.where(np.isfinite(raw[:steps]), np.maximum(raw[:steps], 0.0), 0.0)

            n_folds += 1
            forecast_indices.extend(int(i) for i in split.test_indices)
            actuals.extend(float(v) for v in y[split.test_indices])
            predictions.extend(float(v) for v in fold_predictions)

        accuracy = self.metrics_calculator.compute(
            actuals,
            predictions,
            season_length=self.season_length,
            scale_reference=y,
        )
        leakage_check_passed = splitter.validate_no_leakage(len(y))

        logger.info(
            "backtesting.walk_forward_completed",
            n_observations=len(y),
            n_folds=n_folds,
            failed_folds=failed_folds,
            smape=accuracy.smape,
            mase=accuracy.mase,
            leakage_check_passed=leakage_check_passed,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

        return BacktestReport(
            n_folds=n_folds,
            failed_folds=failed_folds,
            min_train_size=self.config.min_train_size,
            step=self.config.step,
            forecast_indices=forecast_indices,
            actuals=actuals,
            predictions=predictions,
            accuracy=accuracy,
            leakage_check_passed=leakage_check_passed,
        )


def walk_forward_validate(
    series: Sequence[float] | FloatArray,
    forecast_fn: ForecastFn,
    min_train_size: int,
    step: int = 1,
    season_length: int | None = None,
) -> AccuracyReport:
    """Walk-forward validate ``forecast_fn`` and return the aggregate accuracy.

    Args:
        series: Chronological observations.
        forecast_fn: Callable ``(train_prefix, steps) -> forecasts``.
        min_train_size: Length of the first training prefix.
        step: Forecast steps per fold.
        season_length: Seasonality period used for MASE scaling.

    Returns:
        AccuracyReport over every out-of-sample forecast.
    """
    config = WalkForwardConfig(min_train_size=min_train_size, step=step)
    return WalkForwardValidator(forecast_fn, config, season_length).run(series).accuracy
