"""Forecasters sharing a scikit-learn-style interface.

``fit(y) -> self`` and ``predict(horizon) -> ndarray``. The walk-forward
backtest builds one forecaster per fold, so every implementation is
deterministic and keeps no state beyond its last fit.

The naive baselines cover folds whose training prefix is too short for
Holt-Winters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from forecast_engine.features.forecasting.holt_winters import FittedModel, fit_and_forecast

FloatArray = np.ndarray[Any, np.dtype[np.floating[Any]]]


class BaseForecaster(ABC):
    """Common interface for fold forecasters."""

    def __init__(self) -> None:
        self._is_fitted = False

    @abstractmethod
    def fit(self, y: FloatArray) -> BaseForecaster:
        """Fit on a chronological training prefix.

        Args:
            y: Observations, oldest first.

        Returns:
            self, for chaining.
        """

    @abstractmethod
    def predict(self, horizon: int) -> FloatArray:
        """Forecast ``horizon`` steps past the end of the training prefix.

        Raises:
            RuntimeError: If the forecaster has not been fitted.
        """

    def _check_fitted(self) -> None:
        if not self._is_fitted:
            raise RuntimeError(f"{type(self).__name__} must be fitted before predict")


class NaiveForecaster(BaseForecaster):
    """Repeat the last observation: ``y_hat[t+h] = y[t]``."""

    def __init__(self) -> None:
        super().__init__()
        self._last_value = 0.0

    def fit(self, y: FloatArray) -> NaiveForecaster:
        """Store the last observation.

        Raises:
            ValueError: If y is empty.
        """
        if len(y) == 0:
            raise ValueError("Cannot fit on empty array")
        self._last_value = float(y[-1])
        self._is_fitted = True
        return self

    def predict(self, horizon: int) -> FloatArray:
        self._check_fitted()
        return np.full(horizon, self._last_value, dtype=np.float64)


class SeasonalNaiveForecaster(BaseForecaster):
    """Repeat the last full season: ``y_hat[t+h] = y[t+h-m]``.

    Next March's forecast is last March's value.

    Attributes:
        season_length: Periods per seasonal cycle.
    """

    def __init__(self, season_length: int = 12) -> None:
        super().__init__()
        self.season_length = season_length
        self._last_season: FloatArray | None = None

    def fit(self, y: FloatArray) -> SeasonalNaiveForecaster:
        """Store the last ``season_length`` observations.

        Raises:
            ValueError: If y is shorter than one season.
        """
        if len(y) < self.season_length:
            raise ValueError(f"Need at least {self.season_length} observations, got {len(y)}")
        self._last_season = np.array(y[-self.season_length :], dtype=np.float64)
        self._is_fitted = True
        return self

    def predict(self, horizon: int) -> FloatArray:
        self._check_fitted()
        if self._last_season is None:
            raise RuntimeError("Model was not properly fitted")
        return self._last_season[np.arange(horizon) % self.season_length].copy()


class HoltWintersForecaster(BaseForecaster):
    """Multiplicative Holt-Winters with fixed smoothing weights.

    Attributes:
        season_length: Seasonality period in months (default: 12).
        alpha: Level smoothing weight.
        beta: Trend smoothing weight.
        gamma: Seasonal smoothing weight.
    """

    def __init__(
        self,
        season_length: int = 12,
        alpha: float = 0.3,
        beta: float = 0.2,
        gamma: float = 0.2,
    ) -> None:
        """Initialize the Holt-Winters forecaster.

        Args:
            season_length: Seasonality period in months.
            alpha: Level smoothing weight in (0, 1).
            beta: Trend smoothing weight in (0, 1).
            gamma: Seasonal smoothing weight in (0, 1).
        """
        super().__init__()
        self.season_length = season_length
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self._fitted: FittedModel | None = None

    def fit(self, y: FloatArray) -> HoltWintersForecaster:
        """Fit level, trend, and seasonal components.

        Raises:
            InsufficientDataError: If y holds fewer than two seasons.
            ValueError: If the weights or season length are invalid.
        """
        self._fitted = fit_and_forecast(
            y, self.season_length, 1, self.alpha, self.beta, self.gamma
        )
        self._is_fitted = True
        return self

    def predict(self, horizon: int) -> FloatArray:
        """Project the fitted components ``horizon`` steps ahead."""
        self._check_fitted()
        if self._fitted is None:
            raise RuntimeError("Model was not properly fitted")
        return self._fitted.project(horizon)

