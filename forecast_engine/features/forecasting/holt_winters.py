"""Multiplicative Holt-Winters (triple exponential smoothing).

Decomposes a monthly series into level, trend, and multiplicative seasonal
components, each smoothed by its own weight:

    level[i]    = alpha * x[i] / s + (1 - alpha) * (level[i-1] + trend[i-1])
    trend[i]    = beta * (level[i] - level[i-1]) + (1 - beta) * trend[i-1]
    s'          = gamma * x[i] / level[i] + (1 - gamma) * s

where ``s`` is the index last estimated for the calendar position of ``i``.

Seasonal array layout (length n + L):
    seasonal[0:L]     initial indices for positions 0..L-1
    seasonal[t + L]   index estimated at period t

so the index in force at period ``i`` is always ``seasonal[i]``.

Zero or non-positive months carry level and trend forward and reuse the
prior index, so missing months do not corrupt the trend estimate.

CRITICAL: Deterministic. No hidden randomness.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from forecast_engine.core.exceptions import InsufficientDataError
from forecast_engine.features.forecasting.schemas import ModelParameters

FloatArray = np.ndarray[Any, np.dtype[np.floating[Any]]]

# Bounds on initial seasonal indices; keeps a sparse position from
# producing a runaway multiplier
SEASONAL_INDEX_MIN = 0.5
SEASONAL_INDEX_MAX = 2.0


@dataclass(frozen=True)
class FittedModel:
    """Result of one Holt-Winters fit.

    Attributes:
        level: Smoothed level per period (length n).
        trend: Smoothed trend per period (length n).
        seasonal: Seasonal indices (length n + L, see module docstring).
        forecast: Point forecasts for steps 1..horizon.
        alpha: Level smoothing weight.
        beta: Trend smoothing weight.
        gamma: Seasonal smoothing weight.
        season_length: Periods per seasonal cycle.
        sse: In-sample one-step squared error. Diagnostic only; this is
            optimistically biased and is never reported as accuracy.
    """

    level: FloatArray
    trend: FloatArray
    seasonal: FloatArray
    forecast: FloatArray
    alpha: float
    beta: float
    gamma: float
    season_length: int
    sse: float = 0.0

    @property
    def n_observations(self) -> int:
        """Number of observations the model was fitted on."""
        return len(self.level)

    @property
    def parameters(self) -> ModelParameters:
        """Smoothing weights as a ModelParameters."""
        return ModelParameters(alpha=self.alpha, beta=self.beta, gamma=self.gamma)

    def project(self, horizon: int) -> FloatArray:
        """Forecast ``horizon`` steps past the end of the fitted series."""
        if horizon < 1:
            raise ValueError(f"horizon must be >= 1, got {horizon}")
        return _project(
            float(self.level[-1]),
            float(self.trend[-1]),
            self.seasonal,
            self.n_observations,
            self.season_length,
            horizon,
        )


def initial_seasonal_indices(data: Sequence[float] | FloatArray, season_length: int) -> list[float]:
    """Estimate one seasonal index per calendar position.

    Each index is the mean of the positive values at that position divided
    by the mean of all positive values, clamped to
    [SEASONAL_INDEX_MIN, SEASONAL_INDEX_MAX]. Positions without positive
    values get a neutral index of 1.0.

    Args:
        data: Chronological observations.
        season_length: Periods per seasonal cycle.

    Returns:
        List of ``season_length`` indices.
    """
    values = np.asarray(data, dtype=np.float64)
    positive = values[values > 0]
    if len(positive) == 0:
        return [1.0] * season_length

    global_mean = float(np.mean(positive))
    indices: list[float] = []
    for position in range(season_length):
        at_position = values[position::season_length]
        at_position = at_position[at_position > 0]
        if len(at_position) == 0:
            indices.append(1.0)
            continue
        ratio = float(np.mean(at_position)) / global_mean
        indices.append(min(SEASONAL_INDEX_MAX, max(SEASONAL_INDEX_MIN, ratio)))
    return indices


def _check_weight(name: str, value: float) -> None:
    if not (math.isfinite(value) and 0.0 < value < 1.0):
        raise ValueError(f"{name} must be in (0, 1), got {value}")


def _project(
    final_level: float,
    final_trend: float,
    seasonal: FloatArray,
    n_observations: int,
    season_length: int,
    horizon: int,
) -> FloatArray:
    forecast = np.zeros(horizon, dtype=np.float64)
    last = n_observations - 1
    for h in range(1, horizon + 1):
        # Most recent index estimated for position (last + h) mod L
        lookback = ((h - 1) // season_length + 1) * season_length
        index = float(seasonal[last + h - lookback + season_length])
        value = (final_level + h * final_trend) * index
        forecast[h - 1] = value if math.isfinite(value) and value > 0 else 0.0
    return forecast


def fit_and_forecast(
    series: Sequence[float] | FloatArray,
    season_length: int,
    horizon: int,
    alpha: float,
    beta: float,
    gamma: float,
) -> FittedModel:
    """Fit multiplicative Holt-Winters and forecast ``horizon`` steps.

    Initialization:
        level[0] = mean of the first season
        trend[0] = (mean of second season - mean of first season) / L
        seasonal[0:L] = initial_seasonal_indices(series, L)

    Forecast:
        forecast[h] = max(0, (level[n-1] + h * trend[n-1]) * s)
        with ``s`` the most recent index for position (n-1+h) mod L.

    Args:
        series: Chronological observations, at least two full seasons.
        season_length: Periods per seasonal cycle (>= 2).
        horizon: Steps to forecast (>= 1).
        alpha: Level smoothing weight in (0, 1).
        beta: Trend smoothing weight in (0, 1).
        gamma: Seasonal smoothing weight in (0, 1).

    Returns:
        FittedModel with components and the forecast.

    Raises:
        ValueError: If season_length, horizon, a weight, or a value is invalid.
        InsufficientDataError: If the series is shorter than two seasons.
    """
    if season_length < 2:
        raise ValueError(f"season_length must be >= 2, got {season_length}")
    if horizon < 1:
        raise ValueError(f"horizon must be >= 1, got {horizon}")
    _check_weight("alpha", alpha)
    _check_weight("beta", beta)
    _check_weight("gamma", gamma)

    data = np.asarray(series, dtype=np.float64)
    n = len(data)
    min_required = 2 * season_length
    if n < min_required:
        raise InsufficientDataError(n_observations=n, min_required=min_required)
    if not np.all(np.isfinite(data)):
        raise ValueError("series must contain only finite values")

    L = season_length
    x = data.tolist()

    first_mean = sum(x[:L]) / L
    second_mean = sum(x[L : 2 * L]) / L

    level = [0.0] * n
    trend = [0.0] * n
    seasonal = initial_seasonal_indices(data, L) + [0.0] * n

    level[0] = first_mean
    trend[0] = (second_mean - first_mean) / L
    seasonal[L] = seasonal[0]
    sse = 0.0

    for i in range(1, n):
        prev_level = level[i - 1]
        prev_trend = trend[i - 1]
        index = seasonal[i]
        value = x[i]

        if index > 0:
            error = value - (prev_level + prev_trend) * index
            sse += error * error

        if value > 0 and index > 0:
            new_level = alpha * (value / index) + (1 - alpha) * (prev_level + prev_trend)
            if new_level > 0:
                level[i] = new_level
                trend[i] = beta * (new_level - prev_level) + (1 - beta) * prev_trend
                seasonal[i + L] = gamma * (value / new_level) + (1 - gamma) * index
                continue

        # Non-positive month (or degenerate update): carry forward
        level[i] = prev_level + prev_trend
        trend[i] = prev_trend
        seasonal[i + L] = index

    seasonal_arr = np.array(seasonal, dtype=np.float64)
    forecast = _project(level[-1], trend[-1], seasonal_arr, n, L, horizon)

    level_arr = np.array(level, dtype=np.float64)
    trend_arr = np.array(trend, dtype=np.float64)
    for arr in (level_arr, trend_arr, seasonal_arr, forecast):
        arr.setflags(write=False)

    return FittedModel(
        level=level_arr,
        trend=trend_arr,
        seasonal=seasonal_arr,
        forecast=forecast,
        alpha=alpha,
        beta=beta,
        gamma=gamma,
        season_length=L,
        sse=sse if math.isfinite(sse) else float("inf"),
    )
