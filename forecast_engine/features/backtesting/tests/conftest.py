"""Test fixtures for backtesting module."""

import numpy as np
import pytest

from forecast_engine.features.backtesting.schemas import WalkForwardConfig


@pytest.fixture
def sample_actuals() -> np.ndarray:
    """Twelve months of actual volumes."""
    return np.array(
        [120.0, 95.0, 110.0, 130.0, 150.0, 170.0, 160.0, 140.0, 125.0, 115.0, 105.0, 135.0]
    )


@pytest.fixture
def sample_seasonal_series() -> np.ndarray:
    """Three years of a repeating 12-month pattern."""
    pattern = 100.0 + 30.0 * np.sin(2 * np.pi * np.arange(12) / 12)
    return np.tile(pattern, 3)


@pytest.fixture
def sample_walk_forward_config() -> WalkForwardConfig:
    """Walk-forward config with a 6-month first prefix and 1-month steps."""
    return WalkForwardConfig(min_train_size=6, step=1)


@pytest.fixture
def last_value_fn():
    """Forecast function repeating the last training value."""

    def forecast(train: np.ndarray, steps: int) -> np.ndarray:
        return np.full(steps, train[-1])

    return forecast
