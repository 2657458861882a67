"""Test fixtures for forecasting module."""

from collections.abc import AsyncGenerator

import numpy as np
import pytest
from httpx import ASGITransport, AsyncClient

from forecast_engine.core.config import Settings
from forecast_engine.features.forecasting.orchestrator import ForecastOrchestrator
from forecast_engine.main import app


@pytest.fixture
def monthly_pattern() -> np.ndarray:
    """One year of a smooth seasonal pattern between 70 and 130."""
    return 100.0 + 30.0 * np.sin(2 * np.pi * np.arange(12) / 12)


@pytest.fixture
def sample_seasonal_series(monthly_pattern: np.ndarray) -> np.ndarray:
    """Three years of a noise-free repeating pattern (no trend)."""
    return np.tile(monthly_pattern, 3)


@pytest.fixture
def sample_noisy_series(monthly_pattern: np.ndarray) -> np.ndarray:
    """Four years of pattern with mild trend and seeded noise."""
    rng = np.random.default_rng(7)
    trend = np.linspace(0.0, 20.0, 48)
    return np.tile(monthly_pattern, 4) + trend + rng.normal(0.0, 3.0, size=48)


@pytest.fixture
def sample_constant_series() -> np.ndarray:
    """24 months of constant value 100."""
    return np.full(24, 100.0)


@pytest.fixture
def sample_spike_series() -> np.ndarray:
    """24 months at 100 with a single spike of 10,000 in month 13."""
    series = np.full(24, 100.0)
    series[12] = 10_000.0
    return series


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with small search grids to keep orchestrator tests quick."""
    return Settings(
        forecast_alpha_grid=[0.2, 0.5, 0.8],
        forecast_beta_grid=[0.1, 0.3],
        forecast_gamma_grid=[0.1, 0.3],
    )


@pytest.fixture
def orchestrator(fast_settings: Settings) -> ForecastOrchestrator:
    """Orchestrator using the small search grids."""
    return ForecastOrchestrator(fast_settings)


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the forecasting routes."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
