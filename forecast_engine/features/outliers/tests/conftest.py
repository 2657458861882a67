"""Test fixtures for outlier treatment."""

import numpy as np
import pytest


@pytest.fixture
def spike_series() -> np.ndarray:
    """24 months at 100 with a single spike of 10,000 in month 13."""
    series = np.full(24, 100.0)
    series[12] = 10_000.0
    return series


@pytest.fixture
def noisy_series() -> np.ndarray:
    """48 months of seeded Gaussian noise around 500."""
    rng = np.random.default_rng(42)
    return rng.normal(500.0, 50.0, size=48)
