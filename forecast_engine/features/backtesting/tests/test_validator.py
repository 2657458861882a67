"""Tests for walk-forward validation."""

import numpy as np
import pytest

from forecast_engine.core.exceptions import InsufficientDataError
from forecast_engine.features.backtesting.schemas import WalkForwardConfig
from forecast_engine.features.backtesting.validator import (
    WalkForwardValidator,
    walk_forward_validate,
)


class TestWalkForwardValidator:
    """Tests for WalkForwardValidator.run."""

    def test_forecast_fn_never_sees_future(
        self, sample_seasonal_series: np.ndarray, sample_walk_forward_config: WalkForwardConfig
    ) -> None:
        """Test each call only receives points before the forecast window."""
        calls: list[tuple[int, int]] = []
        series = np.arange(len(sample_seasonal_series), dtype=np.float64)

        def recording_fn(train: np.ndarray, steps: int) -> np.ndarray:
            calls.append((len(train), steps))
            # Positions equal values, so the max value is the last index seen
            assert train.max() == len(train) - 1
            return np.zeros(steps)

        report = WalkForwardValidator(recording_fn, sample_walk_forward_config, 12).run(series)

        assert calls[0] == (6, 1)
        for (train_len, steps), start in zip(calls, report.forecast_indices, strict=True):
            assert train_len == start
            assert steps == 1

    def test_training_prefix_is_read_only(
        self, sample_seasonal_series: np.ndarray, sample_walk_forward_config: WalkForwardConfig
    ) -> None:
        """Test the forecast function cannot alter the series."""

        def mutating_fn(train: np.ndarray, steps: int) -> np.ndarray:
            train[0] = -1.0
            return np.zeros(steps)

        report = WalkForwardValidator(mutating_fn, sample_walk_forward_config, 12).run(
            sample_seasonal_series
        )
        assert report.n_folds == 0

    def test_perfect_forecaster_scores_zero(
        self, sample_seasonal_series: np.ndarray, sample_walk_forward_config: WalkForwardConfig
    ) -> None:
        """Test a seasonal-naive forecaster on a pure pattern is error-free."""

        def seasonal_naive(train: np.ndarray, steps: int) -> np.ndarray:
            return np.array([train[len(train) - 12 + h] for h in range(steps)])

        config = WalkForwardConfig(min_train_size=12, step=1)
        report = WalkForwardValidator(seasonal_naive, config, 12).run(sample_seasonal_series)

        assert report.n_folds == 24
        assert report.accuracy.mae == pytest.approx(0.0, abs=1e-9)
        assert report.accuracy.smape == pytest.approx(0.0, abs=1e-6)
        assert report.leakage_check_passed is True

    def test_failing_folds_are_skipped_and_counted(
        self, sample_walk_forward_config: WalkForwardConfig
    ) -> None:
        """Test folds raising engine errors are skipped."""

        def picky_fn(train: np.ndarray, steps: int) -> np.ndarray:
            if len(train) < 10:
                raise InsufficientDataError(n_observations=len(train), min_required=10)
            return np.full(steps, train[-1])

        report = WalkForwardValidator(picky_fn, sample_walk_forward_config, 12).run(
            np.arange(1.0, 16.0)
        )

        assert report.failed_folds == 4  # prefixes 6..9
        assert report.n_folds == 5  # prefixes 10..14
        assert report.forecast_indices == [10, 11, 12, 13, 14]

    def test_negative_and_nan_forecasts_clamped(
        self, sample_walk_forward_config: WalkForwardConfig
    ) -> None:
        """Test predictions are clamped to finite non-negative values."""

        def bad_fn(train: np.ndarray, steps: int) -> np.ndarray:
            return np.array([np.nan if len(train) % 2 else -5.0] * steps)

        report = WalkForwardValidator(bad_fn, sample_walk_forward_config, 12).run(np.ones(10))

        assert report.predictions == [0.0] * 4

    def test_short_series_yields_degenerate_accuracy(
        self, last_value_fn, sample_walk_forward_config: WalkForwardConfig
    ) -> None:
        """Test a series no longer than the first prefix scores nothing."""
        report = WalkForwardValidator(last_value_fn, sample_walk_forward_config, 12).run(
            np.ones(6)
        )

        assert report.n_folds == 0
        assert report.accuracy.n_samples == 0
        assert report.accuracy.confidence == "low"


class TestWalkForwardValidate:
    """Tests for the AccuracyReport-returning wrapper."""

    def test_returns_accuracy_report(self, last_value_fn) -> None:
        """Test the wrapper aggregates every fold."""
        series = np.array([10.0, 10.0, 10.0, 20.0, 20.0])
        report = walk_forward_validate(series, last_value_fn, min_train_size=2, step=1)

        # Forecasts 10, 10, 20 against actuals 10, 20, 20
        assert report.n_samples == 3
        assert report.mae == pytest.approx(10.0 / 3)

    def test_multi_step_folds(self, last_value_fn) -> None:
        """Test steps larger than one are scored point by point."""
        series = np.arange(1.0, 11.0)
        report = walk_forward_validate(series, last_value_fn, min_train_size=4, step=3)

        assert report.n_samples == 6
