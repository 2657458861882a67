"""Metrics calculator for forecast evaluation.

Supported Metrics:
- MAE: Mean Absolute Error
- sMAPE: Symmetric Mean Absolute Percentage Error (0-200 scale)
- MASE: Mean Absolute Scaled Error against a seasonal-naive baseline
- Weighted MAPE: Absolute percentage error weighted by actual volume

Classical MAPE is undefined when an actual is zero, which happens in
low-volume months; every metric here stays finite in that case.

CRITICAL: All metrics handle edge cases (zeros, empty arrays).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from forecast_engine.core.config import get_settings
from forecast_engine.features.backtesting.schemas import AccuracyReport

FloatArray = np.ndarray[Any, np.dtype[np.floating[Any]]]


@dataclass
class MetricResult:
    """Result of a single metric calculation.

    Attributes:
        name: Name of the metric.
        value: Calculated value (nan for empty input).
        n_samples: Number of samples used in calculation.
        warnings: List of warnings generated during calculation.
    """

    name: str
    value: float
    n_samples: int
    warnings: list[str] = field(default_factory=lambda: [])


def _check_lengths(actuals: FloatArray, predictions: FloatArray) -> None:
    if len(actuals) != len(predictions):
        raise ValueError(
            f"Length mismatch: actuals={len(actuals)}, predictions={len(predictions)}"
        )


class MetricsCalculator:
    """Calculate forecasting accuracy metrics.

    Provides methods for computing forecast accuracy metrics with proper
    edge case handling, and ``compute`` to bundle them into an AccuracyReport.

    CRITICAL: All metrics handle edge cases (zeros, empty arrays).
    """

    EPSILON = 1e-10  # Keeps sMAPE defined when actual and forecast are both zero

    @staticmethod
    def mae(actuals: FloatArray, predictions: FloatArray) -> MetricResult:
        """Mean Absolute Error.

        Formula: mean(|actual - predicted|)

        Args:
            actuals: Ground truth values.
            predictions: Predicted values.

        Returns:
            MetricResult with MAE value.

        Raises:
            ValueError: If arrays have different lengths.
        """
        if len(actuals) == 0:
            return MetricResult(name="mae", value=np.nan, n_samples=0, warnings=["Empty array"])
        _check_lengths(actuals, predictions)

        mae_value = float(np.mean(np.abs(actuals - predictions)))
        return MetricResult(name="mae", value=mae_value, n_samples=len(actuals))

    @classmethod
    def smape(cls, actuals: FloatArray, predictions: FloatArray) -> MetricResult:
        """Symmetric Mean Absolute Percentage Error.

        Formula: 100/n * sum(2 * |A - F| / (|A| + |F| + eps))

        A period where both A and F are zero contributes 0 (perfect forecast).
        Scaling A and F by the same positive constant leaves the value unchanged.

        Args:
            actuals: Ground truth values.
            predictions: Predicted values.

        Returns:
            MetricResult with sMAPE value (0-200 scale).

        Raises:
            ValueError: If arrays have different lengths.
        """
        warnings: list[str] = []

        if len(actuals) == 0:
            return MetricResult(name="smape", value=np.nan, n_samples=0, warnings=["Empty array"])
        _check_lengths(actuals, predictions)

        numerator = 2.0 * np.abs(actuals - predictions)
        denominator = np.abs(actuals) + np.abs(predictions) + cls.EPSILON
        smape_value = float(100.0 * np.mean(numerator / denominator))

        n_zeros = int(np.sum((actuals == 0) | (predictions == 0)))
        if n_zeros > 0:
            warnings.append(f"{n_zeros} samples with zero values")

        return MetricResult(
            name="smape", value=smape_value, n_samples=len(actuals), warnings=warnings
        )

    @staticmethod
    def naive_scale(reference: FloatArray, season_length: int) -> float | None:
        """MAE of the seasonal-naive forecast over a reference series.

        Uses the value one season earlier when the reference is longer than a
        season, and the previous value otherwise.

        Args:
            reference: Chronological series providing the scale.
            season_length: Seasonality period.

        Returns:
            Baseline MAE, or None if the reference is too short for any pair.
        """
        lag = season_length if len(reference) > season_length else 1
        if len(reference) <= lag:
            return None
        return float(np.mean(np.abs(reference[lag:] - reference[:-lag])))

    @classmethod
    def mase(
        cls,
        actuals: FloatArray,
        predictions: FloatArray,
        season_length: int = 12,
        scale_reference: FloatArray | None = None,
        cap: float | None = None,
    ) -> MetricResult:
        """Mean Absolute Scaled Error.

        Formula: MAE(forecast) / MAE(seasonal naive)

        Values below 1 mean the model beats the seasonal-naive baseline.
        When the baseline has zero error (or cannot be computed) the result is
        0 for a perfect forecast and ``cap`` otherwise, so it is always finite.

        Args:
            actuals: Ground truth values.
            predictions: Predicted values.
            season_length: Seasonality period of the naive baseline.
            scale_reference: Series the baseline is computed on (defaults to actuals).
            cap: Stand-in value for an undefined ratio (defaults to metrics_mase_cap).

        Returns:
            MetricResult with MASE value.

        Raises:
            ValueError: If arrays have different lengths.
        """
        warnings: list[str] = []

        if len(actuals) == 0:
            return MetricResult(name="mase", value=np.nan, n_samples=0, warnings=["Empty array"])
        _check_lengths(actuals, predictions)

        if cap is None:
            cap = get_settings().metrics_mase_cap

        model_mae = float(np.mean(np.abs(actuals - predictions)))
        reference = actuals if scale_reference is None else scale_reference
        scale = cls.naive_scale(reference, season_length)

        if scale is None or scale == 0:
            warnings.append(
                "Naive baseline undefined" if scale is None else "Naive baseline has zero error"
            )
            mase_value = 0.0 if model_mae == 0 else cap
        else:
            mase_value = model_mae / scale
            if not np.isfinite(mase_value):
                warnings.append("MASE overflowed; capped")
                mase_value = cap

        return MetricResult(
            name="mase", value=float(mase_value), n_samples=len(actuals), warnings=warnings
        )

    @staticmethod
    def weighted_mape(actuals: FloatArray, predictions: FloatArray) -> MetricResult:
        """Volume-weighted Mean Absolute Percentage Error.

        Each period's APE is weighted by its share of total actual volume:
        sum(A_i / sum(A) * |A_i - F_i| / A_i) * 100 = sum(|A - F|) / sum(A) * 100
        over periods with A_i > 0. Low-volume periods cannot blow the value up.

        Zero total volume gives 0 for a perfect forecast and 100 otherwise.

        Args:
            actuals: Ground truth values.
            predictions: Predicted values.

        Returns:
            MetricResult with weighted MAPE value.

        Raises:
            ValueError: If arrays have different lengths.
        """
        warnings: list[str] = []

        if len(actuals) == 0:
            return MetricResult(
                name="weighted_mape", value=np.nan, n_samples=0, warnings=["Empty array"]
            )
        _check_lengths(actuals, predictions)

        positive = actuals > 0
        total_volume = float(np.sum(actuals[positive]))

        if total_volume == 0:
            warnings.append("Total actual volume is zero; weighted MAPE undefined")
            has_error = bool(np.any(actuals != predictions))
            return MetricResult(
                name="weighted_mape",
                value=100.0 if has_error else 0.0,
                n_samples=len(actuals),
                warnings=warnings,
            )

        abs_errors = np.abs(actuals[positive] - predictions[positive])
        value = float(np.sum(abs_errors) / total_volume * 100.0)

        return MetricResult(
            name="weighted_mape", value=value, n_samples=len(actuals), warnings=warnings
        )

    def compute(
        self,
        actuals: Sequence[float] | FloatArray,
        predictions: Sequence[float] | FloatArray,
        season_length: int | None = None,
        scale_reference: Sequence[float] | FloatArray | None = None,
    ) -> AccuracyReport:
        """Compute every accuracy measure for paired sequences.

        Args:
            actuals: Ground truth values.
            predictions: Predicted values.
            season_length: Seasonality period for MASE (defaults to settings).
            scale_reference: Series the MASE baseline is computed on.

        Returns:
            AccuracyReport; the degenerate report when there is nothing to score.

        Raises:
            ValueError: If lengths differ or any value is not finite.
        """
        actual_arr = np.asarray(actuals, dtype=np.float64)
        predicted_arr = np.asarray(predictions, dtype=np.float64)

        if len(actual_arr) == 0:
            return AccuracyReport.degenerate()
        _check_lengths(actual_arr, predicted_arr)
        if not (np.all(np.isfinite(actual_arr)) and np.all(np.isfinite(predicted_arr))):
            raise ValueError("Actuals and predictions must be finite")

        if season_length is None:
            season_length = get_settings().forecast_season_length
        reference = (
            None if scale_reference is None else np.asarray(scale_reference, dtype=np.float64)
        )

        return AccuracyReport(
            smape=self.smape(actual_arr, predicted_arr).value,
            mase=self.mase(actual_arr, predicted_arr, season_length, reference).value,
            mae=self.mae(actual_arr, predicted_arr).value,
            weighted_mape=self.weighted_mape(actual_arr, predicted_arr).value,
            n_samples=len(actual_arr),
        )


def compute(
    actual: Sequence[float] | FloatArray,
    forecast: Sequence[float] | FloatArray,
    season_length: int | None = None,
    scale_reference: Sequence[float] | FloatArray | None = None,
) -> AccuracyReport:
    """Compute an AccuracyReport with a default MetricsCalculator."""
    return MetricsCalculator().compute(actual, forecast, season_length, scale_reference)
