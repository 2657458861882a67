"""Pydantic schemas for accuracy reporting and walk-forward backtests.

AccuracyReport carries the numeric error measures only; its confidence and
quality classes are computed fields, so they can never disagree with the
numbers they summarize.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from forecast_engine.core.config import get_settings

ConfidenceLevel = Literal["high", "medium", "low"]
QualityLevel = Literal["high", "medium", "low"]

# sMAPE upper bound on the 0-200 scale
SMAPE_MAX = 200.0


# =============================================================================
# Classification Policy
# =============================================================================


def classify_confidence(smape: float, mase: float, n_samples: int) -> ConfidenceLevel:
    """Classify forecast confidence from sMAPE and MASE jointly.

    Both metrics must clear a tier's thresholds, so improving either metric
    can never lower the class.

    Args:
        smape: Symmetric MAPE (0-200 scale).
        mase: Mean absolute scaled error.
        n_samples: Number of scored forecasts.

    Returns:
        Confidence class.
    """
    if n_samples == 0:
        return "low"
    settings = get_settings()
    if smape < settings.metrics_confidence_high_smape and mase < settings.metrics_confidence_high_mase:
        return "high"
    if (
        smape < settings.metrics_confidence_medium_smape
        and mase < settings.metrics_confidence_medium_mase
    ):
        return "medium"
    return "low"


def classify_quality(smape: float, weighted_mape: float, n_samples: int) -> QualityLevel:
    """Classify forecast quality from sMAPE and volume-weighted MAPE.

    Args:
        smape: Symmetric MAPE (0-200 scale).
        weighted_mape: Volume-weighted MAPE.
        n_samples: Number of scored forecasts.

    Returns:
        Quality class.
    """
    if n_samples == 0:
        return "low"
    settings = get_settings()
    if smape < settings.metrics_quality_high_smape and weighted_mape < settings.metrics_quality_high_wmape:
        return "high"
    if (
        smape < settings.metrics_quality_medium_smape
        and weighted_mape < settings.metrics_quality_medium_wmape
    ):
        return "medium"
    return "low"


# =============================================================================
# Accuracy Report
# =============================================================================


class AccuracyReport(BaseModel):
    """Scale-free accuracy measures for paired actual/forecast sequences.

    Attributes:
        smape: Symmetric MAPE on the 0-200 scale.
        mase: MAE relative to a seasonal-naive baseline (< 1 beats the baseline).
        mae: Mean absolute error in the metric's native units.
        weighted_mape: Absolute percentage error weighted by actual volume.
        n_samples: Number of scored forecasts.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    smape: float = Field(..., ge=0.0, le=SMAPE_MAX)
    mase: float = Field(..., ge=0.0)
    mae: float = Field(..., ge=0.0)
    weighted_mape: float = Field(..., ge=0.0)
    n_samples: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence(self) -> ConfidenceLevel:
        """Confidence class derived from sMAPE and MASE."""
        return classify_confidence(self.smape, self.mase, self.n_samples)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def quality(self) -> QualityLevel:
        """Quality class derived from sMAPE and weighted MAPE."""
        return classify_quality(self.smape, self.weighted_mape, self.n_samples)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def accuracy_pct(self) -> float:
        """Headline accuracy figure: 100 minus sMAPE, floored at zero."""
        return max(0.0, 100.0 - self.smape)

    @classmethod
    def degenerate(cls) -> AccuracyReport:
        """Worst-case report used when nothing could be scored."""
        return cls(
            smape=SMAPE_MAX,
            mase=get_settings().metrics_mase_cap,
            mae=0.0,
            weighted_mape=100.0,
            n_samples=0,
        )


# =============================================================================
# Walk-Forward Configuration and Results
# =============================================================================


class WalkForwardConfig(BaseModel):
    """Configuration for walk-forward validation.

    Attributes:
        min_train_size: Length of the first training prefix.
        step: Points forecast per fold; the prefix grows by this much.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_train_size: int = Field(default=6, ge=1, description="First training prefix length")
    step: int = Field(default=1, ge=1, description="Forecast steps per fold")


class BacktestReport(BaseModel):
    """Out-of-sample results of a walk-forward run.

    Attributes:
        n_folds: Number of folds that produced forecasts.
        failed_folds: Folds whose forecast function failed.
        min_train_size: First training prefix length.
        step: Forecast steps per fold.
        forecast_indices: Series positions that were forecast.
        actuals: Observed values at forecast_indices.
        predictions: Out-of-sample forecasts at forecast_indices.
        accuracy: Aggregate accuracy over all folds.
        leakage_check_passed: Whether every fold trained strictly before its forecasts.
        model_folds: Folds forecast by the seasonal model.
        baseline_folds: Folds forecast by a naive baseline.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    n_folds: int = Field(default=0, ge=0)
    failed_folds: int = Field(default=0, ge=0)
    min_train_size: int = Field(default=0, ge=0)
    step: int = Field(default=1, ge=1)
    forecast_indices: list[int] = Field(default_factory=list)
    actuals: list[float] = Field(default_factory=list)
    predictions: list[float] = Field(default_factory=list)
    accuracy: AccuracyReport = Field(default_factory=AccuracyReport.degenerate)
    leakage_check_passed: bool = True
    model_folds: int = Field(default=0, ge=0)
    baseline_folds: int = Field(default=0, ge=0)

    @classmethod
    def empty(cls, min_train_size: int = 0, step: int = 1) -> BacktestReport:
        """Report for a backtest that could not run."""
        return cls(min_train_size=min_train_size, step=step)
