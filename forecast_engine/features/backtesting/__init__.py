"""Backtesting module for forecast accuracy evaluation.

Provides scale-free accuracy metrics and walk-forward validation.
"""

from forecast_engine.features.backtesting.metrics import MetricResult, MetricsCalculator, compute
from forecast_engine.features.backtesting.schemas import (
    AccuracyReport,
    BacktestReport,
    WalkForwardConfig,
    classify_confidence,
    classify_quality,
)
from forecast_engine.features.backtesting.splitter import WalkForwardSplit, WalkForwardSplitter
from forecast_engine.features.backtesting.validator import (
    WalkForwardValidator,
    walk_forward_validate,
)

__all__ = [
    "AccuracyReport",
    "BacktestReport",
    "MetricResult",
    "MetricsCalculator",
    "WalkForwardConfig",
    "WalkForwardSplit",
    "WalkForwardSplitter",
    "WalkForwardValidator",
    "classify_confidence",
    "classify_quality",
    "compute",
    "walk_forward_validate",
]
