"""Outlier detection and winsorization for forecasting inputs."""

from forecast_engine.features.outliers.treatment import (
    OutlierReport,
    assess_data_quality,
    detect_and_treat,
)

__all__ = [
    "OutlierReport",
    "assess_data_quality",
    "detect_and_treat",
]
