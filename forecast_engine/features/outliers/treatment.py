"""Outlier detection and winsorization for monthly series.

A point is an outlier when it lies more than ``sensitivity`` standard
deviations from the series mean. Flagged points are capped at
``mean +/- sensitivity * std`` instead of being removed, so the treated
series keeps its length and its seasonal alignment.

Capping shrinks the standard deviation, which can expose points that the
first pass did not flag. Detection is therefore repeated on the treated copy
until a pass flags nothing, which makes the output a fixed point: treating it
again flags zero additional outliers.

CRITICAL: Never raises. Constant, all-zero, and very short series degrade to
"no outliers detected".
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np
import structlog

from forecast_engine.core.config import get_settings

logger = structlog.get_logger()

OutlierImpact = Literal["low", "medium", "high"]
DataQuality = Literal["high", "medium", "low"]

# Relative slack on the threshold so floating-point noise at the cap is not
# re-flagged on the next pass
THRESHOLD_TOLERANCE = 1e-9


@dataclass
class OutlierReport:
    """Result of outlier detection and treatment.

    Attributes:
        indices: Sorted positions flagged in any pass.
        original_values: Input values at the flagged positions.
        winsorized_data: Read-only treated copy, same length as the input.
        mean: Mean of the untreated series.
        std: Population standard deviation of the untreated series.
        sensitivity: Standard-deviation multiplier used for detection.
        passes: Number of passes that flagged at least one point.
    """

    indices: tuple[int, ...]
    original_values: tuple[float, ...]
    winsorized_data: np.ndarray[Any, np.dtype[np.floating[Any]]]
    mean: float
    std: float
    sensitivity: float
    passes: int = 0
    warnings: list[str] = field(default_factory=lambda: [])

    @property
    def count(self) -> int:
        """Number of flagged positions."""
        return len(self.indices)

    @property
    def treated(self) -> bool:
        """Whether any value was capped."""
        return self.count > 0

    @property
    def impact(self) -> OutlierImpact:
        """Impact class: more than two outliers is high, one or two medium."""
        if self.count > 2:
            return "high"
        if self.count > 0:
            return "medium"
        return "low"


def detect_and_treat(
    series: Sequence[float] | np.ndarray[Any, np.dtype[np.floating[Any]]],
    sensitivity: float | None = None,
    max_passes: int | None = None,
) -> OutlierReport:
    """Detect outliers and return a winsorized copy of the series.

    Args:
        series: Chronological observations.
        sensitivity: Standard-deviation multiplier; higher flags fewer points.
            Defaults to ``forecast_outlier_sensitivity``.
        max_passes: Upper bound on detection passes.
            Defaults to ``forecast_outlier_max_passes``.

    Returns:
        OutlierReport with flagged positions and the treated series.
    """
    settings = get_settings()
    warnings: list[str] = []

    if sensitivity is None:
        sensitivity = settings.forecast_outlier_sensitivity
    elif not (math.isfinite(sensitivity) and sensitivity > 0):
        warnings.append(f"Invalid sensitivity {sensitivity}; using default")
        sensitivity = settings.forecast_outlier_sensitivity

    if max_passes is None:
        max_passes = settings.forecast_outlier_max_passes
    max_passes = max(1, max_passes)

    values = np.array(series, dtype=np.float64)
    treated = values.copy()

    if len(values) < 2:
        treated.setflags(write=False)
        return OutlierReport(
            indices=(),
            original_values=(),
            winsorized_data=treated,
            mean=float(values[0]) if len(values) else 0.0,
            std=0.0,
            sensitivity=sensitivity,
            warnings=warnings,
        )

    original_mean = float(np.mean(values))
    original_std = float(np.std(values))

    flagged: dict[int, float] = {}
    passes = 0

    for _ in range(max_passes):
        mean = float(np.mean(treated))
        std = float(np.std(treated))

        # Zero or undefined spread: nothing can be an outlier
        if not std > 0:
            break

        threshold = sensitivity * std
        tolerance = THRESHOLD_TOLERANCE * max(1.0, abs(mean))
        deviations = treated - mean
        mask = np.abs(deviations) > threshold + tolerance

        if not mask.any():
            break

        passes += 1
        for idx in np.flatnonzero(mask):
            flagged.setdefault(int(idx), float(values[idx]))
        treated[mask] = mean + np.sign(deviations[mask]) * threshold
    else:
        warnings.append(f"Treatment did not converge within {max_passes} passes")
        logger.warning(
            "outliers.max_passes_reached",
            max_passes=max_passes,
            n_observations=len(values),
        )

    indices = tuple(sorted(flagged))
    treated.setflags(write=False)

    report = OutlierReport(
        indices=indices,
        original_values=tuple(flagged[i] for i in indices),
        winsorized_data=treated,
        mean=original_mean,
        std=original_std,
        sensitivity=sensitivity,
        passes=passes,
        warnings=warnings,
    )

    if report.treated:
        logger.info(
            "outliers.detected",
            count=report.count,
            indices=list(indices),
            passes=passes,
            sensitivity=sensitivity,
        )

    return report


def assess_data_quality(report: OutlierReport) -> DataQuality:
    """Classify history quality from outlier share and dispersion.

    High quality needs under 10% outliers and a coefficient of variation
    below 0.3; medium needs under 20% and below 0.6.

    Args:
        report: Outlier report whose treated series is assessed.

    Returns:
        Data quality class.
    """
    data = report.winsorized_data
    n = len(data)
    if n == 0:
        return "low"

    mean = float(np.mean(data))
    if not mean > 0:
        return "low"

    outlier_ratio = report.count / n
    coefficient_of_variation = float(np.std(data)) / mean

    if outlier_ratio < 0.1 and coefficient_of_variation < 0.3:
        return "high"
    if outlier_ratio < 0.2 and coefficient_of_variation < 0.6:
        return "medium"
    return "low"
