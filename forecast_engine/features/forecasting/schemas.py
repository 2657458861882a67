"""Pydantic schemas for forecasting parameters, requests, and results.

Schemas are designed to be:
- Immutable (frozen=True) for reproducibility
- Validated at construction, never at use
- Hashable (request_hash) for caller-side memoization
- Finite: every float field rejects NaN and Infinity
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from forecast_engine.core.config import Settings, get_settings
from forecast_engine.features.backtesting.schemas import (
    AccuracyReport,
    BacktestReport,
    ConfidenceLevel,
    QualityLevel,
)

if TYPE_CHECKING:
    from forecast_engine.core.exceptions import ForecastEngineWarning
    from forecast_engine.features.outliers.treatment import OutlierReport

ParameterSource = Literal["search", "manual", "default", "none"]
OutlierImpact = Literal["low", "medium", "high"]

# Naive annual projection: the model assumes no within-year parameter drift
MONTHS_PER_YEAR = 12


# =============================================================================
# Model Parameters
# =============================================================================


class ModelParameters(BaseModel):
    """Holt-Winters smoothing weights.

    All three weights are required together; a partial triple is rejected.

    Attributes:
        alpha: Level smoothing weight.
        beta: Trend smoothing weight.
        gamma: Seasonal smoothing weight.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    alpha: float = Field(..., gt=0.0, lt=1.0, description="Level smoothing weight")
    beta: float = Field(..., gt=0.0, lt=1.0, description="Trend smoothing weight")
    gamma: float = Field(..., gt=0.0, lt=1.0, description="Seasonal smoothing weight")

    def as_tuple(self) -> tuple[float, float, float]:
        """Return ``(alpha, beta, gamma)``."""
        return (self.alpha, self.beta, self.gamma)

    @classmethod
    def defaults(cls, settings: Settings | None = None) -> ModelParameters:
        """Fallback triple used when the parameter search is exhausted."""
        settings = settings or get_settings()
        return cls(
            alpha=settings.forecast_default_alpha,
            beta=settings.forecast_default_beta,
            gamma=settings.forecast_default_gamma,
        )


# =============================================================================
# API Request Schemas
# =============================================================================


class CurrentPeriodPartial(BaseModel):
    """Observation for the in-progress month.

    Attributes:
        elapsed_fraction: Share of the month already elapsed.
        observed_value: Metric total observed so far this month.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    elapsed_fraction: float = Field(..., gt=0.0, le=1.0, description="Elapsed share of the month")
    observed_value: float = Field(..., ge=0.0, description="Observed total so far")


class ForecastRequest(BaseModel):
    """Request body for POST /forecasting/seasonal.

    Attributes:
        historical_series: Monthly totals in chronological order.
        current_period_partial: Optional partial observation for the current month.
        manual_parameters: Smoothing weights that bypass the parameter search.
        season_length: Periods per seasonal cycle.
        forecast_horizon: Months to forecast.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    historical_series: list[float] = Field(
        ...,
        min_length=1,
        description="Monthly totals, oldest first",
    )
    current_period_partial: CurrentPeriodPartial | None = None
    manual_parameters: ModelParameters | None = None
    season_length: int = Field(default=12, ge=2, le=52, description="Periods per season")
    forecast_horizon: int = Field(default=1, ge=1, description="Months to forecast")

    @field_validator("historical_series")
    @classmethod
    def validate_non_negative(cls, v: list[float]) -> list[float]:
        """Reject negative observations; counts and revenue cannot be negative."""
        negative = [i for i, value in enumerate(v) if value < 0]
        if negative:
            raise ValueError(f"historical_series must be non-negative; negative at {negative}")
        return v

    @field_validator("forecast_horizon")
    @classmethod
    def validate_horizon(cls, v: int) -> int:
        """Ensure horizon does not exceed the configured maximum."""
        max_horizon = get_settings().forecast_max_horizon
        if v > max_horizon:
            raise ValueError(f"forecast_horizon must be <= {max_horizon}")
        return v

    def request_hash(self) -> str:
        """Generate a deterministic hash of the request.

        Returns:
            64-character SHA-256 hex digest of the canonical request JSON.
        """
        request_json = self.model_dump_json()
        return hashlib.sha256(request_json.encode()).hexdigest()


# =============================================================================
# Result Schemas
# =============================================================================


class Diagnostic(BaseModel):
    """Reason a result was degraded, kept instead of swallowed.

    Attributes:
        code: Stable machine-readable code (e.g. ``insufficient_history``).
        message: Human-readable explanation.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str

    @classmethod
    def from_warning(cls, warning: ForecastEngineWarning) -> Diagnostic:
        """Record a degradation warning without raising it."""
        return cls(code=warning.code, message=str(warning))


class OutlierSummary(BaseModel):
    """Outlier diagnostics exposed on the result.

    Attributes:
        count: Number of flagged months.
        indices: Positions of the flagged months.
        original_values: Values before capping.
        treated: Whether any month was capped.
        impact: Impact class of the outliers.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    count: int = Field(default=0, ge=0)
    indices: list[int] = Field(default_factory=list)
    original_values: list[float] = Field(default_factory=list)
    treated: bool = False
    impact: OutlierImpact = "low"

    @classmethod
    def from_report(cls, report: OutlierReport) -> OutlierSummary:
        """Summarize an OutlierReport."""
        return cls(
            count=report.count,
            indices=list(report.indices),
            original_values=list(report.original_values),
            treated=report.treated,
            impact=report.impact,
        )


class BlendSummary(BaseModel):
    """How the partial current period was blended into the first forecast.

    Attributes:
        applied: Whether blending changed the forecast.
        run_rate: Full-month projection of the partial observation.
        model_weight: Share of the model forecast in the blend.
        elapsed_fraction: Elapsed share used for the run rate.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    applied: bool = False
    run_rate: float = Field(default=0.0, ge=0.0)
    model_weight: float = Field(default=1.0, ge=0.0, le=1.0)
    elapsed_fraction: float = Field(default=0.0, ge=0.0, le=1.0)


class ForecastResult(BaseModel):
    """Structured forecast with accuracy and outlier diagnostics.

    Always structurally valid; degraded trust is signalled through the
    confidence/quality fields and ``diagnostics``, never by raising.

    Attributes:
        monthly_forecast: Forecast for the next month (blended if applicable).
        annual_forecast: Naive annual projection (monthly x 12).
        forecast_path: Forecasts for each month of the horizon.
        variance_pct: Deviation of the monthly forecast from the historical average.
        historical_average: Mean of the treated history.
        accuracy: Walk-forward (out-of-sample) accuracy.
        confidence: Accuracy confidence, capped to low when outlier impact is high.
        data_quality: Quality class of the history.
        outliers: Outlier diagnostics.
        backtest: Walk-forward details.
        parameters: Smoothing weights used, if a model was fitted.
        parameter_source: Where the parameters came from.
        blend: Partial-period blending details.
        season_length: Periods per seasonal cycle.
        diagnostics: Reasons the result was degraded.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    monthly_forecast: float = Field(..., ge=0.0)
    annual_forecast: float = Field(..., ge=0.0)
    forecast_path: list[float] = Field(default_factory=list)
    variance_pct: float = 0.0
    historical_average: float = Field(default=0.0, ge=0.0)
    accuracy: AccuracyReport = Field(default_factory=AccuracyReport.degenerate)
    confidence: ConfidenceLevel = "low"
    data_quality: QualityLevel = "low"
    outliers: OutlierSummary = Field(default_factory=OutlierSummary)
    backtest: BacktestReport = Field(default_factory=BacktestReport.empty)
    parameters: ModelParameters | None = None
    parameter_source: ParameterSource = "none"
    blend: BlendSummary = Field(default_factory=BlendSummary)
    season_length: int = Field(default=12, ge=1)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def accuracy_pct(self) -> float:
        """Headline accuracy figure shown next to the forecast."""
        return self.accuracy.accuracy_pct

    @property
    def diagnostic_codes(self) -> list[str]:
        """Codes of all recorded diagnostics, in order."""
        return [d.code for d in self.diagnostics]

    @classmethod
    def degenerate(
        cls,
        horizon: int = 1,
        season_length: int = 12,
        outliers: OutlierSummary | None = None,
        historical_average: float = 0.0,
        diagnostics: list[Diagnostic] | None = None,
    ) -> ForecastResult:
        """Zero-projection result with low confidence and quality.

        Args:
            horizon: Length of the all-zero forecast path.
            season_length: Periods per seasonal cycle.
            outliers: Outlier diagnostics, if treatment ran.
            historical_average: Mean of the history, if known.
            diagnostics: Reasons for the degradation.

        Returns:
            Degenerate ForecastResult.
        """
        return cls(
            monthly_forecast=0.0,
            annual_forecast=0.0,
            forecast_path=[0.0] * max(horizon, 1),
            variance_pct=0.0,
            historical_average=historical_average,
            confidence="low",
            data_quality="low",
            outliers=outliers or OutlierSummary(),
            season_length=max(season_length, 1),
            diagnostics=diagnostics or [],
        )
