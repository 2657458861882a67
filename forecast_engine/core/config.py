"""Engine configuration via Pydantic Settings v2."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Every empirically chosen constant of the forecasting pipeline (grids,
    blending weight, classification thresholds) lives here as policy.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "SeasonalForecastEngine"
    app_env: Literal["development", "testing", "staging", "production"] = "development"
    debug: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # API
    api_host: str = "0.0.0.0"  # noqa: S104
    api_port: int = 8123

    # Forecasting
    forecast_season_length: int = 12
    forecast_default_horizon: int = 1
    forecast_max_horizon: int = 24
    forecast_timeout_seconds: float = 30.0
    forecast_cache_size: int = 128

    # Outlier treatment
    forecast_outlier_sensitivity: float = 2.0
    forecast_outlier_max_passes: int = 50

    # Parameter search
    forecast_alpha_grid: list[float] = [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9]
    forecast_beta_grid: list[float] = [0.1, 0.15, 0.2, 0.25, 0.3, 0.4, 0.5]
    forecast_gamma_grid: list[float] = [0.1, 0.15, 0.2, 0.25, 0.3, 0.4, 0.5]
    forecast_default_alpha: float = 0.3
    forecast_default_beta: float = 0.2
    forecast_default_gamma: float = 0.2
    forecast_search_holdout_max: int = 3
    forecast_search_holdout_fraction: float = 0.2
    forecast_search_n_jobs: int = 1

    # Partial current-period blending
    forecast_blend_model_weight: float = 0.6
    forecast_blend_min_elapsed: float = 0.1
    forecast_blend_max_elapsed: float = 0.95

    # Backtesting
    backtest_min_train_size: int = 6
    backtest_min_train_fraction: float = 0.6
    backtest_step: int = 1
    backtest_refit_parameters: bool = True

    # Accuracy classification
    metrics_confidence_high_smape: float = 15.0
    metrics_confidence_high_mase: float = 1.0
    metrics_confidence_medium_smape: float = 25.0
    metrics_confidence_medium_mase: float = 1.5
    metrics_quality_high_smape: float = 10.0
    metrics_quality_high_wmape: float = 10.0
    metrics_quality_medium_smape: float = 25.0
    metrics_quality_medium_wmape: float = 25.0
    metrics_mase_cap: float = 10.0

    @field_validator("forecast_alpha_grid", "forecast_beta_grid", "forecast_gamma_grid")
    @classmethod
    def validate_grid(cls, v: list[float]) -> list[float]:
        """Validate that a smoothing grid is non-empty and inside (0, 1).

        Args:
            v: Grid values.

        Returns:
            Validated grid.

        Raises:
            ValueError: If the grid is empty or holds a value outside (0, 1).
        """
        if not v:
            raise ValueError("Smoothing grid must not be empty")
        outside = [value for value in v if not 0.0 < value < 1.0]
        if outside:
            raise ValueError(f"Smoothing grid values must be in (0, 1), got {outside}")
        return v

    @field_validator(
        "forecast_default_alpha",
        "forecast_default_beta",
        "forecast_default_gamma",
    )
    @classmethod
    def validate_default_parameter(cls, v: float) -> float:
        """Validate that a fallback smoothing parameter is inside (0, 1)."""
        if not 0.0 < v < 1.0:
            raise ValueError(f"Smoothing parameter must be in (0, 1), got {v}")
        return v

    @field_validator("forecast_blend_model_weight")
    @classmethod
    def validate_blend_weight(cls, v: float) -> float:
        """Validate that the model blending weight is a proportion."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"forecast_blend_model_weight must be in [0, 1], got {v}")
        return v

    @model_validator(mode="after")
    def validate_threshold_order(self) -> "Settings":
        """Ensure medium thresholds are never stricter than high thresholds.

        Returns:
            Validated settings.

        Raises:
            ValueError: If a medium threshold is below its high counterpart.
        """
        pairs = {
            "confidence_smape": (
                self.metrics_confidence_high_smape,
                self.metrics_confidence_medium_smape,
            ),
            "confidence_mase": (
                self.metrics_confidence_high_mase,
                self.metrics_confidence_medium_mase,
            ),
            "quality_smape": (
                self.metrics_quality_high_smape,
                self.metrics_quality_medium_smape,
            ),
            "quality_wmape": (
                self.metrics_quality_high_wmape,
                self.metrics_quality_medium_wmape,
            ),
        }
        for name, (high, medium) in pairs.items():
            if medium < high:
                raise ValueError(
                    f"Medium threshold for {name} ({medium}) must not be below "
                    f"the high threshold ({high})"
                )
        if self.forecast_blend_min_elapsed >= self.forecast_blend_max_elapsed:
            raise ValueError("forecast_blend_min_elapsed must be below forecast_blend_max_elapsed")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.app_env == "testing"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
