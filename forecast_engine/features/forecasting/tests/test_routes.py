"""Tests for forecasting API routes."""

import time

import numpy as np
import pytest

from forecast_engine.core.config import Settings, get_settings
from forecast_engine.features.forecasting.schemas import ForecastRequest, ForecastResult
from forecast_engine.features.forecasting.service import (
    ForecastingService,
    get_forecasting_service,
)
from forecast_engine.main import app


@pytest.fixture
def fast_service(fast_settings: Settings):
    """Route requests to a service with small search grids."""
    service = ForecastingService(fast_settings)
    app.dependency_overrides[get_forecasting_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


def _payload(series: np.ndarray, **extra) -> dict:
    return {"historical_series": [float(v) for v in series], **extra}


class TestForecastSeasonalRoute:
    """Tests for POST /forecasting/seasonal."""

    @pytest.mark.asyncio
    async def test_forecast_success(self, client, fast_service, sample_seasonal_series):
        """Test a three-year series returns a full forecast."""
        response = await client.post(
            "/forecasting/seasonal",
            json=_payload(sample_seasonal_series, forecast_horizon=3),
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["forecast_path"]) == 3
        assert data["annual_forecast"] == pytest.approx(data["monthly_forecast"] * 12)
        assert data["parameter_source"] == "search"
        assert data["confidence"] in ("high", "medium", "low")
        assert "accuracy_pct" in data
        assert data["accuracy"]["n_samples"] > 0
        assert data["diagnostics"] == []

    @pytest.mark.asyncio
    async def test_forecast_with_partial_and_manual(
        self, client, fast_service, sample_seasonal_series
    ):
        """Test manual parameters and a partial month are honoured."""
        response = await client.post(
            "/forecasting/seasonal",
            json=_payload(
                sample_seasonal_series,
                manual_parameters={"alpha": 0.3, "beta": 0.1, "gamma": 0.2},
                current_period_partial={"elapsed_fraction": 0.5, "observed_value": 60.0},
            ),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["parameter_source"] == "manual"
        assert data["blend"]["applied"] is True
        assert data["blend"]["run_rate"] == pytest.approx(120.0)

    @pytest.mark.asyncio
    async def test_short_series_returns_degenerate(self, client, fast_service):
        """Test short history is a degraded 200, not an error."""
        response = await client.post(
            "/forecasting/seasonal",
            json=_payload(np.full(10, 50.0)),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["monthly_forecast"] == 0.0
        assert data["confidence"] == "low"
        assert [d["code"] for d in data["diagnostics"]] == ["insufficient_history"]

    @pytest.mark.asyncio
    async def test_negative_value_rejected(self, client, fast_service, sample_seasonal_series):
        """Test negative observations are a validation error."""
        series = sample_seasonal_series.copy()
        series[4] = -1.0

        response = await client.post("/forecasting/seasonal", json=_payload(series))

        assert response.status_code == 422
        assert response.headers["content-type"] == "application/problem+json"
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["errors"][0]["field"] == "historical_series"

    @pytest.mark.asyncio
    async def test_horizon_above_maximum_rejected(
        self, client, fast_service, sample_seasonal_series
    ):
        """Test a horizon above the configured maximum is rejected."""
        response = await client.post(
            "/forecasting/seasonal",
            json=_payload(sample_seasonal_series, forecast_horizon=25),
        )

        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "forecast_horizon"

    @pytest.mark.asyncio
    async def test_empty_series_rejected(self, client, fast_service):
        """Test an empty series is a validation error."""
        response = await client.post("/forecasting/seasonal", json={"historical_series": []})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, client, fast_service, sample_seasonal_series):
        """Test unknown request fields are rejected."""
        response = await client.post(
            "/forecasting/seasonal",
            json=_payload(sample_seasonal_series, smoothing="auto"),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_timeout_returns_503(self, client, monkeypatch, sample_seasonal_series):
        """Test a slow forecast is cut off with a problem response."""

        class SlowService:
            def forecast(self, request: ForecastRequest) -> ForecastResult:
                time.sleep(0.5)
                return ForecastResult.degenerate()

        app.dependency_overrides[get_forecasting_service] = lambda: SlowService()
        monkeypatch.setattr(get_settings(), "forecast_timeout_seconds", 0.05)
        try:
            response = await client.post(
                "/forecasting/seasonal",
                json=_payload(sample_seasonal_series),
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        assert response.headers["content-type"] == "application/problem+json"
        data = response.json()
        assert data["code"] == "FORECAST_TIMEOUT"
        assert data["type"] == "/errors/forecast-timeout"
