"""Tests for engine exceptions and RFC 7807 handlers."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from forecast_engine.core.exceptions import (
    ConstantSeriesWarning,
    DegenerateSeriesWarning,
    ForecastEngineError,
    ForecastEngineWarning,
    ForecastTimeoutError,
    InsufficientDataError,
    ParameterSearchExhaustionWarning,
    register_exception_handlers,
)
from forecast_engine.core.middleware import RequestIdMiddleware
from forecast_engine.core.problem_details import create_problem_detail, error_type_uri


@pytest.fixture
def problem_app() -> FastAPI:
    """Minimal app whose routes raise engine errors."""
    test_app = FastAPI()
    test_app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(test_app)

    @test_app.get("/insufficient")
    async def insufficient() -> None:
        raise InsufficientDataError(n_observations=5, min_required=24)

    @test_app.get("/timeout")
    async def timeout() -> None:
        raise ForecastTimeoutError(2.5)

    @test_app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("boom")

    return test_app


class TestExceptionClasses:
    """Tests for exception attributes."""

    def test_insufficient_data_error_details(self):
        """InsufficientDataError should carry its counts."""
        err = InsufficientDataError(n_observations=10, min_required=24)

        assert err.code == "INSUFFICIENT_DATA"
        assert err.status_code == 422
        assert err.details == {"n_observations": 10, "min_required": 24}
        assert "24" in err.message
        assert isinstance(err, ForecastEngineError)

    def test_title_derived_from_code(self):
        """Title should be a readable form of the code."""
        assert ForecastTimeoutError(1.0).title == "Forecast Timeout"

    def test_warning_codes_are_stable(self):
        """Each warning exposes a machine-readable code."""
        assert DegenerateSeriesWarning.code == "degenerate_series"
        assert ConstantSeriesWarning.code == "constant_series"
        assert ParameterSearchExhaustionWarning.code == "parameter_search_exhausted"
        assert issubclass(ConstantSeriesWarning, DegenerateSeriesWarning)
        assert issubclass(DegenerateSeriesWarning, ForecastEngineWarning)


class TestExceptionHandlers:
    """Tests for problem+json rendering."""

    @pytest.mark.asyncio
    async def test_engine_error_rendered_as_problem(self, problem_app):
        """Engine errors should map to their status and problem type."""
        async with AsyncClient(
            transport=ASGITransport(app=problem_app), base_url="http://test"
        ) as ac:
            response = await ac.get("/insufficient")

        assert response.status_code == 422
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["code"] == "INSUFFICIENT_DATA"
        assert body["type"] == "/errors/insufficient-data"
        assert body["request_id"] == response.headers["X-Request-ID"]
        assert body["min_required"] == 24
        assert body["n_observations"] == 5

    @pytest.mark.asyncio
    async def test_timeout_rendered_as_503(self, problem_app):
        """Timeouts should map to 503 Service Unavailable."""
        async with AsyncClient(
            transport=ASGITransport(app=problem_app), base_url="http://test"
        ) as ac:
            response = await ac.get("/timeout")

        assert response.status_code == 503
        body = response.json()
        assert body["code"] == "FORECAST_TIMEOUT"
        assert body["timeout_seconds"] == 2.5

    @pytest.mark.asyncio
    async def test_unhandled_error_rendered_as_500(self, problem_app):
        """Unexpected errors should not leak their message."""
        async with AsyncClient(
            transport=ASGITransport(app=problem_app, raise_app_exceptions=False),
            base_url="http://test",
        ) as ac:
            response = await ac.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "INTERNAL_ERROR"
        assert "boom" not in body["detail"]


class TestProblemDetails:
    """Tests for problem document construction."""

    def test_registered_type_uri(self):
        """Known codes use their registered type URI."""
        assert error_type_uri("FORECAST_TIMEOUT") == "/errors/forecast-timeout"

    def test_derived_type_uri(self):
        """Unknown codes derive a kebab-case type URI."""
        assert error_type_uri("RATE_LIMITED") == "/errors/rate-limited"

    def test_extensions_cannot_override_members(self):
        """Reserved members are kept when extensions collide with them."""
        problem = create_problem_detail(
            status=503,
            title="Forecast Timeout",
            error_code="FORECAST_TIMEOUT",
            extensions={"status": 200, "timeout_seconds": 1.0},
        )

        dumped = problem.model_dump(exclude_none=True)
        assert dumped["status"] == 503
        assert dumped["timeout_seconds"] == 1.0
