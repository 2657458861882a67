"""Engine exceptions, degradation warnings, and FastAPI exception handlers.

Errors inherit from ForecastEngineError and map to RFC 7807 problem types.
Warnings inherit from ForecastEngineWarning; the orchestrator never raises
them, it records their ``code`` as a diagnostic on the ForecastResult.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from forecast_engine.core.logging import get_logger
from forecast_engine.core.problem_details import (
    ERROR_TYPES,
    ProblemDetailResponse,
    problem_response,
)

logger = get_logger(__name__)


# =============================================================================
# Exception Classes
# =============================================================================


class ForecastEngineError(Exception):
    """Base exception for forecasting engine errors.

    Each exception type maps to an RFC 7807 problem type URI.
    """

    error_type_uri: str = ERROR_TYPES["INTERNAL_ERROR"]

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize engine error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()


class InsufficientDataError(ForecastEngineError):
    """Series too short for the seasonal model to initialize.

    Raised by the Holt-Winters fit when fewer than two full seasons are
    available. Caught by the parameter search and the orchestrator.
    """

    error_type_uri: str = ERROR_TYPES["INSUFFICIENT_DATA"]

    def __init__(
        self,
        n_observations: int,
        min_required: int,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message=message
            or f"Need at least {min_required} observations, got {n_observations}",
            code="INSUFFICIENT_DATA",
            status_code=422,
            details={"n_observations": n_observations, "min_required": min_required},
        )
        self.n_observations = n_observations
        self.min_required = min_required


class ForecastTimeoutError(ForecastEngineError):
    """Forecast computation exceeded the caller-imposed timeout."""

    error_type_uri: str = ERROR_TYPES["FORECAST_TIMEOUT"]

    def __init__(
        self,
        timeout_seconds: float,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=f"Forecast did not complete within {timeout_seconds} seconds",
            code="FORECAST_TIMEOUT",
            status_code=503,
            details={"timeout_seconds": timeout_seconds, **(details or {})},
        )


# =============================================================================
# Degradation Warnings (recorded, never raised across run())
# =============================================================================


class ForecastEngineWarning(UserWarning):
    """Base class for non-fatal forecasting degradations."""

    code: str = "engine_warning"


class DegenerateSeriesWarning(ForecastEngineWarning):
    """All-zero or constant series."""

    code = "degenerate_series"


class ConstantSeriesWarning(DegenerateSeriesWarning):
    """Constant non-zero series; forecast proceeds but carries no seasonality."""

    code = "constant_series"


class ParameterSearchExhaustionWarning(ForecastEngineWarning):
    """Every grid candidate failed; default parameters were used."""

    code = "parameter_search_exhausted"


class InsufficientHistoryWarning(ForecastEngineWarning):
    """History shorter than two seasons; zero projections returned."""

    code = "insufficient_history"


class InputSanitizedWarning(ForecastEngineWarning):
    """Negative or non-finite observations were replaced by zero."""

    code = "input_sanitized"


class InvalidManualParametersWarning(ForecastEngineWarning):
    """Manual smoothing parameters were rejected; the search was used instead."""

    code = "invalid_manual_parameters"


class InvalidConfigurationWarning(ForecastEngineWarning):
    """Season length or horizon outside the supported range."""

    code = "invalid_configuration"


class InvalidCurrentPeriodWarning(ForecastEngineWarning):
    """Partial-period observation was unusable; blending was skipped."""

    code = "invalid_current_period"


class BacktestBaselineOnlyWarning(ForecastEngineWarning):
    """No backtest fold was long enough for Holt-Winters; accuracy describes the baselines."""

    code = "backtest_baseline_only"


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def forecast_engine_exception_handler(
    request: Request,
    exc: ForecastEngineError,
) -> ProblemDetailResponse:
    """Render a ForecastEngineError as problem+json.

    ``exc.details`` is exposed as problem extension members, so a timeout
    response carries ``timeout_seconds`` and an insufficient-data response
    carries ``n_observations`` and ``min_required``.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app.engine_error",
        error=exc.message,
        error_code=exc.code,
        status_code=exc.status_code,
        path=request.url.path,
        **exc.details,
    )

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
        extensions=exc.details,
    )


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        errors.append(
            {
                "field": ".".join(str(part) for part in loc if part != "body"),
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )
    return errors


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Render request validation errors as a 422 with field-level errors."""
    field_errors = _field_errors(exc)

    logger.warning(
        "app.validation_error",
        path=request.url.path,
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=422,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s).",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Render anything else as an opaque 500."""
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="The forecast could not be produced. Quote the request_id when reporting this.",
        error_code="INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the problem+json handlers on ``app``."""
    app.add_exception_handler(ForecastEngineError, forecast_engine_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
