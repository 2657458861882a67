"""RFC 7807 Problem Details for the forecasting HTTP surface.

Errors that reach HTTP clients (request validation, timeouts, unexpected
failures) are rendered as ``application/problem+json``. Forecasting
degradations never get here: they are carried inside ``ForecastResult``.

Reference: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from forecast_engine.core.logging import request_id_ctx

ERROR_TYPE_BASE = "/errors"

ERROR_TYPES = {
    "VALIDATION_ERROR": f"{ERROR_TYPE_BASE}/validation",
    "INSUFFICIENT_DATA": f"{ERROR_TYPE_BASE}/insufficient-data",
    "FORECAST_TIMEOUT": f"{ERROR_TYPE_BASE}/forecast-timeout",
    "INTERNAL_ERROR": f"{ERROR_TYPE_BASE}/internal",
}

# Members a caller-supplied extension may not overwrite
_RESERVED_MEMBERS = frozenset(
    {"type", "title", "status", "detail", "instance", "errors", "code", "request_id"}
)


class ProblemDetail(BaseModel):
    """RFC 7807 problem document.

    Attributes:
        type: URI identifying the error type.
        title: Short human-readable summary of the problem.
        status: HTTP status code.
        detail: Explanation specific to this occurrence.
        instance: URI reference for this occurrence.
        errors: Field-level validation errors (422 only).
        code: Machine-readable error code.
        request_id: Request correlation ID.
    """

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="about:blank")
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: str | None = None
    instance: str | None = None
    errors: list[dict[str, Any]] | None = None
    code: str | None = None
    request_id: str | None = None


class ProblemDetailResponse(JSONResponse):
    """JSON response with the RFC 7807 content type."""

    media_type = "application/problem+json"


def error_type_uri(error_code: str) -> str:
    """Problem type URI for an error code, derived when not registered."""
    return ERROR_TYPES.get(error_code, f"{ERROR_TYPE_BASE}/{error_code.lower().replace('_', '-')}")


def create_problem_detail(
    status: int,
    title: str,
    detail: str | None = None,
    error_code: str = "INTERNAL_ERROR",
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> ProblemDetail:
    """Build a ProblemDetail tied to the current request.

    Args:
        status: HTTP status code.
        title: Short problem summary.
        detail: Explanation of this occurrence.
        error_code: Machine-readable code; selects the type URI.
        errors: Field-level validation errors.
        extensions: Extra members (e.g. ``timeout_seconds``); reserved
            member names are ignored.

    Returns:
        ProblemDetail instance.
    """
    request_id = request_id_ctx.get()
    extra = {k: v for k, v in (extensions or {}).items() if k not in _RESERVED_MEMBERS}

    return ProblemDetail(
        type=error_type_uri(error_code),
        title=title,
        status=status,
        detail=detail,
        instance=f"/requests/{request_id}" if request_id else None,
        errors=errors,
        code=error_code,
        request_id=request_id,
        **extra,
    )


def problem_response(
    status: int,
    title: str,
    detail: str | None = None,
    error_code: str = "INTERNAL_ERROR",
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> ProblemDetailResponse:
    """Create a problem+json response."""
    problem = create_problem_detail(
        status=status,
        title=title,
        detail=detail,
        error_code=error_code,
        errors=errors,
        extensions=extensions,
    )
    return ProblemDetailResponse(
        status_code=status,
        content=problem.model_dump(exclude_none=True),
    )
