"""API error handling.

Provides NdrcHttpError and the FastAPI exception handlers that turn every
failure into the {correlationId, errorCode, errorMessage} envelope.

Global exception handlers:
- NdrcHttpError: Application-specific errors
- HTTPException: Starlette HTTP exceptions, including routing 404/405
- RequestValidationError: FastAPI request validation errors
- Exception: Catch-all for unhandled exceptions (no stack traces to clients)
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from ndrc.api.error_model import get_error_code_for_status, make_error_response
from ndrc.observability.tracing import get_current_trace_id

logger = logging.getLogger(__name__)


class NdrcHttpError(Exception):
    """Application-level HTTP error.

    Attributes:
        status_code: HTTP status code.
        code: Machine-readable error code.
        message: Human-readable error message.
    """

    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


async def ndrc_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, NdrcHttpError)

    return make_error_response(
        request, code=exc.code, message=exc.message, http_status=exc.status_code
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map standard HTTP exceptions to the error envelope."""
    assert isinstance(exc, HTTPException)

    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"
    return make_error_response(
        request,
        code=get_error_code_for_status(exc.status_code),
        message=message,
        http_status=exc.status_code,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map FastAPI request validation errors to the error envelope.

    Only field locations and messages are exposed, never input values.
    """
    assert isinstance(exc, RequestValidationError)

    details: list[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append(f"{'.'.join(loc) or 'request'}: {error.get('msg', 'Validation error')}")

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="; ".join(details) or "Request validation failed",
        http_status=422,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: 500 with a generic message, exception logged."""
    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={
            "correlation_id": getattr(request.state, "correlation_id", None),
            "trace_id": get_current_trace_id(),
        },
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
    )
