"""Shared error response builder.

Every error body produced by the service, whether by the case pipeline or by an
exception handler, has the same envelope:

- correlationId: str - the request correlation id (always present)
- errorCode: str - machine-readable code (e.g. "ERROR_VALIDATION", "NOT_FOUND")
- errorMessage: str - human-readable message
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from ndrc.services.correlation import (
    CORRELATION_ID_HEADER,
    is_valid_correlation_id,
)


def get_correlation_id(request: Request) -> str:
    """Correlation id of the request for error responses.

    Priority:
    1. request.state.correlation_id (set by CorrelationIdMiddleware)
    2. A well-formed X-Correlation-ID header
    3. A new uuid4
    """
    correlation_id: str | None = getattr(request.state, "correlation_id", None)
    if correlation_id is not None:
        return str(correlation_id)

    header_id = (request.headers.get(CORRELATION_ID_HEADER) or "").strip()
    if header_id and is_valid_correlation_id(header_id):
        return header_id

    return str(uuid.uuid4())


def error_body(correlation_id: str, code: str, message: str) -> dict[str, Any]:
    return {"correlationId": correlation_id, "errorCode": code, "errorMessage": message}


def make_error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
) -> JSONResponse:
    """Build an error JSON response.

    Args:
        request: The FastAPI request (for correlation id extraction).
        code: Machine-readable error code.
        message: Human-readable error message.
        http_status: HTTP status code.

    Returns:
        JSONResponse with the error envelope and the X-Correlation-ID header.
    """
    correlation_id = get_correlation_id(request)
    response = JSONResponse(
        status_code=http_status, content=error_body(correlation_id, code, message)
    )
    response.headers[CORRELATION_ID_HEADER] = correlation_id
    return response


HTTP_STATUS_TO_CODE: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
    504: "GATEWAY_TIMEOUT",
}


def get_error_code_for_status(status_code: int) -> str:
    """Get the standard error code for an HTTP status, "ERROR" if unmapped."""
    return HTTP_STATUS_TO_CODE.get(status_code, "ERROR")
