"""Correlation id middleware.

Resolves the request's correlation id exactly once and makes it available to
route handlers as request.state.correlation_id.
"""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ndrc.observability.tracing import set_span_attributes
from ndrc.services.correlation import (
    CORRELATION_ID_HEADER,
    IdGenerator,
    UuidGenerator,
    resolve_correlation_id,
)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware that attaches a correlation id to every request.

    Behavior:
    - A well-formed X-Correlation-ID header is used as-is.
    - Otherwise a new id is taken from the id generator.
    - The id is stored on request.state.correlation_id and echoed in the
      X-Correlation-ID response header.
    """

    def __init__(self, app: ASGIApp, id_generator: IdGenerator | None = None) -> None:
        super().__init__(app)
        self._id_generator = id_generator or UuidGenerator()

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = resolve_correlation_id(
            request.headers.get(CORRELATION_ID_HEADER), self._id_generator
        )
        request.state.correlation_id = correlation_id
        set_span_attributes({"ndrc.correlation_id": correlation_id})

        response: Response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id

        return response
