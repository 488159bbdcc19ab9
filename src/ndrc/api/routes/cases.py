"""Create and amend case endpoints.

The raw body is handed to the CaseService so that JSON and shape problems are
reported with the service's own error codes (ERROR_JSON, ERROR_UNKNOWN) and
audited like any other rejection, instead of FastAPI's generic 422.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ndrc.api.errors import NdrcHttpError
from ndrc.services.aggregator import CaseOutcome
from ndrc.services.cases import CaseService

router = APIRouter(tags=["Cases"])


def get_case_service(request: Request) -> CaseService:
    """Fetch the CaseService wired by create_app().

    Raises:
        NdrcHttpError: 503 if the application has no case service.
    """
    service: CaseService | None = getattr(request.app.state, "case_service", None)
    if service is None:
        raise NdrcHttpError(503, "SERVICE_UNAVAILABLE", "Case service is not configured")
    return service


def _to_response(outcome: CaseOutcome) -> JSONResponse:
    return JSONResponse(status_code=outcome.status_code, content=outcome.response.to_wire())


@router.post("/amend-case", status_code=201)
async def amend_case(request: Request) -> JSONResponse:
    """Amend an existing case with further information and/or documents."""
    service = get_case_service(request)
    outcome = await service.amend_case(await request.body(), request.state.correlation_id)
    return _to_response(outcome)


@router.post("/create-case", status_code=201)
async def create_case(request: Request) -> JSONResponse:
    """Create a new duty repayment case."""
    service = get_case_service(request)
    outcome = await service.create_case(await request.body(), request.state.correlation_id)
    return _to_response(outcome)
