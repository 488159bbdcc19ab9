"""Tests for the API error envelope.

Every non-case error (routing, missing wiring, unhandled exceptions) answers
with {correlationId, errorCode, errorMessage} and the X-Correlation-ID header.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ndrc.api.error_model import error_body, get_error_code_for_status
from ndrc.api.main import create_app
from ndrc.audit.sink import InMemoryAuditSink
from ndrc.config import ServiceConfig
from ndrc.services.aggregator import CaseOutcome
from tests.fixtures.cases.payloads import SequenceIdGenerator, amend_payload


class ExplodingCaseService:
    async def amend_case(self, body: bytes, correlation_id: str) -> CaseOutcome:
        raise RuntimeError("wiring bug with secret detail")


@pytest.fixture
def app(service_config: ServiceConfig) -> FastAPI:
    return create_app(
        config=service_config,
        audit_sink=InMemoryAuditSink(),
        id_generator=SequenceIdGenerator(),
    )


def test_unknown_route_uses_envelope(app: FastAPI) -> None:
    response = TestClient(app).get("/no-such-route", headers={"X-Correlation-ID": "c-404"})

    assert response.status_code == 404
    assert response.json() == {
        "correlationId": "c-404",
        "errorCode": "NOT_FOUND",
        "errorMessage": "Not Found",
    }
    assert response.headers["X-Correlation-ID"] == "c-404"


def test_wrong_method_is_405(app: FastAPI) -> None:
    response = TestClient(app).get("/amend-case")

    assert response.status_code == 405
    assert response.json()["errorCode"] == "METHOD_NOT_ALLOWED"
    assert response.json()["correlationId"] == "generated-1"


def test_missing_case_service_is_503(app: FastAPI) -> None:
    app.state.case_service = None

    response = TestClient(app).post("/amend-case", json=amend_payload())

    assert response.status_code == 503
    assert response.json()["errorCode"] == "SERVICE_UNAVAILABLE"
    assert response.headers["X-Correlation-ID"] == "generated-1"


def test_unhandled_exception_is_500_without_detail(app: FastAPI) -> None:
    app.state.case_service = ExplodingCaseService()
    client = TestClient(app, raise_server_exceptions=False)

    response = client.post(
        "/amend-case", json=amend_payload(), headers={"X-Correlation-ID": "c-500"}
    )

    assert response.status_code == 500
    assert response.json() == {
        "correlationId": "c-500",
        "errorCode": "INTERNAL_ERROR",
        "errorMessage": "An internal error occurred",
    }
    assert "secret" not in response.text
    assert response.headers["X-Correlation-ID"] == "c-500"


@pytest.mark.parametrize(
    ("status_code", "code"),
    [(404, "NOT_FOUND"), (502, "BAD_GATEWAY"), (418, "ERROR")],
)
def test_status_code_mapping(status_code: int, code: str) -> None:
    assert get_error_code_for_status(status_code) == code


def test_error_body_shape() -> None:
    assert error_body("c", "E", "m") == {
        "correlationId": "c",
        "errorCode": "E",
        "errorMessage": "m",
    }
