"""End-to-end tests for POST /create-case."""

from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

from ndrc.api.main import create_app
from ndrc.audit.sink import InMemoryAuditSink
from ndrc.config import ServiceConfig
from tests.fixtures.cases.payloads import (
    SUPPLIED_CORRELATION_ID,
    FixedClock,
    RecordingHandler,
    SequenceIdGenerator,
    address,
    create_payload,
    eis_error_body,
    eis_success_body,
    respond_json,
)


def _client(
    config: ServiceConfig,
    sink: InMemoryAuditSink,
    eis: RecordingHandler,
    transfers: RecordingHandler,
) -> TestClient:
    app = create_app(
        config=config,
        audit_sink=sink,
        eis_http_client=eis.async_client(),
        file_transfer_http_client=transfers.async_client(),
        clock=FixedClock(),
        id_generator=SequenceIdGenerator(),
    )
    return TestClient(app)


def test_create_case_returns_assigned_case_id(
    service_config: ServiceConfig, audit_sink: InMemoryAuditSink
) -> None:
    eis = RecordingHandler(respond_json(201, eis_success_body("NDRC2603020001")))
    transfers = RecordingHandler(lambda r: httpx.Response(202))
    client = _client(service_config, audit_sink, eis, transfers)

    response = client.post(
        "/create-case",
        json=create_payload(file_count=2),
        headers={"X-Correlation-ID": SUPPLIED_CORRELATION_ID},
    )

    assert response.status_code == 201
    assert response.json()["result"]["caseId"] == "NDRC2603020001"
    assert eis.requests[0].url.path == "/cpr/caserequest/ndrc/create/v1"
    assert eis.json_bodies()[0]["Content"]["RequestType"] == "Create"
    assert [b["caseReferenceNumber"] for b in transfers.json_bodies()] == [
        "NDRC2603020001",
        "NDRC2603020001",
    ]

    assert len(audit_sink.events) == 1
    event = audit_sink.events[0]
    assert event["auditType"] == "CreateCase"
    assert event["detail"]["caseId"] == "NDRC2603020001"
    assert event["detail"]["correlationId"] == SUPPLIED_CORRELATION_ID
    assert event["detail"]["numberOfFilesUploaded"] == 2


def test_representative_claim_sends_agent_details(
    service_config: ServiceConfig, audit_sink: InMemoryAuditSink
) -> None:
    eis = RecordingHandler(respond_json(201, eis_success_body("NEW-1")))
    transfers = RecordingHandler(lambda r: httpx.Response(202))
    client = _client(service_config, audit_sink, eis, transfers)
    payload = create_payload(
        file_count=0, claimant="Representative", payeeIndicator="Representative"
    )
    payload["content"]["agentDetails"] = {
        "name": "Customs Agents LLP",
        "eori": "GB987654321000",
        "address": address(country_code="FR", postal_code=None),
    }

    response = client.post("/create-case", json=payload)

    assert response.status_code == 201
    content = eis.json_bodies()[0]["Content"]
    assert content["AgentDetails"]["Address"]["CountryCode"] == "FR"
    assert transfers.requests == []


def test_invalid_claim_details_are_all_reported(
    service_config: ServiceConfig, audit_sink: InMemoryAuditSink
) -> None:
    eis = RecordingHandler(respond_json(201, eis_success_body()))
    transfers = RecordingHandler(lambda r: httpx.Response(202))
    client = _client(service_config, audit_sink, eis, transfers)
    payload = create_payload(file_count=0, formType="99", claimDate="2026-03-01")

    response = client.post("/create-case", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["errorCode"] == "ERROR_VALIDATION"
    assert "at /content/claimDetails/formType" in body["errorMessage"]
    assert "at /content/claimDetails/claimDate" in body["errorMessage"]
    assert eis.requests == []
    assert audit_sink.events[0]["detail"]["success"] is False


def test_eis_error_detail_is_returned(
    service_config: ServiceConfig, audit_sink: InMemoryAuditSink
) -> None:
    eis = RecordingHandler(respond_json(422, eis_error_body("422", "Duplicate claim")))
    transfers = RecordingHandler(lambda r: httpx.Response(202))
    client = _client(service_config, audit_sink, eis, transfers)

    response = client.post("/create-case", json=create_payload(file_count=1))

    assert response.status_code == 422
    assert response.json()["errorMessage"] == "Duplicate claim"
    assert transfers.requests == []
    detail = audit_sink.events[0]["detail"]
    assert detail["success"] is False
    assert "caseId" not in detail
