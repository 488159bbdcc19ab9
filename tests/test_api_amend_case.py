"""End-to-end tests for POST /amend-case.

EIS and the file-transfer service are httpx.MockTransport handlers; the audit
sink is in memory. No live network calls.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from ndrc.api.main import create_app
from ndrc.audit.sink import AuditSinkError, InMemoryAuditSink
from ndrc.config import ServiceConfig
from tests.fixtures.cases.payloads import (
    CASE_ID,
    SUPPLIED_CORRELATION_ID,
    FixedClock,
    RecordingHandler,
    SequenceIdGenerator,
    amend_payload,
    eis_error_body,
    eis_success_body,
    respond_json,
)


class Harness:
    """App plus the recording doubles behind it."""

    def __init__(
        self,
        config: ServiceConfig,
        eis_respond: Callable[[httpx.Request], httpx.Response],
        transfer_respond: Callable[[httpx.Request], httpx.Response] | None = None,
        audit_sink: InMemoryAuditSink | None = None,
    ) -> None:
        self.eis = RecordingHandler(eis_respond)
        self.transfers = RecordingHandler(transfer_respond or (lambda r: httpx.Response(202)))
        self.audit_sink = audit_sink or InMemoryAuditSink()
        app = create_app(
            config=config,
            audit_sink=self.audit_sink,
            eis_http_client=self.eis.async_client(),
            file_transfer_http_client=self.transfers.async_client(),
            clock=FixedClock(),
            id_generator=SequenceIdGenerator(),
        )
        self.client = TestClient(app)


class BrokenAuditSink(InMemoryAuditSink):
    def emit(self, event: dict[str, object]) -> None:
        raise AuditSinkError("audit log unavailable")


def _transfer_status_by_reference(
    statuses: dict[str, int],
) -> Callable[[httpx.Request], httpx.Response]:
    def respond(request: httpx.Request) -> httpx.Response:
        reference = json.loads(request.content)["upscanReference"]
        return httpx.Response(statuses.get(reference, 202))

    return respond


class TestAllSucceed:
    def test_returns_201_with_case_and_every_transfer(self, service_config: ServiceConfig) -> None:
        harness = Harness(service_config, respond_json(200, eis_success_body()))

        response = harness.client.post(
            "/amend-case",
            json=amend_payload(file_count=2),
            headers={"X-Correlation-ID": SUPPLIED_CORRELATION_ID},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["correlationId"] == SUPPLIED_CORRELATION_ID
        assert body["result"]["caseId"] == CASE_ID
        assert [r["reference"] for r in body["result"]["fileTransferResults"]] == [
            "ref-1",
            "ref-2",
        ]
        assert all(r["success"] for r in body["result"]["fileTransferResults"])
        assert "errorCode" not in body

        assert len(harness.eis.requests) == 1
        assert len(harness.transfers.requests) == 2
        assert len(harness.audit_sink.events) == 1
        assert harness.audit_sink.events[0]["detail"]["success"] is True

    def test_results_keep_request_order_for_many_files(
        self, service_config: ServiceConfig
    ) -> None:
        harness = Harness(service_config, respond_json(200, eis_success_body()))

        response = harness.client.post("/amend-case", json=amend_payload(file_count=7))

        results = response.json()["result"]["fileTransferResults"]
        assert [r["reference"] for r in results] == [f"ref-{i}" for i in range(1, 8)]
        audit_files = harness.audit_sink.events[0]["detail"]["uploadedFiles"]
        assert [f["reference"] for f in audit_files] == [f"ref-{i}" for i in range(1, 8)]

    def test_zoned_upload_timestamp_is_accepted_and_audited_verbatim(
        self, service_config: ServiceConfig
    ) -> None:
        harness = Harness(service_config, respond_json(200, eis_success_body()))
        payload = amend_payload(file_count=1)
        payload["uploadedFiles"][0]["uploadTimestamp"] = "2020-10-10T10:10:10Z[UTC]"

        response = harness.client.post("/amend-case", json=payload)

        assert response.status_code == 201
        assert harness.transfers.json_bodies()[0]["upscanReference"] == "ref-1"
        audit_file = harness.audit_sink.events[0]["detail"]["uploadedFiles"][0]
        assert audit_file["uploadTimestamp"] == "2020-10-10T10:10:10Z[UTC]"


class TestPartialTransferFailure:
    def test_failed_transfer_still_returns_201(self, service_config: ServiceConfig) -> None:
        harness = Harness(
            service_config,
            respond_json(200, eis_success_body()),
            _transfer_status_by_reference({"ref-2": 500}),
        )

        response = harness.client.post("/amend-case", json=amend_payload(file_count=3))

        assert response.status_code == 201
        results = response.json()["result"]["fileTransferResults"]
        assert [r["success"] for r in results] == [True, False, True]
        assert results[1]["httpStatus"] == 500

        detail = harness.audit_sink.events[0]["detail"]
        assert detail["success"] is True
        assert [f["transferSuccess"] for f in detail["uploadedFiles"]] == [True, False, True]


class TestSubmissionFailure:
    def test_eis_rejection_is_passed_through_without_transfers(
        self, service_config: ServiceConfig
    ) -> None:
        harness = Harness(
            service_config, respond_json(400, eis_error_body("400", "Case already closed"))
        )

        response = harness.client.post("/amend-case", json=amend_payload(file_count=2))

        assert response.status_code == 400
        assert response.json() == {
            "correlationId": "generated-1",
            "errorCode": "400",
            "errorMessage": "Case already closed",
        }
        assert harness.transfers.requests == []
        detail = harness.audit_sink.events[0]["detail"]
        assert detail["success"] is False
        assert detail["uploadedFiles"] == []

    def test_eis_unreachable_is_502(self, service_config: ServiceConfig) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        harness = Harness(service_config, refuse)

        response = harness.client.post("/amend-case", json=amend_payload(file_count=1))

        assert response.status_code == 502
        assert response.json()["errorCode"] == "ERROR_UPSTREAM_UNAVAILABLE"
        assert harness.transfers.requests == []
        assert len(harness.audit_sink.events) == 1


class TestCorrelationId:
    def test_supplied_id_reaches_every_collaborator(self, service_config: ServiceConfig) -> None:
        harness = Harness(service_config, respond_json(200, eis_success_body()))

        response = harness.client.post(
            "/amend-case",
            json=amend_payload(file_count=2),
            headers={"X-Correlation-ID": SUPPLIED_CORRELATION_ID},
        )

        assert response.headers["X-Correlation-ID"] == SUPPLIED_CORRELATION_ID
        assert response.json()["correlationId"] == SUPPLIED_CORRELATION_ID
        assert harness.eis.requests[0].headers["x-correlation-id"] == SUPPLIED_CORRELATION_ID
        for request in harness.transfers.requests:
            assert request.headers["x-correlation-id"] == SUPPLIED_CORRELATION_ID
        for body in harness.transfers.json_bodies():
            assert body["correlationId"] == SUPPLIED_CORRELATION_ID
        assert harness.audit_sink.events[0]["detail"]["correlationId"] == SUPPLIED_CORRELATION_ID

    @pytest.mark.parametrize("supplied", [None, "", "   ", "not valid!"])
    def test_missing_or_malformed_id_is_generated_once(
        self, service_config: ServiceConfig, supplied: str | None
    ) -> None:
        harness = Harness(service_config, respond_json(200, eis_success_body()))
        headers = {} if supplied is None else {"X-Correlation-ID": supplied}

        response = harness.client.post(
            "/amend-case", json=amend_payload(file_count=1), headers=headers
        )

        assert response.headers["X-Correlation-ID"] == "generated-1"
        assert response.json()["correlationId"] == "generated-1"
        assert harness.eis.requests[0].headers["x-correlation-id"] == "generated-1"
        assert harness.transfers.requests[0].headers["x-correlation-id"] == "generated-1"
        assert harness.audit_sink.events[0]["detail"]["correlationId"] == "generated-1"


class TestRejectedPayloads:
    def test_malformed_json_is_400_and_audited(self, service_config: ServiceConfig) -> None:
        harness = Harness(service_config, respond_json(200, eis_success_body()))

        response = harness.client.post(
            "/amend-case",
            content=b'{"content": ',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "ERROR_UNKNOWN"
        assert response.headers["X-Correlation-ID"] == "generated-1"
        assert harness.eis.requests == []
        assert len(harness.audit_sink.events) == 1
        assert harness.audit_sink.events[0]["detail"]["success"] is False

    def test_wrong_field_type_is_400(self, service_config: ServiceConfig) -> None:
        harness = Harness(service_config, respond_json(200, eis_success_body()))
        payload = amend_payload(file_count=1)
        payload["content"]["amendmentTypes"] = "FurtherInformation"

        response = harness.client.post("/amend-case", json=payload)

        assert response.status_code == 400
        assert response.json()["errorCode"] == "ERROR_JSON"
        assert "/content/amendmentTypes" in response.json()["errorMessage"]

    def test_unknown_amendment_type_is_validation_error(
        self, service_config: ServiceConfig
    ) -> None:
        harness = Harness(service_config, respond_json(200, eis_success_body()))
        payload = amend_payload(file_count=0, amendment_types=["Other"])

        response = harness.client.post("/amend-case", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "ERROR_VALIDATION"
        assert "at /content/amendmentTypes/0" in body["errorMessage"]
        assert harness.eis.requests == []
        assert harness.audit_sink.events[0]["detail"]["caseId"] == CASE_ID


def test_audit_failure_does_not_change_response(service_config: ServiceConfig) -> None:
    harness = Harness(
        service_config, respond_json(200, eis_success_body()), audit_sink=BrokenAuditSink()
    )

    response = harness.client.post("/amend-case", json=amend_payload(file_count=1))

    assert response.status_code == 201
    assert response.json()["result"]["caseId"] == CASE_ID


def _single_file_amendment() -> dict[str, object]:
    payload = amend_payload(file_count=1)
    payload["uploadedFiles"][0].update(
        {
            "reference": "ref-123",
            "downloadUrl": "https://bucket.example/ref-123",
            "fileName": "test1.jpeg",
            "fileMimeType": "image/jpeg",
        }
    )
    return payload


class TestSingleFileAmendment:
    """One supporting document through submission, transfer and audit."""

    def test_transferred_file_is_reported_and_audited(
        self, service_config: ServiceConfig
    ) -> None:
        harness = Harness(
            service_config, respond_json(200, eis_success_body()), lambda r: httpx.Response(200)
        )

        response = harness.client.post("/amend-case", json=_single_file_amendment())

        assert response.status_code == 201
        (result,) = response.json()["result"]["fileTransferResults"]
        assert result["reference"] == "ref-123"
        assert result["success"] is True
        assert result["httpStatus"] == 200
        assert harness.transfers.json_bodies()[0]["fileName"] == "test1.jpeg"

        detail = harness.audit_sink.events[0]["detail"]
        assert detail["success"] is True
        (audit_file,) = detail["uploadedFiles"]
        assert audit_file["fileName"] == "test1.jpeg"
        assert audit_file["transferSuccess"] is True
        assert audit_file["transferHttpStatus"] == 200
        assert audit_file["transferredAt"] == "2026-03-02T09:30:00Z"

    def test_conflicting_transfer_is_reported_and_audited(
        self, service_config: ServiceConfig
    ) -> None:
        harness = Harness(
            service_config, respond_json(200, eis_success_body()), lambda r: httpx.Response(409)
        )

        response = harness.client.post("/amend-case", json=_single_file_amendment())

        assert response.status_code == 201
        (result,) = response.json()["result"]["fileTransferResults"]
        assert result["reference"] == "ref-123"
        assert result["success"] is False
        assert result["httpStatus"] == 409

        detail = harness.audit_sink.events[0]["detail"]
        assert detail["success"] is True
        (audit_file,) = detail["uploadedFiles"]
        assert audit_file["reference"] == "ref-123"
        assert audit_file["transferSuccess"] is False
        assert audit_file["transferHttpStatus"] == 409
        assert audit_file["transferredAt"] == "2026-03-02T09:30:00Z"

    def test_rejected_submission_audits_no_files(self, service_config: ServiceConfig) -> None:
        harness = Harness(
            service_config, respond_json(400, eis_error_body("400", "Something went wrong"))
        )

        response = harness.client.post("/amend-case", json=_single_file_amendment())

        assert response.status_code == 400
        assert response.json()["errorCode"] == "400"
        assert response.json()["errorMessage"] == "Something went wrong"
        assert harness.transfers.requests == []

        detail = harness.audit_sink.events[0]["detail"]
        assert detail["success"] is False
        assert detail["uploadedFiles"] == []
        assert detail["numberOfFilesUploaded"] == 1
        assert detail["errorCode"] == "400"
        assert detail["errorMessage"] == "Something went wrong"
