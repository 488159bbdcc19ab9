"""Create/amend case pipeline.

parse -> validate -> submit to EIS -> transfer files -> aggregate -> audit.

Each request ends in exactly one audit emission, made after the response
outcome is settled. A rejected payload or a failed submission never reaches
the file-transfer step.
"""

from __future__ import annotations

import logging

from ndrc.audit.emitter import AuditEmitter, build_failure_record, build_success_record
from ndrc.connectors.eis import CaseSubmissionClient, SubmissionFailure
from ndrc.models.claim import AmendClaimRequest, AuditEventType, ClaimRequest, CreateClaimRequest
from ndrc.services.aggregator import CLIENT_ERROR_STATUS, CaseOutcome, ResponseAggregator
from ndrc.services.file_transfer import FileTransferOrchestrator
from ndrc.validators.claim_validator import ERROR_VALIDATION, format_violations, validate_claim
from ndrc.validators.payload import StructuralError, parse_payload

logger = logging.getLogger(__name__)


class CaseService:
    """Runs inbound claims through the whole pipeline."""

    def __init__(
        self,
        submission_client: CaseSubmissionClient,
        orchestrator: FileTransferOrchestrator,
        audit_emitter: AuditEmitter,
        aggregator: ResponseAggregator | None = None,
    ) -> None:
        self._submission_client = submission_client
        self._orchestrator = orchestrator
        self._audit = audit_emitter
        self._aggregator = aggregator or ResponseAggregator()

    async def amend_case(self, body: bytes | str, correlation_id: str) -> CaseOutcome:
        """Handle a raw /amend-case body."""
        return await self._handle(body, correlation_id, AmendClaimRequest)

    async def create_case(self, body: bytes | str, correlation_id: str) -> CaseOutcome:
        """Handle a raw /create-case body."""
        return await self._handle(body, correlation_id, CreateClaimRequest)

    async def _handle(
        self,
        body: bytes | str,
        correlation_id: str,
        model: type[AmendClaimRequest] | type[CreateClaimRequest],
    ) -> CaseOutcome:
        event_type = (
            AuditEventType.UPDATE_CASE if model is AmendClaimRequest else AuditEventType.CREATE_CASE
        )
        log_extra = {"correlation_id": correlation_id}

        try:
            request: ClaimRequest = parse_payload(body, model)
        except StructuralError as e:
            logger.info("Rejected %s payload: %s", event_type.value, e.code, extra=log_extra)
            return await self._reject(event_type, correlation_id, e.code, e.message)

        validated = validate_claim(request)
        if not validated.is_valid:
            logger.info(
                "Rejected %s payload with %d violation(s)",
                event_type.value,
                len(validated.violations),
                extra=log_extra,
            )
            return await self._reject(
                event_type,
                correlation_id,
                ERROR_VALIDATION,
                format_violations(validated.violations),
                request,
            )

        return await self.submit(request, correlation_id)

    async def _reject(
        self,
        event_type: AuditEventType,
        correlation_id: str,
        error_code: str,
        error_message: str,
        request: ClaimRequest | None = None,
    ) -> CaseOutcome:
        outcome = self._aggregator.rejected(
            correlation_id, CLIENT_ERROR_STATUS, error_code, error_message
        )
        record = build_failure_record(
            event_type, correlation_id, error_code, error_message, request
        )
        await self._audit.emit(event_type, record)
        return outcome

    async def submit(self, request: ClaimRequest, correlation_id: str) -> CaseOutcome:
        """Submit a validated request, transfer its files and audit the outcome.

        Args:
            request: Request that passed validation.
            correlation_id: Request correlation id.

        Returns:
            201 with per-file results, or the submission failure.
        """
        event_type = request.audit_event_type
        submission = await self._submission_client.submit(request, correlation_id)

        if isinstance(submission, SubmissionFailure):
            outcome = self._aggregator.aggregate(correlation_id, submission)
            record = build_failure_record(
                event_type,
                correlation_id,
                submission.error_code,
                submission.error_message,
                request,
            )
        else:
            results = await self._orchestrator.transfer_all(
                submission.case_id, correlation_id, request.uploaded_files
            )
            outcome = self._aggregator.aggregate(correlation_id, submission, results)
            record = build_success_record(request, correlation_id, submission.case_id, results)

        await self._audit.emit(event_type, record)
        return outcome
