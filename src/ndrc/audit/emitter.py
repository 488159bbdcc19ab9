"""Builds and emits the single audit record of a request.

The record is built only once the outcome is known. Its success flag reflects
the case submission alone; per-file transfer outcomes are recorded on each file
entry. On any failure before transfers (structural, validation, submission) the
file list is empty.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ndrc.audit.sink import AuditSink, AuditSinkError
from ndrc.models.claim import AuditEventType, ClaimRequest
from ndrc.models.uploaded_file import FileTransferResult, UploadedFile

logger = logging.getLogger(__name__)


class AuditUploadedFile(BaseModel):
    """One uploaded file as recorded in the audit detail."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    reference: str | None = None
    file_name: str | None = None
    checksum: str | None = None
    file_mime_type: str | None = None
    upload_timestamp: str | None = None
    download_url: str | None = None
    transfer_success: bool = False
    transfer_http_status: int | None = None
    transferred_at: datetime | None = None

    @classmethod
    def from_transfer(
        cls, uploaded: UploadedFile, result: FileTransferResult
    ) -> AuditUploadedFile:
        return cls(
            reference=uploaded.reference,
            file_name=uploaded.file_name,
            checksum=uploaded.checksum,
            file_mime_type=uploaded.file_mime_type,
            upload_timestamp=uploaded.upload_timestamp,
            download_url=uploaded.download_url,
            transfer_success=result.success,
            transfer_http_status=result.http_status,
            transferred_at=result.transferred_at,
        )


class AuditRecord(BaseModel):
    """Audit detail of one create/amend request.

    Attributes:
        case_id: Case the request concerns; for a create, the id EIS assigned.
        description: Claim or amendment description.
        action: Action tag of the request.
        uploaded_files: Per-file entries; empty unless submission succeeded.
        number_of_files_uploaded: Files attached to the request.
        success: True only when case submission succeeded.
        correlation_id: Request correlation id.
        error_code: Failure code, absent on success.
        error_message: Failure message, absent on success.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    case_id: str | None = None
    description: str | None = None
    action: str
    uploaded_files: tuple[AuditUploadedFile, ...] = ()
    number_of_files_uploaded: int = 0
    success: bool
    correlation_id: str
    error_code: str | None = None
    error_message: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def build_success_record(
    request: ClaimRequest,
    correlation_id: str,
    case_id: str,
    transfer_results: Sequence[FileTransferResult],
) -> AuditRecord:
    """Record an accepted submission with one entry per file, in request order.

    Raises:
        ValueError: If the transfer results are not aligned with the files.
    """
    files = request.uploaded_files
    if len(files) != len(transfer_results):
        raise ValueError(
            f"Expected {len(files)} transfer results, got {len(transfer_results)}"
        )
    return AuditRecord(
        case_id=request.audit_case_id(case_id),
        description=request.audit_description,
        action=request.audit_action,
        uploaded_files=tuple(
            AuditUploadedFile.from_transfer(uploaded, result)
            for uploaded, result in zip(files, transfer_results, strict=True)
        ),
        number_of_files_uploaded=len(files),
        success=True,
        correlation_id=correlation_id,
    )


def build_failure_record(
    event_type: AuditEventType,
    correlation_id: str,
    error_code: str,
    error_message: str,
    request: ClaimRequest | None = None,
) -> AuditRecord:
    """Record a rejected request.

    Args:
        event_type: Event type of the endpoint that was called.
        correlation_id: Request correlation id.
        error_code: Code returned to the caller.
        error_message: Message returned to the caller.
        request: The parsed request, when parsing got that far.
    """
    if request is None:
        return AuditRecord(
            action=event_type.value,
            success=False,
            correlation_id=correlation_id,
            error_code=error_code,
            error_message=error_message,
        )
    return AuditRecord(
        case_id=request.audit_case_id(None),
        description=request.audit_description,
        action=request.audit_action,
        number_of_files_uploaded=len(request.uploaded_files),
        success=False,
        correlation_id=correlation_id,
        error_code=error_code,
        error_message=error_message,
    )


class AuditEmitter:
    """Sends audit records to the sink without ever failing the request."""

    def __init__(self, sink: AuditSink, audit_source: str) -> None:
        """Initialize the emitter.

        Args:
            sink: Synchronous sink, run in a worker thread.
            audit_source: Application name recorded as the event source.
        """
        self._sink = sink
        self._audit_source = audit_source

    def envelope(self, event_type: AuditEventType, record: AuditRecord) -> dict[str, Any]:
        return {
            "auditSource": self._audit_source,
            "auditType": event_type.value,
            "detail": record.to_wire(),
        }

    async def emit(self, event_type: AuditEventType, record: AuditRecord) -> bool:
        """Emit one record.

        Returns:
            True if the sink accepted the event. Failures are logged, never raised.
        """
        event = self.envelope(event_type, record)
        log_extra = {"correlation_id": record.correlation_id}
        try:
            await asyncio.to_thread(self._sink.emit, event)
        except AuditSinkError as e:
            logger.error("Audit emission failed for %s: %s", event_type.value, e, extra=log_extra)
            return False
        except Exception:
            logger.exception(
                "Unexpected audit sink error for %s", event_type.value, extra=log_extra
            )
            return False
        return True
