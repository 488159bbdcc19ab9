"""Audit trail: one record per create/amend request."""

from ndrc.audit.emitter import (
    AuditEmitter,
    AuditRecord,
    AuditUploadedFile,
    build_failure_record,
    build_success_record,
)
from ndrc.audit.sink import (
    AuditSink,
    AuditSinkError,
    DatastreamAuditSink,
    InMemoryAuditSink,
    JsonlFileAuditSink,
    get_audit_sink,
)

__all__ = [
    "AuditEmitter",
    "AuditRecord",
    "AuditSink",
    "AuditSinkError",
    "AuditUploadedFile",
    "DatastreamAuditSink",
    "InMemoryAuditSink",
    "JsonlFileAuditSink",
    "build_failure_record",
    "build_success_record",
    "get_audit_sink",
]
