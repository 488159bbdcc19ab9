"""NDRC domain models."""

from ndrc.models.case_response import CaseResponse, CaseResult
from ndrc.models.claim import (
    AmendClaimRequest,
    AmendContent,
    AmendmentType,
    AuditEventType,
    ClaimDetails,
    ClaimRequest,
    CreateClaimRequest,
    CreateContent,
    EISAddress,
    UserDetails,
)
from ndrc.models.uploaded_file import FileTransferRequest, FileTransferResult, UploadedFile

__all__ = [
    "AmendClaimRequest",
    "AmendContent",
    "AmendmentType",
    "AuditEventType",
    "CaseResponse",
    "CaseResult",
    "ClaimDetails",
    "ClaimRequest",
    "CreateClaimRequest",
    "CreateContent",
    "EISAddress",
    "FileTransferRequest",
    "FileTransferResult",
    "UploadedFile",
    "UserDetails",
]
