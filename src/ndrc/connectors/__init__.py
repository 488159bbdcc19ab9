"""Outbound connectors: EIS case management and the file-transfer service."""

from ndrc.connectors.eis import (
    CaseSubmissionClient,
    CaseSubmitted,
    SubmissionFailure,
    SubmissionOutcome,
)
from ndrc.connectors.file_transfer import FileTransferClient, FileTransferPort

__all__ = [
    "CaseSubmissionClient",
    "CaseSubmitted",
    "FileTransferClient",
    "FileTransferPort",
    "SubmissionFailure",
    "SubmissionOutcome",
]
