"""Merge submission and transfer outcomes into one caller-visible response."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from ndrc.connectors.eis import CaseSubmitted, SubmissionFailure, SubmissionOutcome
from ndrc.models.case_response import CaseResponse, CaseResult
from ndrc.models.uploaded_file import FileTransferResult

ACCEPTED_STATUS: Final[int] = 201
CLIENT_ERROR_STATUS: Final[int] = 400


@dataclass(frozen=True)
class CaseOutcome:
    """HTTP status plus body of a processed request."""

    status_code: int
    response: CaseResponse

    @property
    def accepted(self) -> bool:
        return self.response.result is not None


class ResponseAggregator:
    """Builds CaseOutcomes.

    A submission failure yields an error body with the failure's status and no
    result. A submission success yields 201 with every transfer result, whatever
    the individual transfers did.
    """

    def aggregate(
        self,
        correlation_id: str,
        submission: SubmissionOutcome,
        transfer_results: Sequence[FileTransferResult] = (),
    ) -> CaseOutcome:
        if isinstance(submission, SubmissionFailure):
            return self.rejected(
                correlation_id,
                submission.status_code,
                submission.error_code,
                submission.error_message,
            )
        return self.accepted(correlation_id, submission, transfer_results)

    @staticmethod
    def accepted(
        correlation_id: str,
        submission: CaseSubmitted,
        transfer_results: Sequence[FileTransferResult],
    ) -> CaseOutcome:
        result = CaseResult(
            case_id=submission.case_id,
            file_transfer_results=tuple(transfer_results),
        )
        return CaseOutcome(
            status_code=ACCEPTED_STATUS,
            response=CaseResponse(correlation_id=correlation_id, result=result),
        )

    @staticmethod
    def rejected(
        correlation_id: str,
        status_code: int,
        error_code: str,
        error_message: str,
    ) -> CaseOutcome:
        return CaseOutcome(
            status_code=status_code,
            response=CaseResponse(
                correlation_id=correlation_id,
                error_code=error_code,
                error_message=error_message,
            ),
        )
