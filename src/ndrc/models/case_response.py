"""Caller-visible response of a case submission."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ndrc.models.uploaded_file import FileTransferResult


class CaseResult(BaseModel):
    """Accepted case and the outcome of every file transfer, in request order."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    case_id: str
    file_transfer_results: tuple[FileTransferResult, ...] = ()


class CaseResponse(BaseModel):
    """Response body of /create-case and /amend-case.

    correlation_id is always present. result is present only when the case
    submission was accepted; error_code and error_message only when it was not.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    correlation_id: str
    result: CaseResult | None = None
    error_code: str | None = None
    error_message: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON body, omitting absent fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
