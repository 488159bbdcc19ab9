"""Uploaded evidence files and their transfer to the file-transfer service.

UploadedFile is taken verbatim from the inbound claim. FileTransferRequest is
derived once per file right before dispatch, and FileTransferResult records what
the file-transfer service (or a synthesized failure) said about that one file.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

APPLICATION_NAME = "NDRC"

_REGION_SUFFIX = re.compile(r"^(?P<stamp>[^\[]+)\[(?P<region>[^\]]+)\]$")


def parse_zoned_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, optionally followed by a bracketed region.

    Upload timestamps arrive in the zoned form written by the upload service,
    e.g. "2020-10-10T10:10:10Z[UTC]" or "2020-10-10T11:10:10+01:00[Europe/London]".

    Args:
        value: Timestamp text.

    Returns:
        An aware datetime when an offset or region is present.

    Raises:
        ValueError: If the timestamp or the region cannot be parsed.
    """
    match = _REGION_SUFFIX.match(value.strip())
    stamp, region = (match["stamp"], match["region"]) if match else (value.strip(), None)
    parsed = datetime.fromisoformat(stamp)
    if region is None:
        return parsed
    try:
        zone = ZoneInfo(region)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"unknown time zone region '{region}'") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=zone)
    return parsed.astimezone(zone)


def _check_zoned_timestamp(value: str) -> str:
    # Blank values are left to the claim validator as missing fields.
    if value.strip():
        parse_zoned_timestamp(value)
    return value


# Kept as the caller wrote it so the audit record repeats it unchanged.
ZonedTimestamp = Annotated[str, AfterValidator(_check_zoned_timestamp)]


class UploadedFile(BaseModel):
    """A file uploaded to temporary storage and attached to a claim.

    Every field is optional at the parsing stage; presence is a business rule
    enforced by the claim validator so that all missing fields are reported
    together.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    reference: str | None = None
    download_url: str | None = None
    upload_timestamp: ZonedTimestamp | None = None
    checksum: str | None = None
    file_name: str | None = None
    file_mime_type: str | None = None


class FileTransferRequest(BaseModel):
    """Body of one POST /transfer-file call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    conversation_id: str
    case_reference_number: str
    application_name: str
    upscan_reference: str
    download_url: str
    checksum: str
    file_name: str
    file_mime_type: str
    batch_size: int
    batch_count: int
    correlation_id: str

    @classmethod
    def from_uploaded_file(
        cls,
        case_reference_number: str,
        conversation_id: str,
        correlation_id: str,
        application_name: str,
        batch_size: int,
        batch_count: int,
        uploaded_file: UploadedFile,
    ) -> FileTransferRequest:
        """Wrap a validated UploadedFile with its batch context.

        Args:
            case_reference_number: Case id returned by EIS.
            conversation_id: Stable id shared by every transfer of this request.
            correlation_id: Request correlation id.
            application_name: Source system tag.
            batch_size: Total number of files in the request.
            batch_count: 1-based position of this file.
            uploaded_file: The file being transferred.
        """
        return cls(
            conversation_id=conversation_id,
            case_reference_number=case_reference_number,
            application_name=application_name,
            upscan_reference=uploaded_file.reference or "",
            download_url=uploaded_file.download_url or "",
            checksum=uploaded_file.checksum or "",
            file_name=uploaded_file.file_name or "",
            file_mime_type=uploaded_file.file_mime_type or "",
            batch_size=batch_size,
            batch_count=batch_count,
            correlation_id=correlation_id,
        )


class FileTransferResult(BaseModel):
    """Outcome of transferring one file.

    Attributes:
        reference: Reference of the originating UploadedFile.
        success: True when http_status is in the 2xx range.
        http_status: Status returned by the file-transfer service, or a
            synthesized status for timeouts and transport errors.
        transferred_at: Completion time from the injected clock.
        error: Short failure description, None on success.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    reference: str
    success: bool
    http_status: int
    transferred_at: datetime
    error: str | None = None

    @classmethod
    def from_status(
        cls,
        reference: str,
        http_status: int,
        transferred_at: datetime,
        error: str | None = None,
    ) -> FileTransferResult:
        """Build a result whose success flag is derived from the status code."""
        success = 200 <= http_status < 300
        if not success and error is None:
            error = f"HTTP {http_status}"
        return cls(
            reference=reference,
            success=success,
            http_status=http_status,
            transferred_at=transferred_at,
            error=error,
        )
