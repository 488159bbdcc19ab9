"""Business-rule validation of parsed claim payloads.

Every independent rule is evaluated and the results are merged with combine(),
so the caller sees all violations of a payload in one response. Paths use
JSON-pointer notation over the camelCase inbound field names.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import datetime
from enum import StrEnum

from ndrc.models.claim import (
    EIS_DATE_FORMAT,
    AmendClaimRequest,
    AmendmentType,
    ClaimDetails,
    ClaimedUnderArticle,
    ClaimReason,
    ClaimRequest,
    ClaimType,
    CreateClaimRequest,
    CustomRegulationType,
    EISAddress,
    FormType,
    PartyRole,
    PaymentMethod,
    UserDetails,
)
from ndrc.models.uploaded_file import UploadedFile
from ndrc.validators.result import (
    INCONSISTENT,
    INVALID_DATE,
    INVALID_ENUM,
    INVALID_FORMAT,
    MISSING_FIELD,
    OK,
    Validated,
    Violation,
    combine,
    ensure,
)

ERROR_VALIDATION = "ERROR_VALIDATION"

_EIGHT_DIGITS = re.compile(r"^\d{8}$")
_EPU = re.compile(r"^\d{3}$")
_COUNTRY_CODE = re.compile(r"^[A-Z]{2}$")

_UPLOADED_FILE_FIELDS: tuple[tuple[str, str], ...] = (
    ("reference", "reference"),
    ("download_url", "downloadUrl"),
    ("upload_timestamp", "uploadTimestamp"),
    ("checksum", "checksum"),
    ("file_name", "fileName"),
    ("file_mime_type", "fileMimeType"),
)


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def required(value: object, path: str) -> Validated[None]:
    """The field must be present and, for strings, non-blank."""
    return ensure(not _is_blank(value), MISSING_FIELD, "missing required field", path)


def one_of(value: str | None, allowed: type[StrEnum], path: str) -> Validated[None]:
    """The field, when present, must be a member of a closed enumeration."""
    if value is None:
        return OK
    members = [m.value for m in allowed]
    return ensure(
        value in members,
        INVALID_ENUM,
        f"'{value}' is not one of [{', '.join(members)}]",
        path,
    )


def required_one_of(value: str | None, allowed: type[StrEnum], path: str) -> Validated[None]:
    if _is_blank(value):
        return required(value, path)
    return one_of(value, allowed, path)


def eis_date(value: str | None, path: str) -> Validated[None]:
    """The field, when present, must be a real calendar date in yyyyMMdd form."""
    if value is None:
        return OK
    if _EIGHT_DIGITS.match(value):
        try:
            datetime.strptime(value, EIS_DATE_FORMAT)
            return OK
        except ValueError:
            pass
    return Validated.invalid(
        Violation(INVALID_DATE, f"'{value}' is not a valid date in yyyyMMdd form", path)
    )


def required_eis_date(value: str | None, path: str) -> Validated[None]:
    if _is_blank(value):
        return required(value, path)
    return eis_date(value, path)


def validate_uploaded_files(files: Sequence[UploadedFile]) -> Validated[None]:
    """Each file carries every field, and references are unique within the request."""
    results: list[Validated[None]] = []
    seen: set[str] = set()
    for index, uploaded in enumerate(files):
        base = f"/uploadedFiles/{index}"
        for attr, wire_name in _UPLOADED_FILE_FIELDS:
            results.append(required(getattr(uploaded, attr), f"{base}/{wire_name}"))
        if uploaded.reference:
            results.append(
                ensure(
                    uploaded.reference not in seen,
                    INCONSISTENT,
                    f"duplicate file reference '{uploaded.reference}'",
                    f"{base}/reference",
                )
            )
            seen.add(uploaded.reference)
    return combine(results)


def _validate_amendment_types(
    amendment_types: tuple[str, ...] | None, files: Sequence[UploadedFile]
) -> Validated[None]:
    path = "/content/amendmentTypes"
    if amendment_types is None:
        return required(None, path)
    if not amendment_types:
        return Validated.invalid(
            Violation(INCONSISTENT, "at least one amendment type is required", path)
        )

    results: list[Validated[None]] = [
        one_of(value, AmendmentType, f"{path}/{index}")
        for index, value in enumerate(amendment_types)
    ]
    results.append(
        ensure(
            len(set(amendment_types)) == len(amendment_types),
            INCONSISTENT,
            "amendment types must not repeat",
            path,
        )
    )
    if AmendmentType.SUPPORTING_DOCUMENTS in amendment_types:
        results.append(
            ensure(
                len(files) > 0,
                INCONSISTENT,
                "SupportingDocuments requires at least one uploaded file",
                "/uploadedFiles",
            )
        )
    return combine(results)


def validate_amend_claim(request: AmendClaimRequest) -> Validated[AmendClaimRequest]:
    """Validate an amendment.

    Args:
        request: Structurally parsed /amend-case payload.

    Returns:
        The request unchanged, or every violation found.
    """
    content = request.content
    return combine(
        [
            required(content.case_id, "/content/caseId"),
            required(content.description, "/content/description"),
            _validate_amendment_types(content.amendment_types, request.uploaded_files),
            validate_uploaded_files(request.uploaded_files),
        ]
    ).with_value(request)


def validate_address(address: EISAddress | None, path: str) -> Validated[None]:
    if address is None:
        return required(None, path)

    results: list[Validated[None]] = [
        required(address.address_line1, f"{path}/addressLine1"),
        required(address.city, f"{path}/city"),
    ]
    if _is_blank(address.country_code):
        results.append(required(address.country_code, f"{path}/countryCode"))
    else:
        results.append(
            ensure(
                bool(_COUNTRY_CODE.match(address.country_code or "")),
                INVALID_FORMAT,
                f"'{address.country_code}' is not a two-letter country code",
                f"{path}/countryCode",
            )
        )
        if address.country_code == "GB":
            results.append(required(address.postal_code, f"{path}/postalCode"))
    return combine(results)


def validate_user_details(details: UserDetails | None, path: str) -> Validated[None]:
    if details is None:
        return required(None, path)
    return combine(
        [
            required(details.name, f"{path}/name"),
            validate_address(details.address, f"{path}/address"),
        ]
    )


def _validate_entry_details(details: ClaimDetails, path: str) -> Validated[None]:
    entry = details.entry_details
    if entry is None:
        return required(None, path)

    results = [
        required(entry.entry_number, f"{path}/entryNumber"),
        required_eis_date(entry.entry_date, f"{path}/entryDate"),
    ]
    if _is_blank(entry.epu):
        results.append(required(entry.epu, f"{path}/epu"))
    else:
        results.append(
            ensure(
                bool(_EPU.match(entry.epu or "")),
                INVALID_FORMAT,
                f"'{entry.epu}' is not a three-digit EPU",
                f"{path}/epu",
            )
        )
    return combine(results)


def _validate_no_of_entries(details: ClaimDetails, path: str) -> Validated[None]:
    if details.claim_type != ClaimType.MULTIPLE:
        return OK
    if _is_blank(details.no_of_entries):
        return Validated.invalid(
            Violation(INCONSISTENT, "number of entries is required for a Multiple claim", path)
        )
    value = details.no_of_entries or ""
    return ensure(
        value.isdigit() and int(value) > 0,
        INVALID_FORMAT,
        f"'{value}' is not a positive number of entries",
        path,
    )


def validate_claim_details(details: ClaimDetails | None) -> Validated[None]:
    """Field presence, enumerations, dates and the claim-type cross checks."""
    path = "/content/claimDetails"
    if details is None:
        return required(None, path)

    results: list[Validated[None]] = [
        required_one_of(details.form_type, FormType, f"{path}/formType"),
        required_one_of(
            details.custom_regulation_type, CustomRegulationType, f"{path}/customRegulationType"
        ),
        one_of(details.claimed_under_article, ClaimedUnderArticle, f"{path}/claimedUnderArticle"),
        required_one_of(details.claim_type, ClaimType, f"{path}/claimType"),
        _validate_no_of_entries(details, f"{path}/noOfEntries"),
        _validate_entry_details(details, f"{path}/entryDetails"),
        required_one_of(details.claim_reason, ClaimReason, f"{path}/claimReason"),
        required(details.claim_description, f"{path}/claimDescription"),
        required_eis_date(details.date_received, f"{path}/dateReceived"),
        required_eis_date(details.claim_date, f"{path}/claimDate"),
        required_one_of(details.payee_indicator, PartyRole, f"{path}/payeeIndicator"),
        required_one_of(details.payment_method, PaymentMethod, f"{path}/paymentMethod"),
        required(details.declarant_ref_number, f"{path}/declarantRefNumber"),
        required_one_of(details.claimant, PartyRole, f"{path}/claimant"),
    ]
    if details.custom_regulation_type == CustomRegulationType.UCC_REGULATION:
        results.append(
            ensure(
                not _is_blank(details.claimed_under_article),
                INCONSISTENT,
                "claimed-under article is required for UCCRegulation",
                f"{path}/claimedUnderArticle",
            )
        )
    return combine(results)


def _validate_agent_requirement(request: CreateClaimRequest) -> Validated[None]:
    details = request.content.claim_details
    if details is None:
        return OK
    needs_agent = PartyRole.REPRESENTATIVE in (details.claimant, details.payee_indicator)
    if not needs_agent:
        return OK
    if request.content.agent_details is None:
        return Validated.invalid(
            Violation(
                INCONSISTENT,
                "agent details are required when a Representative is claiming or being paid",
                "/content/agentDetails",
            )
        )
    return validate_user_details(request.content.agent_details, "/content/agentDetails")


def validate_create_claim(request: CreateClaimRequest) -> Validated[CreateClaimRequest]:
    """Validate a new case submission.

    Args:
        request: Structurally parsed /create-case payload.

    Returns:
        The request unchanged, or every violation found.
    """
    return combine(
        [
            validate_claim_details(request.content.claim_details),
            validate_user_details(request.content.importer_details, "/content/importerDetails"),
            _validate_agent_requirement(request),
            validate_uploaded_files(request.uploaded_files),
        ]
    ).with_value(request)


def validate_claim(request: ClaimRequest) -> Validated[ClaimRequest]:
    """Dispatch to the rule set of the request's kind."""
    if isinstance(request, AmendClaimRequest):
        return validate_amend_claim(request)
    return validate_create_claim(request)


def format_violations(violations: Iterable[Violation]) -> str:
    """Render violations as the single caller-visible error message."""
    rendered = ", and ".join(str(v) for v in violations)
    return f"Invalid payload: Validation failed due to {rendered}."
