"""Inbound claim payloads for case creation and amendment.

The inbound wire format is camelCase JSON; the EIS wire format is PascalCase.
Models here describe the parsed *shape* only. Field presence, enumerations and
date formats are business rules checked by ndrc.validators.claim_validator, so
most fields are optional at this stage.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ndrc.models.uploaded_file import UploadedFile

EIS_DATE_FORMAT = "%Y%m%d"


class AmendmentType(StrEnum):
    """Kinds of follow-up information an amendment can carry."""

    FURTHER_INFORMATION = "FurtherInformation"
    SUPPORTING_DOCUMENTS = "SupportingDocuments"


class AuditEventType(StrEnum):
    """Audit event type per inbound operation."""

    CREATE_CASE = "CreateCase"
    UPDATE_CASE = "UpdateCase"


class FormType(StrEnum):
    """Claim form variant."""

    FORM_01 = "01"
    FORM_02 = "02"
    FORM_03 = "03"


class CustomRegulationType(StrEnum):
    """Regulation regime the claim is made under."""

    UK_CUSTOMS_CODE_REGULATION = "UKCustomsCodeRegulation"
    UCC_REGULATION = "UCCRegulation"


class ClaimedUnderArticle(StrEnum):
    """Union Customs Code article, required under UCCRegulation."""

    ARTICLE_051 = "051"
    ARTICLE_117 = "117"
    ARTICLE_119 = "119"
    ARTICLE_120 = "120"


class ClaimType(StrEnum):
    """Single or multiple import entries."""

    SINGLE = "Single"
    MULTIPLE = "Multiple"


class ClaimReason(StrEnum):
    """Reason for the repayment claim."""

    PREFERENCE = "Preference"
    RETROACTIVE_QUOTA = "Retroactive-quota"
    RETURN_OF_UNWANTED_GOODS = "Return-of-unwanted-goods"
    GOODS_DAMAGED_BEFORE_CLEARANCE = "Goods-damaged-before-clearance"
    OTHER = "Other"


class PartyRole(StrEnum):
    """Who is claiming, and who should be paid."""

    IMPORTER = "Importer"
    REPRESENTATIVE = "Representative"


class PaymentMethod(StrEnum):
    """How the repayment is made."""

    BACS = "BACS"
    CURRENT_MONTH_ADJUSTMENT = "CurrentMonthAdjustment"
    INDIVIDUAL_GUARANTEE = "IndividualGuarantee"


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


class _InboundModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class AmendContent(_InboundModel):
    """Content of an amendment against an existing case."""

    case_id: str | None = None
    description: str | None = None
    amendment_types: tuple[str, ...] | None = None

    def to_eis_content(self) -> dict[str, Any]:
        """Build the EIS "Content" object for an update request."""
        return {
            "RequestType": "Amend",
            "CaseID": self.case_id,
            "Description": self.description,
            "TypeOfAmendments": list(self.amendment_types or ()),
        }


class AmendClaimRequest(_InboundModel):
    """Body of POST /amend-case."""

    content: AmendContent
    uploaded_files: tuple[UploadedFile, ...] = ()

    @property
    def audit_event_type(self) -> AuditEventType:
        return AuditEventType.UPDATE_CASE

    @property
    def audit_action(self) -> str:
        """Audit action tag derived from the requested amendment types."""
        types = set(self.content.amendment_types or ())
        sends_documents = AmendmentType.SUPPORTING_DOCUMENTS in types
        sends_information = AmendmentType.FURTHER_INFORMATION in types
        if sends_documents and sends_information:
            return "SendDocumentsAndFurtherInformation"
        if sends_documents:
            return "SendDocuments"
        return "SendFurtherInformation"

    def audit_case_id(self, submitted_case_id: str | None) -> str | None:
        return self.content.case_id

    @property
    def audit_description(self) -> str | None:
        return self.content.description

    @property
    def eis_request_kind(self) -> str:
        return "update"

    def to_eis_content(self) -> dict[str, Any]:
        return self.content.to_eis_content()


class EntryDetails(_InboundModel):
    """Import entry the claim relates to."""

    epu: str | None = None
    entry_number: str | None = None
    entry_date: str | None = None

    def to_eis(self) -> dict[str, Any]:
        return _drop_none(
            {"EPU": self.epu, "EntryNumber": self.entry_number, "EntryDate": self.entry_date}
        )


class EISAddress(_InboundModel):
    """Postal address in the shape EIS accepts."""

    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    region: str | None = None
    country_code: str | None = None
    postal_code: str | None = None
    telephone_number: str | None = None
    email_address: str | None = None

    def to_eis(self) -> dict[str, Any]:
        return _drop_none(
            {
                "AddressLine1": self.address_line1,
                "AddressLine2": self.address_line2,
                "City": self.city,
                "Region": self.region,
                "CountryCode": self.country_code,
                "PostalCode": self.postal_code,
                "TelephoneNumber": self.telephone_number,
                "EmailAddress": self.email_address,
            }
        )


class UserDetails(_InboundModel):
    """Importer or agent identity."""

    name: str | None = None
    eori: str | None = None
    address: EISAddress | None = None

    def to_eis(self) -> dict[str, Any]:
        return _drop_none(
            {
                "Name": self.name,
                "EORI": self.eori,
                "Address": self.address.to_eis() if self.address else None,
            }
        )


class ClaimDetails(_InboundModel):
    """Core facts of a new duty repayment claim. Dates use yyyyMMdd."""

    form_type: str | None = None
    custom_regulation_type: str | None = None
    claimed_under_article: str | None = None
    claim_type: str | None = None
    no_of_entries: str | None = None
    entry_details: EntryDetails | None = None
    claim_reason: str | None = None
    claim_description: str | None = None
    date_received: str | None = None
    claim_date: str | None = None
    payee_indicator: str | None = None
    payment_method: str | None = None
    declarant_ref_number: str | None = None
    claimant: str | None = None

    def to_eis(self) -> dict[str, Any]:
        return _drop_none(
            {
                "FormType": self.form_type,
                "CustomRegulationType": self.custom_regulation_type,
                "ClaimedUnderArticle": self.claimed_under_article,
                "ClaimType": self.claim_type,
                "NoOfEntries": self.no_of_entries,
                "EntryDetails": self.entry_details.to_eis() if self.entry_details else None,
                "ClaimReason": self.claim_reason,
                "ClaimDescription": self.claim_description,
                "DateReceived": self.date_received,
                "ClaimDate": self.claim_date,
                "PayeeIndicator": self.payee_indicator,
                "PaymentMethod": self.payment_method,
                "DeclarantRefNumber": self.declarant_ref_number,
                "Claimant": self.claimant,
            }
        )


class CreateContent(_InboundModel):
    """Content of a new case submission."""

    claim_details: ClaimDetails | None = None
    importer_details: UserDetails | None = None
    agent_details: UserDetails | None = None

    def to_eis_content(self) -> dict[str, Any]:
        """Build the EIS "Content" object for a create request."""
        return _drop_none(
            {
                "RequestType": "Create",
                "ClaimDetails": self.claim_details.to_eis() if self.claim_details else None,
                "ImporterDetails": (
                    self.importer_details.to_eis() if self.importer_details else None
                ),
                "AgentDetails": self.agent_details.to_eis() if self.agent_details else None,
            }
        )


class CreateClaimRequest(_InboundModel):
    """Body of POST /create-case."""

    content: CreateContent
    uploaded_files: tuple[UploadedFile, ...] = ()

    @property
    def audit_event_type(self) -> AuditEventType:
        return AuditEventType.CREATE_CASE

    @property
    def audit_action(self) -> str:
        return "CreateCase"

    def audit_case_id(self, submitted_case_id: str | None) -> str | None:
        # A new case has no id until EIS assigns one.
        return submitted_case_id

    @property
    def audit_description(self) -> str | None:
        details = self.content.claim_details
        return details.claim_description if details else None

    @property
    def eis_request_kind(self) -> str:
        return "create"

    def to_eis_content(self) -> dict[str, Any]:
        return self.content.to_eis_content()


ClaimRequest = AmendClaimRequest | CreateClaimRequest
