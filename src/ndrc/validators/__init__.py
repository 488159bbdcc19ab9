"""Inbound payload validation: structural parsing, then business rules."""

from ndrc.validators.claim_validator import (
    ERROR_VALIDATION,
    format_violations,
    validate_amend_claim,
    validate_claim,
    validate_create_claim,
)
from ndrc.validators.payload import ERROR_JSON, ERROR_UNKNOWN, StructuralError, parse_payload
from ndrc.validators.result import Validated, Violation, combine

__all__ = [
    "ERROR_JSON",
    "ERROR_UNKNOWN",
    "ERROR_VALIDATION",
    "StructuralError",
    "Validated",
    "Violation",
    "combine",
    "format_violations",
    "parse_payload",
    "validate_amend_claim",
    "validate_claim",
    "validate_create_claim",
]
