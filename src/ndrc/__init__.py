"""NDRC case service - duty repayment claim submission, evidence transfer and audit."""

NDRC_VERSION = "1.0.0"
