"""EIS case-management connector.

Submits a create or amend request to EIS and turns every possible outcome into
either CaseSubmitted or SubmissionFailure. Nothing raises out of submit():
non-2xx responses, timeouts and transport errors are all reported as values so
the pipeline can audit and answer them uniformly.

Retries cover connection errors and 502/503/504 only. Every attempt carries the
same correlation id and AcknowledgementReference.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from email.utils import format_datetime
from typing import Any, Final

import httpx
from opentelemetry import trace

from ndrc.models.claim import ClaimRequest
from ndrc.models.uploaded_file import APPLICATION_NAME
from ndrc.observability.tracing import get_tracer, sanitize_url_for_span
from ndrc.services.correlation import Clock, SystemClock, acknowledgement_reference
from ndrc.services.retry import compute_backoff_seconds, is_retryable_status

logger = logging.getLogger(__name__)

ORIGINATING_SYSTEM: Final[str] = "Digital"
FORWARDED_HOST: Final[str] = "MDTP"

EIS_PATHS: Final[dict[str, str]] = {
    "create": "/cpr/caserequest/ndrc/create/v1",
    "update": "/cpr/caserequest/ndrc/update/v1",
}

ERROR_UPSTREAM_UNDEFINED: Final[str] = "ERROR_UPSTREAM_UNDEFINED"
ERROR_UPSTREAM_TIMEOUT: Final[str] = "ERROR_UPSTREAM_TIMEOUT"
ERROR_UPSTREAM_UNAVAILABLE: Final[str] = "ERROR_UPSTREAM_UNAVAILABLE"


@dataclass(frozen=True)
class CaseSubmitted:
    """EIS accepted the request.

    Attributes:
        case_id: Case id assigned (create) or echoed (amend) by EIS.
        processing_date: EIS ProcessingDate, if returned.
    """

    case_id: str
    processing_date: str | None = None


@dataclass(frozen=True)
class SubmissionFailure:
    """EIS did not accept the request, or could not be reached.

    Attributes:
        status_code: Upstream status, or 504 (timeout) / 502 (unreachable) when
            synthesized.
        error_code: errorDetail.errorCode from EIS, or an ERROR_UPSTREAM_* code.
        error_message: errorDetail.errorMessage from EIS, or a synthesized text.
    """

    status_code: int
    error_code: str
    error_message: str


SubmissionOutcome = CaseSubmitted | SubmissionFailure


class CaseSubmissionClient:
    """Async client for the EIS create/update case endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        environment: str = "local",
        timeout_seconds: float = 20.0,
        max_retries: int = 1,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        backoff_base_seconds: float = 0.5,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: EIS base URL, without trailing slash.
            token: Bearer token for the authorization header.
            environment: Value of the EIS environment header.
            timeout_seconds: Timeout of each attempt.
            max_retries: Retries after the first attempt for retryable failures.
            http_client: Optional shared client (injected in tests).
            clock: Source of the date header.
            sleep: Awaitable used between retries (replaced in tests).
            backoff_base_seconds: First retry delay; doubles on each retry.
        """
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._environment = environment
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._backoff_base_seconds = backoff_base_seconds

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, correlation_id: str) -> dict[str, str]:
        headers = {
            "x-correlation-id": correlation_id,
            "x-forwarded-host": FORWARDED_HOST,
            "date": format_datetime(self._clock.now(), usegmt=True),
            "accept": "application/json",
            "content-type": "application/json",
            "environment": self._environment,
        }
        if self._token:
            headers["authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def build_body(request: ClaimRequest, correlation_id: str) -> dict[str, Any]:
        """Build the EIS request envelope."""
        return {
            "AcknowledgementReference": acknowledgement_reference(correlation_id),
            "ApplicationType": APPLICATION_NAME,
            "OriginatingSystem": ORIGINATING_SYSTEM,
            "Content": request.to_eis_content(),
        }

    async def submit(self, request: ClaimRequest, correlation_id: str) -> SubmissionOutcome:
        """Submit a claim to EIS.

        Args:
            request: Validated create or amend request.
            correlation_id: Request correlation id.

        Returns:
            CaseSubmitted on 2xx with a CaseID, otherwise SubmissionFailure.
        """
        url = f"{self._base_url}{EIS_PATHS[request.eis_request_kind]}"
        body = self.build_body(request, correlation_id)
        attempts = 1 + self._max_retries
        log_extra = {"correlation_id": correlation_id}

        tracer = get_tracer()
        with tracer.start_as_current_span(
            "eis.case.submit",
            attributes={
                "ndrc.correlation_id": correlation_id,
                "ndrc.eis.request_kind": request.eis_request_kind,
                "http.method": "POST",
                "http.url": sanitize_url_for_span(url),
            },
        ) as span:
            attempt = 0
            outcome, retryable = await self._attempt(url, body, correlation_id)
            while retryable and attempt < self._max_retries:
                delay = compute_backoff_seconds(attempt, base_seconds=self._backoff_base_seconds)
                logger.warning(
                    "EIS submission attempt %d/%d failed, retrying in %.2fs",
                    attempt + 1,
                    attempts,
                    delay,
                    extra=log_extra,
                )
                await self._sleep(delay)
                attempt += 1
                outcome, retryable = await self._attempt(url, body, correlation_id)
            span.set_attribute("ndrc.eis.attempts", attempt + 1)

            if isinstance(outcome, SubmissionFailure):
                span.set_attribute("http.status_code", outcome.status_code)
                span.set_attribute("ndrc.eis.error_code", outcome.error_code)
                span.set_status(trace.StatusCode.ERROR, outcome.error_code)
                logger.warning(
                    "EIS submission failed: status=%d code=%s",
                    outcome.status_code,
                    outcome.error_code,
                    extra=log_extra,
                )
            else:
                logger.info("EIS accepted case %s", outcome.case_id, extra=log_extra)
            return outcome

    async def _attempt(
        self, url: str, body: dict[str, Any], correlation_id: str
    ) -> tuple[SubmissionOutcome, bool]:
        """Run one HTTP attempt.

        Returns:
            The outcome and whether it may be retried.
        """
        try:
            response = await self._client.post(
                url,
                json=body,
                headers=self._headers(correlation_id),
                timeout=self._timeout_seconds,
            )
        except httpx.TimeoutException as e:
            return (
                SubmissionFailure(
                    status_code=504,
                    error_code=ERROR_UPSTREAM_TIMEOUT,
                    error_message=f"EIS did not respond within {self._timeout_seconds}s: {e}",
                ),
                False,
            )
        except httpx.ConnectError as e:
            return (
                SubmissionFailure(
                    status_code=502,
                    error_code=ERROR_UPSTREAM_UNAVAILABLE,
                    error_message=f"Could not connect to EIS: {e}",
                ),
                True,
            )
        except httpx.RequestError as e:
            return (
                SubmissionFailure(
                    status_code=502,
                    error_code=ERROR_UPSTREAM_UNAVAILABLE,
                    error_message=f"EIS request failed: {type(e).__name__}",
                ),
                False,
            )

        if 200 <= response.status_code < 300:
            return self._parse_success(response), False
        return self._parse_error(response), is_retryable_status(response.status_code)

    @staticmethod
    def _json_or_none(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def _parse_success(self, response: httpx.Response) -> SubmissionOutcome:
        data = self._json_or_none(response)
        case_id = data.get("CaseID") if isinstance(data, dict) else None
        if not isinstance(case_id, str) or not case_id:
            return SubmissionFailure(
                status_code=502,
                error_code=ERROR_UPSTREAM_UNDEFINED,
                error_message=f"EIS returned HTTP {response.status_code} without a CaseID",
            )
        return CaseSubmitted(case_id=case_id, processing_date=data.get("ProcessingDate"))

    def _parse_error(self, response: httpx.Response) -> SubmissionFailure:
        data = self._json_or_none(response)
        detail = data.get("errorDetail") if isinstance(data, dict) else None
        if isinstance(detail, dict) and detail.get("errorCode"):
            return SubmissionFailure(
                status_code=response.status_code,
                error_code=str(detail["errorCode"]),
                error_message=str(detail.get("errorMessage") or ""),
            )
        return SubmissionFailure(
            status_code=response.status_code,
            error_code=ERROR_UPSTREAM_UNDEFINED,
            error_message=f"Unexpected response from EIS: HTTP {response.status_code}",
        )
