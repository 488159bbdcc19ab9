"""Fan-out/fan-in transfer of a request's uploaded files.

Each file gets its own transfer call, tagged with its 1-based position and the
total count. Calls run concurrently under a semaphore and each one writes only
its own slot of the result list, so the output is index-aligned with the input
regardless of completion order. No failure of a single transfer escapes: every
outcome becomes a FileTransferResult.

Synthesized statuses:
    504: the call did not finish within the per-call timeout
    502: transport error reaching the file-transfer service
    500: any other exception raised by the client
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Final, cast

import httpx
from opentelemetry import trace

from ndrc.connectors.file_transfer import FileTransferPort
from ndrc.models.uploaded_file import (
    APPLICATION_NAME,
    FileTransferRequest,
    FileTransferResult,
    UploadedFile,
)
from ndrc.observability.tracing import get_tracer
from ndrc.services.correlation import Clock

logger = logging.getLogger(__name__)

TIMEOUT_STATUS: Final[int] = 504
TRANSPORT_ERROR_STATUS: Final[int] = 502
UNEXPECTED_ERROR_STATUS: Final[int] = 500


class FileTransferOrchestrator:
    """Transfers every uploaded file of an accepted case."""

    def __init__(
        self,
        client: FileTransferPort,
        clock: Clock,
        timeout_seconds: float = 30.0,
        max_concurrency: int = 4,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Performs the single-file transfer calls.
            clock: Source of transferred_at timestamps.
            timeout_seconds: Upper bound on each transfer call.
            max_concurrency: Maximum number of calls in flight per request.

        Raises:
            ValueError: If max_concurrency is not positive.
        """
        if max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")
        self._client = client
        self._clock = clock
        self._timeout_seconds = timeout_seconds
        self._max_concurrency = max_concurrency

    async def transfer_all(
        self,
        case_id: str,
        correlation_id: str,
        files: Sequence[UploadedFile],
    ) -> list[FileTransferResult]:
        """Transfer all files and wait for every outcome.

        Args:
            case_id: Case id returned by EIS.
            correlation_id: Request correlation id, also used as conversation id.
            files: Uploaded files in request order.

        Returns:
            One result per file, in the same order as files.

        Raises:
            RuntimeError: If a transfer finished without recording a result.
        """
        batch_size = len(files)
        if batch_size == 0:
            return []

        slots: list[FileTransferResult | None] = [None] * batch_size
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run(index: int, uploaded: UploadedFile) -> None:
            request = FileTransferRequest.from_uploaded_file(
                case_reference_number=case_id,
                conversation_id=correlation_id,
                correlation_id=correlation_id,
                application_name=APPLICATION_NAME,
                batch_size=batch_size,
                batch_count=index + 1,
                uploaded_file=uploaded,
            )
            async with semaphore:
                slots[index] = await self._transfer_one(request)

        await asyncio.gather(*(run(i, f) for i, f in enumerate(files)))

        missing = [files[i].reference for i, slot in enumerate(slots) if slot is None]
        if missing:
            raise RuntimeError(f"File transfers finished without a result for {missing}")
        results = cast(list[FileTransferResult], slots)
        failed = sum(1 for r in results if not r.success)
        log = logger.warning if failed else logger.info
        log(
            "Transferred %d/%d files for case %s",
            batch_size - failed,
            batch_size,
            case_id,
            extra={"correlation_id": correlation_id},
        )
        return results

    async def _transfer_one(self, request: FileTransferRequest) -> FileTransferResult:
        """Run one transfer, converting every failure into a result."""
        tracer = get_tracer()
        with tracer.start_as_current_span(
            "file_transfer.transfer",
            attributes={
                "ndrc.correlation_id": request.correlation_id,
                "ndrc.file.batch_count": request.batch_count,
                "ndrc.file.batch_size": request.batch_size,
            },
        ) as span:
            error: str | None = None
            try:
                status = await asyncio.wait_for(
                    self._client.transfer(request), timeout=self._timeout_seconds
                )
            except (TimeoutError, httpx.TimeoutException):
                status = TIMEOUT_STATUS
                error = f"Transfer timed out after {self._timeout_seconds}s"
            except httpx.RequestError as e:
                status = TRANSPORT_ERROR_STATUS
                error = f"Transport error: {type(e).__name__}"
            except Exception as e:
                logger.exception(
                    "Unexpected error transferring file %d/%d",
                    request.batch_count,
                    request.batch_size,
                    extra={"correlation_id": request.correlation_id},
                )
                status = UNEXPECTED_ERROR_STATUS
                error = f"Transfer error: {type(e).__name__}"

            result = FileTransferResult.from_status(
                reference=request.upscan_reference,
                http_status=status,
                transferred_at=self._clock.now(),
                error=error,
            )
            span.set_attribute("http.status_code", status)
            if not result.success:
                span.set_status(trace.StatusCode.ERROR, result.error or "")
                logger.warning(
                    "File %d/%d transfer failed: status=%d",
                    request.batch_count,
                    request.batch_size,
                    status,
                    extra={"correlation_id": request.correlation_id},
                )
            return result
