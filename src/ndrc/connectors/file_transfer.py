"""File-transfer service connector.

One call moves one uploaded file from temporary storage into the case. The
response status is returned verbatim; timeouts and transport errors propagate
as httpx exceptions for the orchestrator to classify.
"""

from __future__ import annotations

import logging
from typing import Final, Protocol, runtime_checkable

import httpx

from ndrc.models.uploaded_file import FileTransferRequest

logger = logging.getLogger(__name__)

TRANSFER_FILE_PATH: Final[str] = "/transfer-file"


@runtime_checkable
class FileTransferPort(Protocol):
    """Anything that can transfer one file and report the HTTP status."""

    async def transfer(self, request: FileTransferRequest) -> int:
        """Transfer one file.

        Args:
            request: Transfer request for a single file.

        Returns:
            HTTP status of the file-transfer service response.
        """
        ...


class FileTransferClient:
    """httpx-backed FileTransferPort."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: File-transfer service base URL.
            timeout_seconds: Timeout applied by httpx to each call.
            http_client: Optional shared client (injected in tests).
        """
        self._url = f"{base_url.rstrip('/')}{TRANSFER_FILE_PATH}"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def url(self) -> str:
        return self._url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def transfer(self, request: FileTransferRequest) -> int:
        response = await self._client.post(
            self._url,
            json=request.model_dump(mode="json", by_alias=True),
            headers={
                "x-correlation-id": request.correlation_id,
                "accept": "application/json",
            },
        )
        return response.status_code
