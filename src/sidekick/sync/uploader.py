"""Async HTTP uploader that replicates queued operations to the claims server."""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from sidekick import __version__
from sidekick.sync.models import OperationKind


@dataclass
class UploadResult:
    """Result of an upload attempt."""

    success: bool
    remote_id: str | None = None
    error: str | None = None
    attempts: int = 0


class Uploader(Protocol):
    """Remote side of the sync queue, as seen by the coordinator."""

    async def upload(
        self,
        kind: OperationKind,
        payload: bytes | None,
        *,
        operation_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> UploadResult: ...

    async def check_server(self) -> bool: ...


# endpoint path, upload filename, content type
_ROUTES: dict[OperationKind, tuple[str, str, str]] = {
    OperationKind.UPLOAD_FNOL: ("/api/fnol/", "fnol.pdf", "application/pdf"),
    OperationKind.UPLOAD_PHOTO: ("/api/photos/", "photo.jpg", "image/jpeg"),
    OperationKind.UPLOAD_LIDAR_SCAN: (
        "/api/lidar-scans/",
        "scan.lidar",
        "application/octet-stream",
    ),
    OperationKind.SYNC_CLAIM: ("/api/claims/sync", "claim.json", "application/json"),
}


class HttpUploader:
    """Async HTTP uploader with exponential backoff retry.

    Uses httpx.AsyncClient for connection pooling. Retries on transient
    failures (5xx, connection errors) but not on client errors (4xx).
    The queue operation id is sent as an Idempotency-Key so a replay of an
    upload whose response was lost does not create a duplicate.
    """

    def __init__(
        self,
        server_url: str,
        api_token: str | None = None,
        max_retries: int = 3,
        timeout: float = 30.0,
        retry_backoff: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the uploader.

        Args:
            server_url: Base URL of the claims server (e.g., http://localhost:8000)
            api_token: Optional bearer token for the Authorization header
            max_retries: Maximum number of attempts on transient failures
            timeout: Request timeout in seconds
            retry_backoff: Base delay; attempt n waits retry_backoff * 2**n seconds
            transport: Optional httpx transport (used by tests)
        """
        self.server_url = server_url.rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_backoff = retry_backoff

        headers = {"User-Agent": f"sidekick-agent/{__version__}"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )

    async def upload(
        self,
        kind: OperationKind,
        payload: bytes | None,
        *,
        operation_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> UploadResult:
        """Upload one operation to the endpoint for its kind, with retry.

        Args:
            kind: Operation kind, selects the endpoint
            payload: Raw bytes to upload as the file part, if any
            operation_id: Queue id, sent as the idempotency key
            metadata: Extra fields sent as a JSON form field

        Returns:
            UploadResult with success status and remote id or error
        """
        path, filename, content_type = _ROUTES[kind]
        metadata = metadata or {}
        filename = metadata.get("filename", filename)

        headers = {}
        if operation_id:
            headers["Idempotency-Key"] = operation_id

        attempt = 0
        last_error: str | None = None

        while attempt < self.max_retries:
            attempt += 1

            try:
                files = None
                if payload is not None:
                    files = {"file": (filename, payload, content_type)}
                form_data = {"kind": kind.value, "metadata": json.dumps(metadata)}

                response = await self._client.post(
                    f"{self.server_url}{path}",
                    files=files,
                    data=form_data,
                    headers=headers,
                )

                if response.status_code in (200, 201, 202):
                    try:
                        result = response.json()
                        return UploadResult(
                            success=True,
                            remote_id=result.get("id"),
                            attempts=attempt,
                        )
                    except (json.JSONDecodeError, AttributeError):
                        return UploadResult(success=True, attempts=attempt)

                # 4xx errors - don't retry (client error)
                if 400 <= response.status_code < 500:
                    return UploadResult(
                        success=False,
                        error=f"Client error: {response.status_code} - {response.text}",
                        attempts=attempt,
                    )

                last_error = f"Server error: {response.status_code}"

            except httpx.ConnectError as e:
                last_error = f"Connection error: {e}"
            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
            except httpx.HTTPError as e:
                last_error = f"HTTP error: {e}"

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_backoff * 2**attempt)

        return UploadResult(
            success=False,
            error=last_error or "Max retries exceeded",
            attempts=attempt,
        )

    async def check_server(self) -> bool:
        """Check if the server is reachable.

        Returns:
            True if server responds to health check, False otherwise
        """
        try:
            response = await self._client.get(
                f"{self.server_url}/health/ready",
                timeout=httpx.Timeout(5.0),
            )
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpUploader":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()
