"""HTTP transport to the analysis backend.

All three backend calls share one failure convention: a non-2xx response
carries ``{"error": "..."}``. Every network or protocol failure leaves this
module as a ``TransportError``.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from quantchat.errors import TransportError
from quantchat.models.schemas import AnalyzeRequest, PatchRequest, UploadedFile

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/analyze"
UPLOAD_PATH = "/api/upload"
PATCH_PATH = "/api/patch"


def _json_body(response: httpx.Response) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error_message(response: httpx.Response, default: str) -> str:
    body = _json_body(response)
    if body and body.get("error"):
        return str(body["error"])
    return f"{default} (HTTP {response.status_code})"


class BackendClient:
    """Client for the analyze, upload and patch endpoints.

    Args:
        http: Shared async HTTP client, already pointed at the backend.
    """

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def stream_analysis(self, request: AnalyzeRequest) -> AsyncIterator[bytes]:
        """Open the analyze call and yield raw body chunks as they arrive.

        Args:
            request: Prompt, prior history and uploaded file descriptors.

        Yields:
            Body bytes, split wherever the network split them.

        Raises:
            TransportError: Non-2xx status or connection failure.
        """
        try:
            async with self._http.stream(
                "POST",
                ANALYZE_PATH,
                json=request.to_payload(),
                headers={"Accept": "application/x-ndjson"},
            ) as response:
                if not response.is_success:
                    await response.aread()
                    raise TransportError(
                        _error_message(response, "Network error"),
                        status_code=response.status_code,
                    )
                async for chunk in response.aiter_bytes():
                    yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.error(f"Analyze stream failed: {e}")
            raise TransportError(f"Connection failed: {e}") from e

    async def upload_file(
        self, filename: str, content: bytes, content_type: str = "text/csv"
    ) -> UploadedFile:
        """Upload one file and return its descriptor.

        Args:
            filename: Original filename, also used for index grouping.
            content: File bytes.
            content_type: MIME type sent with the multipart part.

        Returns:
            Backend descriptor merged with the local filename.

        Raises:
            TransportError: Upload rejected or response unreadable.
        """
        try:
            response = await self._http.post(
                UPLOAD_PATH,
                files={"file": (filename, content, content_type)},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Connection failed: {e}") from e

        body = _json_body(response)
        if not response.is_success or body is None or body.get("error"):
            raise TransportError(
                _error_message(response, "Upload failed"),
                status_code=response.status_code,
            )

        try:
            return UploadedFile.model_validate({"name": filename, **body})
        except PydanticValidationError as e:
            raise TransportError(f"Malformed upload response for {filename}") from e

    async def apply_patch(self, password: str, patch_code: str) -> str:
        """Submit an administrative patch.

        Returns:
            The backend's confirmation message.

        Raises:
            TransportError: Patch rejected or connection failure.
        """
        payload = PatchRequest(password=password, patch_code=patch_code)
        try:
            response = await self._http.post(PATCH_PATH, json=payload.model_dump(by_alias=True))
        except httpx.HTTPError as e:
            raise TransportError(f"Connection failed: {e}") from e

        if not response.is_success:
            raise TransportError(
                _error_message(response, "Patch failed"),
                status_code=response.status_code,
            )
        body = _json_body(response) or {}
        return str(body.get("message", ""))
