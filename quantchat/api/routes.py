"""Local HTTP routes for the presentation layer.

The view layer renders whatever the chat log contains: it reads
``/messages`` (or follows ``/messages/stream``), polls ``/status`` and
submits turns and uploads through this router.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, HTTPException, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from quantchat.models.schemas import (
    ChatRequest,
    Message,
    PatchRequest,
    PatchResponse,
    StatusResponse,
    UploadedFile,
)
from quantchat.session.request_session import RequestSession

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10MB
ALLOWED_EXTENSIONS = (".csv",)


def _session(request: Request) -> RequestSession:
    return request.app.state.context.session


def _validate_filename(filename: str | None) -> str:
    """Validate that the upload has a supported tabular extension.

    Raises:
        HTTPException: 400 if the filename is missing or unsupported.
    """
    if not filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required",
        )

    if not filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are accepted",
        )

    return filename


@router.get("/messages", response_model=list[Message], tags=["chat"])
async def list_messages(request: Request) -> list[Message]:
    """Return the full chat log in order."""
    return await _session(request).store.list_messages()


@router.get("/messages/stream", tags=["chat"])
async def stream_messages(request: Request) -> StreamingResponse:
    """Follow the chat log as Server-Sent Events.

    Each event carries the full ordered log after a committed change. A
    slow client skips intermediate snapshots and receives the latest one.
    """
    store = _session(request).store

    async def events() -> AsyncGenerator[str]:
        # Holds only the newest snapshot
        queue: asyncio.Queue[list[Message]] = asyncio.Queue(maxsize=1)

        def offer(snapshot: list[Message]) -> None:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(snapshot)

        unsubscribe = await store.subscribe(offer)
        try:
            while True:
                snapshot = await queue.get()
                payload = [m.model_dump(mode="json") for m in snapshot]
                yield f"data: {json.dumps(payload)}\n\n"
        finally:
            unsubscribe()

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("/status", response_model=StatusResponse, tags=["chat"])
async def get_status(request: Request) -> StatusResponse:
    session = _session(request)
    return StatusResponse(status=session.status, error=session.last_error)


@router.post("/chat", response_model=StatusResponse, tags=["chat"])
async def chat(body: ChatRequest, request: Request) -> StatusResponse:
    """Run one turn against the analysis backend.

    Returns once the streamed response has been written to the chat log.
    Transport failures are recorded in the log and reported in the status.

    Raises:
        400: Empty prompt or no uploaded files.
        409: A turn is already running.
        500: The chat log rejected a write.
    """
    session = _session(request)
    await session.send(body.prompt)
    return StatusResponse(status=session.status, error=session.last_error)


@router.post("/upload", response_model=UploadedFile, tags=["files"])
async def upload(file: UploadFile, request: Request) -> UploadedFile:
    """Upload a tabular file to the backend and index it.

    Raises:
        400: Missing filename or unsupported extension.
        413: File exceeds 10MB limit.
        502: Backend rejected the upload.
    """
    filename = _validate_filename(file.filename)
    content = await file.read()

    if len(content) > MAX_UPLOAD_SIZE:
        size_mb = len(content) / (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File size ({size_mb:.1f}MB) exceeds maximum allowed (10MB)",
        )

    return await _session(request).upload(
        filename, content, file.content_type or "text/csv"
    )


@router.get("/files", tags=["files"])
async def list_files(request: Request) -> dict:
    """Uploaded files grouped by type, year and month."""
    return _session(request).file_index.as_dict()


@router.post("/admin/patch", response_model=PatchResponse, tags=["admin"])
async def admin_patch(body: PatchRequest, request: Request) -> PatchResponse:
    message = await _session(request).apply_patch(body.password, body.patch_code)
    return PatchResponse(message=message)
