"""Pydantic models for chat log entries, stream events and API payloads.

Models:
    - Message: One chat log entry
    - TextEvent / ResultEvent: Decoded stream records
    - UploadedFile: Descriptor returned by the upload call
    - AnalyzeRequest: Body of the backend analyze call
    - ChatRequest / StatusResponse / PatchRequest: Local API payloads
"""

from quantchat.models.schemas import (
    AnalyzeRequest,
    ChatRequest,
    Message,
    MessageKind,
    PatchRequest,
    PatchResponse,
    ResultEvent,
    ResultKind,
    StatusResponse,
    StreamEvent,
    TextEvent,
    TurnStatus,
    UploadedFile,
)

__all__ = [
    "AnalyzeRequest",
    "ChatRequest",
    "Message",
    "MessageKind",
    "PatchRequest",
    "PatchResponse",
    "ResultEvent",
    "ResultKind",
    "StatusResponse",
    "StreamEvent",
    "TextEvent",
    "TurnStatus",
    "UploadedFile",
]
