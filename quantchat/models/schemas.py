from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageKind(str, Enum):
    """Author/kind of a chat log entry. Immutable once stored."""

    USER = "user"
    AI = "ai"
    SYSTEM = "system"
    RESULT_BACKTEST = "result_backtest"
    RESULT_VISUALIZATION = "result_visualization"


class ResultKind(str, Enum):
    """Structured result kinds the analysis backend can emit."""

    BACKTEST = "backtest"
    VISUALIZATION = "visualization"

    @property
    def message_kind(self) -> MessageKind:
        return MessageKind(f"result_{self.value}")


class TurnStatus(str, Enum):
    """Lifecycle of the current turn, as seen by the presentation layer."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    ERROR = "error"


class Message(BaseModel):
    """A single chat log entry.

    Attributes:
        id: Opaque identifier assigned by the store.
        kind: Author/kind of the entry.
        content: Message text (may be empty for result kinds).
        data: Structured result payload (result kinds only).
        url: Result asset location, e.g. a chart image (result kinds only).
        created_at: Store-assigned creation time.
        completed_at: Set once the entry stops receiving updates.
            Unset means the entry is still in-flight.
        sort_key: Store-assigned ordering token.
    """

    id: str | None = None
    kind: MessageKind
    content: str = ""
    data: Any | None = None
    url: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
    sort_key: int | None = None

    @property
    def in_flight(self) -> bool:
        return self.completed_at is None


class TextEvent(BaseModel):
    """Incremental narration text."""

    type: Literal["text"] = "text"
    content: str = ""


class ResultEvent(BaseModel):
    """A structured result that becomes its own log entry."""

    type: Literal["result"] = "result"
    kind: ResultKind
    content: str = ""
    data: Any | None = None
    url: str | None = None


StreamEvent = Annotated[TextEvent | ResultEvent, Field(discriminator="type")]


class UploadedFile(BaseModel):
    """Descriptor of a file accepted by the backend upload call.

    Attributes:
        name: Original filename.
        url: Backend storage location.
        size: Size in bytes.
        type: MIME type reported by the backend.
        preview: Short text preview of the file contents.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    url: str | None = None
    size: int = Field(default=0, ge=0)
    type: str | None = None
    preview: str | None = None


class AnalyzeRequest(BaseModel):
    """Request body of the backend analyze call."""

    prompt: str
    history: list[Message] = Field(default_factory=list)
    uploaded_files: list[UploadedFile] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the wire; file previews stay local."""
        return {
            "prompt": self.prompt,
            "history": [m.model_dump(mode="json", exclude_none=True) for m in self.history],
            "uploaded_files": [
                f.model_dump(mode="json", include={"name", "url", "size", "type"})
                for f in self.uploaded_files
            ],
        }


class ChatRequest(BaseModel):
    """Request payload for the local chat endpoint.

    Attributes:
        prompt: User's natural-language request. Emptiness is checked
            by the request session, which reports it as a 400.
    """

    prompt: str

    @field_validator("prompt", mode="before")
    @classmethod
    def strip_prompt(cls, v: str) -> str:
        """Strip whitespace from prompt before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class StatusResponse(BaseModel):
    """Current turn status and the last surfaced error, if any."""

    status: TurnStatus
    error: str | None = None


class PatchRequest(BaseModel):
    """Administrative patch submission."""

    model_config = ConfigDict(populate_by_name=True)

    password: str
    patch_code: str = Field(..., alias="patchCode")


class PatchResponse(BaseModel):
    message: str
