"""Application settings with environment variable loading.

Pydantic-based configuration for the chat front-end. Values are read from
the process environment (and a ``.env`` file, if present) when a
``Settings`` instance is built, never at import time.
"""

import os
import uuid

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


class Settings(BaseModel):
    """Configuration for one chat front-end instance.

    Attributes:
        backend_url: Base URL of the analysis backend.
        request_timeout: Seconds to wait on backend reads before failing.
        session_id: Identity the chat log is scoped to.
        database_url: SQLAlchemy URL for the SQL chat log store.
            When unset the in-memory store is used.
    """

    backend_url: str = Field(
        default_factory=lambda: os.getenv("QUANTCHAT_BACKEND_URL", "http://localhost:8080"),
        description="Base URL of the analysis backend",
    )
    request_timeout: float = Field(
        default_factory=lambda: float(os.getenv("QUANTCHAT_TIMEOUT", "300")),
        ge=1.0,
        le=600.0,
        description="Backend read timeout in seconds",
    )
    session_id: str = Field(
        default_factory=lambda: os.getenv("QUANTCHAT_SESSION_ID") or str(uuid.uuid4()),
        description="Chat log scope (user/session identity)",
    )
    database_url: str | None = Field(
        default_factory=lambda: os.getenv("QUANTCHAT_DATABASE_URL") or None,
        description="SQL store URL (None for in-memory store)",
    )

    @field_validator("backend_url")
    @classmethod
    def validate_backend_url(cls, v: str) -> str:
        """Require a backend URL and drop any trailing slash."""
        if not v or not v.strip():
            raise ValueError("Backend URL required. Set QUANTCHAT_BACKEND_URL in .env")
        return v.strip().rstrip("/")

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, v: str) -> str:
        """Reject blank session identities."""
        if not v.strip():
            raise ValueError("session_id must not be blank")
        return v.strip()


def get_settings() -> Settings:
    """Create settings from the environment.

    Returns:
        Configured Settings instance.

    Raises:
        pydantic.ValidationError: If a value is missing or out of range.
    """
    return Settings()
