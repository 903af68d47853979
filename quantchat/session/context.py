"""Explicit application context.

Everything a running front-end needs (settings, HTTP client, chat log
store, request session) is built here and torn down with ``aclose``.
Nothing is kept in module globals.
"""

import logging

import httpx

from quantchat.client.backend import BackendClient
from quantchat.config import Settings, get_settings
from quantchat.session.request_session import RequestSession
from quantchat.store.base import ChatLogStore
from quantchat.store.memory import InMemoryChatLogStore
from quantchat.store.sql import SqlChatLogStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> ChatLogStore:
    """Pick the chat log store for the configured database URL."""
    if settings.database_url:
        logger.info("Using SQL chat log store")
        return SqlChatLogStore(settings.database_url, session_id=settings.session_id)
    logger.info("Using in-memory chat log store")
    return InMemoryChatLogStore(session_id=settings.session_id)


class AppContext:
    """Owns the resources of one front-end instance.

    Args:
        settings: Configuration; loaded from the environment if omitted.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
        store: Optional pre-built chat log store.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        store: ChatLogStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.http = httpx.AsyncClient(
            base_url=self.settings.backend_url,
            timeout=self.settings.request_timeout,
            transport=transport,
        )
        self.store = store or build_store(self.settings)
        self.backend = BackendClient(self.http)
        self.session = RequestSession(self.store, self.backend)

    async def aclose(self) -> None:
        await self.http.aclose()
        if isinstance(self.store, SqlChatLogStore):
            self.store.close()
        logger.info(f"Closed context for session {self.settings.session_id}")

    async def __aenter__(self) -> "AppContext":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
