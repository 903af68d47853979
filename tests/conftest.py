"""Pytest fixtures and shared test configuration.

Fixtures:
    - store: Fresh in-memory chat log store
    - fake_backend: Scriptable stand-in for the analysis backend
    - backend_client: BackendClient wired to the fake backend
    - request_session: RequestSession over the store and fake backend
"""

import json
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any

import httpx
import pytest

from quantchat.client.backend import BackendClient
from quantchat.session.request_session import RequestSession
from quantchat.store.memory import InMemoryChatLogStore

BACKEND_URL = "http://backend.test"


def ndjson(*records: dict[str, Any]) -> bytes:
    """Encode records as a newline-delimited JSON body."""
    return "".join(json.dumps(r, ensure_ascii=False) + "\n" for r in records).encode("utf-8")


class FakeBackend:
    """Scriptable analysis backend served through httpx.MockTransport.

    Attributes:
        requests: Every request received, in order.
        analyze_chunks: Body chunks streamed by the analyze call.
        analyze_status: Status code of the analyze call.
        analyze_error: Payload of the ``{"error"}`` body on non-2xx.
        analyze_raise: Raised after all chunks have been streamed.
        upload_status / upload_body: Response of the upload call.
        patch_status / patch_body: Response of the patch call.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.analyze_chunks: list[bytes] = []
        self.analyze_status = 200
        self.analyze_error = "boom"
        self.analyze_raise: Exception | None = None
        self.upload_status = 200
        self.upload_body: dict[str, Any] = {
            "url": "https://storage.test/files/abc",
            "size": 2048,
            "type": "text/csv",
            "preview": "date,close\n2024-03-15,101.2",
        }
        self.patch_status = 200
        self.patch_body: dict[str, Any] = {"message": "Patch applied successfully"}

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/analyze":
            if self.analyze_status >= 400:
                return httpx.Response(self.analyze_status, json={"error": self.analyze_error})
            return httpx.Response(self.analyze_status, content=self._body())
        if path == "/api/upload":
            return httpx.Response(self.upload_status, json=self.upload_body)
        if path == "/api/patch":
            return httpx.Response(self.patch_status, json=self.patch_body)
        return httpx.Response(404, json={"error": "not found"})

    async def _body(self) -> AsyncIterator[bytes]:
        for chunk in self.analyze_chunks:
            yield chunk
        if self.analyze_raise is not None:
            raise self.analyze_raise


@pytest.fixture
def store() -> InMemoryChatLogStore:
    return InMemoryChatLogStore(session_id="test-session")


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def backend_client(fake_backend: FakeBackend) -> AsyncGenerator[BackendClient]:
    """BackendClient whose HTTP client talks to the fake backend.

    Yields:
        Configured BackendClient; the HTTP client is closed afterwards.
    """
    async with httpx.AsyncClient(base_url=BACKEND_URL, transport=fake_backend.transport()) as http:
        yield BackendClient(http)


@pytest.fixture
def request_session(
    store: InMemoryChatLogStore, backend_client: BackendClient
) -> RequestSession:
    return RequestSession(store, backend_client)
