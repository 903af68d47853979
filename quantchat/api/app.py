"""FastAPI application factory and configuration.

Builds the application context up front, registers routes and maps the
chat error taxonomy onto ``{"error": ...}`` JSON responses.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quantchat import __version__
from quantchat.api.routes import router
from quantchat.config import Settings
from quantchat.errors import QuantChatError
from quantchat.session.context import AppContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Log startup and release the application context on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    logger.info("Starting quantchat API...")
    yield
    logger.info("Shutting down quantchat API...")
    await app.state.context.aclose()


async def handle_chat_error(request: Request, exc: QuantChatError) -> JSONResponse:
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content={"error": exc.message})


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration; loaded from the environment if omitted.
        transport: Optional httpx transport for the backend client.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="quantchat API",
        description=(
            "Conversational front-end over the quant-analysis backend. "
            "Streams analysis responses into an append-only chat log and "
            "exposes it to the presentation layer."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.context = AppContext(settings=settings, transport=transport)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(QuantChatError, handle_chat_error)
    application.include_router(router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "quantchat"}

    return application
