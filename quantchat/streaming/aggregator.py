"""Stream aggregation into the chat log.

Consumes decoded events for one turn and turns them into chat log writes:

    - the first text event opens an in-flight ``ai`` message
    - later text events overwrite it with the cumulative text
    - result events become independent ``result_<kind>`` messages
    - stream end closes the in-flight message
    - transport failure appends a failure message after any partial one

Writes are awaited one at a time in event-arrival order, so the store's
insertion order always matches stream order.
"""

import asyncio
import logging
from collections.abc import AsyncIterable
from enum import Enum
from typing import assert_never

from quantchat.models.schemas import Message, MessageKind, ResultEvent, TextEvent
from quantchat.store.base import ChatLogStore

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "An error occurred: {error}"


class AggregatorPhase(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    FAILED = "failed"


class CancellationToken:
    """Signals that a turn was abandoned.

    Checked at turn start and before each new write. Writes already issued
    always run to completion.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class StreamAggregator:
    """Materializes one streamed response into the chat log.

    Attributes:
        phase: Current state of the turn.
        active_message_id: Id of the in-flight ``ai`` message, if opened.
        accumulated_text: All text received so far in this turn.
    """

    def __init__(self, store: ChatLogStore) -> None:
        self._store = store
        self._cancel = CancellationToken()
        self.phase = AggregatorPhase.IDLE
        self.active_message_id: str | None = None
        self.accumulated_text = ""

    def begin_turn(self, cancel: CancellationToken | None = None) -> None:
        """Reset state for a new turn."""
        self._reset()
        self._cancel = cancel or CancellationToken()

    async def consume(self, events: AsyncIterable[TextEvent | ResultEvent]) -> None:
        """Apply every event in order, then finish the turn."""
        async for event in events:
            await self.handle(event)
        await self.finish()

    async def handle(self, event: TextEvent | ResultEvent) -> None:
        """Apply one decoded event.

        Args:
            event: The next event of the stream.

        Raises:
            StoreError: If the store rejects the write.
        """
        if isinstance(event, TextEvent):
            await self._handle_text(event)
        elif isinstance(event, ResultEvent):
            await self._handle_result(event)
        else:
            assert_never(event)

    async def finish(self) -> None:
        """Close the in-flight message and return to idle.

        Safe to call more than once; a repeated call writes nothing.
        """
        if self.active_message_id is not None:
            if self._may_write("close"):
                await self._store.close_incremental(self.active_message_id)
                logger.info(f"Closed ai message {self.active_message_id} ({len(self.accumulated_text)} chars)")
        elif self.accumulated_text:
            if self._may_write("create"):
                await self._store.create(Message(kind=MessageKind.AI, content=self.accumulated_text))
        self._reset()

    async def fail(self, error: str) -> None:
        """Record a transport failure after any partial progress.

        The partial in-flight message keeps its content; it is only closed.

        Args:
            error: Human-readable cause.
        """
        self.phase = AggregatorPhase.FAILED
        if self.active_message_id is not None and self._may_write("close"):
            await self._store.close_incremental(self.active_message_id)
        if self._may_write("failure"):
            await self._store.create(
                Message(kind=MessageKind.AI, content=FAILURE_MESSAGE.format(error=error))
            )
        self._reset()

    async def _handle_text(self, event: TextEvent) -> None:
        if self.active_message_id is None:
            if not self._may_write("open"):
                return
            self.active_message_id = await self._store.open_incremental(event.content)
            self.accumulated_text = event.content
            self.phase = AggregatorPhase.STREAMING
            logger.debug(f"Opened ai message {self.active_message_id}")
            return

        if not self._may_write("append"):
            return
        self.accumulated_text += event.content
        await self._store.append_incremental(self.active_message_id, self.accumulated_text)

    async def _handle_result(self, event: ResultEvent) -> None:
        if not self._may_write(f"result_{event.kind.value}"):
            return
        message_id = await self._store.create(
            Message(
                kind=event.kind.message_kind,
                content=event.content,
                data=event.data,
                url=event.url,
            )
        )
        logger.debug(f"Created {event.kind.value} result {message_id}")

    def _may_write(self, action: str) -> bool:
        if self._cancel.cancelled:
            logger.info(f"Turn cancelled, skipping {action} write")
            return False
        return True

    def _reset(self) -> None:
        self.phase = AggregatorPhase.IDLE
        self.active_message_id = None
        self.accumulated_text = ""
