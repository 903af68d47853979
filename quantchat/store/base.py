"""Chat log store interface.

A store owns message identity and ordering for one session. Writers call
``create``/``update`` (or the incremental helpers built on them) and every
committed change is published to subscribers as the full ordered log.

Incremental protocol:

    open_incremental()   -> creates an in-flight ``ai`` message
    append_incremental() -> overwrites its content with the cumulative text
    close_incremental()  -> stamps the completion time, ending the flight

Closing is idempotent: the first completion stamp wins.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from quantchat.errors import StoreError
from quantchat.models.schemas import Message, MessageKind

logger = logging.getLogger(__name__)

Listener = Callable[[list[Message]], None]

UPDATABLE_FIELDS = frozenset({"content", "data", "url", "completed_at"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatLogStore(ABC):
    """Append-only, per-session ordered chat log.

    Subclasses persist messages; this base class provides the listener
    registry, update validation and the incremental protocol.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._listeners: list[Listener] = []

    @abstractmethod
    async def create(self, message: Message, *, in_flight: bool = False) -> str:
        """Append a message and return its store-assigned id.

        Args:
            message: Draft message. Store-owned fields are ignored.
            in_flight: Leave the message open for content updates.
                Only ``ai`` messages may be created in-flight.

        Returns:
            Identifier of the new message.

        Raises:
            StoreError: If the write is rejected.
        """

    @abstractmethod
    async def update(self, message_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update to an existing message.

        Raises:
            StoreError: Unknown id, immutable field, or content change on a
                message that is no longer in-flight.
        """

    @abstractmethod
    async def list_messages(self) -> list[Message]:
        """Return the full log ordered by sort key."""

    async def get(self, message_id: str) -> Message:
        for message in await self.list_messages():
            if message.id == message_id:
                return message
        raise StoreError(f"Unknown message id: {message_id}")

    async def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register a listener for the full ordered log.

        The listener is called once immediately with the current log and
        again after every committed change.

        Args:
            callback: Receives the ordered list of messages.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(callback)
        callback(await self.list_messages())

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def open_incremental(self, content: str = "") -> str:
        return await self.create(Message(kind=MessageKind.AI, content=content), in_flight=True)

    async def append_incremental(self, message_id: str, content: str) -> None:
        await self.update(message_id, {"content": content})

    async def close_incremental(self, message_id: str) -> None:
        await self.update(message_id, {"completed_at": utcnow()})

    async def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = await self.list_messages()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                # The write is already committed; one bad view must not fail it.
                logger.exception("Chat log listener failed")

    @staticmethod
    def _check_create(message: Message, in_flight: bool) -> None:
        if in_flight and message.kind is not MessageKind.AI:
            raise StoreError(f"Only ai messages can be in-flight, got {message.kind.value}")

    @staticmethod
    def _check_update(current: Message, fields: dict[str, Any]) -> dict[str, Any]:
        """Validate a partial update against the current message.

        Returns:
            The fields that actually need writing.
        """
        rejected = set(fields) - UPDATABLE_FIELDS
        if rejected:
            raise StoreError(f"Fields cannot be updated: {', '.join(sorted(rejected))}")

        changes = dict(fields)
        if "content" in changes and not (current.kind is MessageKind.AI and current.in_flight):
            raise StoreError(f"Message {current.id} is not an in-flight ai message")
        if "completed_at" in changes and not current.in_flight:
            changes.pop("completed_at")
        return changes
