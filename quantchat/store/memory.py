"""Process-local chat log store."""

import asyncio
import itertools
import uuid
from typing import Any

from quantchat.errors import StoreError
from quantchat.models.schemas import Message
from quantchat.store.base import ChatLogStore, utcnow


class InMemoryChatLogStore(ChatLogStore):
    """Chat log kept in a dict, ordered by a monotonically increasing sequence.

    Writes are serialized with an asyncio lock; listeners are notified after
    the lock is released.
    """

    def __init__(self, session_id: str = "default") -> None:
        super().__init__(session_id)
        self._messages: dict[str, Message] = {}
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    async def create(self, message: Message, *, in_flight: bool = False) -> str:
        self._check_create(message, in_flight)
        async with self._lock:
            now = utcnow()
            stored = message.model_copy(
                update={
                    "id": uuid.uuid4().hex,
                    "created_at": now,
                    "completed_at": None if in_flight else now,
                    "sort_key": next(self._sequence),
                },
                deep=True,
            )
            self._messages[stored.id] = stored
        await self._publish()
        return stored.id

    async def update(self, message_id: str, fields: dict[str, Any]) -> None:
        async with self._lock:
            current = self._messages.get(message_id)
            if current is None:
                raise StoreError(f"Unknown message id: {message_id}")
            changes = self._check_update(current, fields)
            if not changes:
                return
            self._messages[message_id] = current.model_copy(update=changes, deep=True)
        await self._publish()

    async def list_messages(self) -> list[Message]:
        return [
            m.model_copy(deep=True)
            for m in sorted(self._messages.values(), key=lambda m: m.sort_key)
        ]
