"""SQL-backed chat log store using SQLModel.

Rows are ordered by their autoincrement primary key, which doubles as the
message sort key. Every write is committed before listeners are notified.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine, select

from quantchat.errors import StoreError
from quantchat.models.schemas import Message, MessageKind
from quantchat.store.base import ChatLogStore, utcnow

logger = logging.getLogger(__name__)


class ChatMessageRecord(SQLModel, table=True):
    __tablename__ = "chat_messages"

    seq: Optional[int] = Field(default=None, primary_key=True)
    message_id: str = Field(index=True, unique=True)
    session_id: str = Field(index=True)
    kind: str  # MessageKind value
    content: str = ""
    data: Any = Field(default=None, sa_column=Column(JSON))
    url: Optional[str] = Field(default=None)
    created_at: datetime
    completed_at: Optional[datetime] = Field(default=None)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_message(record: ChatMessageRecord) -> Message:
    return Message(
        id=record.message_id,
        kind=MessageKind(record.kind),
        content=record.content,
        data=record.data,
        url=record.url,
        created_at=_as_utc(record.created_at),
        completed_at=_as_utc(record.completed_at),
        sort_key=record.seq,
    )


class SqlChatLogStore(ChatLogStore):
    """Chat log persisted in a SQL database, scoped by session id."""

    def __init__(self, database_url: str, session_id: str = "default") -> None:
        super().__init__(session_id)
        self._engine = create_engine(database_url)
        SQLModel.metadata.create_all(self._engine)

    def close(self) -> None:
        self._engine.dispose()

    async def create(self, message: Message, *, in_flight: bool = False) -> str:
        self._check_create(message, in_flight)
        now = utcnow()
        record = ChatMessageRecord(
            message_id=uuid.uuid4().hex,
            session_id=self.session_id,
            kind=message.kind.value,
            content=message.content,
            data=message.data,
            url=message.url,
            created_at=now,
            completed_at=None if in_flight else now,
        )
        try:
            with Session(self._engine) as session:
                session.add(record)
                session.commit()
                message_id = record.message_id
        except SQLAlchemyError as e:
            logger.error(f"Failed to create {message.kind.value} message: {e}")
            raise StoreError(f"Failed to create message: {e}") from e

        await self._publish()
        return message_id

    async def update(self, message_id: str, fields: dict[str, Any]) -> None:
        try:
            with Session(self._engine) as session:
                record = session.exec(
                    select(ChatMessageRecord).where(
                        ChatMessageRecord.session_id == self.session_id,
                        ChatMessageRecord.message_id == message_id,
                    )
                ).first()
                if record is None:
                    raise StoreError(f"Unknown message id: {message_id}")

                changes = self._check_update(_to_message(record), fields)
                if not changes:
                    return
                for name, value in changes.items():
                    setattr(record, name, value)
                session.add(record)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update message {message_id}: {e}")
            raise StoreError(f"Failed to update message: {e}") from e

        await self._publish()

    async def list_messages(self) -> list[Message]:
        try:
            with Session(self._engine) as session:
                records = session.exec(
                    select(ChatMessageRecord)
                    .where(ChatMessageRecord.session_id == self.session_id)
                    .order_by(ChatMessageRecord.seq)
                ).all()
                return [_to_message(r) for r in records]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read chat log: {e}") from e
