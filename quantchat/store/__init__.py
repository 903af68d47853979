"""Chat log persistence.

The store exclusively owns message identity and ordering. Two
implementations share one interface:

    - InMemoryChatLogStore: process-local, used by default and in tests
    - SqlChatLogStore: SQLModel tables, any SQLAlchemy URL
"""

from quantchat.store.base import ChatLogStore, Listener
from quantchat.store.memory import InMemoryChatLogStore
from quantchat.store.sql import SqlChatLogStore

__all__ = ["ChatLogStore", "InMemoryChatLogStore", "Listener", "SqlChatLogStore"]
