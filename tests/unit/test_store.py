"""Unit tests for the chat log stores.

Every behavioural test runs against both the in-memory and the SQL store.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest
import pytest_check as check

from quantchat.errors import StoreError
from quantchat.models.schemas import Message, MessageKind
from quantchat.store.base import ChatLogStore
from quantchat.store.memory import InMemoryChatLogStore
from quantchat.store.sql import SqlChatLogStore


@pytest.fixture(params=["memory", "sql"])
def log_store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[ChatLogStore]:
    if request.param == "memory":
        yield InMemoryChatLogStore(session_id="alice")
        return
    store = SqlChatLogStore(f"sqlite:///{tmp_path / 'chat.db'}", session_id="alice")
    yield store
    store.close()


class TestCreateAndOrder:
    """Tests for identity and ordering."""

    async def test_create_assigns_identity_and_order(self, log_store: ChatLogStore) -> None:
        first = await log_store.create(Message(kind=MessageKind.USER, content="hi"))
        second = await log_store.create(Message(kind=MessageKind.SYSTEM, content="ok"))

        log = await log_store.list_messages()
        check.equal([m.id for m in log], [first, second])
        check.not_equal(first, second)
        check.less(log[0].sort_key, log[1].sort_key)
        check.is_not_none(log[0].created_at)

    async def test_regular_messages_are_complete(self, log_store: ChatLogStore) -> None:
        await log_store.create(Message(kind=MessageKind.USER, content="hi"))

        message = (await log_store.list_messages())[0]
        check.is_false(message.in_flight)
        check.equal(message.completed_at, message.created_at)

    async def test_result_payload_round_trips(self, log_store: ChatLogStore) -> None:
        await log_store.create(
            Message(
                kind=MessageKind.RESULT_BACKTEST,
                data={"totalReturn": 12.5, "tradeCount": 3},
            )
        )

        message = (await log_store.list_messages())[0]
        check.equal(message.kind, MessageKind.RESULT_BACKTEST)
        check.equal(message.content, "")
        check.equal(message.data, {"totalReturn": 12.5, "tradeCount": 3})

    async def test_only_ai_messages_can_be_in_flight(self, log_store: ChatLogStore) -> None:
        with pytest.raises(StoreError, match="in-flight"):
            await log_store.create(Message(kind=MessageKind.USER, content="x"), in_flight=True)


class TestIncrementalProtocol:
    """Tests for open / append / close."""

    async def test_open_append_close(self, log_store: ChatLogStore) -> None:
        message_id = await log_store.open_incremental("Hel")
        check.is_true((await log_store.get(message_id)).in_flight)

        await log_store.append_incremental(message_id, "Hello")
        await log_store.close_incremental(message_id)

        message = await log_store.get(message_id)
        check.equal(message.kind, MessageKind.AI)
        check.equal(message.content, "Hello")
        check.is_false(message.in_flight)

    async def test_close_is_idempotent(self, log_store: ChatLogStore) -> None:
        message_id = await log_store.open_incremental("x")
        await log_store.close_incremental(message_id)
        stamped = (await log_store.get(message_id)).completed_at

        await log_store.close_incremental(message_id)

        check.equal((await log_store.get(message_id)).completed_at, stamped)
        check.equal(len(await log_store.list_messages()), 1)

    async def test_content_frozen_after_close(self, log_store: ChatLogStore) -> None:
        message_id = await log_store.open_incremental("final")
        await log_store.close_incremental(message_id)

        with pytest.raises(StoreError, match="not an in-flight"):
            await log_store.append_incremental(message_id, "changed")

    async def test_content_of_user_message_is_immutable(self, log_store: ChatLogStore) -> None:
        message_id = await log_store.create(Message(kind=MessageKind.USER, content="hi"))

        with pytest.raises(StoreError):
            await log_store.update(message_id, {"content": "edited"})

    async def test_kind_is_immutable(self, log_store: ChatLogStore) -> None:
        message_id = await log_store.open_incremental("x")

        with pytest.raises(StoreError, match="kind"):
            await log_store.update(message_id, {"kind": MessageKind.SYSTEM})

    async def test_unknown_id_rejected(self, log_store: ChatLogStore) -> None:
        with pytest.raises(StoreError, match="Unknown message id"):
            await log_store.update("missing", {"content": "x"})


class TestSubscribe:
    """Tests for the live ordered log feed."""

    async def test_listener_gets_initial_and_every_change(self, log_store: ChatLogStore) -> None:
        snapshots: list[list[str]] = []
        await log_store.create(Message(kind=MessageKind.USER, content="before"))

        unsubscribe = await log_store.subscribe(lambda log: snapshots.append([m.content for m in log]))
        message_id = await log_store.open_incremental("a")
        await log_store.append_incremental(message_id, "ab")
        unsubscribe()
        await log_store.close_incremental(message_id)

        check.equal(snapshots, [["before"], ["before", "a"], ["before", "ab"]])

    async def test_failing_listener_does_not_fail_write(self, log_store: ChatLogStore) -> None:
        calls: list[int] = []

        def broken(log: list[Message]) -> None:
            calls.append(len(log))
            if log:
                raise RuntimeError("view crashed")

        await log_store.subscribe(broken)
        await log_store.create(Message(kind=MessageKind.SYSTEM, content="still stored"))

        check.equal(calls, [0, 1])
        check.equal(len(await log_store.list_messages()), 1)


class TestSqlScoping:
    async def test_sessions_do_not_see_each_other(self, tmp_path: Path) -> None:
        url = f"sqlite:///{tmp_path / 'shared.db'}"
        alice = SqlChatLogStore(url, session_id="alice")
        bob = SqlChatLogStore(url, session_id="bob")

        await alice.create(Message(kind=MessageKind.USER, content="from alice"))
        await bob.create(Message(kind=MessageKind.USER, content="from bob"))

        check.equal([m.content for m in await alice.list_messages()], ["from alice"])
        check.equal([m.content for m in await bob.list_messages()], ["from bob"])
        alice.close()
        bob.close()

    async def test_log_survives_reopen(self, tmp_path: Path) -> None:
        url = f"sqlite:///{tmp_path / 'persist.db'}"
        store = SqlChatLogStore(url, session_id="alice")
        message_id = await store.open_incremental("partial")
        store.close()

        reopened = SqlChatLogStore(url, session_id="alice")
        message = await reopened.get(message_id)
        reopened.close()

        check.equal(message.content, "partial")
        check.is_true(message.in_flight)
