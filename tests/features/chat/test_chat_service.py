"""Tests for ChatService persistence against an in-memory SQLite database."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.features.chat.exceptions import ChatStorageError, MessageNotFound
from src.features.chat.models import Message
from src.features.chat.service import ChatService
from src.features.user.models import User, UserRole, UserStatus


@pytest.fixture
def opened_sessions() -> list[AsyncSession]:
    return []


@pytest.fixture
def chat(db_session_factory, opened_sessions) -> ChatService:
    """ChatService whose sessions are recorded for inspection."""

    def factory() -> AsyncSession:
        session = db_session_factory()
        opened_sessions.append(session)
        return session

    return ChatService(factory)


@pytest.fixture
async def author(db_session_factory) -> User:
    async with db_session_factory() as session:
        user = User(
            phone_number="+56912345678",
            hashed_password="unused",
            name="Ana",
            last_name="Rojas",
            role=UserRole.NEIGHBOR,
            status=UserStatus.ACTIVE,
        )
        session.add(user)
        await session.commit()
    return user


def assert_no_open_transactions(sessions: list[AsyncSession]) -> None:
    assert sessions
    assert not any(session.in_transaction() for session in sessions)


class TestCreateMessage:
    async def test_returns_message_with_author(self, chat, author, opened_sessions):
        message = await chat.create_message(author.id, "Street light is out")

        assert message.id is not None
        assert message.content == "Street light is out"
        assert message.sender_id == author.id
        assert message.author_name == "Ana"
        assert message.author_last_name == "Rojas"
        assert message.pinned is False
        assert_no_open_transactions(opened_sessions)

    async def test_database_failure_becomes_chat_storage_error(self):
        engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)  # no tables
        chat = ChatService(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
        try:
            with pytest.raises(ChatStorageError) as exc:
                await chat.create_message(1, "hello")
            assert exc.value.status_code == 500
        finally:
            await engine.dispose()


class TestPinMessage:
    async def test_pin_and_unpin(self, chat, author, opened_sessions):
        message = await chat.create_message(author.id, "Meeting on Friday")

        pinned = await chat.pin_message(message.id, True)
        assert pinned.pinned is True

        unpinned = await chat.pin_message(message.id, False)
        assert unpinned.pinned is False
        assert_no_open_transactions(opened_sessions)

    async def test_unknown_message(self, chat, opened_sessions):
        with pytest.raises(MessageNotFound):
            await chat.pin_message(999, True)
        assert_no_open_transactions(opened_sessions)


class TestListMessages:
    async def _seed(self, db_session_factory, author, count: int) -> datetime:
        start = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        async with db_session_factory() as session:
            for i in range(count):
                session.add(Message(sender_id=author.id, content=f"m{i}", created_at=start + timedelta(minutes=i)))
            await session.commit()
        return start

    async def test_empty(self, chat, opened_sessions):
        assert await chat.list_messages() == []
        assert_no_open_transactions(opened_sessions)

    async def test_most_recent_returned_oldest_first(self, chat, db_session_factory, author):
        await self._seed(db_session_factory, author, 5)

        messages = await chat.list_messages(limit=3)

        assert [m.content for m in messages] == ["m2", "m3", "m4"]

    async def test_before_cursor(self, chat, db_session_factory, author):
        start = await self._seed(db_session_factory, author, 5)

        messages = await chat.list_messages(limit=10, before=start + timedelta(minutes=2))

        assert [m.content for m in messages] == ["m0", "m1"]
