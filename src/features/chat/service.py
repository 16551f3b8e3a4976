"""Chat service layer (message persistence)."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload

from src.features.user.models import User

from .exceptions import ChatStorageError, MessageNotFound
from .models import Message
from .schemas import MessageResponse

logger = logging.getLogger(__name__)


def _with_sender():
    return joinedload(Message.sender).load_only(User.id, User.name, User.last_name)


class ChatService:
    """Persists chat messages.

    Every call runs in its own short session, so a long-lived WebSocket never
    keeps a pooled connection checked out between frames.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncGenerator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as err:
                await session.rollback()
                logger.error(f"Chat {action} failed: {err}")
                raise ChatStorageError() from err

    @staticmethod
    async def _get(session: AsyncSession, message_id: int) -> Message | None:
        stmt = select(Message).where(Message.id == message_id).options(_with_sender())
        result = await session.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def create_message(self, sender_id: int, content: str) -> MessageResponse:
        async with self._transaction("create") as session:
            message = Message(sender_id=sender_id, content=content)
            session.add(message)
            await session.flush()

            saved = await self._get(session, message.id)
            if saved is None:
                raise MessageNotFound()
            response = MessageResponse.from_message(saved)

        logger.info(f"Message {response.id} created by user {sender_id}")
        return response

    async def pin_message(self, message_id: int, pinned: bool) -> MessageResponse:
        """Pin or unpin a message.

        Raises:
            MessageNotFound: If the message does not exist
            ChatStorageError: If the database fails

        """
        async with self._transaction("pin") as session:
            message = await self._get(session, message_id)
            if message is None:
                raise MessageNotFound()

            message.pinned = pinned
            await session.flush()
            response = MessageResponse.from_message(message)

        logger.info(f"Message {message_id} pinned={pinned}")
        return response

    async def list_messages(self, limit: int = 20, before: datetime | None = None) -> list[MessageResponse]:
        """Most recent messages, returned oldest first.

        Args:
            limit: Maximum number of messages
            before: Only messages created strictly before this instant

        """
        stmt = select(Message).options(_with_sender()).order_by(Message.created_at.desc(), Message.id.desc())
        if before is not None:
            stmt = stmt.where(Message.created_at < before)

        async with self._transaction("history") as session:
            result = await session.execute(stmt.limit(limit))
            messages = list(result.scalars().all())

        messages.reverse()
        return [MessageResponse.from_message(m) for m in messages]
