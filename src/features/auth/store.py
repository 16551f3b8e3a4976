"""Credential store: user identities and refresh session records."""

import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from src.features.user.models import User

from .models import RefreshSession

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the backing store fails."""


class DuplicatePhoneNumber(StorageError):
    """Raised when a phone number is already taken."""


class CredentialStore(Protocol):
    """Persistence contract consumed by the authentication services."""

    async def find_by_id(self, user_id: int) -> User | None: ...

    async def find_by_phone(self, phone_number: str) -> User | None: ...

    async def find_by_id_with_secret(self, user_id: int) -> User | None: ...

    async def find_by_phone_with_secret(self, phone_number: str) -> User | None: ...

    async def create_user(self, user: User) -> User: ...

    async def save(self, user: User) -> User: ...

    async def create_refresh_session(self, user: User, token: str, expires_at: datetime) -> RefreshSession: ...

    async def find_refresh_session(self, token: str, user_id: int) -> RefreshSession | None: ...

    async def delete_refresh_session(self, session_id: int) -> bool: ...

    async def delete_refresh_session_by_token(self, token: str, user_id: int) -> bool: ...

    async def delete_refresh_sessions_for_user(self, user_id: int) -> int: ...


class SqlCredentialStore:
    """SQLAlchemy implementation of CredentialStore.

    Mutations are flushed, not committed; the request handler owns the
    transaction. Lookups without the secret raise if the password hash is
    touched, so only the *_with_secret variants can read it.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _one_user(self, *criteria, with_secret: bool) -> User | None:
        stmt = select(User).where(*criteria)
        if with_secret:
            stmt = stmt.execution_options(populate_existing=True)
        else:
            stmt = stmt.options(defer(User.hashed_password, raiseload=True))
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as err:
            raise StorageError("user lookup failed") from err
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> User | None:
        return await self._one_user(User.id == user_id, with_secret=False)

    async def find_by_phone(self, phone_number: str) -> User | None:
        return await self._one_user(User.phone_number == phone_number, with_secret=False)

    async def find_by_id_with_secret(self, user_id: int) -> User | None:
        return await self._one_user(User.id == user_id, with_secret=True)

    async def find_by_phone_with_secret(self, phone_number: str) -> User | None:
        return await self._one_user(User.phone_number == phone_number, with_secret=True)

    async def create_user(self, user: User) -> User:
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as err:
            await self.session.rollback()
            raise DuplicatePhoneNumber(user.phone_number) from err
        except SQLAlchemyError as err:
            raise StorageError("user insert failed") from err
        return user

    async def save(self, user: User) -> User:
        self.session.add(user)
        try:
            await self.session.flush()
        except SQLAlchemyError as err:
            logger.error(f"Failed to persist user {user.id}: {err}")
            raise StorageError("user update failed") from err
        return user

    async def create_refresh_session(self, user: User, token: str, expires_at: datetime) -> RefreshSession:
        record = RefreshSession(user_id=user.id, token=token, expires_at=expires_at)
        self.session.add(record)
        try:
            await self.session.flush()
        except SQLAlchemyError as err:
            raise StorageError("refresh session insert failed") from err
        return record

    async def find_refresh_session(self, token: str, user_id: int) -> RefreshSession | None:
        stmt = select(RefreshSession).where(RefreshSession.token == token, RefreshSession.user_id == user_id)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as err:
            raise StorageError("refresh session lookup failed") from err
        return result.scalar_one_or_none()

    async def _delete_sessions(self, *criteria) -> int:
        stmt = delete(RefreshSession).where(*criteria).execution_options(synchronize_session=False)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as err:
            raise StorageError("refresh session delete failed") from err
        return result.rowcount or 0

    async def delete_refresh_session(self, session_id: int) -> bool:
        """Delete one record; True only for the caller that actually removed it."""
        return await self._delete_sessions(RefreshSession.id == session_id) == 1

    async def delete_refresh_session_by_token(self, token: str, user_id: int) -> bool:
        deleted = await self._delete_sessions(RefreshSession.token == token, RefreshSession.user_id == user_id)
        return deleted == 1

    async def delete_refresh_sessions_for_user(self, user_id: int) -> int:
        return await self._delete_sessions(RefreshSession.user_id == user_id)
