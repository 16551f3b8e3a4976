"""Refresh token rotation.

Session lifecycle: Issued -> Rotated (consumed, replaced by a new Issued record)
or Invalid (expired / logged out). A consumed record can never be rotated twice.
"""

import logging
from datetime import UTC, datetime

from src.database.base import as_utc
from src.features.user.models import User

from .exceptions import InvalidRefreshTokenException
from .store import CredentialStore
from .token_factory import TokenFactory, TokenPair

logger = logging.getLogger(__name__)


class RefreshRotationService:
    """Persists, validates and rotates refresh sessions."""

    def __init__(self, store: CredentialStore, tokens: TokenFactory):
        self.store = store
        self.tokens = tokens

    async def issue_session(self, user: User) -> TokenPair:
        """Mint a token pair and persist the refresh record."""
        pair = self.tokens.issue_token_pair(user)
        expires_at = datetime.now(UTC) + self.tokens.refresh_ttl
        await self.store.create_refresh_session(user, pair.refresh_token, expires_at)
        return pair

    async def rotate(self, presented_token: str, claimed_user_id: int) -> tuple[TokenPair, User]:
        """Exchange a refresh token for a new pair.

        Two concurrent calls with the same token produce exactly one success:
        the loser's delete affects zero rows.

        Raises:
            InvalidRefreshTokenException: If the record is missing, expired or
                already consumed, or the owner is no longer active

        """
        record = await self.store.find_refresh_session(presented_token, claimed_user_id)
        if record is None:
            logger.warning(f"Refresh attempted with unknown token for user {claimed_user_id}")
            raise InvalidRefreshTokenException()

        if as_utc(record.expires_at) <= datetime.now(UTC):
            await self.store.delete_refresh_session(record.id)
            logger.info(f"Expired refresh session {record.id} removed for user {claimed_user_id}")
            raise InvalidRefreshTokenException()

        if not await self.store.delete_refresh_session(record.id):
            logger.warning(f"Refresh token reuse lost the race for user {claimed_user_id}")
            raise InvalidRefreshTokenException()

        user = await self.store.find_by_id(claimed_user_id)
        if user is None or not user.is_active:
            logger.warning(f"Refresh rejected for missing or inactive user {claimed_user_id}")
            raise InvalidRefreshTokenException()

        pair = await self.issue_session(user)
        logger.info(f"Refresh session rotated for user {user.id}")
        return pair, user

    async def revoke(self, user_id: int, token: str) -> bool:
        """Invalidate a single session (logout)."""
        return await self.store.delete_refresh_session_by_token(token, user_id)

    async def revoke_all(self, user_id: int) -> int:
        """Invalidate every session of a user (logout everywhere, admin lockout)."""
        removed = await self.store.delete_refresh_sessions_for_user(user_id)
        logger.info(f"Revoked {removed} refresh session(s) for user {user_id}")
        return removed
