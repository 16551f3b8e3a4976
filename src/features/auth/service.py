"""Authentication service layer (login, refresh, logout)."""

import logging

from src.features.user.models import User, UserStatus
from src.features.user.schemas import UserSummary

from .exceptions import AccountNotActiveException, InvalidCredentialsException
from .rotation import RefreshRotationService
from .schemas import LoginResponse
from .store import CredentialStore
from .token_factory import TokenFactory, TokenPair

logger = logging.getLogger(__name__)


class AuthService:
    """Issues and rotates session credentials."""

    def __init__(self, store: CredentialStore, rotation: RefreshRotationService, tokens: TokenFactory):
        self.store = store
        self.rotation = rotation
        self.tokens = tokens

    async def authenticate_user(self, phone_number: str, password: str) -> User:
        """Check credentials and account status.

        Args:
            phone_number: E.164 phone number
            password: Plain text password

        Returns:
            The authenticated ACTIVE user

        Raises:
            InvalidCredentialsException: If the phone is unknown or the password is wrong
            AccountNotActiveException: If credentials match but the account is not ACTIVE

        """
        user = await self.store.find_by_phone_with_secret(phone_number)

        if user is None or not user.verify_password(password):
            logger.warning(f"Failed login attempt for {phone_number}")
            raise InvalidCredentialsException()

        if user.status != UserStatus.ACTIVE:
            logger.warning(f"Login attempt for non-active account {user.id} ({user.status})")
            raise AccountNotActiveException()

        return user

    def _response(self, pair: TokenPair, user: User) -> LoginResponse:
        return LoginResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=self.tokens.access_token_ttl_seconds,
            user=UserSummary.model_validate(user),
        )

    async def login(self, phone_number: str, password: str) -> LoginResponse:
        user = await self.authenticate_user(phone_number, password)
        pair = await self.rotation.issue_session(user)
        logger.info(f"User logged in: {user.id}")
        return self._response(pair, user)

    async def refresh(self, refresh_token: str) -> LoginResponse:
        """Exchange a refresh token for a new pair (single use)."""
        user_id = self.tokens.verify_refresh_token(refresh_token)
        pair, user = await self.rotation.rotate(refresh_token, user_id)
        return self._response(pair, user)

    async def logout(self, user_id: int, refresh_token: str) -> bool:
        revoked = await self.rotation.revoke(user_id, refresh_token)
        if revoked:
            logger.info(f"User logged out: {user_id}")
        return revoked

    async def logout_all(self, user_id: int) -> int:
        return await self.rotation.revoke_all(user_id)
