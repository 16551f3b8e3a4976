"""JWT minting and verification.

Access, refresh and reset tokens are each signed with their own secret, so a
leaked refresh or reset secret cannot be used to forge access tokens.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from src.config.settings import Settings
from src.features.user.models import User, UserRole

from .exceptions import (
    InvalidAccessTokenException,
    InvalidRefreshTokenException,
    InvalidResetTokenException,
    TokenExpiredException,
)

RESET_PASSWORD_SCOPE = "reset_password"


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified access token."""

    user_id: int
    phone_number: str
    role: UserRole


@dataclass(frozen=True)
class ResetClaims:
    """Identity carried by a verified password reset token."""

    user_id: int
    issued_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenFactory:
    """Mints and verifies signed, time-bounded tokens."""

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        reset_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        reset_ttl: timedelta,
        algorithm: str = "HS256",
    ):
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._reset_secret = reset_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.reset_ttl = reset_ttl
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenFactory":
        return cls(
            access_secret=settings.jwt_secret,
            refresh_secret=settings.jwt_refresh_secret,
            reset_secret=settings.jwt_reset_secret,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
            reset_ttl=timedelta(minutes=settings.reset_token_expire_minutes),
            algorithm=settings.jwt_algorithm,
        )

    @property
    def access_token_ttl_seconds(self) -> int:
        return int(self.access_ttl.total_seconds())

    def _sign(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = datetime.now(UTC)
        payload = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(payload, secret, algorithm=self._algorithm)

    def _decode(self, token: str, secret: str) -> dict[str, Any]:
        return jwt.decode(
            token,
            secret,
            algorithms=[self._algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )

    def issue_access_token(self, user: User) -> str:
        """Sign {sub, phone_number, role} with the access secret."""
        claims = {
            "sub": str(user.id),
            "phone_number": user.phone_number,
            "role": user.role.value,
            "type": "access",
        }
        return self._sign(claims, self._access_secret, self.access_ttl)

    def issue_refresh_token(self, user: User) -> str:
        """Sign {sub} with the refresh secret.

        The random jti keeps two tokens minted within the same second distinct.
        """
        claims = {"sub": str(user.id), "type": "refresh", "jti": uuid4().hex}
        return self._sign(claims, self._refresh_secret, self.refresh_ttl)

    def issue_token_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=self.issue_refresh_token(user),
        )

    def issue_reset_token(self, user: User) -> str:
        """Sign {sub, scope="reset_password"} with the reset secret."""
        claims = {"sub": str(user.id), "scope": RESET_PASSWORD_SCOPE, "type": "reset"}
        return self._sign(claims, self._reset_secret, self.reset_ttl)

    def verify_access_token(self, token: str) -> TokenClaims:
        """Validate signature and expiry of an access token.

        Raises:
            TokenExpiredException: If the token is past its expiry
            InvalidAccessTokenException: On any other failure

        """
        try:
            payload = self._decode(token, self._access_secret)
        except ExpiredSignatureError as err:
            raise TokenExpiredException() from err
        except InvalidTokenError as err:
            raise InvalidAccessTokenException() from err

        if payload.get("type") != "access":
            raise InvalidAccessTokenException()

        try:
            return TokenClaims(
                user_id=int(payload["sub"]),
                phone_number=str(payload["phone_number"]),
                role=UserRole(payload["role"]),
            )
        except (KeyError, ValueError) as err:
            raise InvalidAccessTokenException() from err

    def verify_refresh_token(self, token: str) -> int:
        """Return the identity id claimed by a refresh token."""
        try:
            payload = self._decode(token, self._refresh_secret)
            if payload.get("type") != "refresh":
                raise InvalidRefreshTokenException()
            return int(payload["sub"])
        except (InvalidTokenError, ValueError) as err:
            raise InvalidRefreshTokenException() from err

    def verify_reset_token(self, token: str) -> ResetClaims:
        """Validate a reset token, including its scope."""
        try:
            payload = self._decode(token, self._reset_secret)
            if payload.get("scope") != RESET_PASSWORD_SCOPE:
                raise InvalidResetTokenException()
            return ResetClaims(
                user_id=int(payload["sub"]),
                issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            )
        except (InvalidTokenError, ValueError, TypeError) as err:
            raise InvalidResetTokenException() from err
