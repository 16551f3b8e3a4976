"""Authentication and authorization gates, plus service wiring for FastAPI."""

import logging
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.base import as_utc
from src.database.dependencies import get_db_session
from src.features.user.models import UserRole, UserStatus
from src.features.verification.dependencies import get_recovery_verifier, get_register_verifier
from src.features.verification.service import SmsVerifier
from src.shared.audit.audit import AuditOutcome, audit_access

from .exceptions import AccessDeniedException, InvalidAccessTokenException, InvalidResetTokenException
from .recovery import PasswordRecoveryService
from .registration import UserRegistrationService
from .rotation import RefreshRotationService
from .service import AuthService
from .store import CredentialStore, SqlCredentialStore
from .token_factory import TokenClaims, TokenFactory

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)

# Statuses whose owners may still reset a forgotten password
RESETTABLE_STATUSES = frozenset({UserStatus.ACTIVE, UserStatus.PENDING_APPROVAL})


@dataclass(frozen=True)
class RoutePolicy:
    """Per-operation access configuration resolved by the gates."""

    public: bool = False
    required_roles: frozenset[UserRole] = frozenset()


PUBLIC = RoutePolicy(public=True)
AUTHENTICATED = RoutePolicy()
ADMIN_ONLY = RoutePolicy(required_roles=frozenset({UserRole.ADMIN}))


def authenticate_request(policy: RoutePolicy, token: str | None, tokens: TokenFactory) -> TokenClaims | None:
    """Request authentication gate.

    Public operations pass without an identity. Everything else needs a
    valid access token; the signed claims are trusted as-is.

    Raises:
        InvalidAccessTokenException: If the token is missing or invalid
        TokenExpiredException: If the token has expired

    """
    if policy.public:
        return None
    if not token:
        raise InvalidAccessTokenException()
    return tokens.verify_access_token(token)


def authorize_identity(policy: RoutePolicy, identity: TokenClaims | None, event: str = "request") -> None:
    """Role authorization gate.

    ADMIN passes every role check; other roles must equal one of the
    required roles exactly.

    Raises:
        AccessDeniedException: If the identity lacks a required role

    """
    if not policy.required_roles:
        return

    required = [role.value for role in policy.required_roles]
    if identity is None:
        audit_access(event, AuditOutcome.DENIED, required_roles=required)
        raise AccessDeniedException()

    role = str(identity.role)
    if identity.role == UserRole.ADMIN or any(identity.role == r for r in policy.required_roles):
        audit_access(event, AuditOutcome.ALLOWED, identity.user_id, role, required)
        return

    audit_access(event, AuditOutcome.DENIED, identity.user_id, role, required)
    raise AccessDeniedException()


@lru_cache
def get_token_factory() -> TokenFactory:
    return TokenFactory.from_settings(settings)


def guard(policy: RoutePolicy):
    """Dependency factory running both gates for one operation.

    Usage:
        identity: TokenClaims = Depends(guard(RoutePolicy()))
        Depends(guard(RoutePolicy(required_roles=frozenset({UserRole.ADMIN}))))
    """

    async def gate(
        request: Request,
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
        tokens: TokenFactory = Depends(get_token_factory),
    ) -> TokenClaims | None:
        token = credentials.credentials if credentials else None
        identity = authenticate_request(policy, token, tokens)
        authorize_identity(policy, identity, event=request.url.path)
        return identity

    return gate


get_current_identity = guard(AUTHENTICATED)
public_route = guard(PUBLIC)


def require_role(*required_roles: UserRole):
    """Dependency factory to require specific roles (ANY of them, ADMIN always passes).

    Usage:
        Depends(require_role(UserRole.ADMIN))
    """
    return guard(RoutePolicy(required_roles=frozenset(required_roles)))


def authorize_owner(identity: TokenClaims, owner_id: int, event: str = "request") -> None:
    """Owner-or-admin gate for per-user resources.

    Raises:
        AccessDeniedException: If a non-ADMIN identity targets another user

    """
    required = [UserRole.ADMIN.value, f"owner:{owner_id}"]
    role = str(identity.role)
    if identity.role == UserRole.ADMIN or identity.user_id == owner_id:
        audit_access(event, AuditOutcome.ALLOWED, identity.user_id, role, required)
        return

    audit_access(event, AuditOutcome.DENIED, identity.user_id, role, required)
    raise AccessDeniedException()


async def require_owner_or_admin(
    user_id: int,
    request: Request,
    identity: TokenClaims = Depends(get_current_identity),
) -> TokenClaims:
    """Dependency for `/users/{user_id}` routes: the user themselves or an ADMIN."""
    authorize_owner(identity, user_id, event=request.url.path)
    return identity


class ResetTokenGate:
    """Gate for the reset-scoped token guarding the final recovery step."""

    def __init__(self, store: CredentialStore, tokens: TokenFactory):
        self.store = store
        self.tokens = tokens

    async def verify(self, token: str) -> int:
        """Return the user id a reset token authorizes.

        A token is spent once the password has changed after it was issued.

        Raises:
            InvalidResetTokenException: If the token is invalid, expired, spent,
                or its owner is missing or not allowed to reset

        """
        claims = self.tokens.verify_reset_token(token)
        user = await self.store.find_by_id(claims.user_id)

        if user is None or user.status not in RESETTABLE_STATUSES:
            logger.warning(f"Reset token presented for missing or inactive user {claims.user_id}")
            raise InvalidResetTokenException()

        if user.password_updated_at is not None and as_utc(user.password_updated_at) >= claims.issued_at:
            logger.warning(f"Reset token reuse for user {user.id}")
            raise InvalidResetTokenException()

        return user.id


# Service wiring


def get_credential_store(session: AsyncSession = Depends(get_db_session)) -> CredentialStore:
    return SqlCredentialStore(session)


def get_rotation_service(
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenFactory = Depends(get_token_factory),
) -> RefreshRotationService:
    return RefreshRotationService(store, tokens)


def get_auth_service(
    store: CredentialStore = Depends(get_credential_store),
    rotation: RefreshRotationService = Depends(get_rotation_service),
    tokens: TokenFactory = Depends(get_token_factory),
) -> AuthService:
    return AuthService(store, rotation, tokens)


def get_password_recovery_service(
    store: CredentialStore = Depends(get_credential_store),
    verifier: SmsVerifier = Depends(get_recovery_verifier),
    tokens: TokenFactory = Depends(get_token_factory),
) -> PasswordRecoveryService:
    return PasswordRecoveryService(store, verifier, tokens)


def get_registration_service(
    store: CredentialStore = Depends(get_credential_store),
    verifier: SmsVerifier = Depends(get_register_verifier),
) -> UserRegistrationService:
    return UserRegistrationService(store, verifier)


def get_reset_token_gate(
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenFactory = Depends(get_token_factory),
) -> ResetTokenGate:
    return ResetTokenGate(store, tokens)
