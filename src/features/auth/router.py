"""Authentication router (login, token rotation, registration and password recovery)."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.dependencies import get_db_session
from src.features.user.schemas import UserSummary
from src.shared.rate_limit import limiter

from .dependencies import (
    ResetTokenGate,
    get_auth_service,
    get_current_identity,
    get_password_recovery_service,
    get_registration_service,
    get_reset_token_gate,
    public_route,
)
from .exceptions import InvalidRefreshTokenException
from .recovery import PasswordRecoveryService
from .registration import UserRegistrationService
from .schemas import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RecoverPasswordRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ResetTokenResponse,
    VerifyCodeRequest,
)
from .service import AuthService
from .token_factory import TokenClaims

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])

RECOVERY_CODE_SENT = "Password recovery code sent successfully."


@router.post("/login", response_model=LoginResponse, dependencies=[Depends(public_route)])
@limiter.limit(settings.auth_rate_limit)
async def login(
    request: Request,
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Login and get JWT tokens.

    - **phone_number**: Phone number in E.164 format
    - **password**: Account password

    Returns access_token, refresh_token and an identity summary.
    """
    response = await service.login(data.phone_number, data.password)
    await session.commit()
    return response


@router.post("/refresh", response_model=LoginResponse, dependencies=[Depends(public_route)])
async def refresh_token(
    data: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Exchange a refresh token for a new pair.

    The presented refresh token is consumed and cannot be used again.
    """
    try:
        response = await service.refresh(data.refresh_token)
    except InvalidRefreshTokenException:
        # Expired or consumed records stay deleted even though the call fails
        await session.commit()
        raise
    await session.commit()
    return response


@router.post("/logout", response_model=MessageResponse)
async def logout(
    data: RefreshTokenRequest,
    identity: TokenClaims = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Logout and revoke refresh token.

    - **refresh_token**: Refresh token to revoke
    """
    revoked = await service.logout(identity.user_id, data.refresh_token)
    await session.commit()

    if revoked:
        return MessageResponse(message="Successfully logged out")
    return MessageResponse(message="Token already revoked or not found")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    identity: TokenClaims = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Revoke every refresh session of the caller."""
    removed = await service.logout_all(identity.user_id)
    await session.commit()
    return MessageResponse(message=f"Revoked {removed} session(s)")


@router.post(
    "/register",
    response_model=UserSummary,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(public_route)],
)
async def register(
    data: RegisterRequest,
    service: UserRegistrationService = Depends(get_registration_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Register a neighbor account.

    - **phone_number**: Phone number in E.164 format
    - **password**: Password (minimum 8 characters, must include uppercase, lowercase, and digit)
    - **name**, **last_name**: Display name

    A verification code is sent by SMS; the account then waits for admin approval.
    """
    user = await service.register(data)
    await session.commit()
    return user


@router.post("/verify-register-code", response_model=MessageResponse, dependencies=[Depends(public_route)])
async def verify_register_code(
    data: VerifyCodeRequest,
    service: UserRegistrationService = Depends(get_registration_service),
    session: AsyncSession = Depends(get_db_session),
):
    await service.verify_register_code(data.phone_number, data.code)
    await session.commit()
    return MessageResponse(message="Phone number verified. Your account is pending approval.")


@router.post("/recover-password", response_model=MessageResponse, dependencies=[Depends(public_route)])
@limiter.limit(settings.auth_rate_limit)
async def recover_password(
    request: Request,
    data: RecoverPasswordRequest,
    service: PasswordRecoveryService = Depends(get_password_recovery_service),
):
    """Start password recovery.

    Always answers the same way, whether or not the phone number is registered.
    """
    await service.request_reset(data.phone_number)
    return MessageResponse(message=RECOVERY_CODE_SENT)


@router.post("/verify-recover-password", response_model=ResetTokenResponse, dependencies=[Depends(public_route)])
@limiter.limit(settings.auth_rate_limit)
async def verify_recover_password(
    request: Request,
    data: VerifyCodeRequest,
    service: PasswordRecoveryService = Depends(get_password_recovery_service),
):
    """Exchange the SMS code for a short-lived reset token."""
    return await service.confirm_code(data.phone_number, data.code)


@router.post("/reset-password", response_model=MessageResponse, dependencies=[Depends(public_route)])
async def reset_password(
    data: ResetPasswordRequest,
    gate: ResetTokenGate = Depends(get_reset_token_gate),
    service: PasswordRecoveryService = Depends(get_password_recovery_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Set a new password using a reset token from /auth/verify-recover-password."""
    user_id = await gate.verify(data.token)
    message = await service.apply_new_password(user_id, data.new_password)
    await session.commit()
    return MessageResponse(message=message)
