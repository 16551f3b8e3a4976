"""User management router (API endpoints)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.auth.dependencies import get_current_identity, require_owner_or_admin, require_role
from src.features.auth.token_factory import TokenClaims

from .dependencies import get_user_service
from .models import UserRole
from .schemas import UpdateUserRequest, UpdateUserStatusRequest, UserResponse
from .service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["User Management"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    identity: TokenClaims = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
):
    """Get current user information."""
    user = await service.get_user(identity.user_id)
    return UserResponse.model_validate(user)


# Owner-or-admin endpoints
@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    _: TokenClaims = Depends(require_owner_or_admin),
    service: UserService = Depends(get_user_service),
):
    """Get user by ID (the user themselves or an admin)."""
    user = await service.get_user(user_id)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UpdateUserRequest,
    _: TokenClaims = Depends(require_owner_or_admin),
    service: UserService = Depends(get_user_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Update name or last name (the user themselves or an admin)."""
    user = await service.update_profile(user_id, data)
    await session.commit()
    return UserResponse.model_validate(user)


# Admin endpoints
@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    data: UpdateUserStatusRequest,
    admin: TokenClaims = Depends(require_role(UserRole.ADMIN)),
    service: UserService = Depends(get_user_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Approve, reject or suspend a user (admin only).

    Any status other than ACTIVE also revokes the user's refresh sessions.
    """
    user = await service.update_status(user_id, data.status)
    await session.commit()
    logger.info(f"User {user.id} set to {data.status} by admin {admin.user_id}")
    return UserResponse.model_validate(user)
