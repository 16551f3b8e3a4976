"""User service layer."""

import logging

from src.features.auth.rotation import RefreshRotationService
from src.features.auth.store import CredentialStore

from .exceptions import UserNotFound
from .models import User, UserStatus
from .schemas import UpdateUserRequest

logger = logging.getLogger(__name__)


class UserService:
    """Service for user administration."""

    def __init__(self, store: CredentialStore, rotation: RefreshRotationService):
        self.store = store
        self.rotation = rotation

    async def get_user(self, user_id: int) -> User:
        """Get user by ID.

        Raises:
            UserNotFound: If no user has this id

        """
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    async def update_profile(self, user_id: int, data: UpdateUserRequest) -> User:
        """Apply the provided profile fields.

        Raises:
            UserNotFound: If no user has this id

        """
        user = await self.get_user(user_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(user, field, value)
        await self.store.save(user)

        logger.info(f"User {user.id} profile updated")
        return user

    async def update_status(self, user_id: int, new_status: UserStatus) -> User:
        """Move a user through the account lifecycle (admin decision).

        Leaving ACTIVE revokes every refresh session of the user, so the
        lockout takes effect once outstanding access tokens expire.

        Args:
            user_id: Target user
            new_status: Status to set

        Returns:
            Updated User object

        Raises:
            UserNotFound: If no user has this id

        """
        user = await self.get_user(user_id)
        previous = user.status
        user.status = new_status
        await self.store.save(user)

        if new_status != UserStatus.ACTIVE:
            await self.rotation.revoke_all(user.id)

        logger.info(f"User {user.id} status changed: {previous} -> {new_status}")
        return user
