"""Password recovery orchestration.

Workflow:
1. request_reset: an SMS code is sent if the phone belongs to a user
2. confirm_code: a valid code is exchanged for a short-lived reset token
3. apply_new_password: the user id taken from a verified reset token gets a new password

Steps 1 and 2 never reveal whether a phone number is registered.
"""

import logging
from datetime import UTC, datetime

from src.features.user.exceptions import UserNotFound
from src.features.user.models import User
from src.features.verification.exceptions import VerificationProviderError
from src.features.verification.service import SmsVerifier

from .exceptions import InvalidVerificationCodeException, StorageFailureException
from .schemas import ResetTokenResponse
from .store import CredentialStore, StorageError
from .token_factory import TokenFactory

logger = logging.getLogger(__name__)

PASSWORD_RESET_SUCCESS = "Password reset successful"


class PasswordRecoveryService:
    """Drives the phone verification -> reset token -> new password flow."""

    def __init__(self, store: CredentialStore, verifier: SmsVerifier, tokens: TokenFactory):
        self.store = store
        self.verifier = verifier
        self.tokens = tokens

    async def request_reset(self, phone_number: str) -> None:
        """Send a reset code. Always returns normally; failures are only logged."""
        try:
            user = await self.store.find_by_phone(phone_number)
        except StorageError as err:
            logger.error(f"Failed to look up {phone_number} for password reset: {err}")
            return

        if user is None:
            logger.warning(f"Password reset attempted for non-existent user: {phone_number}")
            return

        try:
            await self.verifier.send_code(phone_number)
        except VerificationProviderError as err:
            logger.error(f"Failed to send reset password code to {phone_number}: {err}")
            return

        logger.info(f"Reset password code sent to user {user.id}")

    async def confirm_code(self, phone_number: str, code: str) -> ResetTokenResponse:
        """Exchange a valid SMS code for a reset token.

        Raises:
            InvalidVerificationCodeException: On a bad code, a provider failure,
                or a phone that resolves to no user

        """
        try:
            approved = await self.verifier.check_code(phone_number, code)
        except VerificationProviderError as err:
            logger.error(f"Verification check failed for {phone_number}: {err}")
            raise InvalidVerificationCodeException() from err

        if not approved:
            logger.warning(f"Invalid verification code for {phone_number}")
            raise InvalidVerificationCodeException()

        try:
            user = await self.store.find_by_phone(phone_number)
        except StorageError as err:
            logger.error(f"Error generating reset password token for {phone_number}: {err}")
            raise InvalidVerificationCodeException() from err

        if user is None:
            logger.error(f"Verified phone {phone_number} has no matching user")
            raise InvalidVerificationCodeException()

        logger.info(f"Generating reset password token for user: {user.id}")
        return ResetTokenResponse(reset_token=self.tokens.issue_reset_token(user))

    async def apply_new_password(self, user_id: int, new_password: str) -> str:
        """Set a new password for a user id taken from a verified reset token.

        Raises:
            UserNotFound: If the user no longer exists
            StorageFailureException: If the update cannot be persisted

        """
        logger.info(f"Resetting password for user ID: {user_id}")
        try:
            user: User | None = await self.store.find_by_id_with_secret(user_id)
            if user is None:
                raise UserNotFound()

            user.hashed_password = User.hash_password(new_password)
            user.password_updated_at = datetime.now(UTC)
            await self.store.save(user)
        except StorageError as err:
            logger.error(f"Error resetting password for user {user_id}: {err}")
            raise StorageFailureException() from err

        return PASSWORD_RESET_SUCCESS
