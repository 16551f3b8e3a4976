"""Neighbor self-registration with SMS phone verification.

New accounts start in PENDING_VERIFICATION, move to PENDING_APPROVAL once the
SMS code is confirmed, and only become ACTIVE after an admin approves them.
"""

import logging

from src.features.user.exceptions import PhoneNumberAlreadyRegistered
from src.features.user.models import User, UserRole, UserStatus
from src.features.user.schemas import UserSummary
from src.features.verification.exceptions import VerificationProviderError
from src.features.verification.service import SmsVerifier

from .exceptions import InvalidVerificationCodeException
from .schemas import RegisterRequest
from .store import CredentialStore, DuplicatePhoneNumber

logger = logging.getLogger(__name__)


class UserRegistrationService:
    def __init__(self, store: CredentialStore, verifier: SmsVerifier):
        self.store = store
        self.verifier = verifier

    async def register(self, data: RegisterRequest) -> UserSummary:
        if await self.store.find_by_phone(data.phone_number) is not None:
            raise PhoneNumberAlreadyRegistered()

        user = User(
            phone_number=data.phone_number,
            hashed_password=User.hash_password(data.password),
            name=data.name,
            last_name=data.last_name,
            role=UserRole.NEIGHBOR,
            status=UserStatus.PENDING_VERIFICATION,
        )
        try:
            user = await self.store.create_user(user)
        except DuplicatePhoneNumber as err:
            raise PhoneNumberAlreadyRegistered() from err

        await self.verifier.send_code(user.phone_number)
        logger.info(f"New user registered: {user.id}, verification code sent")
        return UserSummary.model_validate(user)

    async def verify_register_code(self, phone_number: str, code: str) -> None:
        """Confirm the registration code and queue the account for approval."""
        try:
            approved = await self.verifier.check_code(phone_number, code)
        except VerificationProviderError as err:
            logger.error(f"Registration code check failed for {phone_number}: {err}")
            raise InvalidVerificationCodeException() from err

        user = await self.store.find_by_phone(phone_number) if approved else None
        if user is None or user.status != UserStatus.PENDING_VERIFICATION:
            logger.warning(f"Invalid verification code for {phone_number}")
            raise InvalidVerificationCodeException()

        user.status = UserStatus.PENDING_APPROVAL
        await self.store.save(user)
        logger.info(f"User {user.id} verified phone, awaiting approval")
