"""User domain models."""

from datetime import datetime
from enum import StrEnum

from pwdlib import PasswordHash
from sqlalchemy import DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, CreatedAtMixin


class UserRole(StrEnum):
    """User roles for RBAC.

    ADMIN: Full system access. Approves or rejects registrations and moderates
           the neighborhood chat (pin/unpin messages).

    NEIGHBOR: Regular resident. Can report issues, follow reports and chat.
    """

    ADMIN = "ADMIN"
    NEIGHBOR = "NEIGHBOR"


class UserStatus(StrEnum):
    """User account lifecycle status.

    PENDING_VERIFICATION -> PENDING_APPROVAL (SMS code verified)
    PENDING_APPROVAL -> ACTIVE | REJECTED (admin decision)
    """

    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"


pwd_hasher = PasswordHash.recommended()


class User(Base, CreatedAtMixin):
    """Registered principal, identified by phone number."""

    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity (E.164, globally unique)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)

    # Authentication
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    password_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Authorization
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=20),
        nullable=False,
        default=UserRole.NEIGHBOR,
        server_default=UserRole.NEIGHBOR.value,
    )

    # Status
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, native_enum=False, length=50),
        nullable=False,
        default=UserStatus.PENDING_VERIFICATION,
        server_default=UserStatus.PENDING_VERIFICATION.value,
        index=True,
    )

    @property
    def is_active(self) -> bool:
        """Only ACTIVE users may authenticate."""
        return self.status == UserStatus.ACTIVE

    def verify_password(self, plain_password: str) -> bool:
        """Verify a password against the hash using Argon2.

        Salt is automatically extracted from the hash by pwdlib.
        """
        return pwd_hasher.verify(plain_password, self.hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using Argon2.

        Salt is automatically generated and embedded in the returned hash.
        """
        return pwd_hasher.hash(password)
