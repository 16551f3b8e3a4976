"""Authentication schemas (DTOs)."""

from pydantic import BaseModel, Field, field_validator

from src.features.user.schemas import UserSummary
from src.shared.validators.password import validate_password_strength
from src.shared.validators.phone import validate_phone_number


class PhoneNumberRequest(BaseModel):
    """Base for requests keyed by an E.164 phone number."""

    phone_number: str = Field(..., description="Phone number in E.164 format", examples=["+56912345678"])

    @field_validator("phone_number")
    @classmethod
    def check_phone_number(cls, value: str) -> str:
        return validate_phone_number(value)


# Request schemas
class LoginRequest(PhoneNumberRequest):
    """Login with phone number and password."""

    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    """Refresh token request."""

    refresh_token: str


class RegisterRequest(PhoneNumberRequest):
    """Self-registration of a neighbor account."""

    password: str = Field(
        ..., min_length=8, description="Password (minimum 8 characters, must include uppercase, lowercase, and digit)"
    )
    name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        """Validate password strength using shared validator."""
        return validate_password_strength(value)


class VerifyCodeRequest(PhoneNumberRequest):
    """SMS code confirmation (registration or password recovery)."""

    code: str = Field(..., min_length=4, max_length=10)


class RecoverPasswordRequest(PhoneNumberRequest):
    """Start of the password recovery flow."""


class ResetPasswordRequest(BaseModel):
    """Final step of the password recovery flow."""

    token: str = Field(..., min_length=1, description="Reset token from /auth/verify-recover-password")
    new_password: str = Field(..., min_length=8)

    @field_validator("new_password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        return validate_password_strength(value)


# Response schemas
class LoginResponse(BaseModel):
    """JWT token pair plus identity summary."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserSummary


class ResetTokenResponse(BaseModel):
    reset_token: str
    message: str = "Password reset token generated successfully"


class MessageResponse(BaseModel):
    message: str
