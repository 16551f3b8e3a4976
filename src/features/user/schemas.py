"""User schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, Field

from .models import UserRole, UserStatus


# Request schemas
class UpdateUserStatusRequest(BaseModel):
    """Admin status transition."""

    status: UserStatus


class UpdateUserRequest(BaseModel):
    """Profile update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)


# Response schemas
class UserSummary(BaseModel):
    """Identity summary returned alongside tokens."""

    id: int
    phone_number: str
    name: str
    last_name: str
    role: UserRole

    model_config = {"from_attributes": True}


class UserResponse(UserSummary):
    """User response."""

    status: UserStatus
    created_at: datetime
    password_updated_at: datetime | None = None
