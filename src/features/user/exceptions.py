"""User-related exceptions."""

from fastapi import HTTPException, status


class UserException(HTTPException):
    """Base user exception."""

    def __init__(self, detail: str = "User operation failed", status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class UserNotFound(UserException):
    """Raised when user is not found."""

    def __init__(self):
        super().__init__(detail="User not found", status_code=status.HTTP_404_NOT_FOUND)


class PhoneNumberAlreadyRegistered(UserException):
    """Raised when registering a phone number that already belongs to a user."""

    def __init__(self):
        super().__init__(detail="Phone number already registered", status_code=status.HTTP_409_CONFLICT)
