"""Authentication exceptions.

Details are deliberately generic: callers learn that a check failed, not which
one, except that an expired access token is reported as such so clients know
to try a refresh.
"""

from fastapi import HTTPException, status


class AuthenticationException(HTTPException):
    """Base authentication exception."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsException(AuthenticationException):
    """Raised when phone number or password is incorrect."""

    def __init__(self):
        super().__init__(detail="Invalid credentials provided")


class InvalidAccessTokenException(AuthenticationException):
    """Raised when an access token is missing, forged or malformed."""

    def __init__(self, detail: str = "Invalid access token"):
        super().__init__(detail=detail)


class TokenExpiredException(InvalidAccessTokenException):
    """Raised when an access token has expired."""

    def __init__(self):
        super().__init__(detail="Token has expired")


class InvalidRefreshTokenException(AuthenticationException):
    """Raised when a refresh token is unknown, consumed or expired."""

    def __init__(self):
        super().__init__(detail="Invalid refresh token")


class InvalidResetTokenException(AuthenticationException):
    """Raised when a password reset token is invalid, expired or already used."""

    def __init__(self):
        super().__init__(detail="Invalid reset token")


class AccountNotActiveException(HTTPException):
    """Raised when credentials are correct but the account is not ACTIVE."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is not active. Please wait for activation or contact support.",
        )


class InvalidVerificationCodeException(HTTPException):
    """Raised when an SMS verification code is wrong or expired."""

    def __init__(self):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid verification code")


class AccessDeniedException(HTTPException):
    """Raised when an authenticated identity lacks the required role."""

    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class StorageFailureException(HTTPException):
    """Raised when persisting credential data fails."""

    def __init__(self):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
