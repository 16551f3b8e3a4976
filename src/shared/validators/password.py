"""Password validation functions."""

MAX_PASSWORD_LENGTH = 128


def validate_password_strength(password: str) -> str:
    """Validate password strength requirements.

    Requirements:
    - At least 8 characters (enforced by Field min_length)
    - At most 128 characters
    - At least one uppercase letter, one lowercase letter and one digit

    Examples:
        >>> validate_password_strength("NewPass!234")
        'NewPass!234'
        >>> validate_password_strength("newpass!234")
        Traceback (most recent call last):
        ...
        ValueError: Password must contain at least one uppercase letter

    """
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_LENGTH} characters")
    if not any(c.isupper() for c in password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one digit")
    return password
