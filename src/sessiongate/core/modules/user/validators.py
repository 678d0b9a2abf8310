from sessiongate.errors import ValidationError

MIN_PASSWORD_LENGTH = 6


def validate_password(password: str) -> None:
    """Validate password meets requirements.

    Requirements:
    - No whitespace characters
    - Minimum length of 6 characters

    Raises:
        ValidationError: If password doesn't meet requirements
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long", code="PASSWORD_TOO_SHORT"
        )

    if any(char.isspace() for char in password):
        raise ValidationError("Password cannot contain whitespace characters", code="INVALID_PASSWORD_FORMAT")


def validate_username(username: str) -> None:
    """Validate username is non-empty and has no whitespace."""
    if not username or any(char.isspace() for char in username):
        raise ValidationError("Username must be non-empty and cannot contain whitespace", code="INVALID_USERNAME")
