from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """

    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, message: str = "Document not found", code: str | None = None) -> None:
        super().__init__(message, code)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    status_code = 401
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication failed", code: str | None = None) -> None:
        super().__init__(message, code)


class AccessDeniedError(UserError):
    """Raised when a user tries to access a resource they do not have permission for."""

    status_code = 403
    default_code = "ACCESS_DENIED"


class ValidationError(UserError):
    """Raised when user input fails validation."""

    default_code = "VALIDATION_ERROR"


class StorageError(Exception):
    """Raised when the user store cannot be read or written.

    Never shown to clients: the web layer answers with a generic server error.
    """
