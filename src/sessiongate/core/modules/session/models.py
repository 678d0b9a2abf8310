"""Session management models."""

from datetime import datetime
from enum import StrEnum
from typing import NewType

from pydantic import BaseModel

AuthToken = NewType("AuthToken", str)


class SessionFailure(StrEnum):
    """Why a presented (subject, token) pair was not accepted."""

    SUBJECT_NOT_FOUND = "subject_not_found"
    NO_SESSION = "no_session"
    TOKEN_MISMATCH = "token_mismatch"  # superseded by a later login
    SESSION_EXPIRED = "session_expired"


class SessionGrant(BaseModel):
    """Freshly issued session credentials."""

    token: AuthToken
    expires_at: datetime


class SessionCheck(BaseModel):
    """Outcome of checking a presented session.

    expires_at is set only when valid; reason only when not.
    """

    valid: bool
    expires_at: datetime | None = None
    reason: SessionFailure | None = None

    @classmethod
    def ok(cls, expires_at: datetime) -> "SessionCheck":
        return cls(valid=True, expires_at=expires_at)

    @classmethod
    def failed(cls, reason: SessionFailure) -> "SessionCheck":
        return cls(valid=False, reason=reason)
