from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

from sessiongate.core.modules.user.models import User


class RouteKind(StrEnum):
    PUBLIC = "public"
    PROTECTED = "protected"


class GateState(StrEnum):
    """Terminal outcome of evaluating one request."""

    PUBLIC = "public"
    PROTECTED_MISSING_CREDS = "protected_missing_creds"
    PROTECTED_INVALID = "protected_invalid"
    PROTECTED_VALID = "protected_valid"


class RejectionCode(StrEnum):
    """Machine-readable codes returned to clients on rejection."""

    UNAUTHORIZED = "UNAUTHORIZED"
    NO_SESSION_TOKEN = "NO_SESSION_TOKEN"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SESSION_REPLACED = "SESSION_REPLACED"
    MISSING_HEADERS = "MISSING_HEADERS"


REJECTION_MESSAGES: dict[RejectionCode, str] = {
    RejectionCode.UNAUTHORIZED: "Authentication required. Please provide the identity header.",
    RejectionCode.NO_SESSION_TOKEN: "Session token required. Please provide the session token header.",
    RejectionCode.SESSION_EXPIRED: "Session expired. Please login again.",
    RejectionCode.SESSION_REPLACED: "Session was replaced: you logged in elsewhere. Please login again.",
    RejectionCode.MISSING_HEADERS: "Identity and session token are required.",
}


class GateDecision(BaseModel):
    """What the gate decided for a request, independent of the web framework."""

    state: GateState
    code: RejectionCode | None = None
    user: User | None = None
    expires_at: datetime | None = None

    @property
    def allowed(self) -> bool:
        return self.state in (GateState.PUBLIC, GateState.PROTECTED_VALID)
