from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sessiongate.core.db import MongoModel
from sessiongate.utils import now

Role = Literal["admin", "user"]


class User(MongoModel):
    """User record with credentials and the embedded session.

    session_token and expires_at are set together and cleared together.
    """

    username: str
    password_hash: str  # bcrypt hash
    role: Role = "user"
    created_at: datetime = Field(default_factory=now)
    session_token: str | None = None
    expires_at: datetime | None = None

    @property
    def has_session(self) -> bool:
        return self.session_token is not None and self.expires_at is not None


class UserView(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    role: Role = Field(..., description="Account role")
    created_at: datetime = Field(..., description="Account creation time")
    expires_at: datetime | None = Field(None, description="Expiry of the active session, if any")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(
            id=user.id,
            username=user.username,
            role=user.role,
            created_at=user.created_at,
            expires_at=user.expires_at,
        )
