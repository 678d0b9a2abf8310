from datetime import datetime
from typing import Annotated, cast

from fastapi import Depends, Request

from sessiongate.app import App
from sessiongate.core.modules.user.models import User
from sessiongate.errors import AuthenticationError


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_current_user(request: Request) -> User:
    """User resolved by the access gate for this request."""
    user = getattr(request.state, "user", None)
    if user is None or not getattr(request.state, "gate_processed", False):
        raise AuthenticationError("Authentication required")
    return cast(User, user)


async def get_session_expires_at(request: Request) -> datetime | None:
    """Session expiry as refreshed by the access gate."""
    return cast(datetime | None, getattr(request.state, "session_expires_at", None))


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
SessionExpiresDep = Annotated[datetime | None, Depends(get_session_expires_at)]
